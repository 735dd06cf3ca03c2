"""On-demand delegator discovery and stake distribution statistics."""

import asyncio
from collections import Counter
from collections.abc import Iterable

from stakescan.analytics.models import (
    DelegatorEntry,
    DelegatorReport,
    DelegatorSource,
    DelegatorStatistics,
)
from stakescan.discovery.extractor import SenderCollector, extract_candidates
from stakescan.discovery.scanner import ChainScanner
from stakescan.helpers.constants import (
    DEFAULT_PROBE_BATCH_SIZE,
    DELEGATOR_RANGE_SIZE,
    DELEGATOR_SCAN_RANGES,
)
from stakescan.helpers.logging import get_logger
from stakescan.helpers.models import LogEvent
from stakescan.helpers.parsers import is_zero_address, short_address, wei_to_token
from stakescan.staking.accountant import Delegation, DelegationAccountant


logger = get_logger(__name__)

TOP_N = 10

LARGE_BUCKET = "Large (>10%)"
MEDIUM_BUCKET = "Medium (1-10%)"
SMALL_BUCKET = "Small (<1%)"


def recent_ranges(latest: int, count: int, size: int) -> list[tuple[int, int]]:
    """Consecutive inclusive ranges walking back from ``latest``.

    Example:
        >>> recent_ranges(2_500_000, 3, 1_000_000)
        [(1500001, 2500000), (500001, 1500000), (0, 500000)]
    """
    ranges: list[tuple[int, int]] = []
    end = latest
    for _ in range(count):
        if end < 0:
            break
        start = max(0, end - size + 1)
        ranges.append((start, end))
        end = start - 1
    return ranges


def concentration_label(top10_share: float) -> str:
    if top10_share > 80:
        return "Highly concentrated"
    if top10_share > 60:
        return "Moderately concentrated"
    if top10_share > 40:
        return "Somewhat concentrated"
    return "Balanced"


def gini_coefficient(stakes: list[float]) -> float:
    """Sum of absolute pairwise differences over ``2 * n * total``, capped at 1.

    Example:
        >>> gini_coefficient([1.0, 1.0, 1.0])
        0.0
    """
    n = len(stakes)
    total = sum(stakes)
    if n == 0 or total <= 0:
        return 0.0
    ordered = sorted(stakes)
    # sum over all ordered pairs |si - sj| from the sorted prefix form
    pairwise = 2 * sum((2 * i - n + 1) * s for i, s in enumerate(ordered))
    return min(1.0, pairwise / (2 * n * total))


def compute_statistics(entries: list[DelegatorEntry]) -> DelegatorStatistics:
    """Statistics of a delegator list ranked by stake descending."""
    if not entries:
        return DelegatorStatistics(
            distribution={LARGE_BUCKET: 0, MEDIUM_BUCKET: 0, SMALL_BUCKET: 0}
        )

    total_wei = sum(e.amount_wei for e in entries)
    stakes = sorted(float(e.amount) for e in entries)
    n = len(stakes)
    total = float(wei_to_token(total_wei))
    median = (
        (stakes[n // 2 - 1] + stakes[n // 2]) / 2 if n % 2 == 0 else stakes[n // 2]
    )
    top_wei = sum(e.amount_wei for e in entries[:TOP_N])
    top10_share = top_wei / total_wei * 100 if total_wei else 0.0

    return DelegatorStatistics(
        total_delegators=n,
        total_staked=wei_to_token(total_wei),
        mean_stake=total / n,
        median_stake=median,
        max_stake=stakes[-1],
        min_stake=stakes[0],
        top10_share=top10_share,
        gini=gini_coefficient(stakes),
        concentration=concentration_label(top10_share),
        distribution={
            LARGE_BUCKET: sum(1 for e in entries if e.percentage > 10),
            MEDIUM_BUCKET: sum(1 for e in entries if 1 <= e.percentage <= 10),
            SMALL_BUCKET: sum(1 for e in entries if e.percentage < 1),
        },
    )


def rank_delegations(
    found: Iterable[tuple[Delegation, DelegatorSource]],
) -> list[DelegatorEntry]:
    """Rank positive delegations by amount and attach percentages."""
    positive = [(d, src) for d, src in found if d.amount_wei > 0]
    positive.sort(key=lambda item: item[0].amount_wei, reverse=True)
    total_wei = sum(d.amount_wei for d, _ in positive)

    return [
        DelegatorEntry(
            rank=rank,
            address=delegation.delegator,
            short_address=short_address(delegation.delegator),
            shares=delegation.shares,
            amount=delegation.amount,
            amount_wei=delegation.amount_wei,
            percentage=delegation.amount_wei / total_wei * 100 if total_wei else 0.0,
            source=source,
        )
        for rank, (delegation, source) in enumerate(positive, start=1)
    ]


class DelegatorAnalytics:
    """Discovers a validator's delegators from its logs and known addresses.

    Log coverage is bounded to the most recent ranges, so a list of known
    addresses is always probed as well.
    """

    def __init__(
        self,
        scanner: ChainScanner,
        accountant: DelegationAccountant,
        *,
        known_delegators: Iterable[str] = (),
        ranges: int = DELEGATOR_SCAN_RANGES,
        range_size: int = DELEGATOR_RANGE_SIZE,
        batch_size: int = DEFAULT_PROBE_BATCH_SIZE,
    ) -> None:
        self.scanner = scanner
        self.accountant = accountant
        self.known_delegators = [a.lower() for a in known_delegators]
        self.ranges = ranges
        self.range_size = range_size
        self.batch_size = batch_size

    async def _collect_events(self, validator: str) -> list[LogEvent]:
        latest = await self.scanner.latest_block()
        events: list[LogEvent] = []
        for start, end in recent_ranges(latest, self.ranges, self.range_size):
            events.extend(await self.scanner.scan_range(validator, start, end))
        return events

    async def _delegations(self, validator: str, addresses: list[str]) -> list[Delegation]:
        results: list[Delegation] = []
        for i in range(0, len(addresses), self.batch_size):
            batch = addresses[i : i + self.batch_size]
            results.extend(
                await asyncio.gather(
                    *[self.accountant.compute_delegation(validator, a) for a in batch]
                )
            )
        return results

    async def discover(
        self, validator: str, extra_known: Iterable[str] = ()
    ) -> DelegatorReport:
        """Find every delegator with a positive stake in ``validator``.

        Args:
            validator: Validator contract address (lowercase)
            extra_known: Additional addresses to probe, e.g. snapshot owners

        Returns:
            DelegatorReport ranked by stake with statistics
        """
        events = await self._collect_events(validator)
        candidates = extract_candidates(events, skip_topic0=True)
        candidates = await SenderCollector(self.scanner, self.batch_size).collect(
            events, candidates
        )
        candidates.pop(validator, None)
        from_events = [a for a in candidates if not is_zero_address(a)]

        known: list[str] = []
        for address in [*self.known_delegators, *(a.lower() for a in extra_known)]:
            if address != validator and address not in candidates and address not in known:
                known.append(address)

        found: list[tuple[Delegation, DelegatorSource]] = [
            (d, DelegatorSource.EVENTS)
            for d in await self._delegations(validator, from_events)
        ]
        found.extend(
            (d, DelegatorSource.KNOWN_CHECK)
            for d in await self._delegations(validator, known)
        )

        entries = rank_delegations(found)
        logger.info(
            "%s: %d delegators from %d candidates, %d events",
            validator,
            len(entries),
            len(from_events) + len(known),
            len(events),
        )
        return DelegatorReport(
            validator=validator,
            delegators=entries,
            statistics=compute_statistics(entries),
            top10=entries[:TOP_N],
            sources=dict(Counter(str(e.source) for e in entries)),
            scanned_candidates=len(from_events) + len(known),
            events_scanned=len(events),
        )


__all__ = [
    "DelegatorAnalytics",
    "compute_statistics",
    "concentration_label",
    "gini_coefficient",
    "rank_delegations",
    "recent_ranges",
]
