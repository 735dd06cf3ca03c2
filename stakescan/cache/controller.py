"""Cache refresh controller: timed full-network scans with atomic publication."""

import asyncio
import time
from collections import Counter
from datetime import UTC, datetime
from decimal import Decimal

from stakescan.cache.models import (
    CacheStatus,
    ControllerState,
    NetworkSnapshot,
    ScanProvenance,
    SnapshotValidator,
    ValidatorStatus,
    format_commission,
)
from stakescan.cache.store import SnapshotStore
from stakescan.discovery.extractor import extract_candidates
from stakescan.discovery.models import ScanReport, ValidatorRecord
from stakescan.discovery.scanner import ChainScanner, ChunkCallback, chunk_ranges
from stakescan.discovery.verifier import ValidatorVerifier
from stakescan.helpers.config import StakescanSettings
from stakescan.helpers.errors import SanityCheckError
from stakescan.helpers.logging import get_logger
from stakescan.helpers.models import LogEvent
from stakescan.metadata.models import (
    Provenance,
    Resolution,
    ResolutionOutcome,
    ResolutionStrategy,
    ValidatorMetadata,
    placeholder_moniker,
)
from stakescan.metadata.resolver import MetadataResolver
from stakescan.staking.accountant import Delegation, DelegationAccountant


logger = get_logger(__name__)


def chunk_label(index: int, start: int, end: int) -> str:
    """Discovery method recorded for validators first seen in a chunk."""
    return f"chunk_{index}_blocks_{start}-{end}"


def group_by_chunk(
    events: list[LogEvent], from_block: int, to_block: int, chunk_size: int
) -> list[tuple[str, list[LogEvent]]]:
    """Partition scan events back into the chunks that produced them."""
    groups: list[tuple[str, list[LogEvent]]] = []
    for index, (start, end) in enumerate(
        chunk_ranges(from_block, to_block, chunk_size), start=1
    ):
        chunk_events = [e for e in events if start <= e.block_number <= end]
        if chunk_events:
            groups.append((chunk_label(index, start, end), chunk_events))
    return groups


class RefreshController:
    """Builds and publishes NetworkSnapshots on a timer or on demand.

    At most one build runs at a time; a trigger that arrives while a build is
    in flight awaits that build instead of starting another. A failed build
    leaves the previous snapshot published and marks the controller degraded.

    Example:
        ```python
        controller = RefreshController(settings, scanner, store, resolver, accountant)
        snapshot = await controller.refresh_now()
        print(controller.status().state)
        ```
    """

    def __init__(
        self,
        settings: StakescanSettings,
        scanner: ChainScanner,
        store: SnapshotStore,
        resolver: MetadataResolver,
        accountant: DelegationAccountant,
    ) -> None:
        self.settings = settings
        self.scanner = scanner
        self.store = store
        self.resolver = resolver
        self.accountant = accountant

        self.state = ControllerState.INITIALIZING
        self.last_error: str | None = None
        self.degraded_since: datetime | None = None
        self.next_run_at: float | None = None
        self.alternate_endpoint_hits = 0
        self._inflight: asyncio.Task[NetworkSnapshot] | None = None

    @property
    def refreshing(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def refresh_now(self, on_chunk: ChunkCallback | None = None) -> NetworkSnapshot:
        """Run one cycle, or join the cycle already in flight.

        The build is shielded: a caller that gives up waiting does not cancel
        it, and it still publishes when it completes.

        Returns:
            The snapshot published by the cycle

        Raises:
            SanityCheckError: If the build found too few validators
            httpx.HTTPError: If the head block could not be read
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._run_cycle(on_chunk))
        return await asyncio.shield(self._inflight)

    async def _run_cycle(self, on_chunk: ChunkCallback | None) -> NetworkSnapshot:
        cycle = self.store.next_cycle()
        started = time.monotonic()
        try:
            snapshot = await self.build_snapshot(cycle, on_chunk=on_chunk)
        except Exception as e:
            self._degrade(e)
            raise

        self.store.publish(snapshot)
        self.state = ControllerState.READY
        self.last_error = None
        self.degraded_since = None
        logger.info(
            "cycle %d ready in %.1fs: %d validators (%d active)",
            cycle,
            time.monotonic() - started,
            len(snapshot.validators),
            snapshot.active_count,
        )
        return snapshot

    def _degrade(self, error: Exception) -> None:
        self.state = ControllerState.DEGRADED
        self.last_error = str(error) or type(error).__name__
        if self.degraded_since is None:
            self.degraded_since = datetime.now(UTC)

        if self.store.snapshot is None:
            logger.error("initial refresh failed, no snapshot available: %s", self.last_error)
        else:
            logger.error(
                "refresh failed, serving cycle %d: %s",
                self.store.snapshot.cycle,
                self.last_error,
            )

    async def build_snapshot(
        self, cycle: int, *, on_chunk: ChunkCallback | None = None
    ) -> NetworkSnapshot:
        """Scan, verify, resolve and format one snapshot without publishing it.

        Raises:
            SanityCheckError: If fewer than ``min_validators`` were accepted
        """
        settings = self.settings

        self.state = ControllerState.SCANNING
        latest = await self.scanner.latest_block()
        from_block = 0
        if settings.scan_window:
            from_block = max(0, latest - settings.scan_window + 1)

        report = await self.scanner.scan_chunks(
            settings.staking_contract,
            from_block,
            latest,
            chunk_size=settings.chunk_size,
            on_chunk=on_chunk,
        )

        verifier = ValidatorVerifier(self.scanner, batch_size=settings.probe_batch_size)
        candidates = 0
        for label, events in group_by_chunk(
            report.events, from_block, latest, settings.chunk_size
        ):
            found = extract_candidates(events)
            found.pop(settings.staking_contract, None)
            candidates += len(found)
            await verifier.verify_all(found.values(), label)

        records = list(verifier.accepted.values())
        logger.info(
            "cycle %d: %d candidates, %d validators verified",
            cycle,
            candidates,
            len(records),
        )
        if len(records) < settings.min_validators:
            raise SanityCheckError(len(records), settings.min_validators)

        self.state = ControllerState.EXTRACTING_METADATA
        resolutions = await self._resolve_all(records, report.events)

        self.state = ControllerState.FORMATTING
        delegations = await self._self_delegations(records, resolutions)
        return self._format(cycle, report, candidates, records, resolutions, delegations)

    async def _resolve_all(
        self, records: list[ValidatorRecord], events: list[LogEvent]
    ) -> dict[str, Resolution]:
        """Resolve metadata for every record.

        Cached generic entries (placeholder or inferred monikers) are resolved
        again each cycle so a later alternate-endpoint hit can replace them.
        """
        resolutions: dict[str, Resolution] = {}
        batch_size = self.settings.probe_batch_size

        for i in range(0, len(records), batch_size):
            batch = records[i : i + batch_size]
            results = await asyncio.gather(
                *[
                    self.resolver.resolve(
                        r.address, events, refresh=self._needs_refresh(r.address)
                    )
                    for r in batch
                ],
                return_exceptions=True,
            )
            for record, result in zip(batch, results, strict=True):
                if isinstance(result, Exception):
                    logger.warning("metadata for %s failed: %s", record.address, result)
                    result = Resolution(
                        metadata=ValidatorMetadata(
                            validator=record.address,
                            moniker=placeholder_moniker(record.address),
                            provenance=Provenance.FALLBACK,
                        ),
                        outcome=ResolutionOutcome.NOT_FOUND,
                        strategy=ResolutionStrategy.PLACEHOLDER,
                    )
                elif isinstance(result, BaseException):
                    raise result
                if result.used_alternate_endpoint:
                    self.alternate_endpoint_hits += 1
                resolutions[record.address] = result

        return resolutions

    def _needs_refresh(self, address: str) -> bool:
        cached = self.store.get_metadata(address)
        return cached is not None and cached.is_generic

    async def _self_delegations(
        self,
        records: list[ValidatorRecord],
        resolutions: dict[str, Resolution],
    ) -> dict[str, Delegation]:
        delegations: dict[str, Delegation] = {}
        pairs = [
            (r.address, owner)
            for r in records
            if (owner := resolutions[r.address].metadata.owner or self.store.owner_of(r.address))
        ]
        batch_size = self.settings.probe_batch_size

        for i in range(0, len(pairs), batch_size):
            batch = pairs[i : i + batch_size]
            results = await asyncio.gather(
                *[self.accountant.compute_delegation(v, o) for v, o in batch]
            )
            for (validator, _), delegation in zip(batch, results, strict=True):
                delegations[validator] = delegation

        return delegations

    def _format(
        self,
        cycle: int,
        report: ScanReport,
        candidates: int,
        records: list[ValidatorRecord],
        resolutions: dict[str, Resolution],
        delegations: dict[str, Delegation],
    ) -> NetworkSnapshot:
        threshold = Decimal(self.settings.active_stake)
        ordered = sorted(records, key=lambda r: r.total_tokens_wei, reverse=True)
        active_stake = sum(
            (r.total_tokens for r in ordered if r.total_tokens >= threshold), Decimal(0)
        )

        validators: list[SnapshotValidator] = []
        for record in ordered:
            resolution = resolutions[record.address]
            meta = resolution.metadata
            active = record.total_tokens >= threshold
            delegation = delegations.get(record.address)
            voting_power = (
                float(record.total_tokens / active_stake * 100)
                if active and active_stake > 0
                else 0.0
            )
            validators.append(
                SnapshotValidator(
                    address=record.address,
                    owner=meta.owner or self.store.owner_of(record.address),
                    moniker=meta.moniker,
                    identity=meta.identity,
                    website=meta.website,
                    security_contact=meta.security_contact,
                    details=meta.details,
                    avatar_url=meta.avatar_url,
                    status=ValidatorStatus.ACTIVE if active else ValidatorStatus.CANDIDATE,
                    stake=record.total_tokens,
                    stake_wei=record.total_tokens_wei,
                    self_delegation=delegation.amount if delegation else Decimal(0),
                    delegator_shares=record.delegator_shares,
                    commission_rate=record.commission_rate,
                    commission=format_commission(record.commission_rate),
                    withdrawal_fee_gwei=record.withdrawal_fee_gwei,
                    voting_power=round(voting_power, 4),
                    discovery_method=record.discovery_method,
                    metadata_provenance=meta.provenance,
                    source_tx=meta.source_tx,
                )
            )

        active_count = sum(1 for v in validators if v.status is ValidatorStatus.ACTIVE)
        return NetworkSnapshot(
            validators=tuple(validators),
            total_stake=sum((v.stake for v in validators), Decimal(0)),
            active_stake=active_stake,
            active_count=active_count,
            candidate_count=len(validators) - active_count,
            provenance=ScanProvenance(
                cycle=cycle,
                from_block=report.from_block,
                to_block=report.to_block,
                chunks=report.chunks,
                failed_chunks=report.failed_chunks,
                events=report.event_count,
                candidates=candidates,
                metadata_resolved=sum(
                    1
                    for r in resolutions.values()
                    if r.outcome is not ResolutionOutcome.NOT_FOUND
                ),
                alternate_endpoint_hits=sum(
                    1 for r in resolutions.values() if r.used_alternate_endpoint
                ),
                retrieved_at=datetime.now(UTC),
            ),
        )

    def status(self) -> CacheStatus:
        """Current controller and cache state."""
        snapshot = self.store.snapshot
        published_at = self.store.published_at
        now = datetime.now(UTC)

        histogram: dict[str, int] = {}
        if snapshot is not None:
            histogram = dict(
                Counter(str(v.metadata_provenance) for v in snapshot.validators)
            )

        return CacheStatus(
            initialized=snapshot is not None,
            last_update=published_at,
            update_count=self.store.update_count,
            stale=snapshot is not None and self.degraded_since is not None,
            state=self.state,
            last_error=self.last_error,
            cache_age_seconds=(now - published_at).total_seconds() if published_at else None,
            next_refresh_in=(
                max(0.0, self.next_run_at - time.monotonic())
                if self.next_run_at is not None
                else None
            ),
            validator_count=len(snapshot.validators) if snapshot else 0,
            active_count=snapshot.active_count if snapshot else 0,
            candidate_count=snapshot.candidate_count if snapshot else 0,
            provenance_histogram=histogram,
            alternate_endpoint_hits=self.alternate_endpoint_hits,
        )

    async def run_forever(self, stop: asyncio.Event) -> None:
        """Refresh every ``refresh_interval`` seconds until ``stop`` is set.

        A failed cycle is logged and retried on the next tick.
        """
        interval = self.settings.refresh_interval
        while not stop.is_set():
            try:
                await self.refresh_now()
            except SanityCheckError as e:
                logger.debug("cycle discarded: %s", e)
            except Exception:
                logger.exception("refresh cycle failed")

            self.next_run_at = time.monotonic() + interval
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except TimeoutError:
                continue


__all__ = [
    "RefreshController",
    "chunk_label",
    "group_by_chunk",
]
