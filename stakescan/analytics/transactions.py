"""On-demand transaction history of a validator."""

import asyncio
from collections import Counter
from decimal import Decimal

from stakescan.analytics.delegators import recent_ranges
from stakescan.analytics.models import (
    TransactionHistory,
    TransactionRecord,
    TransactionStatus,
    TransactionSummary,
    TransactionType,
)
from stakescan.discovery.scanner import ChainScanner
from stakescan.helpers.abi import (
    DELEGATED_TOPIC,
    UNDELEGATED_TOPIC,
    VALIDATOR_CREATED_TOPIC,
)
from stakescan.helpers.constants import (
    DEFAULT_ACTIVE_STAKE,
    DEFAULT_PROBE_BATCH_SIZE,
    RECENT_TRANSACTIONS_LIMIT,
    TRANSACTION_RANGE_SIZE,
    TRANSACTION_SCAN_RANGES,
)
from stakescan.helpers.logging import get_logger
from stakescan.helpers.models import LogEvent, TransactionDetails, TransactionReceipt
from stakescan.helpers.parsers import wei_to_token


logger = get_logger(__name__)

SELECTOR_TYPES: dict[str, TransactionType] = {
    "0x5c19a95c": TransactionType.DELEGATE,
    "0x4d99dd16": TransactionType.UNDELEGATE,
    "0x441a3e70": TransactionType.CREATE_VALIDATOR,
    "0x1f2f220e": TransactionType.CREATE_VALIDATOR,
    "0xe7740331": TransactionType.CREATE_VALIDATOR,
    "0xf25b3f99": TransactionType.UPDATE_COMMISSION,
    "0xe6fd48bc": TransactionType.WITHDRAW,
    "0xa694fc3a": TransactionType.STAKE,
    "0x6e512e26": TransactionType.REDELEGATE,
    "0x4f864df4": TransactionType.OTHERS,
    "0x2e1a7d4d": TransactionType.OTHERS,
    "0xa9059cbb": TransactionType.OTHERS,
    "0x095ea7b3": TransactionType.OTHERS,
}

EVENT_TYPES: dict[str, TransactionType] = {
    DELEGATED_TOPIC: TransactionType.DELEGATE,
    UNDELEGATED_TOPIC: TransactionType.UNDELEGATE,
    VALIDATOR_CREATED_TOPIC: TransactionType.CREATE_VALIDATOR,
    # topic0 values observed on the staking deployment
    "0x9a8f44850296624dadfd9c246d17e47171d35727a181bd090aa14bbbe00238bb": TransactionType.DELEGATE,
    "0x4d10bd049775c77bd7f255195afba5088028ecb3c7c277d393ccff7934f2f92c": TransactionType.UNDELEGATE,
    "0x85fb62ad5e8e5d2c0ce27d8e4f6cfab8ab0e7b54cbf48e2d0d1da3e3c89f3eeb": TransactionType.CREATE_VALIDATOR,
}

UNDELEGATE_AMOUNT_SLICE = slice(74, 138)
"""Hex chars of the second argument word (0x + selector + one word)"""


def undelegate_amount(input_hex: str) -> int | None:
    """Amount argument of an undelegate call, in base units."""
    word = input_hex[UNDELEGATE_AMOUNT_SLICE]
    if len(word) != 64:
        return None
    try:
        return int(word, 16)
    except ValueError:
        return None


def classify_transaction(
    tx: TransactionDetails,
    receipt: TransactionReceipt | None,
    *,
    staking_contract: str,
    delegation_contract: str,
    create_threshold: int = DEFAULT_ACTIVE_STAKE,
) -> tuple[TransactionType, Decimal]:
    """Classify a transaction and pick the amount it moved.

    Known selectors decide first, then value heuristics, and recognised
    receipt events override both. Undelegate amounts come from the call
    input since the native value only carries the withdrawal fee.

    Returns:
        (type, amount in tokens)
    """
    amount = wei_to_token(tx.value)
    selector = tx.selector
    tx_type: TransactionType | None = SELECTOR_TYPES.get(selector) if selector else None

    if tx_type is None:
        tx_type = TransactionType.OTHERS
        if tx.value > 0 and tx.to == staking_contract.lower() and amount >= create_threshold:
            tx_type = TransactionType.CREATE_VALIDATOR
        elif tx.value > 0 and tx.to == delegation_contract.lower():
            tx_type = TransactionType.DELEGATE

    if receipt is not None:
        for log in receipt.logs:
            if log.topics and log.topics[0].lower() in EVENT_TYPES:
                tx_type = EVENT_TYPES[log.topics[0].lower()]

    if tx_type is TransactionType.UNDELEGATE:
        unstaked = undelegate_amount(tx.input)
        if unstaked is not None:
            amount = wei_to_token(unstaked)

    return tx_type, amount


def summarize(transactions: list[TransactionRecord]) -> TransactionSummary:
    counts = Counter(str(t.type) for t in transactions)
    return TransactionSummary(
        total=len(transactions),
        by_type={str(kind): counts.get(str(kind), 0) for kind in TransactionType},
        success=sum(1 for t in transactions if t.status is TransactionStatus.SUCCESS),
        failed=sum(1 for t in transactions if t.status is TransactionStatus.FAILED),
    )


class TransactionAnalytics:
    """Builds a classified, newest-first history from a validator's logs."""

    def __init__(
        self,
        scanner: ChainScanner,
        *,
        staking_contract: str,
        delegation_contract: str,
        ranges: int = TRANSACTION_SCAN_RANGES,
        range_size: int = TRANSACTION_RANGE_SIZE,
        batch_size: int = DEFAULT_PROBE_BATCH_SIZE,
    ) -> None:
        self.scanner = scanner
        self.staking_contract = staking_contract.lower()
        self.delegation_contract = delegation_contract.lower()
        self.ranges = ranges
        self.range_size = range_size
        self.batch_size = batch_size

    async def history(self, validator: str) -> TransactionHistory:
        """Classify every transaction that emitted a log from ``validator``."""
        latest = await self.scanner.latest_block()
        events: list[LogEvent] = []
        for start, end in recent_ranges(latest, self.ranges, self.range_size):
            events.extend(await self.scanner.scan_range(validator, start, end))

        hashes = list(dict.fromkeys(e.transaction_hash for e in events if e.transaction_hash))
        timestamps: dict[int, int | None] = {}
        records: list[TransactionRecord] = []

        for i in range(0, len(hashes), self.batch_size):
            batch = hashes[i : i + self.batch_size]
            results = await asyncio.gather(
                *[self._record(h, validator, timestamps) for h in batch],
                return_exceptions=True,
            )
            for tx_hash, result in zip(batch, results, strict=True):
                if isinstance(result, Exception):
                    logger.warning("transaction %s analysis failed: %s", tx_hash, result)
                elif isinstance(result, BaseException):
                    raise result
                elif result is not None:
                    records.append(result)

        records.sort(key=lambda r: (r.timestamp or 0, r.block_number), reverse=True)
        logger.info("%s: %d transactions from %d events", validator, len(records), len(events))
        return TransactionHistory(
            validator=validator,
            transactions=records,
            recent=records[:RECENT_TRANSACTIONS_LIMIT],
            summary=summarize(records),
            events_scanned=len(events),
        )

    async def _timestamp(self, block_number: int, memo: dict[int, int | None]) -> int | None:
        if block_number not in memo:
            memo[block_number] = await self.scanner.block_timestamp(block_number)
        return memo[block_number]

    async def _record(
        self, tx_hash: str, validator: str, memo: dict[int, int | None]
    ) -> TransactionRecord | None:
        tx, receipt = await asyncio.gather(
            self.scanner.transaction(tx_hash), self.scanner.receipt(tx_hash)
        )
        if tx is None or receipt is None:
            return None

        tx_type, amount = classify_transaction(
            tx,
            receipt,
            staking_contract=self.staking_contract,
            delegation_contract=self.delegation_contract,
        )
        block_number = tx.block_number or 0
        return TransactionRecord(
            hash=tx.hash,
            type=tx_type,
            status=TransactionStatus.SUCCESS if receipt.succeeded else TransactionStatus.FAILED,
            amount=amount,
            sender=tx.from_address,
            receiver=tx.to or validator,
            block_number=block_number,
            timestamp=await self._timestamp(block_number, memo),
            gas_used=receipt.gas_used,
            gas_price=tx.gas_price,
        )


__all__ = [
    "EVENT_TYPES",
    "SELECTOR_TYPES",
    "TransactionAnalytics",
    "classify_transaction",
    "summarize",
    "undelegate_amount",
]
