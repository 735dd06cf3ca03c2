"""Address candidate extraction from raw log topics and data.

Extraction is best-effort: scanning the data payload at every byte offset
yields windows that merely coincide with encoded integers or string bytes.
Downstream verification filters those out; nothing here guarantees that an
extracted address exists on chain.
"""

import asyncio
import re
from collections.abc import Iterable

from stakescan.discovery.models import CandidateAddress, DiscoveryTechnique
from stakescan.discovery.scanner import ChainScanner
from stakescan.helpers.logging import get_logger
from stakescan.helpers.models import LogEvent
from stakescan.helpers.parsers import is_zero_address


logger = get_logger(__name__)

TOPIC_HEX_LENGTH = 66
ADDRESS_HEX_LENGTH = 40
TOPIC_PADDING = "0" * 24
HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")
MIN_DATA_HEX_LENGTH = 66
"""Data payloads no longer than one word are not scanned"""


def topic_to_address(topic: str) -> str | None:
    """Reinterpret a 32-byte topic as a right-aligned address.

    Returns None for malformed topics, topics whose leading 12 bytes are not
    zero padding, and the zero address.
    """
    if not isinstance(topic, str) or len(topic) != TOPIC_HEX_LENGTH:
        return None
    body = topic[2:].lower()
    if not body.startswith(TOPIC_PADDING):
        return None
    address = "0x" + body[24:]
    if not _is_hex(address[2:]) or is_zero_address(address):
        return None
    return address


def data_addresses(data: str) -> list[str]:
    """Every 20-byte window of ``data`` at single-byte offsets.

    Example:
        >>> data = "0x" + "00" * 12 + "ab" * 20 + "00" * 4
        >>> "0x" + "ab" * 20 in data_addresses(data)
        True
    """
    if not isinstance(data, str) or len(data) <= MIN_DATA_HEX_LENGTH:
        return []
    body = data[2:].lower()
    if not _is_hex(body):
        return []

    found: list[str] = []
    for offset in range(0, len(body) - ADDRESS_HEX_LENGTH + 1, 2):
        address = "0x" + body[offset : offset + ADDRESS_HEX_LENGTH]
        if not is_zero_address(address):
            found.append(address)
    return found


def _is_hex(value: str) -> bool:
    return HEX_DIGITS.fullmatch(value) is not None


def extract_candidates(
    events: Iterable[LogEvent],
    *,
    skip_topic0: bool = False,
) -> dict[str, CandidateAddress]:
    """Union of topic-slot and data-offset addresses across ``events``.

    Args:
        events: Log events to mine
        skip_topic0: Ignore the event-signature topic

    Returns:
        Candidates keyed by lowercase address, first discovery wins
    """
    candidates: dict[str, CandidateAddress] = {}

    for event in events:
        topics = event.topics[1:] if skip_topic0 else event.topics
        for topic in topics:
            address = topic_to_address(topic)
            if address and address not in candidates:
                candidates[address] = CandidateAddress(
                    address=address,
                    technique=DiscoveryTechnique.TOPIC,
                    transaction_hash=event.transaction_hash,
                    block_number=event.block_number,
                )

        for address in data_addresses(event.data):
            if address not in candidates:
                candidates[address] = CandidateAddress(
                    address=address,
                    technique=DiscoveryTechnique.DATA_OFFSET,
                    transaction_hash=event.transaction_hash,
                    block_number=event.block_number,
                )

    return candidates


class SenderCollector:
    """Resolves enclosing transaction senders lazily, one RPC per unique hash."""

    def __init__(self, scanner: ChainScanner, batch_size: int = 3) -> None:
        self.scanner = scanner
        self.batch_size = batch_size
        self._senders: dict[str, str | None] = {}

    async def sender_of(self, tx_hash: str) -> str | None:
        if tx_hash not in self._senders:
            tx = await self.scanner.transaction(tx_hash)
            self._senders[tx_hash] = tx.from_address if tx else None
        return self._senders[tx_hash]

    async def collect(
        self,
        events: Iterable[LogEvent],
        known: dict[str, CandidateAddress] | None = None,
    ) -> dict[str, CandidateAddress]:
        """Add transaction senders of ``events`` to ``known``.

        Returns:
            The merged candidate mapping (``known`` is not modified)
        """
        merged = dict(known or {})
        first_event: dict[str, LogEvent] = {}
        for event in events:
            if event.transaction_hash and event.transaction_hash not in first_event:
                first_event[event.transaction_hash] = event

        hashes = list(first_event)
        for i in range(0, len(hashes), self.batch_size):
            batch = hashes[i : i + self.batch_size]
            senders = await asyncio.gather(*[self.sender_of(h) for h in batch])
            for tx_hash, sender in zip(batch, senders, strict=True):
                if not sender or is_zero_address(sender) or sender in merged:
                    continue
                merged[sender] = CandidateAddress(
                    address=sender,
                    technique=DiscoveryTechnique.SENDER,
                    transaction_hash=tx_hash,
                    block_number=first_event[tx_hash].block_number,
                )

        logger.debug("resolved %d senders for %d transactions", len(self._senders), len(hashes))
        return merged


__all__ = [
    "SenderCollector",
    "data_addresses",
    "extract_candidates",
    "topic_to_address",
]
