"""Chain log scanner: range-bounded eth_getLogs and eth_call against one endpoint."""

from collections.abc import Callable, Iterator

import httpx

from stakescan.discovery.models import ScanReport
from stakescan.helpers.constants import DEFAULT_CHUNK_SIZE
from stakescan.helpers.errors import RpcError
from stakescan.helpers.http import CALL_POLICY, SCAN_POLICY, RetryPolicy
from stakescan.helpers.logging import get_logger
from stakescan.helpers.models import LogEvent, TransactionDetails, TransactionReceipt
from stakescan.helpers.parsers import hex_to_bytes, parse_hex_int
from stakescan.helpers.rpc import RPCClient


logger = get_logger(__name__)

type ChunkCallback = Callable[[int, int, int], None]

SOFT_ERRORS: tuple[type[Exception], ...] = (httpx.HTTPError, RpcError, ValueError)


def chunk_ranges(from_block: int, to_block: int, chunk_size: int) -> Iterator[tuple[int, int]]:
    """Split an inclusive block range into inclusive sub-ranges.

    Example:
        >>> list(chunk_ranges(0, 250, 100))
        [(0, 99), (100, 199), (200, 250)]
    """
    if chunk_size <= 0:
        msg = f"chunk_size must be positive, got {chunk_size}"
        raise ValueError(msg)
    start = from_block
    while start <= to_block:
        end = min(start + chunk_size - 1, to_block)
        yield start, end
        start = end + 1


class ChainScanner:
    """Issues range-bounded log queries and read-only calls for one endpoint.

    Range scans are soft: a failed or timed-out sub-range is logged and
    contributes no events. Calls are hard: errors propagate so the caller can
    turn them into a typed failure.

    Example:
        ```python
        rpc = RPCClient(settings.primary.url, timeout=settings.primary.timeout)
        async with create_http_client() as client:
            scanner = ChainScanner(rpc, client)
            report = await scanner.scan_chunks(staking_contract, 0, latest)
        ```
    """

    def __init__(
        self,
        rpc: RPCClient,
        client: httpx.AsyncClient,
        *,
        scan_policy: RetryPolicy = SCAN_POLICY,
        call_policy: RetryPolicy = CALL_POLICY,
    ) -> None:
        self.rpc = rpc
        self.client = client
        self.scan_policy = scan_policy
        self.call_policy = call_policy

    @property
    def endpoint_name(self) -> str:
        return self.rpc.name

    async def latest_block(self) -> int:
        """Return the head block number.

        Raises:
            httpx.HTTPError: If the endpoint is unreachable
            RpcError: If the endpoint answers with an error
        """
        return await self.call_policy.run(
            self.rpc.get_block_number, self.client, timeout=self.call_policy.timeout
        )

    async def fetch_logs(
        self,
        address: str | None,
        from_block: int,
        to_block: int | str,
        timeout: float | None = None,
    ) -> list[LogEvent]:
        """Fetch logs of one range, letting transport and RPC errors propagate."""
        return await self.scan_policy.run(
            self.rpc.get_logs,
            self.client,
            from_block,
            to_block,
            address,
            timeout=timeout or self.scan_policy.timeout,
        )

    async def scan_range(
        self,
        address: str | None,
        from_block: int,
        to_block: int | str,
        *,
        timeout: float | None = None,
    ) -> list[LogEvent]:
        """Fetch logs of one sub-range, returning [] on any failure.

        Args:
            address: Emitting contract, or None for all contracts
            from_block: First block (inclusive)
            to_block: Last block (inclusive) or "latest"
            timeout: Optional override of the scan policy timeout

        Returns:
            Events in the order the endpoint returned them
        """
        try:
            return await self.fetch_logs(address, from_block, to_block, timeout)
        except SOFT_ERRORS as e:
            logger.warning(
                "%s: getLogs %s..%s for %s failed: %s",
                self.endpoint_name,
                from_block,
                to_block,
                address,
                e,
            )
            return []

    async def scan_chunks(
        self,
        address: str | None,
        from_block: int,
        to_block: int,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        on_chunk: ChunkCallback | None = None,
    ) -> ScanReport:
        """Scan an inclusive range in fixed-size chunks, one request at a time.

        Chunks are issued sequentially to avoid overwhelming a single node.
        Failed chunks are counted and skipped.

        Args:
            address: Emitting contract, or None for all contracts
            from_block: First block (inclusive)
            to_block: Last block (inclusive)
            chunk_size: Blocks per eth_getLogs request
            on_chunk: Optional ``(done, total, events_so_far)`` progress callback

        Returns:
            ScanReport with every event collected and chunk coverage counts
        """
        ranges = list(chunk_ranges(from_block, to_block, chunk_size))
        report = ScanReport(from_block=from_block, to_block=to_block)

        for idx, (start, end) in enumerate(ranges, start=1):
            try:
                events = await self.fetch_logs(address, start, end)
            except SOFT_ERRORS as e:
                report.failed_chunks += 1
                logger.warning(
                    "%s: chunk %d/%d (%d-%d) failed: %s",
                    self.endpoint_name,
                    idx,
                    len(ranges),
                    start,
                    end,
                    e,
                )
            else:
                report.events.extend(events)
                if events:
                    logger.debug(
                        "chunk %d/%d (%d-%d): %d events",
                        idx,
                        len(ranges),
                        start,
                        end,
                        len(events),
                    )
            report.chunks += 1
            if on_chunk is not None:
                on_chunk(idx, len(ranges), report.event_count)

        logger.info(
            "%s: scanned %d chunks (%d failed), %d events",
            self.endpoint_name,
            report.chunks,
            report.failed_chunks,
            report.event_count,
        )
        return report

    async def call(
        self, address: str, data: str, *, timeout: float | None = None
    ) -> bytes:
        """Run eth_call and return the raw result bytes.

        Raises:
            httpx.HTTPError: On transport failure or timeout
            RpcError: If the call reverts or the endpoint errors
        """
        result = await self.call_policy.run(
            self.rpc.eth_call,
            self.client,
            address,
            data,
            timeout=timeout or self.call_policy.timeout,
        )
        return hex_to_bytes(result)

    async def transaction(self, tx_hash: str) -> TransactionDetails | None:
        """Fetch a transaction, returning None when it is unavailable."""
        try:
            return await self.call_policy.run(
                self.rpc.get_transaction,
                self.client,
                tx_hash,
                timeout=self.call_policy.timeout,
            )
        except SOFT_ERRORS as e:
            logger.warning("%s: transaction %s unavailable: %s", self.endpoint_name, tx_hash, e)
            return None

    async def receipt(self, tx_hash: str) -> TransactionReceipt | None:
        """Fetch a receipt, returning None when it is unavailable."""
        try:
            return await self.call_policy.run(
                self.rpc.get_receipt,
                self.client,
                tx_hash,
                timeout=self.call_policy.timeout,
            )
        except SOFT_ERRORS as e:
            logger.warning("%s: receipt %s unavailable: %s", self.endpoint_name, tx_hash, e)
            return None

    async def block_timestamp(self, block_number: int) -> int | None:
        """Unix timestamp of a block, or None when it cannot be fetched."""
        try:
            block = await self.call_policy.run(
                self.rpc.get_block,
                self.client,
                block_number,
                timeout=self.call_policy.timeout,
            )
        except SOFT_ERRORS as e:
            logger.warning("%s: block %d unavailable: %s", self.endpoint_name, block_number, e)
            return None
        if not block or not block.get("timestamp"):
            return None
        return parse_hex_int(block["timestamp"])


__all__ = [
    "ChainScanner",
    "ChunkCallback",
    "chunk_ranges",
]
