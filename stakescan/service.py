"""Service boundary exposed to the HTTP layer.

Every address received here is validated before any downstream call.
"""

import asyncio
import time

import httpx
from pydantic import BaseModel

from stakescan.analytics.delegators import DelegatorAnalytics
from stakescan.analytics.models import DelegatorReport, TransactionHistory, WalletReport
from stakescan.analytics.transactions import TransactionAnalytics
from stakescan.analytics.wallet import wallet_delegations
from stakescan.cache.controller import RefreshController
from stakescan.cache.models import CacheStatus, NetworkSnapshot
from stakescan.cache.store import SnapshotStore
from stakescan.discovery.scanner import ChainScanner, ChunkCallback
from stakescan.helpers.config import StakescanSettings
from stakescan.helpers.constants import PING_TIMEOUT
from stakescan.helpers.errors import RpcError
from stakescan.helpers.logging import get_logger
from stakescan.helpers.parsers import normalize_address
from stakescan.helpers.rpc import RPCClient
from stakescan.metadata.resolver import MetadataResolver
from stakescan.staking.accountant import DelegationAccountant


logger = get_logger(__name__)


class EndpointHealth(BaseModel):
    """Result of pinging one JSON-RPC endpoint."""

    name: str
    url: str
    reachable: bool
    latest_block: int | None = None
    latency_ms: float | None = None
    error: str | None = None


class StakescanService:
    """Wires the engine together and exposes its operations.

    Example:
        ```python
        settings = load_settings()
        async with create_http_client() as client:
            service = StakescanService(settings, client)
            await service.refresh_now()
            snapshot = service.get_snapshot()
        ```
    """

    def __init__(
        self,
        settings: StakescanSettings,
        client: httpx.AsyncClient,
        *,
        rpc: RPCClient | None = None,
        alternates: list[RPCClient] | None = None,
    ) -> None:
        self.settings = settings
        self.client = client

        self.rpc = rpc or RPCClient(
            settings.primary.url,
            timeout=settings.primary.timeout,
            name=settings.primary.name,
        )
        if alternates is None:
            alternates = [
                RPCClient(endpoint.url, timeout=endpoint.timeout, name=endpoint.name)
                for endpoint in settings.fallbacks
            ]
        self.alternate_rpcs = alternates

        self.scanner = ChainScanner(self.rpc, client)
        self.store = SnapshotStore()
        self.accountant = DelegationAccountant(self.scanner)
        self.resolver = MetadataResolver(
            self.scanner,
            self.store,
            staking_contract=settings.staking_contract,
            alternates=[ChainScanner(alt, client) for alt in alternates],
            alternate_from_block=settings.metadata_fallback_from_block,
        )
        self.controller = RefreshController(
            settings, self.scanner, self.store, self.resolver, self.accountant
        )
        self.delegators = DelegatorAnalytics(
            self.scanner,
            self.accountant,
            known_delegators=settings.known_delegators,
            batch_size=settings.probe_batch_size,
        )
        self.transactions = TransactionAnalytics(
            self.scanner,
            staking_contract=settings.staking_contract,
            delegation_contract=settings.delegation_contract,
            batch_size=settings.probe_batch_size,
        )

    def get_snapshot(self) -> NetworkSnapshot:
        """Return the published snapshot.

        Raises:
            NotReadyError: Before the first successful refresh
        """
        return self.store.require_snapshot()

    def get_status(self) -> CacheStatus:
        return self.controller.status()

    async def refresh_now(self, on_chunk: ChunkCallback | None = None) -> NetworkSnapshot:
        return await self.controller.refresh_now(on_chunk=on_chunk)

    async def get_delegator_analytics(self, validator: str) -> DelegatorReport:
        """Rank delegators of one validator.

        Raises:
            InvalidAddressError: If ``validator`` is not a 20-byte hex address
        """
        address = normalize_address(validator)
        snapshot = self.store.snapshot
        owners = snapshot.owners() if snapshot else []
        return await self.delegators.discover(address, extra_known=owners)

    async def get_transaction_history(self, validator: str) -> TransactionHistory:
        """Classified transaction history of one validator.

        Raises:
            InvalidAddressError: If ``validator`` is not a 20-byte hex address
        """
        return await self.transactions.history(normalize_address(validator))

    async def get_wallet_delegations(self, wallet: str) -> WalletReport:
        """Delegations of ``wallet`` across the active validators.

        Raises:
            InvalidAddressError: If ``wallet`` is not a 20-byte hex address
            NotReadyError: Before the first successful refresh
        """
        address = normalize_address(wallet)
        snapshot = self.store.require_snapshot()
        return await wallet_delegations(
            self.accountant,
            snapshot,
            address,
            batch_size=self.settings.probe_batch_size,
        )

    async def _ping(self, rpc: RPCClient) -> EndpointHealth:
        started = time.perf_counter()
        try:
            latest = await rpc.get_block_number(self.client, timeout=PING_TIMEOUT)
        except (httpx.HTTPError, RpcError) as e:
            return EndpointHealth(
                name=rpc.name,
                url=rpc.rpc_url,
                reachable=False,
                error=str(e) or type(e).__name__,
            )
        return EndpointHealth(
            name=rpc.name,
            url=rpc.rpc_url,
            reachable=True,
            latest_block=latest,
            latency_ms=round((time.perf_counter() - started) * 1000, 1),
        )

    async def get_rpc_health(self) -> list[EndpointHealth]:
        """Ping the primary and every alternate endpoint concurrently."""
        return list(
            await asyncio.gather(*[self._ping(rpc) for rpc in [self.rpc, *self.alternate_rpcs]])
        )


__all__ = [
    "EndpointHealth",
    "StakescanService",
]
