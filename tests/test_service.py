"""Tests for the service boundary."""

from unittest.mock import AsyncMock

import httpx
import pytest

from conftest import FakeRPC, addr
from stakescan.helpers.config import StakescanSettings
from stakescan.helpers.errors import InvalidAddressError, NotReadyError
from stakescan.service import StakescanService


def make_service(
    settings: StakescanSettings,
    rpc: FakeRPC,
    http_client: AsyncMock,
    alternates: list[FakeRPC] | None = None,
) -> StakescanService:
    return StakescanService(settings, http_client, rpc=rpc, alternates=alternates or [])


class TestAddressValidation:
    """Every address-taking operation rejects malformed input first."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad", ["", "0x1234", "a1" * 20, "0x" + "zz" * 20])
    async def test_rejects_malformed_addresses(
        self, bad: str, fake_rpc: FakeRPC, settings: StakescanSettings, http_client: AsyncMock
    ) -> None:
        service = make_service(settings, fake_rpc, http_client)

        with pytest.raises(InvalidAddressError):
            await service.get_delegator_analytics(bad)
        with pytest.raises(InvalidAddressError):
            await service.get_transaction_history(bad)
        with pytest.raises(InvalidAddressError):
            await service.get_wallet_delegations(bad)

        assert fake_rpc.requests == []


class TestSnapshotAccess:
    """Tests for snapshot-backed operations."""

    @pytest.mark.asyncio
    async def test_not_ready_before_first_refresh(
        self, populated_rpc: FakeRPC, settings: StakescanSettings, http_client: AsyncMock
    ) -> None:
        service = make_service(settings, populated_rpc, http_client)

        with pytest.raises(NotReadyError):
            service.get_snapshot()
        with pytest.raises(NotReadyError):
            await service.get_wallet_delegations(addr(0xB1))
        assert not service.get_status().initialized

    @pytest.mark.asyncio
    async def test_operations_after_refresh(
        self, populated_rpc: FakeRPC, settings: StakescanSettings, http_client: AsyncMock
    ) -> None:
        service = make_service(settings, populated_rpc, http_client)

        snapshot = await service.refresh_now()

        assert service.get_snapshot() is snapshot
        assert service.get_status().validator_count == 3

        wallet = await service.get_wallet_delegations(addr(0xB1).upper().replace("0X", "0x"))
        assert wallet.wallet == addr(0xB1)
        assert wallet.total_delegated == 40

    @pytest.mark.asyncio
    async def test_snapshot_owners_are_probed_as_delegators(
        self, populated_rpc: FakeRPC, settings: StakescanSettings, http_client: AsyncMock
    ) -> None:
        service = make_service(settings.model_copy(update={"known_delegators": ()}), populated_rpc, http_client)
        await service.refresh_now()

        report = await service.get_delegator_analytics(addr(0xA1))

        assert [e.address for e in report.delegators] == [addr(0xB1)]
        assert report.delegators[0].percentage == 100.0


class TestRpcHealth:
    """Tests for get_rpc_health."""

    @pytest.mark.asyncio
    async def test_reports_each_endpoint(
        self, fake_rpc: FakeRPC, settings: StakescanSettings, http_client: AsyncMock
    ) -> None:
        down = FakeRPC(name="fallback-1")
        down.failures["eth_blockNumber"] = httpx.ConnectError("refused")
        service = make_service(settings, fake_rpc, http_client, [down])

        primary, fallback = await service.get_rpc_health()

        assert primary.name == "primary"
        assert primary.reachable
        assert primary.latest_block == 1000
        assert primary.latency_ms is not None

        assert fallback.name == "fallback-1"
        assert fallback.url == "https://fallback-1.test.rpc"
        assert not fallback.reachable
        assert fallback.latest_block is None
        assert fallback.error == "refused"
