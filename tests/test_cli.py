"""Tests for the command line front end."""

from io import StringIO
from unittest.mock import AsyncMock

import httpx
import pytest
from rich.console import Console

from conftest import FAST_METADATA_POLICY, FakeRPC, addr
from stakescan.cache.controller import RefreshController
from stakescan.cache.store import SnapshotStore
from stakescan.cli import build_parser, main, render_health, render_snapshot
from stakescan.discovery.scanner import ChainScanner
from stakescan.helpers.config import StakescanSettings
from stakescan.helpers.errors import RpcError
from stakescan.metadata.resolver import MetadataResolver
from stakescan.service import EndpointHealth, StakescanService
from stakescan.staking.accountant import DelegationAccountant


def recording_console() -> Console:
    return Console(file=StringIO(), width=200, color_system=None)


class TestParser:
    """Tests for build_parser."""

    def test_address_commands(self) -> None:
        args = build_parser().parse_args(["--json", "delegators", addr(0xA1)])

        assert args.command == "delegators"
        assert args.address == addr(0xA1)
        assert args.json
        assert args.rpc_url is None

    def test_command_is_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_wallet_needs_an_address(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["wallet"])


class TestMain:
    """Tests for exit codes of main."""

    def test_invalid_address_exits_2(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STAKESCAN_RPC_URL", "https://primary.test.rpc")
        assert main(["delegators", "0x1234"]) == 2

    def test_missing_rpc_url_exits_2(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("STAKESCAN_RPC_URL", raising=False)
        assert main(["health"]) == 2

    def test_unreachable_endpoint_exits_1(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STAKESCAN_RPC_URL", "https://primary.test.rpc")
        monkeypatch.setattr(
            StakescanService,
            "refresh_now",
            AsyncMock(side_effect=httpx.ConnectError("All connection attempts failed")),
        )
        assert main(["scan"]) == 1

    def test_rpc_error_exits_1(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STAKESCAN_RPC_URL", "https://primary.test.rpc")
        monkeypatch.setattr(
            StakescanService,
            "get_delegator_analytics",
            AsyncMock(side_effect=RpcError("RPC error: header not found")),
        )
        assert main(["delegators", addr(0xA1)]) == 1

    def test_wallet_rejects_bad_address_before_refresh(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("STAKESCAN_RPC_URL", "https://primary.test.rpc")
        refresh = AsyncMock()
        monkeypatch.setattr(StakescanService, "refresh_now", refresh)

        assert main(["wallet", "0x1234"]) == 2
        refresh.assert_not_awaited()


class TestRendering:
    """Tests for table rendering."""

    @pytest.mark.asyncio
    async def test_render_snapshot(
        self, populated_rpc: FakeRPC, scanner: ChainScanner, settings: StakescanSettings
    ) -> None:
        store = SnapshotStore()
        resolver = MetadataResolver(
            scanner, store, staking_contract=settings.staking_contract, policy=FAST_METADATA_POLICY
        )
        controller = RefreshController(settings, scanner, store, resolver, DelegationAccountant(scanner))
        snapshot = await controller.refresh_now()
        console = recording_console()

        render_snapshot(console, snapshot)

        output = console.file.getvalue()  # type: ignore[attr-defined]
        assert "Komado" in output
        assert "2 active" in output
        assert "1 candidates" in output

    def test_render_health(self) -> None:
        console = recording_console()

        render_health(
            console,
            [
                EndpointHealth(name="primary", url="https://p", reachable=True, latest_block=7, latency_ms=3.2),
                EndpointHealth(name="fallback-1", url="https://f", reachable=False, error="refused"),
            ],
        )

        output = console.file.getvalue()  # type: ignore[attr-defined]
        assert "fallback-1" in output
        assert "refused" in output
