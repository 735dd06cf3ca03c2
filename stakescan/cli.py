"""Command line front end.

Usage:
    stakescan scan
    stakescan serve
    stakescan delegators 0x...
    stakescan transactions 0x...
    stakescan wallet 0x...
    stakescan health
"""

from argparse import ArgumentParser, Namespace
from asyncio import run

import httpx
from pydantic import BaseModel
from rich.console import Console
from rich.table import Table

from stakescan.analytics.models import DelegatorReport, TransactionHistory, WalletReport
from stakescan.cache.models import NetworkSnapshot
from stakescan.helpers.config import load_settings
from stakescan.helpers.errors import (
    InvalidAddressError,
    NotReadyError,
    RpcError,
    SanityCheckError,
)
from stakescan.helpers.http import create_http_client
from stakescan.helpers.logging import get_logger
from stakescan.helpers.parsers import normalize_address, short_address
from stakescan.helpers.progress import track_chunks
from stakescan.live import LiveService
from stakescan.service import EndpointHealth, StakescanService


logger = get_logger(__name__)


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="stakescan",
        description="Validator, delegation and transaction discovery over JSON-RPC",
    )
    parser.add_argument("--rpc-url", default=None, help="Override STAKESCAN_RPC_URL")
    parser.add_argument(
        "--json", action="store_true", help="Print raw JSON instead of tables"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("scan", help="Run one full refresh cycle")
    commands.add_parser("serve", help="Refresh on a timer until interrupted")
    commands.add_parser("health", help="Ping the primary and alternate endpoints")

    for name, help_text in (
        ("delegators", "Rank delegators of a validator"),
        ("transactions", "Classified transaction history of a validator"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("address", help="Validator contract address")

    wallet = commands.add_parser(
        "wallet", help="Delegations of a wallet (runs a refresh first)"
    )
    wallet.add_argument("address", help="Wallet address")

    return parser


def render_snapshot(console: Console, snapshot: NetworkSnapshot) -> None:
    table = Table(title=f"Validators (cycle {snapshot.cycle})")
    table.add_column("#", justify="right")
    table.add_column("Moniker", style="cyan")
    table.add_column("Address", style="magenta")
    table.add_column("Status")
    table.add_column("Stake", justify="right", style="yellow")
    table.add_column("Voting power", justify="right", style="green")
    table.add_column("Commission", justify="right")
    table.add_column("Metadata")

    for idx, v in enumerate(snapshot.validators, start=1):
        table.add_row(
            str(idx),
            v.moniker,
            short_address(v.address),
            str(v.status),
            f"{v.stake:.4f}",
            f"{v.voting_power:.2f}%",
            v.commission,
            str(v.metadata_provenance),
        )

    console.print(table)
    p = snapshot.provenance
    console.print(
        f"[bold]{snapshot.active_count}[/bold] active, "
        f"[bold]{snapshot.candidate_count}[/bold] candidates, "
        f"total stake {snapshot.total_stake:.4f} | blocks {p.from_block}-{p.to_block}, "
        f"{p.chunks} chunks ({p.failed_chunks} failed), {p.events} events"
    )


def render_delegators(console: Console, report: DelegatorReport) -> None:
    table = Table(title=f"Delegators of {short_address(report.validator)}")
    table.add_column("Rank", justify="right")
    table.add_column("Delegator", style="cyan")
    table.add_column("Staked", justify="right", style="yellow")
    table.add_column("Share", justify="right", style="green")
    table.add_column("Source")

    for entry in report.delegators:
        table.add_row(
            str(entry.rank),
            entry.short_address,
            f"{entry.amount:.6f}",
            f"{entry.percentage:.2f}%",
            str(entry.source),
        )

    console.print(table)
    stats = report.statistics
    console.print(
        f"{stats.total_delegators} delegators, total {stats.total_staked:.6f}, "
        f"top 10 {stats.top10_share:.1f}%, gini {stats.gini:.3f} ({stats.concentration})"
    )


def render_transactions(console: Console, history: TransactionHistory) -> None:
    table = Table(title=f"Transactions of {short_address(history.validator)}")
    table.add_column("Block", justify="right")
    table.add_column("Hash", style="magenta")
    table.add_column("Type", style="cyan")
    table.add_column("Status")
    table.add_column("Amount", justify="right", style="yellow")
    table.add_column("From")

    for tx in history.recent:
        table.add_row(
            str(tx.block_number),
            f"{tx.hash[:8]}...{tx.hash[-6:]}",
            str(tx.type),
            str(tx.status),
            f"{tx.amount:.6f}",
            short_address(tx.sender) if tx.sender else "-",
        )

    console.print(table)
    summary = history.summary
    counts = ", ".join(f"{k}: {v}" for k, v in summary.by_type.items() if v)
    console.print(
        f"{summary.total} transactions ({summary.success} ok, {summary.failed} failed) {counts}"
    )


def render_wallet(console: Console, report: WalletReport) -> None:
    table = Table(title=f"Delegations of {short_address(report.wallet)}")
    table.add_column("Validator", style="cyan")
    table.add_column("Address", style="magenta")
    table.add_column("Amount", justify="right", style="yellow")

    for d in report.delegations:
        table.add_row(d.moniker, short_address(d.validator), f"{d.amount:.6f}")

    console.print(table)
    console.print(
        f"total {report.total_delegated:.6f} across {report.validators_checked} active validators"
    )


def render_health(console: Console, endpoints: list[EndpointHealth]) -> None:
    table = Table(title="RPC endpoints")
    table.add_column("Name", style="cyan")
    table.add_column("URL")
    table.add_column("Reachable")
    table.add_column("Latest block", justify="right")
    table.add_column("Latency", justify="right")

    for e in endpoints:
        table.add_row(
            e.name,
            e.url,
            "[green]yes[/green]" if e.reachable else f"[red]no[/red] {e.error or ''}",
            str(e.latest_block) if e.latest_block is not None else "-",
            f"{e.latency_ms:.0f} ms" if e.latency_ms is not None else "-",
        )

    console.print(table)


def _emit(console: Console, result: BaseModel | list[BaseModel]) -> None:
    if isinstance(result, list):
        console.print_json(
            "[" + ",".join(item.model_dump_json() for item in result) + "]"
        )
    else:
        console.print_json(result.model_dump_json())


async def run_command(args: Namespace, console: Console) -> int:
    """Execute one parsed command and return the process exit code."""
    settings = load_settings(args.rpc_url)

    if args.command == "serve":
        await LiveService(settings).run()
        return 0

    async with create_http_client(timeout=settings.primary.timeout) as client:
        service = StakescanService(settings, client)

        if args.command == "scan":
            with track_chunks("Scanning staking contract", console) as on_chunk:
                snapshot = await service.refresh_now(on_chunk=on_chunk)
            if args.json:
                _emit(console, snapshot)
            else:
                render_snapshot(console, snapshot)
        elif args.command == "delegators":
            report = await service.get_delegator_analytics(args.address)
            if args.json:
                _emit(console, report)
            else:
                render_delegators(console, report)
        elif args.command == "transactions":
            history = await service.get_transaction_history(args.address)
            if args.json:
                _emit(console, history)
            else:
                render_transactions(console, history)
        elif args.command == "wallet":
            address = normalize_address(args.address)
            await service.refresh_now()
            wallet = await service.get_wallet_delegations(address)
            if args.json:
                _emit(console, wallet)
            else:
                render_wallet(console, wallet)
        elif args.command == "health":
            endpoints = await service.get_rpc_health()
            if args.json:
                _emit(console, list(endpoints))
            else:
                render_health(console, endpoints)

    return 0


def main(argv: list[str] | None = None) -> int:
    """Console script entry point."""
    args = build_parser().parse_args(argv)
    console = Console()

    try:
        return run(run_command(args, console))
    except InvalidAddressError as e:
        console.print(f"[red]{e}[/red]")
        return 2
    except (NotReadyError, SanityCheckError) as e:
        console.print(f"[yellow]{e}[/yellow]")
        return 1
    except (httpx.HTTPError, RpcError) as e:
        logger.error("RPC request failed: %s", e)
        return 1
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 2
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, exiting...")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
