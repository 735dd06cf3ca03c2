"""Long-running validator cache service.

Runs the refresh controller on its timer until SIGINT/SIGTERM. The first
cycle starts immediately; failed cycles keep the last published snapshot.

Usage:
    python -m stakescan.live
"""

import asyncio
import signal
import sys

from stakescan.helpers.config import StakescanSettings, load_settings
from stakescan.helpers.http import create_http_client
from stakescan.helpers.logging import get_logger
from stakescan.service import StakescanService


logger = get_logger(__name__)


class LiveService:
    """Owns the HTTP client and the controller loop of one process."""

    def __init__(self, settings: StakescanSettings | None = None) -> None:
        """Initialize the live service.

        Raises:
            ValueError: If STAKESCAN_RPC_URL is not set or configuration is invalid
        """
        self.settings = settings or load_settings()
        self.http_client = create_http_client(timeout=self.settings.primary.timeout)
        self.service = StakescanService(self.settings, self.http_client)
        self.stop = asyncio.Event()

    def shutdown(self) -> None:
        """Gracefully stop after the current cycle."""
        logger.info("Shutdown signal received, stopping...")
        self.stop.set()

    async def cleanup(self) -> None:
        """Clean up resources."""
        await self.http_client.aclose()

    async def run(self) -> None:
        """Run the refresh loop until a shutdown signal arrives."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.shutdown)

        logger.info(
            "Serving %s every %.0fs (min %d validators)",
            self.settings.primary.name,
            self.settings.refresh_interval,
            self.settings.min_validators,
        )
        try:
            await self.service.controller.run_forever(self.stop)
        finally:
            await self.cleanup()

        logger.info("Live service stopped")


async def main() -> None:
    """Main entry point."""
    try:
        live = LiveService()
        await live.run()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, exiting...")
    except Exception:
        logger.exception("Fatal error")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
