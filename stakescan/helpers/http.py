"""HTTP client utilities and retry policies."""

from asyncio import sleep
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field

from stakescan.helpers.constants import (
    CALL_TIMEOUT,
    METADATA_TIMEOUT,
    PROBE_TIMEOUT,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
    SCAN_TIMEOUT,
)
from stakescan.helpers.errors import RpcError
from stakescan.helpers.logging import get_logger


logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

RETRYABLE_ERRORS: tuple[type[Exception], ...] = (httpx.HTTPError, RpcError)


class RetryPolicy(BaseModel):
    """Retry/backoff/timeout settings for one class of RPC call.

    A policy is injected wherever calls are issued instead of retry loops
    being written inline at each call site.

    Example:
        ```python
        policy = RetryPolicy(max_attempts=3, base_delay=0.5, timeout=10.0)
        result = await policy.run(rpc.call, client, "eth_blockNumber")
        ```
    """

    model_config = ConfigDict(frozen=True)

    name: str = "default"
    max_attempts: int = Field(default=1, ge=1)
    base_delay: float = Field(default=RETRY_BASE_DELAY, ge=0)
    max_delay: float = Field(default=RETRY_MAX_DELAY, ge=0)
    timeout: float = Field(default=CALL_TIMEOUT, gt=0)

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the given zero-based attempt."""
        return min(self.base_delay * (2**attempt), self.max_delay)

    async def run(
        self,
        func: Callable[P, Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        """Await ``func`` until it succeeds or attempts are exhausted.

        Raises:
            The last transport or RPC error once every attempt failed
        """
        last_exception: Exception | None = None

        for attempt in range(self.max_attempts):
            try:
                return await func(*args, **kwargs)
            except httpx.TimeoutException as e:
                last_exception = e
                if attempt < self.max_attempts - 1:
                    logger.warning(
                        "%s timeout (attempt %d/%d)",
                        self.name,
                        attempt + 1,
                        self.max_attempts,
                    )
            except RETRYABLE_ERRORS as e:
                last_exception = e
                if attempt < self.max_attempts - 1:
                    logger.warning(
                        "%s error (attempt %d/%d): %s",
                        self.name,
                        attempt + 1,
                        self.max_attempts,
                        e,
                    )

            if attempt < self.max_attempts - 1:
                await sleep(self.delay_for(attempt))

        if last_exception is None:
            msg = f"{self.name} failed without exception"
            raise RuntimeError(msg)
        raise last_exception


PROBE_POLICY = RetryPolicy(name="probe", timeout=PROBE_TIMEOUT)
"""Cheap verifier probes: short timeout, no retry"""

CALL_POLICY = RetryPolicy(name="call", timeout=CALL_TIMEOUT)
"""eth_call and transaction lookups"""

SCAN_POLICY = RetryPolicy(name="scan", timeout=SCAN_TIMEOUT)
"""Heavy eth_getLogs range requests"""

METADATA_POLICY = RetryPolicy(
    name="metadata", max_attempts=2, base_delay=0.5, timeout=METADATA_TIMEOUT
)
"""Alternate-endpoint metadata lookups, the only retried class"""


def create_http_client(timeout: float = CALL_TIMEOUT, **kwargs: Any) -> httpx.AsyncClient:
    """Create a configured httpx AsyncClient.

    Example:
        ```python
        async with create_http_client(timeout=20.0) as client:
            ...
        ```
    """
    return httpx.AsyncClient(timeout=timeout, **kwargs)


__all__ = [
    "CALL_POLICY",
    "METADATA_POLICY",
    "PROBE_POLICY",
    "SCAN_POLICY",
    "RetryPolicy",
    "create_http_client",
]
