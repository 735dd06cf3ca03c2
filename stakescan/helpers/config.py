"""Configuration management and environment variable utilities."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from stakescan.helpers.constants import (
    DEFAULT_ACTIVE_STAKE,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_DELEGATION_CONTRACT,
    DEFAULT_FALLBACK_RPC_URLS,
    DEFAULT_KNOWN_DELEGATORS,
    DEFAULT_METADATA_FALLBACK_FROM_BLOCK,
    DEFAULT_MIN_VALIDATORS,
    DEFAULT_PROBE_BATCH_SIZE,
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_STAKING_CONTRACT,
    METADATA_TIMEOUT,
    SCAN_TIMEOUT,
)
from stakescan.helpers.parsers import normalize_address


# Load environment variables from .env file
load_dotenv()


def get_required_env(key: str) -> str:
    """Get a required environment variable.

    Args:
        key: Environment variable name

    Returns:
        Environment variable value

    Raises:
        ValueError: If the environment variable is not set
    """
    value = os.getenv(key)
    if not value:
        msg = f"{key} environment variable is not set"
        raise ValueError(msg)
    return value


def get_optional_env(key: str, default: str | None = None) -> str | None:
    """Get an optional environment variable with a default value.

    Example:
        ```python
        from stakescan.helpers.config import get_optional_env

        chunk = int(get_optional_env("STAKESCAN_SCAN_CHUNK_SIZE", "100000"))
        ```
    """
    return os.getenv(key, default)


def get_rpc_url(rpc_url: str | None = None) -> str:
    """Get the primary RPC URL from parameter or environment.

    Args:
        rpc_url: Optional RPC URL to use directly

    Returns:
        Primary JSON-RPC URL

    Raises:
        ValueError: If no URL is given and STAKESCAN_RPC_URL is not set
    """
    if rpc_url:
        return rpc_url
    return get_required_env("STAKESCAN_RPC_URL")


def split_csv(raw: str | None) -> list[str]:
    """Split a comma separated value, dropping blanks."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


class RpcEndpoint(BaseModel):
    """One JSON-RPC endpoint: url, display name and per-call timeout."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., min_length=1, description="JSON-RPC URL")
    name: str = Field(default="primary", description="Display name")
    timeout: float = Field(default=SCAN_TIMEOUT, gt=0, description="Seconds")


class StakescanSettings(BaseModel):
    """Process-wide immutable deployment configuration."""

    model_config = ConfigDict(frozen=True)

    primary: RpcEndpoint
    fallbacks: tuple[RpcEndpoint, ...] = ()
    staking_contract: str = DEFAULT_STAKING_CONTRACT
    delegation_contract: str = DEFAULT_DELEGATION_CONTRACT
    refresh_interval: float = Field(default=DEFAULT_REFRESH_INTERVAL, gt=0)
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0)
    scan_window: int = Field(default=0, ge=0, description="0 scans from genesis")
    min_validators: int = Field(default=DEFAULT_MIN_VALIDATORS, ge=0)
    active_stake: int = Field(default=DEFAULT_ACTIVE_STAKE, ge=0)
    probe_batch_size: int = Field(default=DEFAULT_PROBE_BATCH_SIZE, gt=0)
    metadata_fallback_from_block: int = Field(
        default=DEFAULT_METADATA_FALLBACK_FROM_BLOCK, ge=0
    )
    known_delegators: tuple[str, ...] = ()

    @field_validator("staking_contract", "delegation_contract")
    @classmethod
    def _check_contract(cls, value: str) -> str:
        return normalize_address(value)

    @field_validator("known_delegators")
    @classmethod
    def _check_known(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(normalize_address(addr) for addr in value)


def load_settings(rpc_url: str | None = None) -> StakescanSettings:
    """Build settings from the environment.

    Args:
        rpc_url: Optional primary URL overriding STAKESCAN_RPC_URL

    Returns:
        Validated StakescanSettings

    Raises:
        ValueError: If the primary URL is missing or a configured address
            is malformed
    """
    primary = RpcEndpoint(
        url=get_rpc_url(rpc_url),
        name=get_optional_env("STAKESCAN_RPC_NAME", "primary") or "primary",
        timeout=float(get_optional_env("STAKESCAN_RPC_TIMEOUT", str(SCAN_TIMEOUT))),
    )
    fallbacks = tuple(
        RpcEndpoint(url=url, name=f"fallback-{idx}", timeout=METADATA_TIMEOUT)
        for idx, url in enumerate(
            split_csv(
                get_optional_env(
                    "STAKESCAN_FALLBACK_RPC_URLS", DEFAULT_FALLBACK_RPC_URLS
                )
            ),
            start=1,
        )
    )

    def _int(key: str, default: int) -> int:
        return int(get_optional_env(key, str(default)) or default)

    return StakescanSettings(
        primary=primary,
        fallbacks=fallbacks,
        staking_contract=get_optional_env(
            "STAKESCAN_STAKING_CONTRACT", DEFAULT_STAKING_CONTRACT
        ),
        delegation_contract=get_optional_env(
            "STAKESCAN_DELEGATION_CONTRACT", DEFAULT_DELEGATION_CONTRACT
        ),
        refresh_interval=float(
            get_optional_env(
                "STAKESCAN_REFRESH_INTERVAL", str(DEFAULT_REFRESH_INTERVAL)
            )
        ),
        chunk_size=_int("STAKESCAN_SCAN_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
        scan_window=_int("STAKESCAN_SCAN_WINDOW", 0),
        min_validators=_int("STAKESCAN_MIN_VALIDATORS", DEFAULT_MIN_VALIDATORS),
        active_stake=_int("STAKESCAN_ACTIVE_STAKE", DEFAULT_ACTIVE_STAKE),
        probe_batch_size=_int("STAKESCAN_PROBE_BATCH_SIZE", DEFAULT_PROBE_BATCH_SIZE),
        metadata_fallback_from_block=_int(
            "STAKESCAN_METADATA_FALLBACK_FROM_BLOCK",
            DEFAULT_METADATA_FALLBACK_FROM_BLOCK,
        ),
        known_delegators=tuple(
            split_csv(
                get_optional_env("STAKESCAN_KNOWN_DELEGATORS", DEFAULT_KNOWN_DELEGATORS)
            )
        ),
    )


__all__ = [
    "RpcEndpoint",
    "StakescanSettings",
    "get_optional_env",
    "get_required_env",
    "get_rpc_url",
    "load_settings",
    "split_csv",
]
