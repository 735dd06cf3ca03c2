"""Pydantic models for published network snapshots and cache status."""

from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from stakescan.metadata.models import Provenance


class ValidatorStatus(StrEnum):
    ACTIVE = "Active"
    CANDIDATE = "Candidate"


class ControllerState(StrEnum):
    """Refresh controller lifecycle."""

    INITIALIZING = "initializing"
    SCANNING = "scanning"
    EXTRACTING_METADATA = "extracting_metadata"
    FORMATTING = "formatting"
    READY = "ready"
    DEGRADED = "degraded"


def format_commission(rate: int) -> str:
    """Render a commission rate (1_000_000 = 100%) as a percentage string.

    Example:
        >>> format_commission(50_000)
        '5.00%'
    """
    return f"{rate / 10_000:.2f}%"


class SnapshotValidator(BaseModel):
    """One validator as presented in a snapshot."""

    model_config = ConfigDict(frozen=True)

    address: str
    owner: str | None = None
    moniker: str
    identity: str = ""
    website: str = ""
    security_contact: str = ""
    details: str = ""
    avatar_url: str | None = None
    status: ValidatorStatus
    stake: Decimal = Field(..., description="Total staked tokens")
    stake_wei: int
    self_delegation: Decimal = Decimal(0)
    delegator_shares: int = 0
    commission_rate: int
    commission: str
    withdrawal_fee_gwei: int
    voting_power: float = Field(default=0.0, description="Percent of active stake")
    discovery_method: str
    metadata_provenance: Provenance
    source_tx: str | None = None


class ScanProvenance(BaseModel):
    """Where a snapshot came from."""

    model_config = ConfigDict(frozen=True)

    cycle: int
    from_block: int
    to_block: int
    chunks: int
    failed_chunks: int
    events: int
    candidates: int = 0
    metadata_resolved: int = 0
    alternate_endpoint_hits: int = 0
    retrieved_at: datetime


class NetworkSnapshot(BaseModel):
    """Complete result of one refresh cycle, published atomically."""

    model_config = ConfigDict(frozen=True)

    validators: tuple[SnapshotValidator, ...]
    total_stake: Decimal
    active_stake: Decimal
    active_count: int
    candidate_count: int
    provenance: ScanProvenance

    @property
    def cycle(self) -> int:
        return self.provenance.cycle

    @property
    def active_validators(self) -> tuple[SnapshotValidator, ...]:
        return tuple(v for v in self.validators if v.status is ValidatorStatus.ACTIVE)

    def owners(self) -> list[str]:
        return [v.owner for v in self.validators if v.owner]


class CacheStatus(BaseModel):
    """Controller status as exposed to callers."""

    initialized: bool
    last_update: datetime | None = None
    update_count: int = 0
    stale: bool = False
    state: ControllerState = ControllerState.INITIALIZING
    last_error: str | None = None
    cache_age_seconds: float | None = None
    next_refresh_in: float | None = None
    validator_count: int = 0
    active_count: int = 0
    candidate_count: int = 0
    provenance_histogram: dict[str, int] = Field(default_factory=dict)
    alternate_endpoint_hits: int = 0


__all__ = [
    "CacheStatus",
    "ControllerState",
    "NetworkSnapshot",
    "ScanProvenance",
    "SnapshotValidator",
    "ValidatorStatus",
    "format_commission",
]
