"""Pydantic models for candidate discovery and validator verification."""

from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, computed_field

from stakescan.helpers.models import LogEvent
from stakescan.helpers.parsers import wei_to_token


class DiscoveryTechnique(StrEnum):
    """How a candidate address was mined out of a log event."""

    TOPIC = "topic"
    DATA_OFFSET = "data_offset"
    SENDER = "sender"


class CandidateAddress(BaseModel):
    """An address suspected to be a validator contract or delegator."""

    model_config = ConfigDict(frozen=True)

    address: str = Field(..., description="Lowercase 0x-prefixed address")
    technique: DiscoveryTechnique
    transaction_hash: str | None = None
    block_number: int | None = None


class ProbeOk(BaseModel):
    """A contract probe that returned a decodable value."""

    model_config = ConfigDict(frozen=True)

    value: int

    @property
    def ok(self) -> bool:
        return True


class ProbeFailed(BaseModel):
    """A contract probe that errored, timed out or returned garbage."""

    model_config = ConfigDict(frozen=True)

    reason: str

    @property
    def ok(self) -> bool:
        return False


type ProbeResult = ProbeOk | ProbeFailed


class VerificationState(StrEnum):
    """Verifier states, in the order a genuine validator walks through them."""

    CANDIDATE = "candidate"
    PROBED_TOKENS = "probed_tokens"
    PROBED_SHARES = "probed_shares"
    PROBED_COMMISSION = "probed_commission"
    COMMISSION_IN_RANGE = "commission_in_range"
    STAKE_ABOVE_FLOOR = "stake_above_floor"
    PROBED_WITHDRAWAL_FEE = "probed_withdrawal_fee"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Verification(BaseModel):
    """Outcome of walking one candidate through the verifier."""

    address: str
    state: VerificationState = VerificationState.CANDIDATE
    probes: dict[str, ProbeOk | ProbeFailed] = Field(default_factory=dict)
    rejected_at: VerificationState | None = Field(
        default=None, description="Last state reached before rejection"
    )
    reason: str | None = None

    @property
    def accepted(self) -> bool:
        return self.state is VerificationState.ACCEPTED


class ValidatorRecord(BaseModel):
    """A candidate that passed every verification layer."""

    model_config = ConfigDict(frozen=True)

    address: str
    total_tokens_wei: int = Field(..., ge=0)
    delegator_shares: int = Field(..., ge=0)
    commission_rate: int = Field(..., ge=0, le=1_000_000)
    withdrawal_fee_gwei: int = Field(..., ge=0)
    discovery_method: str
    probes: dict[str, int] = Field(default_factory=dict)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_tokens(self) -> Decimal:
        return wei_to_token(self.total_tokens_wei)


class ScanReport(BaseModel):
    """Events and coverage of one chunked scan."""

    from_block: int
    to_block: int
    chunks: int = 0
    failed_chunks: int = 0
    events: list[LogEvent] = Field(default_factory=list)

    @property
    def event_count(self) -> int:
        return len(self.events)


__all__ = [
    "CandidateAddress",
    "DiscoveryTechnique",
    "ProbeFailed",
    "ProbeOk",
    "ProbeResult",
    "ScanReport",
    "ValidatorRecord",
    "Verification",
    "VerificationState",
]
