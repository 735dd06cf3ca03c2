"""Pydantic models for validator identity metadata."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, computed_field

from stakescan.helpers.constants import (
    AVATAR_URL_TEMPLATE,
    DEFAULT_COMMISSION_RATE,
    DEFAULT_WITHDRAWAL_FEE_GWEI,
)


GENERIC_MONIKER = "Unknown Validator"
PLACEHOLDER_PREFIX = "Validator-"
MIN_IDENTITY_LENGTH = 16


class Provenance(StrEnum):
    """Which strategy produced a metadata entry, most confident first."""

    DECODED = "decoded"
    HEX_EXTRACTED = "hex-extracted"
    BASIC_INFERENCE = "basic-inference"
    FALLBACK = "fallback"

    @property
    def rank(self) -> int:
        """Higher is more confident."""
        return _RANKS[self]


_RANKS = {
    Provenance.DECODED: 3,
    Provenance.HEX_EXTRACTED: 2,
    Provenance.BASIC_INFERENCE: 1,
    Provenance.FALLBACK: 0,
}


class ResolutionOutcome(StrEnum):
    """Whether a resolution succeeded directly, via a fallback, or found nothing."""

    FOUND = "found"
    FALLBACK = "fallback"
    NOT_FOUND = "not_found"


class ResolutionStrategy(StrEnum):
    CACHED = "cached"
    STRUCTURED_DECODE = "structured_decode"
    HEX_HEURISTIC = "hex_heuristic"
    RAW_SCAN = "raw_scan"
    BASIC_INFERENCE = "basic_inference"
    ALTERNATE_ENDPOINT = "alternate_endpoint"
    PLACEHOLDER = "placeholder"


def placeholder_moniker(address: str) -> str:
    """Deterministic display name derived from the address suffix.

    Example:
        >>> placeholder_moniker("0x00000000000000000000000000000000001a2b3c")
        'Validator-1a2b3c'
    """
    return f"{PLACEHOLDER_PREFIX}{address[-6:]}"


def is_generic_moniker(moniker: str | None) -> bool:
    return (
        not moniker
        or moniker == GENERIC_MONIKER
        or moniker.startswith(PLACEHOLDER_PREFIX)
    )


class ValidatorMetadata(BaseModel):
    """Human-readable identity declared when a validator was created."""

    model_config = ConfigDict(frozen=True)

    validator: str
    moniker: str
    identity: str = ""
    website: str = ""
    security_contact: str = ""
    details: str = ""
    commission_rate: int = Field(default=DEFAULT_COMMISSION_RATE, ge=0)
    withdrawal_fee_gwei: int = Field(default=DEFAULT_WITHDRAWAL_FEE_GWEI, ge=0)
    owner: str | None = None
    provenance: Provenance
    source_tx: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def avatar_url(self) -> str | None:
        if len(self.identity) < MIN_IDENTITY_LENGTH:
            return None
        return AVATAR_URL_TEMPLATE.format(identity=self.identity.lower())

    @property
    def is_generic(self) -> bool:
        return is_generic_moniker(self.moniker)

    def outranks(self, other: "ValidatorMetadata | None") -> bool:
        """True when this entry may replace ``other`` without forcing."""
        return other is None or self.provenance.rank >= other.provenance.rank


class Resolution(BaseModel):
    """Typed result of one metadata resolution."""

    model_config = ConfigDict(frozen=True)

    metadata: ValidatorMetadata
    outcome: ResolutionOutcome
    strategy: ResolutionStrategy
    endpoint: str | None = Field(
        default=None, description="Endpoint that produced the metadata"
    )

    @property
    def used_alternate_endpoint(self) -> bool:
        return self.strategy is ResolutionStrategy.ALTERNATE_ENDPOINT


__all__ = [
    "GENERIC_MONIKER",
    "PLACEHOLDER_PREFIX",
    "Provenance",
    "Resolution",
    "ResolutionOutcome",
    "ResolutionStrategy",
    "ValidatorMetadata",
    "is_generic_moniker",
    "placeholder_moniker",
]
