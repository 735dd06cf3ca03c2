"""Pydantic models for on-demand delegator, transaction and wallet analytics."""

from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, Field


class DelegatorSource(StrEnum):
    EVENTS = "events"
    KNOWN_CHECK = "known_check"


class DelegatorEntry(BaseModel):
    """One delegator of a validator, ranked by stake."""

    rank: int
    address: str
    short_address: str
    shares: int
    amount: Decimal = Field(..., description="Delegated tokens")
    amount_wei: int
    percentage: float = Field(..., description="Share of the discovered total")
    source: DelegatorSource


class DelegatorStatistics(BaseModel):
    """Distribution statistics of one delegator set."""

    total_delegators: int = 0
    total_staked: Decimal = Decimal(0)
    mean_stake: float = 0.0
    median_stake: float = 0.0
    max_stake: float = 0.0
    min_stake: float = 0.0
    top10_share: float = Field(default=0.0, description="Percent held by the top 10")
    gini: float = 0.0
    concentration: str = "No delegators"
    distribution: dict[str, int] = Field(default_factory=dict)


class DelegatorReport(BaseModel):
    validator: str
    delegators: list[DelegatorEntry]
    statistics: DelegatorStatistics
    top10: list[DelegatorEntry]
    sources: dict[str, int] = Field(default_factory=dict)
    scanned_candidates: int = 0
    events_scanned: int = 0


class TransactionType(StrEnum):
    CREATE_VALIDATOR = "CreateValidator"
    DELEGATE = "Delegate"
    UNDELEGATE = "Undelegate"
    WITHDRAW = "Withdraw"
    UPDATE_COMMISSION = "UpdateCommission"
    REDELEGATE = "Redelegate"
    STAKE = "Stake"
    OTHERS = "Others"


class TransactionStatus(StrEnum):
    SUCCESS = "Success"
    FAILED = "Failed"


class TransactionRecord(BaseModel):
    """A classified transaction touching a validator."""

    hash: str
    type: TransactionType
    status: TransactionStatus
    amount: Decimal = Decimal(0)
    sender: str | None = None
    receiver: str | None = None
    block_number: int
    timestamp: int | None = None
    gas_used: int = 0
    gas_price: int = 0


class TransactionSummary(BaseModel):
    total: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    success: int = 0
    failed: int = 0


class TransactionHistory(BaseModel):
    validator: str
    transactions: list[TransactionRecord]
    recent: list[TransactionRecord]
    summary: TransactionSummary
    events_scanned: int = 0


class WalletDelegation(BaseModel):
    validator: str
    moniker: str
    shares: int
    amount: Decimal


class WalletReport(BaseModel):
    wallet: str
    delegations: list[WalletDelegation]
    total_delegated: Decimal = Decimal(0)
    validators_checked: int = 0


__all__ = [
    "DelegatorEntry",
    "DelegatorReport",
    "DelegatorSource",
    "DelegatorStatistics",
    "TransactionHistory",
    "TransactionRecord",
    "TransactionStatus",
    "TransactionSummary",
    "TransactionType",
    "WalletDelegation",
    "WalletReport",
]
