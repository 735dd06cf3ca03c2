"""Common Pydantic models for chain data returned by the JSON-RPC endpoint."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stakescan.helpers.parsers import parse_hex_int


class LogEvent(BaseModel):
    """One entry of an eth_getLogs result."""

    address: str = Field(..., description="Emitting contract address")
    topics: tuple[str, ...] = Field(default=(), description="32-byte topics")
    data: str = Field(default="0x", description="Hex data payload")
    transaction_hash: str | None = Field(default=None, alias="transactionHash")
    block_number: int = Field(default=0, alias="blockNumber")

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    @field_validator("address")
    @classmethod
    def _lower_address(cls, value: str) -> str:
        return value.lower()

    @field_validator("topics", mode="before")
    @classmethod
    def _skip_empty_topics(cls, value: Any) -> tuple[str, ...]:
        if not value:
            return ()
        return tuple(t for t in value if isinstance(t, str))

    @field_validator("data", mode="before")
    @classmethod
    def _default_data(cls, value: Any) -> str:
        return value if isinstance(value, str) and value else "0x"

    @field_validator("block_number", mode="before")
    @classmethod
    def _parse_block(cls, value: Any) -> int:
        if isinstance(value, str):
            return parse_hex_int(value)
        return value or 0


class TransactionDetails(BaseModel):
    """Subset of eth_getTransactionByHash used for metadata and history."""

    hash: str
    from_address: str | None = Field(default=None, alias="from")
    to: str | None = None
    input: str = "0x"
    value: int = 0
    gas_price: int = Field(default=0, alias="gasPrice")
    block_number: int | None = Field(default=None, alias="blockNumber")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("from_address", "to", mode="before")
    @classmethod
    def _lower(cls, value: Any) -> str | None:
        return value.lower() if isinstance(value, str) else None

    @field_validator("input", mode="before")
    @classmethod
    def _default_input(cls, value: Any) -> str:
        return value if isinstance(value, str) and value else "0x"

    @field_validator("value", "gas_price", mode="before")
    @classmethod
    def _parse_quantity(cls, value: Any) -> int:
        if isinstance(value, str):
            return parse_hex_int(value)
        return value or 0

    @field_validator("block_number", mode="before")
    @classmethod
    def _parse_block(cls, value: Any) -> int | None:
        if isinstance(value, str):
            return parse_hex_int(value)
        return value

    @property
    def selector(self) -> str | None:
        """First four bytes of the call input, or None for plain transfers."""
        if len(self.input) < 10:
            return None
        return self.input[:10].lower()


class TransactionReceipt(BaseModel):
    """Subset of eth_getTransactionReceipt."""

    status: str | None = None
    gas_used: int = Field(default=0, alias="gasUsed")
    logs: tuple[LogEvent, ...] = ()

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("gas_used", mode="before")
    @classmethod
    def _parse_gas(cls, value: Any) -> int:
        if isinstance(value, str):
            return parse_hex_int(value)
        return value or 0

    @property
    def succeeded(self) -> bool:
        return self.status == "0x1"


__all__ = [
    "LogEvent",
    "TransactionDetails",
    "TransactionReceipt",
]
