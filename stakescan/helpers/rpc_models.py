"""Pydantic models for JSON-RPC requests and responses."""

from typing import Any, Self

from pydantic import BaseModel, Field


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request model."""

    jsonrpc: str = Field(default="2.0", description="JSON-RPC version")
    method: str = Field(..., description="Method name to call")
    params: list[Any] = Field(
        default_factory=list, description="Method parameters"
    )
    id: int | str = Field(default=1, description="Request ID")


class JsonRpcError(BaseModel):
    """Error member of a JSON-RPC 2.0 response."""

    code: int | None = None
    message: str = ""
    data: Any = None


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response envelope."""

    jsonrpc: str = "2.0"
    id: int | str | None = None
    result: Any = None
    error: JsonRpcError | None = None


class EthBlockNumberRequest(JsonRpcRequest):
    """JSON-RPC request for eth_blockNumber."""

    method: str = Field(default="eth_blockNumber", frozen=True)
    params: list[Any] = Field(default_factory=list, frozen=True)


class EthGetLogsRequest(JsonRpcRequest):
    """JSON-RPC request for eth_getLogs."""

    method: str = Field(default="eth_getLogs", frozen=True)

    @classmethod
    def for_range(
        cls,
        from_block: int,
        to_block: int | str,
        address: str | None = None,
        topics: list[str | None] | None = None,
    ) -> Self:
        """Build a filter for an inclusive block range.

        Args:
            from_block: First block
            to_block: Last block, or "latest"
            address: Emitting contract, or None for every contract
            topics: Optional positional topic filter

        Example:
            ```python
            request = EthGetLogsRequest.for_range(0, 99_999, staking_contract)
            ```
        """
        log_filter: dict[str, Any] = {
            "fromBlock": hex(from_block),
            "toBlock": hex(to_block) if isinstance(to_block, int) else to_block,
        }
        if address:
            log_filter["address"] = address
        if topics:
            log_filter["topics"] = topics
        return cls(params=[log_filter])


class EthCallRequest(JsonRpcRequest):
    """JSON-RPC request for eth_call against the latest block."""

    method: str = Field(default="eth_call", frozen=True)

    @classmethod
    def for_call(cls, to: str, data: str, block: str = "latest") -> Self:
        return cls(params=[{"to": to, "data": data}, block])


class EthGetTransactionByHashRequest(JsonRpcRequest):
    """JSON-RPC request for eth_getTransactionByHash."""

    method: str = Field(default="eth_getTransactionByHash", frozen=True)


class EthGetTransactionReceiptRequest(JsonRpcRequest):
    """JSON-RPC request for eth_getTransactionReceipt."""

    method: str = Field(default="eth_getTransactionReceipt", frozen=True)


class EthGetBlockByNumberRequest(JsonRpcRequest):
    """JSON-RPC request for eth_getBlockByNumber."""

    method: str = Field(default="eth_getBlockByNumber", frozen=True)


__all__ = [
    "EthBlockNumberRequest",
    "EthCallRequest",
    "EthGetBlockByNumberRequest",
    "EthGetLogsRequest",
    "EthGetTransactionByHashRequest",
    "EthGetTransactionReceiptRequest",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
]
