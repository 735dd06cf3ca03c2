"""JSON-RPC client utilities."""

from typing import Any

import httpx

from stakescan.helpers.errors import RpcError
from stakescan.helpers.models import LogEvent, TransactionDetails, TransactionReceipt
from stakescan.helpers.parsers import parse_hex_int
from stakescan.helpers.rpc_models import (
    EthBlockNumberRequest,
    EthCallRequest,
    EthGetBlockByNumberRequest,
    EthGetLogsRequest,
    EthGetTransactionByHashRequest,
    EthGetTransactionReceiptRequest,
    JsonRpcRequest,
    JsonRpcResponse,
)


class RPCClient:
    """JSON-RPC client bound to one endpoint."""

    def __init__(self, rpc_url: str, timeout: float = 30.0, name: str = "primary") -> None:
        """Initialize RPC client.

        Args:
            rpc_url: JSON-RPC endpoint URL
            timeout: Default timeout for requests in seconds
            name: Display name used in logs and health reports

        Raises:
            ValueError: If rpc_url is empty or None
        """
        if not rpc_url:
            msg = "RPC URL cannot be empty"
            raise ValueError(msg)

        self.rpc_url = rpc_url
        self.timeout = timeout
        self.name = name

    async def send(
        self,
        client: httpx.AsyncClient,
        request: JsonRpcRequest,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Post one request model and unwrap its result.

        Raises:
            httpx.HTTPError: If the HTTP request fails
            RpcError: If the response carries an error member or is malformed
        """
        response = await client.post(
            self.rpc_url,
            json=request.model_dump(),
            timeout=timeout or self.timeout,
        )
        response.raise_for_status()

        try:
            body = JsonRpcResponse.model_validate(response.json())
        except ValueError as e:
            msg = f"RPC error: malformed response ({e})"
            raise RpcError(msg) from e

        if body.error is not None:
            msg = f"RPC error: {body.error.message or body.error}"
            raise RpcError(msg, code=body.error.code)

        return body.result

    async def call(
        self,
        client: httpx.AsyncClient,
        method: str,
        params: list[Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Make a single JSON-RPC call.

        Args:
            client: HTTP client instance
            method: RPC method name (e.g., "eth_blockNumber")
            params: Method parameters list
            timeout: Optional timeout override

        Returns:
            RPC result value

        Raises:
            httpx.HTTPError: If the HTTP request fails
            RpcError: If the RPC response contains an error
        """
        request = JsonRpcRequest(method=method, params=params or [])
        return await self.send(client, request, timeout=timeout)

    async def get_block_number(
        self, client: httpx.AsyncClient, *, timeout: float | None = None
    ) -> int:
        """Get the latest block number."""
        request = EthBlockNumberRequest()
        result = await self.call(client, request.method, request.params, timeout=timeout)
        return parse_hex_int(result) if result else 0

    async def get_logs(
        self,
        client: httpx.AsyncClient,
        from_block: int,
        to_block: int | str,
        address: str | None = None,
        *,
        timeout: float | None = None,
    ) -> list[LogEvent]:
        """Fetch logs for one inclusive block range.

        Example:
            ```python
            rpc = RPCClient(rpc_url)
            async with httpx.AsyncClient() as client:
                events = await rpc.get_logs(client, 0, 99_999, staking_contract)
            ```
        """
        request = EthGetLogsRequest.for_range(from_block, to_block, address)
        result = await self.call(client, request.method, request.params, timeout=timeout)
        if not isinstance(result, list):
            return []
        return [LogEvent.model_validate(entry) for entry in result]

    async def eth_call(
        self,
        client: httpx.AsyncClient,
        to: str,
        data: str,
        *,
        timeout: float | None = None,
    ) -> str:
        """Execute a read-only contract call and return the hex result."""
        request = EthCallRequest.for_call(to, data)
        result = await self.call(client, request.method, request.params, timeout=timeout)
        if not isinstance(result, str):
            msg = f"RPC error: unexpected eth_call result {result!r}"
            raise RpcError(msg)
        return result

    async def get_transaction(
        self,
        client: httpx.AsyncClient,
        tx_hash: str,
        *,
        timeout: float | None = None,
    ) -> TransactionDetails | None:
        request = EthGetTransactionByHashRequest(params=[tx_hash])
        result = await self.call(client, request.method, request.params, timeout=timeout)
        return TransactionDetails.model_validate(result) if result else None

    async def get_receipt(
        self,
        client: httpx.AsyncClient,
        tx_hash: str,
        *,
        timeout: float | None = None,
    ) -> TransactionReceipt | None:
        request = EthGetTransactionReceiptRequest(params=[tx_hash])
        result = await self.call(client, request.method, request.params, timeout=timeout)
        return TransactionReceipt.model_validate(result) if result else None

    async def get_block(
        self,
        client: httpx.AsyncClient,
        block_number: int,
        *,
        full_transactions: bool = False,
        timeout: float | None = None,
    ) -> dict[str, Any] | None:
        """Get a block by number (header fields only by default)."""
        request = EthGetBlockByNumberRequest(
            params=[hex(block_number), full_transactions]
        )
        result = await self.call(client, request.method, request.params, timeout=timeout)
        return result or None


__all__ = [
    "RPCClient",
]
