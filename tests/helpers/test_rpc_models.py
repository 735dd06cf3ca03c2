"""Tests for RPC models."""

import pytest

from pydantic import ValidationError

from stakescan.helpers.rpc_models import (
    EthBlockNumberRequest,
    EthCallRequest,
    EthGetBlockByNumberRequest,
    EthGetLogsRequest,
    JsonRpcRequest,
    JsonRpcResponse,
)


def test_json_rpc_request() -> None:
    """Test JsonRpcRequest model."""
    request = JsonRpcRequest(method="test_method", params=[1, "two"], id=1)
    assert request.jsonrpc == "2.0"
    assert request.method == "test_method"
    assert request.params == [1, "two"]
    assert request.id == 1


def test_json_rpc_request_default_params() -> None:
    """Test JsonRpcRequest with default params and id."""
    request = JsonRpcRequest(method="test_method")
    assert request.params == []
    assert request.id == 1


def test_json_rpc_request_validation() -> None:
    """Test JsonRpcRequest validation."""
    with pytest.raises(ValidationError):
        JsonRpcRequest(id=1)  # type: ignore[call-arg]


def test_eth_block_number_request() -> None:
    """Test EthBlockNumberRequest model."""
    request = EthBlockNumberRequest()
    assert request.method == "eth_blockNumber"
    assert request.params == []


def test_eth_block_number_request_frozen_method() -> None:
    """Test EthBlockNumberRequest method is frozen."""
    request = EthBlockNumberRequest(id=1)
    with pytest.raises(ValidationError):
        request.method = "different_method"


def test_eth_get_logs_request_for_range() -> None:
    request = EthGetLogsRequest.for_range(256, 511, "0xabc")
    assert request.method == "eth_getLogs"
    assert request.params == [{"fromBlock": "0x100", "toBlock": "0x1ff", "address": "0xabc"}]


def test_eth_get_logs_request_latest_without_address() -> None:
    request = EthGetLogsRequest.for_range(0, "latest", topics=["0x01", None])
    assert request.params == [{"fromBlock": "0x0", "toBlock": "latest", "topics": ["0x01", None]}]


def test_eth_call_request() -> None:
    request = EthCallRequest.for_call("0xabc", "0x3e0dc34e")
    assert request.method == "eth_call"
    assert request.params == [{"to": "0xabc", "data": "0x3e0dc34e"}, "latest"]


def test_eth_get_block_by_number_request() -> None:
    """Test EthGetBlockByNumberRequest model."""
    request = EthGetBlockByNumberRequest(params=["0x1", False], id=2)
    assert request.method == "eth_getBlockByNumber"
    assert request.params == ["0x1", False]


def test_json_rpc_response_with_error() -> None:
    response = JsonRpcResponse.model_validate(
        {"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "execution reverted"}}
    )
    assert response.result is None
    assert response.error is not None
    assert response.error.code == -32000
    assert response.error.message == "execution reverted"
