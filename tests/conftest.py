"""Pytest configuration and shared fixtures: an in-memory JSON-RPC chain."""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from typing import Any

from eth_abi import encode as abi_encode

from stakescan.discovery.scanner import ChainScanner
from stakescan.helpers.abi import (
    COMMISSION_RATE_SIGNATURE,
    CREATE_VALIDATOR_TYPES,
    DELEGATOR_SHARES_SIGNATURE,
    GET_DELEGATION_SIGNATURE,
    TOKENS_SIGNATURE,
    WITHDRAWAL_FEE_SIGNATURE,
    encode_call,
)
from stakescan.helpers.config import RpcEndpoint, StakescanSettings
from stakescan.helpers.constants import DEFAULT_STAKING_CONTRACT, WEI_PER_TOKEN
from stakescan.helpers.errors import RpcError
from stakescan.helpers.http import RetryPolicy
from stakescan.helpers.rpc import RPCClient


STAKING = DEFAULT_STAKING_CONTRACT.lower()
CREATED_TOPIC0 = "0x" + "ee" * 32


def word(value: int) -> str:
    """One 32-byte ABI word as 0x-prefixed hex."""
    return "0x" + value.to_bytes(32, "big").hex()


def pad_address(address: str) -> str:
    """Left-pad an address into a 32-byte topic."""
    return "0x" + "0" * 24 + address[2:].lower()


def addr(n: int) -> str:
    """Deterministic lowercase test address."""
    return "0x" + f"{n:040x}"


def creation_input(
    moniker: str,
    identity: str = "",
    website: str = "",
    security_contact: str = "",
    details: str = "",
    commission: int = 50_000,
    withdrawal_fee: int = 1,
    selector: str = "0x441a3e70",
) -> str:
    """Calldata of a validator creation call."""
    encoded = abi_encode(
        CREATE_VALIDATOR_TYPES,
        [
            (moniker, identity, website, security_contact, details),
            commission,
            withdrawal_fee,
            b"\x01" * 48,
            b"\x02" * 96,
        ],
    )
    return selector + encoded.hex()


class FakeRPC(RPCClient):
    """RPCClient answering from in-memory tables instead of the network."""

    def __init__(self, name: str = "primary", head: int = 1_000) -> None:
        super().__init__(f"https://{name}.test.rpc", name=name)
        self.head = head
        self.logs: list[dict[str, Any]] = []
        self.calls: dict[tuple[str, str], str] = {}
        self.transactions: dict[str, dict[str, Any]] = {}
        self.receipts: dict[str, dict[str, Any]] = {}
        self.blocks: dict[int, dict[str, Any]] = {}
        self.failures: dict[str, Exception] = {}
        self.failing_ranges: set[tuple[int, int]] = set()
        self.requests: list[tuple[str, list[Any]]] = []
        # method -> event a matching request waits on before answering
        self.hold: dict[str, asyncio.Event] = {}

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.requests if m == method)

    def add_validator(
        self,
        address: str,
        *,
        tokens: int,
        shares: int | None = None,
        commission: int = 50_000,
        withdrawal_fee: int = 1,
    ) -> None:
        """Register a contract answering every validator probe."""
        self.calls[address, encode_call(TOKENS_SIGNATURE)] = word(tokens)
        self.calls[address, encode_call(DELEGATOR_SHARES_SIGNATURE)] = word(
            tokens if shares is None else shares
        )
        self.calls[address, encode_call(COMMISSION_RATE_SIGNATURE)] = word(commission)
        self.calls[address, encode_call(WITHDRAWAL_FEE_SIGNATURE)] = word(withdrawal_fee)

    def add_delegation(self, validator: str, delegator: str, shares: int) -> None:
        data = encode_call(GET_DELEGATION_SIGNATURE, ["address"], [delegator])
        self.calls[validator, data] = "0x" + abi_encode(
            ["address", "uint256"], [delegator, shares]
        ).hex()

    def add_log(
        self,
        address: str,
        *,
        topics: list[str],
        data: str = "0x",
        tx_hash: str,
        block: int,
    ) -> None:
        self.logs.append(
            {
                "address": address,
                "topics": topics,
                "data": data,
                "transactionHash": tx_hash,
                "blockNumber": hex(block),
            }
        )

    def add_transaction(
        self,
        tx_hash: str,
        *,
        sender: str,
        to: str,
        input_data: str = "0x",
        value: int = 0,
        block: int = 1,
        status: str = "0x1",
        receipt_logs: list[dict[str, Any]] | None = None,
    ) -> None:
        self.transactions[tx_hash] = {
            "hash": tx_hash,
            "from": sender,
            "to": to,
            "input": input_data,
            "value": hex(value),
            "gasPrice": hex(1_000_000_000),
            "blockNumber": hex(block),
        }
        self.receipts[tx_hash] = {
            "status": status,
            "gasUsed": hex(21_000),
            "logs": receipt_logs or [],
        }
        self.blocks.setdefault(block, {"number": hex(block), "timestamp": hex(1_700_000_000 + block)})

    async def call(
        self,
        client: httpx.AsyncClient,
        method: str,
        params: list[Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        params = params or []
        self.requests.append((method, params))
        if method in self.hold:
            await self.hold[method].wait()
        if method in self.failures:
            raise self.failures[method]

        if method == "eth_blockNumber":
            return hex(self.head)
        if method == "eth_getLogs":
            return self._logs(params[0])
        if method == "eth_call":
            key = (params[0]["to"].lower(), params[0]["data"])
            if key not in self.calls:
                msg = "RPC error: execution reverted"
                raise RpcError(msg, code=3)
            return self.calls[key]
        if method == "eth_getTransactionByHash":
            return self.transactions.get(params[0])
        if method == "eth_getTransactionReceipt":
            return self.receipts.get(params[0])
        if method == "eth_getBlockByNumber":
            return self.blocks.get(int(params[0], 16))

        msg = f"RPC error: method {method} not supported"
        raise RpcError(msg, code=-32601)

    def _logs(self, log_filter: dict[str, Any]) -> list[dict[str, Any]]:
        start = int(log_filter["fromBlock"], 16)
        to_block = log_filter["toBlock"]
        end = self.head if to_block == "latest" else int(to_block, 16)
        if (start, end) in self.failing_ranges:
            msg = "timed out"
            raise httpx.ReadTimeout(msg)
        address = log_filter.get("address")
        return [
            entry
            for entry in self.logs
            if start <= int(entry["blockNumber"], 16) <= end
            and (address is None or entry["address"].lower() == address.lower())
        ]


FAST_METADATA_POLICY = RetryPolicy(name="metadata", max_attempts=2, base_delay=0)


@pytest.fixture
def http_client() -> AsyncMock:
    return AsyncMock(spec=httpx.AsyncClient)


@pytest.fixture
def fake_rpc() -> FakeRPC:
    return FakeRPC()


@pytest.fixture
def scanner(fake_rpc: FakeRPC, http_client: AsyncMock) -> ChainScanner:
    return ChainScanner(fake_rpc, http_client)


@pytest.fixture
def settings() -> StakescanSettings:
    return StakescanSettings(
        primary=RpcEndpoint(url="https://primary.test.rpc"),
        staking_contract=STAKING,
        chunk_size=500,
        min_validators=2,
        active_stake=32,
        refresh_interval=0.05,
    )


@pytest.fixture
def populated_rpc(fake_rpc: FakeRPC) -> FakeRPC:
    """Three validators created through the staking contract.

    - validator 0xa1: 100 tokens, decodable creation call
    - validator 0xa2: 50 tokens, creation input without a known selector
    - validator 0xa3: 10 tokens, no transaction on record
    """
    v1, v2, v3 = addr(0xA1), addr(0xA2), addr(0xA3)
    o1, o2 = addr(0xB1), addr(0xB2)

    fake_rpc.add_validator(v1, tokens=100 * WEI_PER_TOKEN, commission=50_000)
    fake_rpc.add_validator(v2, tokens=50 * WEI_PER_TOKEN, commission=100_000)
    fake_rpc.add_validator(v3, tokens=10 * WEI_PER_TOKEN, commission=0)

    fake_rpc.add_log(STAKING, topics=[CREATED_TOPIC0, pad_address(v1), pad_address(o1)], tx_hash="0x01", block=10)
    fake_rpc.add_log(STAKING, topics=[CREATED_TOPIC0, pad_address(v2), pad_address(o2)], tx_hash="0x02", block=600)
    fake_rpc.add_log(STAKING, topics=[CREATED_TOPIC0, pad_address(v3)], tx_hash="0x03", block=900)

    fake_rpc.add_transaction(
        "0x01",
        sender=o1,
        to=STAKING,
        input_data=creation_input(
            "Komado",
            identity="0123456789ABCDEF",
            website="https://komado.io",
            security_contact="ops@komado.io",
            details="Reliable staking since 2021",
        ),
        block=10,
    )
    fake_rpc.add_transaction("0x02", sender=o2, to=STAKING, input_data="0x1234", block=600)

    fake_rpc.add_delegation(v1, o1, 40 * WEI_PER_TOKEN)
    return fake_rpc


__all__ = [
    "CREATED_TOPIC0",
    "FAST_METADATA_POLICY",
    "STAKING",
    "FakeRPC",
    "addr",
    "creation_input",
    "pad_address",
    "word",
]
