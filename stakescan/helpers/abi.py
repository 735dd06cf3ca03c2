"""ABI helpers: selectors, call encoding and result decoding."""

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak

from stakescan.helpers.parsers import hex_to_bytes


def function_selector(signature: str) -> str:
    """Return the 0x-prefixed 4-byte selector of a function signature.

    Example:
        >>> function_selector("transfer(address,uint256)")
        '0xa9059cbb'
    """
    return "0x" + keccak(text=signature)[:4].hex()


def event_topic(signature: str) -> str:
    """Return topic0 (full keccak hash) of an event signature."""
    return "0x" + keccak(text=signature).hex()


TOKENS_SIGNATURE = "tokens()"
DELEGATOR_SHARES_SIGNATURE = "delegatorShares()"
COMMISSION_RATE_SIGNATURE = "commissionRate()"
WITHDRAWAL_FEE_SIGNATURE = "withdrawalFeeInGwei()"
GET_DELEGATION_SIGNATURE = "getDelegation(address)"

CREATE_VALIDATOR_SIGNATURE = (
    "createAndInitializeValidatorIfNecessary"
    "((string,string,string,string,string),uint32,uint96,bytes,bytes)"
)
CREATE_VALIDATOR_TYPES = [
    "(string,string,string,string,string)",
    "uint32",
    "uint96",
    "bytes",
    "bytes",
]

CREATE_VALIDATOR_SELECTORS = frozenset({"0xe7740331", "0x441a3e70", "0x1f2f220e"})
"""Observed selectors of validator creation calls on the staking contract"""

DELEGATED_TOPIC = event_topic("Delegated(address,address,uint256)")
UNDELEGATED_TOPIC = event_topic("Undelegated(address,address,uint256)")
VALIDATOR_CREATED_TOPIC = event_topic("ValidatorCreated(address,address,string)")


class AbiDecodeError(ValueError):
    """Returned data does not match the expected ABI shape."""


def encode_call(signature: str, arg_types: list[str] | None = None, args: list | None = None) -> str:
    """Encode calldata for ``signature`` with optional arguments.

    Example:
        ```python
        data = encode_call(GET_DELEGATION_SIGNATURE, ["address"], [delegator])
        ```
    """
    selector = function_selector(signature)
    if not arg_types:
        return selector
    return selector + abi_encode(arg_types, args or []).hex()


def decode_values(types: list[str], data: str | bytes) -> tuple:
    """Decode ABI-encoded data.

    Raises:
        AbiDecodeError: If the payload is empty or does not match ``types``
    """
    raw = data if isinstance(data, bytes) else hex_to_bytes(data)
    if not raw:
        msg = "empty return data"
        raise AbiDecodeError(msg)
    try:
        return tuple(abi_decode(types, raw))
    except (DecodingError, OverflowError, ValueError) as e:
        msg = f"cannot decode {types}: {e}"
        raise AbiDecodeError(msg) from e


def decode_uint(data: str | bytes) -> int:
    """Decode a single 32-byte unsigned word."""
    (value,) = decode_values(["uint256"], data)
    return int(value)


def decode_delegation(data: str | bytes) -> tuple[str, int]:
    """Decode ``getDelegation(address)`` into (delegator, shares)."""
    delegator, shares = decode_values(["address", "uint256"], data)
    return str(delegator).lower(), int(shares)


def decode_create_validator(input_data: str) -> dict[str, object]:
    """Decode a validator creation call input (selector included).

    Returns:
        Mapping with moniker, identity, website, security_contact, details,
        commission_rate and withdrawal_fee_gwei

    Raises:
        AbiDecodeError: If the arguments do not match the creation signature
    """
    raw = hex_to_bytes(input_data)
    if len(raw) <= 4:
        msg = "input too short for a creation call"
        raise AbiDecodeError(msg)
    description, commission, withdrawal_fee, _pubkey, _signature = decode_values(
        CREATE_VALIDATOR_TYPES, raw[4:]
    )
    moniker, identity, website, security_contact, details = description
    return {
        "moniker": moniker,
        "identity": identity,
        "website": website,
        "security_contact": security_contact,
        "details": details,
        "commission_rate": int(commission),
        "withdrawal_fee_gwei": int(withdrawal_fee),
    }


__all__ = [
    "COMMISSION_RATE_SIGNATURE",
    "CREATE_VALIDATOR_SELECTORS",
    "CREATE_VALIDATOR_SIGNATURE",
    "CREATE_VALIDATOR_TYPES",
    "DELEGATED_TOPIC",
    "DELEGATOR_SHARES_SIGNATURE",
    "GET_DELEGATION_SIGNATURE",
    "TOKENS_SIGNATURE",
    "UNDELEGATED_TOPIC",
    "VALIDATOR_CREATED_TOPIC",
    "WITHDRAWAL_FEE_SIGNATURE",
    "AbiDecodeError",
    "decode_create_validator",
    "decode_delegation",
    "decode_uint",
    "decode_values",
    "encode_call",
    "event_topic",
    "function_selector",
]
