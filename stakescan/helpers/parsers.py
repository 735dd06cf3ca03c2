"""Parsing utilities for common data transformations."""

from decimal import Decimal

from eth_utils import is_hex_address

from stakescan.helpers.constants import WEI_PER_TOKEN, ZERO_ADDRESS
from stakescan.helpers.errors import InvalidAddressError


def parse_hex_int(hex_value: str | None, default: int = 0) -> int:
    """Parse hex string to integer.

    Args:
        hex_value: Hex-encoded string or None
        default: Default value if hex_value is None or empty

    Returns:
        int: Parsed integer value

    Example:
        >>> parse_hex_int("0xff")
        255
        >>> parse_hex_int(None, 0)
        0
    """
    if hex_value is None or hex_value in {"", "0x"}:
        return default
    return int(hex_value, 16)



def hex_to_bytes(value: str | None) -> bytes:
    """Decode a 0x-prefixed hex string, returning b"" for empty or odd input.

    Example:
        >>> hex_to_bytes("0x0a0b")
        b'\\n\\x0b'
        >>> hex_to_bytes("0x")
        b''
    """
    if not value:
        return b""
    raw = value[2:] if value.startswith(("0x", "0X")) else value
    if len(raw) % 2:
        return b""
    try:
        return bytes.fromhex(raw)
    except ValueError:
        return b""


def wei_to_token(wei: int | None) -> Decimal:
    """Convert base units to whole tokens without float rounding.

    Example:
        >>> wei_to_token(1500000000000000000)
        Decimal('1.5')
    """
    if not wei:
        return Decimal(0)
    return Decimal(wei) / Decimal(WEI_PER_TOKEN)


def is_valid_address(value: object) -> bool:
    """Return True for a 0x-prefixed 20-byte hex string."""
    return isinstance(value, str) and value.startswith("0x") and is_hex_address(value)


def normalize_address(value: object) -> str:
    """Validate an address and return its lowercase form.

    Raises:
        InvalidAddressError: If the value is not a well-formed 20-byte hex address
    """
    if not is_valid_address(value):
        raise InvalidAddressError(value)
    return str(value).lower()


def is_zero_address(address: str) -> bool:
    return address.lower() == ZERO_ADDRESS


def short_address(address: str) -> str:
    """Abbreviate an address for display (``0x1234...abcd``)."""
    return f"{address[:6]}...{address[-4:]}"


__all__ = [
    "hex_to_bytes",
    "is_valid_address",
    "is_zero_address",
    "normalize_address",
    "parse_hex_int",
    "short_address",
    "wei_to_token",
]
