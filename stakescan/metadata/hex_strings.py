"""Length-prefixed string recovery from raw call input."""

import re
from collections.abc import Callable

from pydantic import BaseModel


PRINTABLE = re.compile(r"[A-Za-z0-9 \-_.@/:]+")
IDENTITY = re.compile(r"^[A-Fa-f0-9]{16}$")

WORD_HEX = 64
MAX_STRING_LENGTH = 256
MIN_STRING_CHARS = 3
MAX_MONIKER_CHARS = 50
MIN_DETAILS_CHARS = 21


class ClassifiedStrings(BaseModel):
    """Strings sorted into identity fields by shape."""

    moniker: str = ""
    identity: str = ""
    website: str = ""
    security_contact: str = ""
    details: str = ""

    @property
    def empty(self) -> bool:
        return not any(
            (self.moniker, self.identity, self.website, self.security_contact, self.details)
        )


def extract_strings(input_hex: str) -> list[str]:
    """Find length-prefixed printable strings at every byte offset.

    At each offset a 32-byte big-endian length ``L`` with ``0 < L < 256`` is
    read; the following ``L`` bytes must decode as UTF-8 text of at least
    three printable characters.

    Returns:
        Trimmed strings in order of first appearance, without duplicates
    """
    data = input_hex[2:] if input_hex.startswith(("0x", "0X")) else input_hex
    found: list[str] = []

    for i in range(0, max(len(data) - WORD_HEX - 1, 0), 2):
        try:
            length = int(data[i : i + WORD_HEX], 16)
        except ValueError:
            continue
        if not 0 < length < MAX_STRING_LENGTH:
            continue

        payload = data[i + WORD_HEX : i + WORD_HEX + length * 2]
        if len(payload) != length * 2:
            continue
        try:
            text = bytes.fromhex(payload).decode("utf-8")
        except ValueError:
            continue

        if len(text) >= MIN_STRING_CHARS and PRINTABLE.fullmatch(text):
            text = text.strip()
            if text and text not in found:
                found.append(text)

    return found


def classify_strings(strings: list[str]) -> ClassifiedStrings:
    """Pick the most plausible string for each identity field.

    Example:
        >>> classify_strings(["Komado", "https://komado.io", "ops@komado.io"]).website
        'https://komado.io'
    """
    if not strings:
        return ClassifiedStrings()

    def first(predicate: Callable[[str], bool]) -> str:
        return next((s for s in strings if predicate(s)), "")

    moniker = first(
        lambda s: MIN_STRING_CHARS <= len(s) < MAX_MONIKER_CHARS
        and "http" not in s
        and "@" not in s
    )
    return ClassifiedStrings(
        moniker=moniker or strings[0],
        identity=first(lambda s: IDENTITY.match(s) is not None),
        website=first(lambda s: "http" in s),
        security_contact=first(lambda s: "@" in s),
        details=first(lambda s: len(s) >= MIN_DETAILS_CHARS and " " in s),
    )


def positional_strings(strings: list[str]) -> ClassifiedStrings:
    """Assign strings in declaration order of the creation call description."""
    padded = [*strings[:5], *[""] * (5 - min(len(strings), 5))]
    moniker, identity, website, security_contact, details = padded
    return ClassifiedStrings(
        moniker=moniker,
        identity=identity,
        website=website,
        security_contact=security_contact,
        details=details,
    )


__all__ = [
    "ClassifiedStrings",
    "classify_strings",
    "extract_strings",
    "positional_strings",
]
