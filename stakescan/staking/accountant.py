"""Delegation accountant: converts delegator shares into token amounts."""

from decimal import Decimal

import httpx
from pydantic import BaseModel, ConfigDict, computed_field

from stakescan.discovery.scanner import ChainScanner
from stakescan.helpers.abi import (
    DELEGATOR_SHARES_SIGNATURE,
    GET_DELEGATION_SIGNATURE,
    TOKENS_SIGNATURE,
    AbiDecodeError,
    decode_delegation,
    decode_uint,
    encode_call,
)
from stakescan.helpers.errors import RpcError
from stakescan.helpers.logging import get_logger
from stakescan.helpers.parsers import wei_to_token


logger = get_logger(__name__)

FAILURES: tuple[type[Exception], ...] = (httpx.HTTPError, RpcError, AbiDecodeError)


def shares_to_tokens(shares: int, total_tokens: int, total_shares: int) -> int:
    """Token amount in base units for ``shares``, floored.

    Example:
        >>> shares_to_tokens(500, 1000, 2000)
        250
        >>> shares_to_tokens(500, 1000, 0)
        0
    """
    if total_shares <= 0 or shares <= 0:
        return 0
    return shares * total_tokens // total_shares


class Delegation(BaseModel):
    """Shares a delegator holds in one validator and their token value."""

    model_config = ConfigDict(frozen=True)

    validator: str
    delegator: str
    shares: int = 0
    amount_wei: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def amount(self) -> Decimal:
        return wei_to_token(self.amount_wei)

    @property
    def is_empty(self) -> bool:
        return self.shares <= 0


class DelegationAccountant:
    """Reads delegations through the validator's share accounting.

    The total-tokens/total-shares ratio is fetched on every call since it
    moves whenever any delegator acts.
    """

    def __init__(self, scanner: ChainScanner) -> None:
        self.scanner = scanner

    async def compute_delegation(self, validator: str, delegator: str) -> Delegation:
        """Return the delegation of ``delegator`` in ``validator``.

        A missing delegation, a reverted call or an undecodable answer all
        yield a zero Delegation.
        """
        empty = Delegation(validator=validator, delegator=delegator)

        try:
            raw = await self.scanner.call(
                validator,
                encode_call(GET_DELEGATION_SIGNATURE, ["address"], [delegator]),
            )
            _, shares = decode_delegation(raw)
        except FAILURES as e:
            logger.debug("getDelegation(%s) on %s failed: %s", delegator, validator, e)
            return empty

        if shares <= 0:
            return empty

        try:
            total_tokens = decode_uint(
                await self.scanner.call(validator, encode_call(TOKENS_SIGNATURE))
            )
            total_shares = decode_uint(
                await self.scanner.call(validator, encode_call(DELEGATOR_SHARES_SIGNATURE))
            )
        except FAILURES as e:
            logger.warning("share ratio of %s unavailable: %s", validator, e)
            return empty

        return Delegation(
            validator=validator,
            delegator=delegator,
            shares=shares,
            amount_wei=shares_to_tokens(shares, total_tokens, total_shares),
        )


__all__ = [
    "Delegation",
    "DelegationAccountant",
    "shares_to_tokens",
]
