"""Delegations held by one wallet across the active validator set."""

import asyncio
from decimal import Decimal

from stakescan.analytics.models import WalletDelegation, WalletReport
from stakescan.cache.models import NetworkSnapshot
from stakescan.helpers.constants import DEFAULT_PROBE_BATCH_SIZE
from stakescan.helpers.logging import get_logger
from stakescan.staking.accountant import DelegationAccountant


logger = get_logger(__name__)


async def wallet_delegations(
    accountant: DelegationAccountant,
    snapshot: NetworkSnapshot,
    wallet: str,
    *,
    batch_size: int = DEFAULT_PROBE_BATCH_SIZE,
) -> WalletReport:
    """Check ``wallet`` against every Active validator of ``snapshot``.

    Returns:
        WalletReport listing validators where the wallet holds shares
    """
    validators = snapshot.active_validators
    delegations: list[WalletDelegation] = []

    for i in range(0, len(validators), batch_size):
        batch = validators[i : i + batch_size]
        results = await asyncio.gather(
            *[accountant.compute_delegation(v.address, wallet) for v in batch]
        )
        for validator, delegation in zip(batch, results, strict=True):
            if delegation.is_empty:
                continue
            delegations.append(
                WalletDelegation(
                    validator=validator.address,
                    moniker=validator.moniker,
                    shares=delegation.shares,
                    amount=delegation.amount,
                )
            )

    logger.debug("%s: %d delegations over %d validators", wallet, len(delegations), len(validators))
    return WalletReport(
        wallet=wallet,
        delegations=delegations,
        total_delegated=sum((d.amount for d in delegations), Decimal(0)),
        validators_checked=len(validators),
    )


__all__ = [
    "wallet_delegations",
]
