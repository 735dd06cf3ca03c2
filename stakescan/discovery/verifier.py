"""Validator verifier: an ordered sequence of read-only capability probes.

No single function signature distinguishes a validator contract from an
arbitrary contract on this chain, so each probe eliminates one class of
false positive:

1. ``tokens()`` answers with a word
2. ``delegatorShares()`` answers
3. ``commissionRate()`` answers
4. the commission rate lies in ``[0, 1_000_000]``
5. ``tokens()`` is at least the dust floor (0.001 token)
6. ``withdrawalFeeInGwei()`` answers
"""

import asyncio
from collections.abc import Iterable

import httpx

from stakescan.discovery.models import (
    CandidateAddress,
    ProbeFailed,
    ProbeOk,
    ValidatorRecord,
    Verification,
    VerificationState,
)
from stakescan.discovery.scanner import ChainScanner
from stakescan.helpers.abi import (
    COMMISSION_RATE_SIGNATURE,
    DELEGATOR_SHARES_SIGNATURE,
    TOKENS_SIGNATURE,
    WITHDRAWAL_FEE_SIGNATURE,
    AbiDecodeError,
    decode_uint,
    encode_call,
)
from stakescan.helpers.constants import (
    DEFAULT_PROBE_BATCH_SIZE,
    MAX_COMMISSION_RATE,
    MIN_STAKE_WEI,
)
from stakescan.helpers.errors import RpcError
from stakescan.helpers.http import PROBE_POLICY, RetryPolicy
from stakescan.helpers.logging import get_logger


logger = get_logger(__name__)

PROBE_TOKENS = "tokens"
PROBE_SHARES = "delegatorShares"
PROBE_COMMISSION = "commissionRate"
PROBE_WITHDRAWAL_FEE = "withdrawalFeeInGwei"

PROBE_CALLDATA = {
    PROBE_TOKENS: encode_call(TOKENS_SIGNATURE),
    PROBE_SHARES: encode_call(DELEGATOR_SHARES_SIGNATURE),
    PROBE_COMMISSION: encode_call(COMMISSION_RATE_SIGNATURE),
    PROBE_WITHDRAWAL_FEE: encode_call(WITHDRAWAL_FEE_SIGNATURE),
}


class ValidatorVerifier:
    """Walks candidates through the probe state machine.

    Accepted addresses are remembered for the lifetime of the verifier so a
    single scan never probes the same address twice.
    """

    def __init__(
        self,
        scanner: ChainScanner,
        *,
        policy: RetryPolicy = PROBE_POLICY,
        batch_size: int = DEFAULT_PROBE_BATCH_SIZE,
    ) -> None:
        self.scanner = scanner
        self.policy = policy
        self.batch_size = batch_size
        self.accepted: dict[str, ValidatorRecord] = {}
        self.rejected: dict[str, Verification] = {}

    async def probe(self, address: str, name: str) -> ProbeOk | ProbeFailed:
        """Call one zero-argument getter and decode its uint result."""
        try:
            raw = await self.scanner.call(
                address, PROBE_CALLDATA[name], timeout=self.policy.timeout
            )
            return ProbeOk(value=decode_uint(raw))
        except httpx.TimeoutException:
            return ProbeFailed(reason=f"{name}() timed out")
        except (httpx.HTTPError, RpcError, AbiDecodeError) as e:
            return ProbeFailed(reason=f"{name}() failed: {e}")

    async def verify(self, address: str) -> Verification:
        """Run the full probe sequence against one address.

        Returns:
            Verification whose state is ACCEPTED or REJECTED; probes holds
            every result collected up to the terminal state
        """
        result = Verification(address=address)

        def reject(reason: str) -> Verification:
            result.rejected_at = result.state
            result.state = VerificationState.REJECTED
            result.reason = reason
            return result

        steps = (
            (PROBE_TOKENS, VerificationState.PROBED_TOKENS),
            (PROBE_SHARES, VerificationState.PROBED_SHARES),
            (PROBE_COMMISSION, VerificationState.PROBED_COMMISSION),
        )
        for name, next_state in steps:
            outcome = await self.probe(address, name)
            result.probes[name] = outcome
            if isinstance(outcome, ProbeFailed):
                return reject(outcome.reason)
            result.state = next_state

        commission = _value(result, PROBE_COMMISSION)
        if not 0 <= commission <= MAX_COMMISSION_RATE:
            return reject(f"commission rate {commission} out of range")
        result.state = VerificationState.COMMISSION_IN_RANGE

        tokens = _value(result, PROBE_TOKENS)
        if tokens < MIN_STAKE_WEI:
            return reject(f"stake {tokens} wei below floor")
        result.state = VerificationState.STAKE_ABOVE_FLOOR

        outcome = await self.probe(address, PROBE_WITHDRAWAL_FEE)
        result.probes[PROBE_WITHDRAWAL_FEE] = outcome
        if isinstance(outcome, ProbeFailed):
            return reject(outcome.reason)
        result.state = VerificationState.PROBED_WITHDRAWAL_FEE

        result.state = VerificationState.ACCEPTED
        return result

    async def verify_candidate(
        self, candidate: CandidateAddress, discovery_method: str
    ) -> ValidatorRecord | None:
        """Verify one candidate, returning its record when accepted."""
        key = candidate.address.lower()
        if key in self.accepted:
            return self.accepted[key]

        verification = await self.verify(key)
        if not verification.accepted:
            self.rejected[key] = verification
            logger.debug(
                "rejected %s at %s: %s",
                key,
                verification.rejected_at,
                verification.reason,
            )
            return None

        probes = {
            name: outcome.value
            for name, outcome in verification.probes.items()
            if isinstance(outcome, ProbeOk)
        }
        record = ValidatorRecord(
            address=key,
            total_tokens_wei=probes[PROBE_TOKENS],
            delegator_shares=probes[PROBE_SHARES],
            commission_rate=probes[PROBE_COMMISSION],
            withdrawal_fee_gwei=probes[PROBE_WITHDRAWAL_FEE],
            discovery_method=discovery_method,
            probes=probes,
        )
        self.accepted[key] = record
        logger.info("accepted validator %s (%s tokens)", key, record.total_tokens)
        return record

    async def verify_all(
        self,
        candidates: Iterable[CandidateAddress],
        discovery_method: str,
    ) -> list[ValidatorRecord]:
        """Verify candidates in small concurrent batches.

        Addresses already accepted by this verifier are skipped.

        Returns:
            Newly accepted records in candidate order
        """
        pending = [c for c in candidates if c.address.lower() not in self.accepted]
        accepted: list[ValidatorRecord] = []

        for i in range(0, len(pending), self.batch_size):
            batch = pending[i : i + self.batch_size]
            results = await asyncio.gather(
                *[self.verify_candidate(c, discovery_method) for c in batch],
                return_exceptions=True,
            )
            for candidate, outcome in zip(batch, results, strict=True):
                if isinstance(outcome, BaseException):
                    logger.warning("verification of %s crashed: %s", candidate.address, outcome)
                elif outcome is not None:
                    accepted.append(outcome)

        return accepted


def _value(result: Verification, name: str) -> int:
    outcome = result.probes[name]
    return outcome.value if isinstance(outcome, ProbeOk) else 0


__all__ = [
    "PROBE_CALLDATA",
    "PROBE_COMMISSION",
    "PROBE_SHARES",
    "PROBE_TOKENS",
    "PROBE_WITHDRAWAL_FEE",
    "ValidatorVerifier",
]
