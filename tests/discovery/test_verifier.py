"""Tests for the validator verifier probe sequence."""

import httpx
import pytest

from conftest import FakeRPC, addr, word
from stakescan.discovery.models import (
    CandidateAddress,
    DiscoveryTechnique,
    ProbeFailed,
    ProbeOk,
    VerificationState,
)
from stakescan.discovery.scanner import ChainScanner
from stakescan.discovery.verifier import (
    PROBE_CALLDATA,
    PROBE_COMMISSION,
    PROBE_TOKENS,
    PROBE_WITHDRAWAL_FEE,
    ValidatorVerifier,
)
from stakescan.helpers.constants import WEI_PER_TOKEN


def candidate(address: str) -> CandidateAddress:
    return CandidateAddress(address=address, technique=DiscoveryTechnique.TOPIC)


class TestProbe:
    """Tests for single probes."""

    @pytest.mark.asyncio
    async def test_probe_ok(self, fake_rpc: FakeRPC, scanner: ChainScanner) -> None:
        fake_rpc.add_validator(addr(0xA1), tokens=5 * WEI_PER_TOKEN)

        outcome = await ValidatorVerifier(scanner).probe(addr(0xA1), PROBE_TOKENS)

        assert outcome == ProbeOk(value=5 * WEI_PER_TOKEN)
        assert outcome.ok

    @pytest.mark.asyncio
    async def test_probe_revert(self, scanner: ChainScanner) -> None:
        outcome = await ValidatorVerifier(scanner).probe(addr(0xA1), PROBE_TOKENS)

        assert isinstance(outcome, ProbeFailed)
        assert not outcome.ok
        assert "tokens() failed" in outcome.reason

    @pytest.mark.asyncio
    async def test_probe_timeout(self, fake_rpc: FakeRPC, scanner: ChainScanner) -> None:
        fake_rpc.failures["eth_call"] = httpx.ReadTimeout("slow")

        outcome = await ValidatorVerifier(scanner).probe(addr(0xA1), PROBE_TOKENS)

        assert outcome == ProbeFailed(reason="tokens() timed out")

    @pytest.mark.asyncio
    async def test_probe_empty_result(self, fake_rpc: FakeRPC, scanner: ChainScanner) -> None:
        """An account without code answers eth_call with empty data."""
        fake_rpc.calls[addr(0xA1), PROBE_CALLDATA[PROBE_TOKENS]] = "0x"

        outcome = await ValidatorVerifier(scanner).probe(addr(0xA1), PROBE_TOKENS)

        assert isinstance(outcome, ProbeFailed)


class TestVerify:
    """Tests for the full verification sequence."""

    @pytest.mark.asyncio
    async def test_accepts_validator(self, fake_rpc: FakeRPC, scanner: ChainScanner) -> None:
        fake_rpc.add_validator(addr(0xA1), tokens=32 * WEI_PER_TOKEN, commission=50_000)

        result = await ValidatorVerifier(scanner).verify(addr(0xA1))

        assert result.accepted
        assert result.state is VerificationState.ACCEPTED
        assert set(result.probes) == {
            "tokens",
            "delegatorShares",
            "commissionRate",
            "withdrawalFeeInGwei",
        }

    @pytest.mark.asyncio
    async def test_rejects_when_withdrawal_fee_probe_errors(
        self, fake_rpc: FakeRPC, scanner: ChainScanner
    ) -> None:
        """Three probes succeed, stake is above the floor, the last probe reverts."""
        fake_rpc.add_validator(addr(0xA1), tokens=32 * WEI_PER_TOKEN)
        del fake_rpc.calls[addr(0xA1), PROBE_CALLDATA[PROBE_WITHDRAWAL_FEE]]

        result = await ValidatorVerifier(scanner).verify(addr(0xA1))

        assert result.state is VerificationState.REJECTED
        assert result.rejected_at is VerificationState.STAKE_ABOVE_FLOOR
        assert "withdrawalFeeInGwei() failed" in (result.reason or "")

    @pytest.mark.asyncio
    async def test_rejects_commission_out_of_range(
        self, fake_rpc: FakeRPC, scanner: ChainScanner
    ) -> None:
        fake_rpc.add_validator(addr(0xA1), tokens=32 * WEI_PER_TOKEN)
        fake_rpc.calls[addr(0xA1), PROBE_CALLDATA[PROBE_COMMISSION]] = word(1_000_001)

        result = await ValidatorVerifier(scanner).verify(addr(0xA1))

        assert result.rejected_at is VerificationState.PROBED_COMMISSION
        assert "out of range" in (result.reason or "")
        assert fake_rpc.count("eth_call") == 3

    @pytest.mark.asyncio
    async def test_commission_bounds_are_inclusive(
        self, fake_rpc: FakeRPC, scanner: ChainScanner
    ) -> None:
        fake_rpc.add_validator(addr(0xA1), tokens=32 * WEI_PER_TOKEN, commission=1_000_000)
        fake_rpc.add_validator(addr(0xA2), tokens=32 * WEI_PER_TOKEN, commission=0)
        verifier = ValidatorVerifier(scanner)

        assert (await verifier.verify(addr(0xA1))).accepted
        assert (await verifier.verify(addr(0xA2))).accepted

    @pytest.mark.asyncio
    async def test_rejects_dust_stake(self, fake_rpc: FakeRPC, scanner: ChainScanner) -> None:
        fake_rpc.add_validator(addr(0xA1), tokens=WEI_PER_TOKEN // 1000 - 1)

        result = await ValidatorVerifier(scanner).verify(addr(0xA1))

        assert result.rejected_at is VerificationState.COMMISSION_IN_RANGE
        assert PROBE_WITHDRAWAL_FEE not in result.probes

    @pytest.mark.asyncio
    async def test_stake_floor_is_inclusive(self, fake_rpc: FakeRPC, scanner: ChainScanner) -> None:
        fake_rpc.add_validator(addr(0xA1), tokens=WEI_PER_TOKEN // 1000)

        assert (await ValidatorVerifier(scanner).verify(addr(0xA1))).accepted

    @pytest.mark.asyncio
    async def test_rejects_plain_account(self, fake_rpc: FakeRPC, scanner: ChainScanner) -> None:
        result = await ValidatorVerifier(scanner).verify(addr(0xB1))

        assert result.rejected_at is VerificationState.CANDIDATE
        assert fake_rpc.count("eth_call") == 1


class TestVerifyAll:
    """Tests for batch verification."""

    @pytest.mark.asyncio
    async def test_builds_records(self, fake_rpc: FakeRPC, scanner: ChainScanner) -> None:
        fake_rpc.add_validator(
            addr(0xA1), tokens=100 * WEI_PER_TOKEN, shares=90 * WEI_PER_TOKEN, commission=50_000, withdrawal_fee=3
        )
        verifier = ValidatorVerifier(scanner, batch_size=2)

        records = await verifier.verify_all(
            [candidate(addr(0xA1)), candidate(addr(0xB1)), candidate(addr(0xB2))],
            "chunk_1_blocks_0-99",
        )

        assert len(records) == 1
        record = records[0]
        assert record.address == addr(0xA1)
        assert record.total_tokens_wei == 100 * WEI_PER_TOKEN
        assert record.delegator_shares == 90 * WEI_PER_TOKEN
        assert record.commission_rate == 50_000
        assert record.withdrawal_fee_gwei == 3
        assert record.discovery_method == "chunk_1_blocks_0-99"
        assert set(verifier.rejected) == {addr(0xB1), addr(0xB2)}

    @pytest.mark.asyncio
    async def test_accepted_address_is_not_probed_again(
        self, fake_rpc: FakeRPC, scanner: ChainScanner
    ) -> None:
        fake_rpc.add_validator(addr(0xA1), tokens=100 * WEI_PER_TOKEN)
        verifier = ValidatorVerifier(scanner)

        await verifier.verify_all([candidate(addr(0xA1))], "chunk_1_blocks_0-99")
        calls = fake_rpc.count("eth_call")
        again = await verifier.verify_all([candidate(addr(0xA1))], "chunk_2_blocks_100-199")

        assert again == []
        assert fake_rpc.count("eth_call") == calls
        assert verifier.accepted[addr(0xA1)].discovery_method == "chunk_1_blocks_0-99"
