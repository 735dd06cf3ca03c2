"""Tests for the snapshot store."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from stakescan.cache.models import NetworkSnapshot, ScanProvenance
from stakescan.cache.store import SnapshotStore
from stakescan.helpers.errors import NotReadyError
from stakescan.metadata.models import Provenance, ValidatorMetadata


def snapshot(cycle: int) -> NetworkSnapshot:
    return NetworkSnapshot(
        validators=(),
        total_stake=Decimal(0),
        active_stake=Decimal(0),
        active_count=0,
        candidate_count=0,
        provenance=ScanProvenance(
            cycle=cycle,
            from_block=0,
            to_block=100,
            chunks=1,
            failed_chunks=0,
            events=0,
            retrieved_at=datetime.now(UTC),
        ),
    )


def metadata(provenance: Provenance, moniker: str = "Node", owner: str | None = None) -> ValidatorMetadata:
    return ValidatorMetadata(
        validator="0x" + "A1" * 20, moniker=moniker, provenance=provenance, owner=owner
    )


class TestPublication:
    """Tests for snapshot publication."""

    def test_cold_start_raises_not_ready(self) -> None:
        store = SnapshotStore()

        assert store.snapshot is None
        with pytest.raises(NotReadyError):
            store.require_snapshot()

    def test_publish_makes_snapshot_current(self) -> None:
        store = SnapshotStore()
        published = snapshot(store.next_cycle())

        assert store.publish(published) is True
        assert store.require_snapshot() is published
        assert store.published_at is not None
        assert store.update_count == 1

    def test_republishing_same_cycle_is_a_no_op(self) -> None:
        store = SnapshotStore()
        first = snapshot(1)
        store.publish(first)

        assert store.publish(snapshot(1)) is False
        assert store.require_snapshot() is first
        assert store.update_count == 1

    def test_older_cycle_never_replaces_newer(self) -> None:
        store = SnapshotStore()
        store.publish(snapshot(2))

        assert store.publish(snapshot(1)) is False
        assert store.require_snapshot().cycle == 2

    def test_cycles_increase(self) -> None:
        store = SnapshotStore()
        assert [store.next_cycle() for _ in range(3)] == [1, 2, 3]


class TestMetadataTable:
    """Tests for the metadata cache."""

    def test_better_provenance_replaces(self) -> None:
        store = SnapshotStore()
        store.put_metadata(metadata(Provenance.BASIC_INFERENCE))

        assert store.put_metadata(metadata(Provenance.DECODED, "Komado")) is True
        assert store.get_metadata("0x" + "a1" * 20).moniker == "Komado"  # type: ignore[union-attr]

    def test_worse_provenance_is_rejected(self) -> None:
        store = SnapshotStore()
        store.put_metadata(metadata(Provenance.HEX_EXTRACTED, "Komado"))

        assert store.put_metadata(metadata(Provenance.FALLBACK, "Validator-a1a1a1")) is False
        assert store.get_metadata("0x" + "a1" * 20).moniker == "Komado"  # type: ignore[union-attr]

    def test_force_replaces(self) -> None:
        store = SnapshotStore()
        store.put_metadata(metadata(Provenance.DECODED, "Komado"))

        assert store.put_metadata(metadata(Provenance.FALLBACK, "Other"), force=True) is True

    def test_owner_is_remembered(self) -> None:
        store = SnapshotStore()
        store.put_metadata(metadata(Provenance.DECODED, owner="0x" + "B1" * 20))

        assert store.owner_of("0x" + "a1" * 20) == "0x" + "b1" * 20
        assert len(store.metadata_entries()) == 1

    def test_processed_transactions(self) -> None:
        store = SnapshotStore()
        store.mark_processed("0xABC", "0x" + "b1" * 20)

        assert store.is_processed("0xabc")
        assert store.processed_sender("0xabc") == "0x" + "b1" * 20
        assert not store.is_processed("0xdef")
