"""Snapshot store owning all cross-cycle state."""

from datetime import UTC, datetime

from stakescan.cache.models import NetworkSnapshot
from stakescan.helpers.errors import NotReadyError
from stakescan.helpers.logging import get_logger
from stakescan.metadata.models import ValidatorMetadata


logger = get_logger(__name__)


class SnapshotStore:
    """Holds the published snapshot, the metadata table and lookup caches.

    One store per engine; nothing here is module-global so independent
    instances never interfere.

    Example:
        ```python
        store = SnapshotStore()
        cycle = store.next_cycle()
        ...
        store.publish(snapshot)
        current = store.require_snapshot()
        ```
    """

    def __init__(self) -> None:
        self._snapshot: NetworkSnapshot | None = None
        self._published_at: datetime | None = None
        self._cycle = 0
        self.update_count = 0
        self._metadata: dict[str, ValidatorMetadata] = {}
        self._owners: dict[str, str] = {}
        self._processed_transactions: dict[str, str | None] = {}

    @property
    def snapshot(self) -> NetworkSnapshot | None:
        return self._snapshot

    @property
    def published_at(self) -> datetime | None:
        return self._published_at

    def require_snapshot(self) -> NetworkSnapshot:
        """Return the published snapshot.

        Raises:
            NotReadyError: If nothing has been published yet
        """
        if self._snapshot is None:
            msg = "No validator snapshot has been published yet"
            raise NotReadyError(msg)
        return self._snapshot

    def next_cycle(self) -> int:
        """Reserve the cycle number for a build that is about to start."""
        self._cycle += 1
        return self._cycle

    def publish(self, snapshot: NetworkSnapshot) -> bool:
        """Swap in ``snapshot`` unless a newer one is already published.

        Publishing the same or an older cycle is a no-op, so a build that
        completes late never replaces a newer one.

        Returns:
            True if the snapshot became current
        """
        current = self._snapshot
        if current is not None and snapshot.cycle <= current.cycle:
            logger.info(
                "ignoring snapshot of cycle %d (cycle %d already published)",
                snapshot.cycle,
                current.cycle,
            )
            return False

        self._snapshot = snapshot
        self._published_at = datetime.now(UTC)
        self.update_count += 1
        logger.info(
            "published cycle %d: %d validators",
            snapshot.cycle,
            len(snapshot.validators),
        )
        return True

    def get_metadata(self, address: str) -> ValidatorMetadata | None:
        return self._metadata.get(address.lower())

    def put_metadata(self, metadata: ValidatorMetadata, *, force: bool = False) -> bool:
        """Cache metadata unless a more confident entry is already held.

        Returns:
            True if the entry was stored
        """
        key = metadata.validator.lower()
        current = self._metadata.get(key)
        if not force and not metadata.outranks(current):
            logger.debug(
                "keeping %s metadata for %s over %s",
                current.provenance if current else None,
                key,
                metadata.provenance,
            )
            return False
        self._metadata[key] = metadata
        if metadata.owner:
            self.remember_owner(key, metadata.owner)
        return True

    def metadata_entries(self) -> list[ValidatorMetadata]:
        return list(self._metadata.values())

    def owner_of(self, validator: str) -> str | None:
        return self._owners.get(validator.lower())

    def remember_owner(self, validator: str, owner: str) -> None:
        self._owners[validator.lower()] = owner.lower()

    def is_processed(self, tx_hash: str) -> bool:
        return tx_hash.lower() in self._processed_transactions

    def mark_processed(self, tx_hash: str, sender: str | None = None) -> None:
        """Remember a transaction whose input carried no identity."""
        self._processed_transactions[tx_hash.lower()] = sender

    def processed_sender(self, tx_hash: str) -> str | None:
        return self._processed_transactions.get(tx_hash.lower())


__all__ = [
    "SnapshotStore",
]
