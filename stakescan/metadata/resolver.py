"""Metadata resolver: recovers validator identity from creation transactions."""

import httpx

from stakescan.cache.store import SnapshotStore
from stakescan.discovery.scanner import ChainScanner
from stakescan.helpers.abi import (
    CREATE_VALIDATOR_SELECTORS,
    AbiDecodeError,
    decode_create_validator,
)
from stakescan.helpers.constants import DEFAULT_METADATA_FALLBACK_FROM_BLOCK
from stakescan.helpers.errors import RpcError
from stakescan.helpers.http import METADATA_POLICY, RetryPolicy
from stakescan.helpers.logging import get_logger
from stakescan.helpers.models import LogEvent, TransactionDetails
from stakescan.metadata.hex_strings import (
    ClassifiedStrings,
    classify_strings,
    extract_strings,
    positional_strings,
)
from stakescan.metadata.models import (
    Provenance,
    Resolution,
    ResolutionOutcome,
    ResolutionStrategy,
    ValidatorMetadata,
    placeholder_moniker,
)


logger = get_logger(__name__)

RAW_SCAN_MIN_INPUT_HEX = 200
"""Inputs without a known selector are string-scanned only above this length"""

type Found = tuple[ValidatorMetadata, ResolutionStrategy]


def references_address(event: LogEvent, address: str) -> bool:
    """True when ``event`` was emitted by, or mentions, ``address``."""
    needle = address[2:].lower()
    if event.address == address.lower():
        return True
    if needle in event.data.lower():
        return True
    return any(needle in topic.lower() for topic in event.topics)


def reference_hashes(events: list[LogEvent], address: str) -> list[str]:
    """Unique transaction hashes of events referencing ``address``, in order."""
    hashes: list[str] = []
    for event in events:
        tx_hash = event.transaction_hash
        if tx_hash and tx_hash not in hashes and references_address(event, address):
            hashes.append(tx_hash)
    return hashes


def outcome_for(provenance: Provenance) -> ResolutionOutcome:
    if provenance in {Provenance.DECODED, Provenance.HEX_EXTRACTED}:
        return ResolutionOutcome.FOUND
    if provenance is Provenance.BASIC_INFERENCE:
        return ResolutionOutcome.FALLBACK
    return ResolutionOutcome.NOT_FOUND


def metadata_from_transaction(address: str, tx: TransactionDetails) -> Found | None:
    """Try structured decode, then string heuristics, on one transaction input.

    Returns:
        Metadata and the strategy that produced it, or None when the input
        carries no recognisable identity
    """
    selector = tx.selector
    strings: ClassifiedStrings | None = None
    strategy = ResolutionStrategy.HEX_HEURISTIC

    if selector in CREATE_VALIDATOR_SELECTORS:
        try:
            decoded = decode_create_validator(tx.input)
        except AbiDecodeError as e:
            logger.debug("structured decode of %s failed: %s", tx.hash, e)
        else:
            if decoded["moniker"]:
                return (
                    ValidatorMetadata(
                        validator=address,
                        moniker=str(decoded["moniker"]),
                        identity=str(decoded["identity"]),
                        website=str(decoded["website"]),
                        security_contact=str(decoded["security_contact"]),
                        details=str(decoded["details"]),
                        commission_rate=int(decoded["commission_rate"]),
                        withdrawal_fee_gwei=int(decoded["withdrawal_fee_gwei"]),
                        owner=tx.from_address,
                        provenance=Provenance.DECODED,
                        source_tx=tx.hash,
                    ),
                    ResolutionStrategy.STRUCTURED_DECODE,
                )
        found = extract_strings(tx.input)
        if found:
            strings = classify_strings(found)
    elif len(tx.input) - 2 > RAW_SCAN_MIN_INPUT_HEX:
        found = extract_strings(tx.input)
        if found:
            strings = positional_strings(found)
            strategy = ResolutionStrategy.RAW_SCAN

    if strings is None or strings.empty:
        return None

    return (
        ValidatorMetadata(
            validator=address,
            moniker=strings.moniker or placeholder_moniker(address),
            identity=strings.identity,
            website=strings.website,
            security_contact=strings.security_contact,
            details=strings.details,
            owner=tx.from_address,
            provenance=Provenance.HEX_EXTRACTED,
            source_tx=tx.hash,
        ),
        strategy,
    )


class MetadataResolver:
    """Short-circuiting pipeline from creation transactions to identity.

    Strategies, in order: structured decode, hex heuristic, raw string scan,
    basic inference from the referencing sender, an address search against
    alternate endpoints, and finally a placeholder name.

    Results are cached in the store; resolving a cached address again does no
    network I/O unless ``refresh`` is requested.
    """

    def __init__(
        self,
        scanner: ChainScanner,
        store: SnapshotStore,
        *,
        staking_contract: str,
        alternates: list[ChainScanner] | None = None,
        alternate_from_block: int = DEFAULT_METADATA_FALLBACK_FROM_BLOCK,
        policy: RetryPolicy = METADATA_POLICY,
    ) -> None:
        self.scanner = scanner
        self.store = store
        self.staking_contract = staking_contract.lower()
        self.alternates = alternates or []
        self.alternate_from_block = alternate_from_block
        self.policy = policy

    async def resolve(
        self,
        address: str,
        events: list[LogEvent],
        *,
        refresh: bool = False,
        force: bool = False,
    ) -> Resolution:
        """Resolve metadata for one validator.

        Args:
            address: Validator contract address
            events: Log events already collected by the current scan
            refresh: Re-run the pipeline even when an entry is cached
            force: Allow a lower-confidence result to replace the cached one

        Returns:
            Resolution; its metadata always carries a displayable moniker
        """
        address = address.lower()
        cached = self.store.get_metadata(address)
        if cached is not None and not refresh:
            return Resolution(
                metadata=cached,
                outcome=outcome_for(cached.provenance),
                strategy=ResolutionStrategy.CACHED,
            )

        primary = await self._from_references(self.scanner, address, events, refresh=refresh)
        if primary is not None and not primary[0].is_generic:
            metadata, strategy = primary
            return self._store(metadata, ResolutionOutcome.FOUND, strategy, self.scanner, force)

        for alternate in self.alternates:
            found = await self._search_alternate(alternate, address)
            if found is not None:
                metadata, _ = found
                logger.info(
                    "metadata for %s recovered from %s: %s",
                    address,
                    alternate.endpoint_name,
                    metadata.moniker,
                )
                return self._store(
                    metadata,
                    ResolutionOutcome.FALLBACK,
                    ResolutionStrategy.ALTERNATE_ENDPOINT,
                    alternate,
                    force,
                )

        if primary is not None:
            metadata, strategy = primary
            return self._store(metadata, ResolutionOutcome.FALLBACK, strategy, self.scanner, force)

        logger.debug("no metadata for %s, using placeholder", address)
        placeholder = ValidatorMetadata(
            validator=address,
            moniker=placeholder_moniker(address),
            owner=self.store.owner_of(address),
            provenance=Provenance.FALLBACK,
        )
        return self._store(
            placeholder,
            ResolutionOutcome.NOT_FOUND,
            ResolutionStrategy.PLACEHOLDER,
            None,
            force,
        )

    def _store(
        self,
        metadata: ValidatorMetadata,
        outcome: ResolutionOutcome,
        strategy: ResolutionStrategy,
        source: ChainScanner | None,
        force: bool,
    ) -> Resolution:
        if self.store.put_metadata(metadata, force=force):
            return Resolution(
                metadata=metadata,
                outcome=outcome,
                strategy=strategy,
                endpoint=source.endpoint_name if source else None,
            )
        kept = self.store.get_metadata(metadata.validator)
        if kept is None:
            msg = f"metadata for {metadata.validator} rejected without a cached entry"
            raise RuntimeError(msg)
        return Resolution(
            metadata=kept,
            outcome=outcome_for(kept.provenance),
            strategy=ResolutionStrategy.CACHED,
        )

    async def _from_references(
        self,
        scanner: ChainScanner,
        address: str,
        events: list[LogEvent],
        *,
        refresh: bool = False,
    ) -> Found | None:
        hashes = reference_hashes(events, address)
        first_sender: str | None = None
        first_hash: str | None = None

        for tx_hash in hashes:
            if not refresh and self.store.is_processed(tx_hash):
                sender = self.store.processed_sender(tx_hash)
                if first_sender is None and sender:
                    first_sender, first_hash = sender, tx_hash
                continue
            tx = await scanner.transaction(tx_hash)
            if tx is None:
                continue
            if first_sender is None and tx.from_address:
                first_sender, first_hash = tx.from_address, tx.hash

            found = metadata_from_transaction(address, tx)
            if found is not None:
                return found
            self.store.mark_processed(tx_hash, tx.from_address)

        if first_sender is None:
            return None

        return (
            ValidatorMetadata(
                validator=address,
                moniker=placeholder_moniker(address),
                owner=first_sender,
                provenance=Provenance.BASIC_INFERENCE,
                source_tx=first_hash,
            ),
            ResolutionStrategy.BASIC_INFERENCE,
        )

    async def _search_alternate(self, alternate: ChainScanner, address: str) -> Found | None:
        """Search the staking contract history on an alternate endpoint."""
        try:
            events = await self.policy.run(
                alternate.fetch_logs,
                self.staking_contract,
                self.alternate_from_block,
                "latest",
                self.policy.timeout,
            )
        except (httpx.HTTPError, RpcError, ValueError) as e:
            logger.warning(
                "alternate metadata search on %s failed: %s", alternate.endpoint_name, e
            )
            return None

        needle = address[2:].lower()
        for event in events:
            if needle not in event.data.lower() or not event.transaction_hash:
                continue
            tx = await alternate.transaction(event.transaction_hash)
            if tx is None:
                continue
            found = metadata_from_transaction(address, tx)
            if found is not None and not found[0].is_generic:
                return found
        return None


__all__ = [
    "MetadataResolver",
    "metadata_from_transaction",
    "outcome_for",
    "reference_hashes",
    "references_address",
]
