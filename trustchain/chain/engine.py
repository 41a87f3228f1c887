"""
Chain engine: sequencing and linking of new elements.

append() is a read-compute-write cycle against the chain tail. Stores
reject a duplicate (chain_id, sequence) with StorageConflict; the engine
then re-runs the whole cycle from a fresh tail, up to max_retries times.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from .. import metrics
from ..config import DEFAULT_MAX_APPEND_RETRIES
from ..core.clock import SystemClock
from ..core.elements import ChainElement
from ..core.errors import AppendFailed, StorageConflict
from ..core.hasher import content_hash, element_link_fields, genesis_hash, link_hash
from ..core.ids import new_id
from ..store.base import ChainStore

logger = logging.getLogger(__name__)

PersistOne = Callable[[ChainElement], None]
PersistMany = Callable[[List[ChainElement]], None]


class ChainEngine:
    """
    Produces the next linked element(s) for a chain.

    Args:
        store: Chain store used for the tail lookup and default persistence
        clock: Time source for canonical timestamps
        max_retries: Attempts per append before AppendFailed
    """

    def __init__(
        self,
        store: ChainStore,
        clock=None,
        max_retries: int = DEFAULT_MAX_APPEND_RETRIES,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self.store = store
        self.clock = clock or SystemClock()
        self.max_retries = max_retries

    def genesis_hash(self, chain_id: str) -> str:
        return genesis_hash(chain_id)

    def _link(
        self,
        chain_id: str,
        contents: Sequence[Any],
        source_hash: Optional[str],
        tail: Optional[ChainElement],
        now: datetime,
        element_ids: Sequence[Optional[str]],
        meta: Optional[Dict[str, Any]],
    ) -> List[ChainElement]:
        # Content hashes first: a failure here must abort before anything is linked
        digests = [content_hash(c) for c in contents]

        sequence = tail.sequence if tail else 0
        previous = tail.hash if tail else genesis_hash(chain_id)

        elements = []
        for digest, element_id in zip(digests, element_ids):
            sequence += 1
            fields = element_link_fields(
                sequence=sequence,
                previous_hash=previous,
                chain_id=chain_id,
                content_hash=digest,
                source_hash=source_hash,
                canonical_timestamp=now,
            )
            h = link_hash(fields)
            elements.append(
                ChainElement(
                    chain_id=chain_id,
                    sequence=sequence,
                    previous_hash=previous,
                    content_hash=digest,
                    source_hash=source_hash,
                    canonical_timestamp=now,
                    hash=h,
                    element_id=element_id or new_id(),
                    meta=dict(meta or {}),
                )
            )
            previous = h
        return elements

    def prepare(
        self,
        chain_id: str,
        content: Any,
        source_hash: Optional[str] = None,
        tail: Optional[ChainElement] = None,
        now: Optional[datetime] = None,
        element_id: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> ChainElement:
        """
        Compute the element that would follow `tail`, without touching storage.

        Args:
            chain_id: Target chain
            content: Content source (bytes, str, mapping or None)
            source_hash: Optional provenance hash
            tail: Current tail element, None for an empty chain
            now: Canonical timestamp (defaults to the engine clock)

        Raises:
            HashComputationFailed: If the content cannot be hashed
        """
        ts = now if now is not None else self.clock.now()
        return self._link(chain_id, [content], source_hash, tail, ts, [element_id], meta)[0]

    def append(
        self,
        chain_id: str,
        content: Any,
        source_hash: Optional[str] = None,
        element_id: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
        persist: Optional[PersistOne] = None,
    ) -> ChainElement:
        """
        Append one element to the chain.

        Args:
            persist: Callable that durably stores the element together with
                the caller's own record; must raise StorageConflict on a
                sequence collision. Defaults to the chain store's insert.

        Returns:
            The persisted element

        Raises:
            HashComputationFailed: Content could not be hashed (nothing written)
            AppendFailed: Retries exhausted on sequence conflicts
        """
        persist = persist or self.store.insert
        result = self._with_retry(
            chain_id,
            lambda tail, ts: self._link(
                chain_id, [content], source_hash, tail, ts, [element_id], meta
            ),
            lambda elements: persist(elements[0]),
        )
        return result[0]

    def append_batch(
        self,
        chain_id: str,
        contents: Sequence[Any],
        source_hash: Optional[str] = None,
        element_ids: Optional[Sequence[Optional[str]]] = None,
        meta: Optional[Dict[str, Any]] = None,
        persist: Optional[PersistMany] = None,
    ) -> List[ChainElement]:
        """
        Append an ordered list of contents in one pass.

        Elements get consecutive sequences and share one canonical timestamp.
        Persistence is all-or-nothing (store.insert_many by default).

        Returns:
            The persisted elements, in order ([] for empty input)
        """
        if not contents:
            return []
        if element_ids is None:
            element_ids = [None] * len(contents)
        if len(element_ids) != len(contents):
            raise ValueError("element_ids must match contents in length")

        persist = persist or self.store.insert_many
        return self._with_retry(
            chain_id,
            lambda tail, ts: self._link(
                chain_id, contents, source_hash, tail, ts, element_ids, meta
            ),
            persist,
        )

    def _with_retry(
        self,
        chain_id: str,
        compute: Callable[[Optional[ChainElement], datetime], List[ChainElement]],
        persist: PersistMany,
    ) -> List[ChainElement]:
        last_conflict: Optional[StorageConflict] = None
        for attempt in range(1, self.max_retries + 1):
            tail = self.store.get_tail(chain_id)
            elements = compute(tail, self.clock.now())
            try:
                persist(elements)
            except StorageConflict as ex:
                last_conflict = ex
                metrics.track_conflict()
                logger.warning(
                    "Sequence conflict on chain append, retrying",
                    extra={
                        "trace_id": chain_id,
                        "sequence": ex.sequence,
                        "attempt": attempt,
                    },
                )
                continue

            metrics.track_append(len(elements))
            logger.info(
                "Appended to chain",
                extra={
                    "trace_id": chain_id,
                    "first_sequence": elements[0].sequence,
                    "count": len(elements),
                },
            )
            return elements

        raise AppendFailed(
            f"append to {chain_id} failed after {self.max_retries} conflicting attempts"
        ) from last_conflict
