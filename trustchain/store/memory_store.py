"""
In-memory stores.

Thread-safe via a per-store lock; reads copy out under the lock so callers
see a consistent snapshot.
"""

import threading
from typing import Dict, List, Optional, Sequence

from ..audit.model import AuditEntry
from ..checkpoint.model import Checkpoint
from ..core.elements import ChainElement
from ..core.errors import StorageConflict, StoreError
from .base import AuditStore, ChainStore, CheckpointStore


class MemoryChainStore(ChainStore):
    """Chain elements keyed by chain_id then sequence."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._chains: Dict[str, Dict[int, ChainElement]] = {}

    def get_tail(self, chain_id: str) -> Optional[ChainElement]:
        with self._lock:
            chain = self._chains.get(chain_id)
            if not chain:
                return None
            return chain[max(chain)]

    def _check_locked(self, chain: Dict[int, ChainElement], elements: Sequence[ChainElement]) -> None:
        next_seq = (max(chain) if chain else 0) + 1
        for el in elements:
            if el.sequence in chain or el.sequence < next_seq:
                raise StorageConflict(el.chain_id, el.sequence)
            if el.sequence != next_seq:
                raise StoreError(
                    f"sequence gap in chain {el.chain_id}: expected {next_seq}, got {el.sequence}"
                )
            next_seq += 1

    def insert(self, element: ChainElement) -> None:
        self.insert_many([element])

    def insert_many(self, elements: Sequence[ChainElement]) -> None:
        if not elements:
            return
        chain_ids = {el.chain_id for el in elements}
        if len(chain_ids) != 1:
            raise StoreError("insert_many requires elements of a single chain")
        chain_id = elements[0].chain_id

        with self._lock:
            chain = self._chains.setdefault(chain_id, {})
            self._check_locked(chain, elements)
            for el in elements:
                chain[el.sequence] = el

    def list_elements(
        self, chain_id: str, max_sequence: Optional[int] = None
    ) -> List[ChainElement]:
        with self._lock:
            chain = dict(self._chains.get(chain_id, {}))
        return [
            chain[seq]
            for seq in sorted(chain)
            if max_sequence is None or seq <= max_sequence
        ]

    def count_after(self, chain_id: str, sequence: int) -> int:
        with self._lock:
            return sum(1 for seq in self._chains.get(chain_id, {}) if seq > sequence)


class MemoryCheckpointStore(CheckpointStore):

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._checkpoints: List[Checkpoint] = []

    def insert(self, checkpoint: Checkpoint) -> None:
        with self._lock:
            self._checkpoints.append(checkpoint)

    def update(self, checkpoint: Checkpoint) -> None:
        with self._lock:
            for idx, existing in enumerate(self._checkpoints):
                if existing.checkpoint_id == checkpoint.checkpoint_id:
                    self._checkpoints[idx] = checkpoint
                    return
        raise StoreError(f"checkpoint not found: {checkpoint.checkpoint_id}")

    def list_for_owner(self, owner_id: str) -> List[Checkpoint]:
        with self._lock:
            owned = [cp for cp in self._checkpoints if cp.owner_id == owner_id]
        # Insertion order breaks ties between equal created_at values
        return list(reversed(owned))


class MemoryAuditStore(AuditStore):

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: List[AuditEntry] = []

    def insert(self, entry: AuditEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def query(
        self,
        owner_id: str,
        action: Optional[str] = None,
        outcome: Optional[str] = None,
        element_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[AuditEntry]:
        with self._lock:
            entries = list(self._entries)

        result = []
        for entry in reversed(entries):
            if entry.owner_id != owner_id:
                continue
            if action is not None and entry.action != action:
                continue
            if outcome is not None and entry.outcome != outcome:
                continue
            if element_id is not None and entry.element_id != element_id:
                continue
            result.append(entry)
            if limit is not None and len(result) >= limit:
                break
        return result
