"""
Storage interfaces.

Defines the persistence contract the engine relies on. Implementations
must guarantee:
- Append-only chains (no updates, no deletes of elements)
- Uniqueness of (chain_id, sequence), signalled with StorageConflict
- Audit entries are never updated or deleted
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator, List, Optional, Sequence

from ..core.elements import ChainElement

if TYPE_CHECKING:
    from ..audit.model import AuditEntry
    from ..checkpoint.model import Checkpoint


class ChainStore(ABC):
    """Persistence for chain elements."""

    @abstractmethod
    def get_tail(self, chain_id: str) -> Optional[ChainElement]:
        """
        Return the element with the highest sequence, or None for an empty chain.
        """
        ...

    @abstractmethod
    def insert(self, element: ChainElement) -> None:
        """
        Insert one element.

        Raises:
            StorageConflict: If (chain_id, sequence) already exists
            StoreError: If the write fails or would leave a gap
        """
        ...

    @abstractmethod
    def insert_many(self, elements: Sequence[ChainElement]) -> None:
        """
        Insert consecutive elements of one chain, all or nothing.

        Raises:
            StorageConflict: If any (chain_id, sequence) already exists
            StoreError: If the write fails
        """
        ...

    @abstractmethod
    def list_elements(
        self, chain_id: str, max_sequence: Optional[int] = None
    ) -> List[ChainElement]:
        """
        List elements in ascending sequence order.

        Args:
            chain_id: Chain to read
            max_sequence: Upper bound (inclusive), None = all
        """
        ...

    def count_after(self, chain_id: str, sequence: int) -> int:
        """Number of elements with sequence > the given one."""
        return sum(1 for el in self.list_elements(chain_id) if el.sequence > sequence)

    def get_element(self, chain_id: str, sequence: int) -> Optional[ChainElement]:
        for el in self.list_elements(chain_id, max_sequence=sequence):
            if el.sequence == sequence:
                return el
        return None


class CheckpointStore(ABC):
    """Persistence for checkpoints (insert and deactivate only)."""

    @abstractmethod
    def insert(self, checkpoint: "Checkpoint") -> None:
        ...

    @abstractmethod
    def update(self, checkpoint: "Checkpoint") -> None:
        """
        Replace a stored checkpoint by checkpoint_id.

        Raises:
            StoreError: If the checkpoint does not exist
        """
        ...

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> List["Checkpoint"]:
        """All checkpoints for an owner, newest first."""
        ...

    @contextmanager
    def locked(self, owner_id: str) -> Iterator[None]:
        """
        Exclusive section over one owner's checkpoints across processes.

        In-process stores need nothing beyond the manager's own lock.
        """
        yield


class AuditStore(ABC):
    """Append-only persistence for audit entries."""

    @abstractmethod
    def insert(self, entry: "AuditEntry") -> None:
        ...

    @abstractmethod
    def query(
        self,
        owner_id: str,
        action: Optional[str] = None,
        outcome: Optional[str] = None,
        element_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List["AuditEntry"]:
        """Entries for an owner, newest first, optionally filtered."""
        ...
