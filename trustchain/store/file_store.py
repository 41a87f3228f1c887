"""
File-based stores.

Layout under a root directory:
    chains/<chain key>.jsonl        one element per line, ascending sequence
    checkpoints/<owner key>/cp_{n}_{id prefix}.json
    audit/<owner key>.jsonl         one audit entry per line

Appends take an exclusive flock, re-read the tail under the lock, and fsync
before releasing it. Reads take a shared flock so they never see a torn line.
"""

import json
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from ..audit.model import AuditEntry
from ..checkpoint.model import Checkpoint
from ..core.canonical import canonical_json_str
from ..core.elements import ChainElement
from ..core.errors import CorruptElement, StorageConflict, StoreError
from ..core.ids import stable_id
from .base import AuditStore, ChainStore, CheckpointStore

try:
    import fcntl
except ImportError:  # Windows or unsupported platform
    fcntl = None


def _key(value: str) -> str:
    return stable_id(value)[:32]


def _lock(f, shared: bool = False) -> None:
    if fcntl:
        fcntl.flock(f.fileno(), fcntl.LOCK_SH if shared else fcntl.LOCK_EX)


def _unlock(f) -> None:
    if fcntl:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)


class FileChainStore(ChainStore):
    """
    Append-only JSONL chain storage.

    Guarantees:
    - Append-only (no mutations)
    - Fsync after each append (durability)
    - (chain_id, sequence) uniqueness checked under the file lock
    """

    def __init__(self, root: str) -> None:
        self.directory = Path(root) / "chains"
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, chain_id: str) -> Path:
        return self.directory / f"{_key(chain_id)}.jsonl"

    def _read_lines(self, f, chain_id: str) -> List[ChainElement]:
        f.seek(0)
        elements: List[ChainElement] = []
        position = 0
        for line in f:
            if not line.strip():
                continue
            position += 1
            try:
                elements.append(ChainElement.from_dict(json.loads(line)))
            except (ValueError, KeyError, TypeError, AttributeError) as ex:
                raise CorruptElement(chain_id, position, str(ex), preceding=elements) from ex
        return elements

    def get_tail(self, chain_id: str) -> Optional[ChainElement]:
        elements = self.list_elements(chain_id)
        return elements[-1] if elements else None

    def insert(self, element: ChainElement) -> None:
        self.insert_many([element])

    def insert_many(self, elements: Sequence[ChainElement]) -> None:
        if not elements:
            return
        chain_ids = {el.chain_id for el in elements}
        if len(chain_ids) != 1:
            raise StoreError("insert_many requires elements of a single chain")
        chain_id = elements[0].chain_id

        try:
            with open(self.path_for(chain_id), "a+b") as f:
                _lock(f)
                try:
                    existing = self._read_lines(f, chain_id)
                    last_seq = max((el.sequence for el in existing), default=0)
                    next_seq = last_seq + 1
                    for el in elements:
                        if el.sequence < next_seq:
                            raise StorageConflict(el.chain_id, el.sequence)
                        if el.sequence != next_seq:
                            raise StoreError(
                                f"sequence gap in chain {chain_id}: expected {next_seq}, got {el.sequence}"
                            )
                        next_seq += 1

                    data = "".join(canonical_json_str(el.to_dict()) + "\n" for el in elements)
                    f.seek(0, os.SEEK_END)
                    f.write(data.encode("utf-8"))
                    f.flush()
                    os.fsync(f.fileno())
                finally:
                    _unlock(f)
        except OSError as ex:
            raise StoreError(str(ex)) from ex

    def list_elements(
        self, chain_id: str, max_sequence: Optional[int] = None
    ) -> List[ChainElement]:
        path = self.path_for(chain_id)
        if not path.exists():
            return []
        try:
            with open(path, "rb") as f:
                _lock(f, shared=True)
                try:
                    elements = self._read_lines(f, chain_id)
                finally:
                    _unlock(f)
        except OSError as ex:
            raise StoreError(str(ex)) from ex

        elements.sort(key=lambda el: el.sequence)
        if max_sequence is not None:
            elements = [el for el in elements if el.sequence <= max_sequence]
        return elements


class FileCheckpointStore(CheckpointStore):
    """
    One JSON file per checkpoint.

    Naming: cp_{n}_{checkpoint_id prefix}.json where n counts up per owner.
    Deactivation rewrites the file in place.
    Check-then-insert sections hold an flock on <owner dir>/.lock.
    """

    def __init__(self, root: str) -> None:
        self.directory = Path(root) / "checkpoints"
        self.directory.mkdir(parents=True, exist_ok=True)

    def _owner_dir(self, owner_id: str) -> Path:
        return self.directory / _key(owner_id)

    def _list_files(self, owner_id: str) -> List[Path]:
        owner_dir = self._owner_dir(owner_id)
        if not owner_dir.exists():
            return []

        def extract_index(path: Path) -> int:
            # cp_{index}_{id}.json
            return int(path.name.split("_")[1])

        return sorted(owner_dir.glob("cp_*.json"), key=extract_index)

    def _write(self, path: Path, checkpoint: Checkpoint) -> None:
        tmp = path.with_suffix(".tmp")
        with open(tmp, "w") as f:
            f.write(checkpoint.to_json())
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)

    @contextmanager
    def locked(self, owner_id: str) -> Iterator[None]:
        owner_dir = self._owner_dir(owner_id)
        try:
            owner_dir.mkdir(parents=True, exist_ok=True)
            f = open(owner_dir / ".lock", "a+b")
        except OSError as ex:
            raise StoreError(str(ex)) from ex
        with f:
            _lock(f)
            try:
                yield
            finally:
                _unlock(f)

    def load(self, path: str) -> Checkpoint:
        with open(path, "r") as f:
            return Checkpoint.from_json(f.read())

    def insert(self, checkpoint: Checkpoint) -> None:
        owner_dir = self._owner_dir(checkpoint.owner_id)
        owner_dir.mkdir(parents=True, exist_ok=True)
        index = len(self._list_files(checkpoint.owner_id)) + 1
        filename = f"cp_{index:06d}_{checkpoint.checkpoint_id[:8]}.json"
        try:
            self._write(owner_dir / filename, checkpoint)
        except OSError as ex:
            raise StoreError(str(ex)) from ex

    def update(self, checkpoint: Checkpoint) -> None:
        for path in self._list_files(checkpoint.owner_id):
            if self.load(str(path)).checkpoint_id == checkpoint.checkpoint_id:
                try:
                    self._write(path, checkpoint)
                except OSError as ex:
                    raise StoreError(str(ex)) from ex
                return
        raise StoreError(f"checkpoint not found: {checkpoint.checkpoint_id}")

    def list_for_owner(self, owner_id: str) -> List[Checkpoint]:
        return [self.load(str(path)) for path in reversed(self._list_files(owner_id))]


class FileAuditStore(AuditStore):
    """Append-only JSONL audit log, one file per owner."""

    def __init__(self, root: str) -> None:
        self.directory = Path(root) / "audit"
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, owner_id: str) -> Path:
        return self.directory / f"{_key(owner_id)}.jsonl"

    def insert(self, entry: AuditEntry) -> None:
        line = canonical_json_str(entry.to_dict()) + "\n"
        try:
            with open(self.path_for(entry.owner_id), "ab") as f:
                _lock(f)
                try:
                    f.write(line.encode("utf-8"))
                    f.flush()
                    os.fsync(f.fileno())
                finally:
                    _unlock(f)
        except OSError as ex:
            raise StoreError(str(ex)) from ex

    def query(
        self,
        owner_id: str,
        action: Optional[str] = None,
        outcome: Optional[str] = None,
        element_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[AuditEntry]:
        path = self.path_for(owner_id)
        if not path.exists():
            return []

        entries = []
        with open(path, "r", encoding="utf-8") as f:
            _lock(f, shared=True)
            try:
                for line in f:
                    if not line.strip():
                        continue
                    entries.append(AuditEntry.from_dict(json.loads(line)))
            finally:
                _unlock(f)

        result = []
        for entry in reversed(entries):
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
