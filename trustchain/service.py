"""
TrustedMemory: the library boundary for hosts.

Binds the chain engine, verifier, checkpoint manager, guard and audit log to
one set of stores and one clock. Every call is a function of its explicit
arguments; there is no ambient session state.

Usage:
    tm = TrustedMemory.in_memory()
    owner = Owner(id="42", trusted_memory_mode=True)
    tm.create_entry(owner, {"title": "t", "content": "hello"})
    tm.verify(entry_chain_id(owner.id))
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .audit.log import AuditLog
from .audit.model import AuditEntry
from .chain.engine import ChainEngine
from .checkpoint.manager import CheckpointManager
from .checkpoint.model import Checkpoint
from .config import Settings, default_root
from .core.clock import SystemClock
from .core.elements import ChainElement
from .core.hasher import genesis_hash
from .core.policy import Owner, TrustPolicy, agent_chain_id, entry_chain_id
from .guard import Guard, MutationKind
from .store.base import AuditStore, ChainStore, CheckpointStore
from .store.file_store import FileAuditStore, FileChainStore, FileCheckpointStore
from .store.memory_store import MemoryAuditStore, MemoryChainStore, MemoryCheckpointStore
from .verify.verifier import VerificationResult, verify_chain


@dataclass(frozen=True)
class ChainStatus:
    chain_id: str
    chain_length: int
    latest_element_id: Optional[str]
    latest_hash: Optional[str]
    has_active_checkpoint: bool
    checkpoint_after_sequence: Optional[int]
    hidden_count: int
    genesis_hash: str

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


class TrustedMemory:

    def __init__(
        self,
        chain_store: ChainStore,
        checkpoint_store: CheckpointStore,
        audit_store: AuditStore,
        settings: Optional[Settings] = None,
        clock=None,
    ) -> None:
        self.settings = settings or Settings(root=default_root())
        self.clock = clock or SystemClock()
        self.chain_store = chain_store
        self.audit = AuditLog(
            audit_store, clock=self.clock, default_limit=self.settings.audit_query_limit
        )
        self.engine = ChainEngine(
            chain_store, clock=self.clock, max_retries=self.settings.max_append_retries
        )
        self.checkpoints = CheckpointManager(
            chain_store, checkpoint_store, self.audit, clock=self.clock
        )
        self.guard = Guard(self.audit)

    @classmethod
    def in_memory(cls, settings: Optional[Settings] = None, clock=None) -> "TrustedMemory":
        return cls(
            MemoryChainStore(),
            MemoryCheckpointStore(),
            MemoryAuditStore(),
            settings=settings,
            clock=clock,
        )

    @classmethod
    def from_directory(
        cls, root: str, settings: Optional[Settings] = None, clock=None
    ) -> "TrustedMemory":
        return cls(
            FileChainStore(root),
            FileCheckpointStore(root),
            FileAuditStore(root),
            settings=settings or Settings(root=root),
            clock=clock,
        )

    # Chains

    def genesis_hash(self, chain_id: str) -> str:
        return genesis_hash(chain_id)

    def append_to_chain(
        self,
        chain_id: str,
        content: Any,
        source_hash: Optional[str] = None,
        element_id: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
        persist=None,
    ) -> ChainElement:
        return self.engine.append(
            chain_id,
            content,
            source_hash=source_hash,
            element_id=element_id,
            meta=meta,
            persist=persist,
        )

    def append_batch(
        self,
        chain_id: str,
        contents: Sequence[Any],
        source_hash: Optional[str] = None,
        element_ids: Optional[Sequence[Optional[str]]] = None,
        meta: Optional[Dict[str, Any]] = None,
        persist=None,
    ) -> List[ChainElement]:
        return self.engine.append_batch(
            chain_id,
            contents,
            source_hash=source_hash,
            element_ids=element_ids,
            meta=meta,
            persist=persist,
        )

    def create_entry(
        self,
        owner: Owner,
        content: Any,
        element_id: Optional[str] = None,
        persist=None,
    ) -> Optional[ChainElement]:
        """
        Chain a new entry for a trusted-memory owner.

        Returns None for standard owners: their entries are not chained.
        """
        if owner.policy is not TrustPolicy.TRUSTED:
            return None
        return self.append_to_chain(
            entry_chain_id(owner.id), content, element_id=element_id, persist=persist
        )

    def chain_memories(
        self,
        owner: Owner,
        memories: Sequence[Any],
        source: Optional[ChainElement] = None,
        agent: str = "reader",
        persist=None,
    ) -> List[ChainElement]:
        """
        Chain memories extracted by an agent, linked to their source entry.

        Each element records the source entry's hash as source_hash, giving
        cross-chain provenance without linking the two chains.
        """
        return self.append_batch(
            agent_chain_id(owner.id, agent),
            memories,
            source_hash=source.hash if source else None,
            meta={"source_agent_id": agent},
            persist=persist,
        )

    # Verification

    def verify(self, chain_id: str) -> VerificationResult:
        return verify_chain(self.chain_store, chain_id)

    def verify_and_record(
        self, owner: Owner, chain_id: Optional[str] = None
    ) -> VerificationResult:
        """Verify a chain and write the outcome to the owner's audit log."""
        chain_id = chain_id or entry_chain_id(owner.id)
        result = self.verify(chain_id)
        details = result.to_dict()
        self.audit.record(
            owner.id,
            "verify",
            "success" if result.valid else "failed",
            element_id=details.get("element_id"),
            details=details,
        )
        return result

    def status(self, owner: Owner) -> ChainStatus:
        chain_id = entry_chain_id(owner.id)
        tail = self.chain_store.get_tail(chain_id)
        checkpoint = self.checkpoints.get_active_checkpoint(owner.id)
        return ChainStatus(
            chain_id=chain_id,
            chain_length=tail.sequence if tail else 0,
            latest_element_id=tail.element_id if tail else None,
            latest_hash=tail.hash if tail else None,
            has_active_checkpoint=checkpoint is not None,
            checkpoint_after_sequence=checkpoint.after_sequence if checkpoint else None,
            hidden_count=self.checkpoints.hidden_count(owner.id),
            genesis_hash=genesis_hash(chain_id),
        )

    def memory_chain_status(self, owner: Owner, agent: str = "reader") -> Dict[str, Any]:
        chain_id = agent_chain_id(owner.id, agent)
        elements = self.chain_store.list_elements(chain_id)
        latest = elements[-1] if elements else None
        return {
            "chain_id": chain_id,
            "chain_length": latest.sequence if latest else 0,
            "memory_count": len(elements),
            "latest_element_id": latest.element_id if latest else None,
            "latest_hash": latest.hash if latest else None,
            "genesis_hash": genesis_hash(chain_id),
        }

    # Checkpoints

    def create_rollback(
        self,
        owner: Owner,
        authorized_by: Optional[str],
        after_sequence: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> Checkpoint:
        return self.checkpoints.create_rollback(
            owner.id, authorized_by, after_sequence=after_sequence, reason=reason
        )

    def recover(self, owner: Owner, authorized_by: Optional[str]) -> Checkpoint:
        return self.checkpoints.recover(owner.id, authorized_by)

    def get_active_checkpoint(self, owner: Owner) -> Optional[Checkpoint]:
        return self.checkpoints.get_active_checkpoint(owner.id)

    def list_checkpoints(self, owner: Owner, include_inactive: bool = False) -> List[Checkpoint]:
        return self.checkpoints.list_checkpoints(owner.id, include_inactive=include_inactive)

    def canonical_view(self, owner: Owner, limit: Optional[int] = None) -> List[ChainElement]:
        return self.checkpoints.canonical_view(owner.id, limit=limit)

    def hidden_count(self, owner: Owner) -> int:
        return self.checkpoints.hidden_count(owner.id)

    # Guard and audit

    def guard_mutation(
        self, owner: Owner, element_id: str, kind: MutationKind, details: Optional[dict] = None
    ) -> None:
        self.guard.guard_mutation(owner.id, owner.policy, element_id, kind, details=details)

    def audit_log(
        self,
        owner: Owner,
        action: Optional[str] = None,
        outcome: Optional[str] = None,
        element_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[AuditEntry]:
        return self.audit.query(
            owner.id, action=action, outcome=outcome, element_id=element_id, limit=limit
        )
