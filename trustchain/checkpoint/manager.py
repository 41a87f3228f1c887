"""
Rollback checkpoints and recovery.

Lifecycle per owner: None -> Active(rollback) -> Deactivated.

Rolling back is a visibility filter only: no element is ever deleted or
mutated, so "rolled back" history stays verifiable. Only a human can create
or lift a rollback; agents cannot self-authorize.
"""

import logging
import threading
from typing import TYPE_CHECKING, Dict, List, Optional

from .. import metrics
from ..core.clock import SystemClock
from ..core.elements import ChainElement
from ..core.errors import (
    CheckpointAlreadyActive,
    HumanAuthorizationRequired,
    InvalidCheckpointSequence,
    NoActiveCheckpoint,
    NoChainedEntries,
)
from ..core.ids import new_id
from ..core.policy import entry_chain_id
from ..store.base import ChainStore, CheckpointStore
from .model import Checkpoint

if TYPE_CHECKING:
    from ..audit.log import AuditLog

logger = logging.getLogger(__name__)

HUMAN = "human"


class CheckpointManager:
    """
    Creates and lifts rollback checkpoints on an owner's entry chain.

    Args:
        chain_store: Store holding the gated chain
        checkpoint_store: Store for checkpoint records
        audit: Audit log receiving lifecycle events
        clock: Time source
    """

    def __init__(
        self,
        chain_store: ChainStore,
        checkpoint_store: CheckpointStore,
        audit: "AuditLog",
        clock=None,
    ) -> None:
        self.chain_store = chain_store
        self.checkpoint_store = checkpoint_store
        self.audit = audit
        self.clock = clock or SystemClock()
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _owner_lock(self, owner_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(owner_id, threading.Lock())

    def create_rollback(
        self,
        owner_id: str,
        authorized_by: Optional[str],
        after_sequence: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> Checkpoint:
        """
        Create an active rollback checkpoint.

        Args:
            owner_id: Owner whose entry chain is gated
            authorized_by: Must be "human"
            after_sequence: Last visible sequence; defaults to the current tail
            reason: Human-readable reason

        Raises:
            HumanAuthorizationRequired: authorized_by is not "human"
            NoChainedEntries: The chain has no elements
            InvalidCheckpointSequence: after_sequence outside 1..tail
            CheckpointAlreadyActive: Another checkpoint is still active
        """
        if authorized_by != HUMAN:
            self._deny(owner_id, "rollback_created", authorized_by)
            raise HumanAuthorizationRequired(
                "rollback checkpoints require human authorization"
            )

        chain_id = entry_chain_id(owner_id)
        with self._owner_lock(owner_id), self.checkpoint_store.locked(owner_id):
            tail = self.chain_store.get_tail(chain_id)
            if tail is None:
                raise NoChainedEntries(f"no chained entries for owner {owner_id}")

            if after_sequence is None:
                after_sequence = tail.sequence
            elif not 1 <= after_sequence <= tail.sequence:
                raise InvalidCheckpointSequence(
                    f"after_sequence must be within 1..{tail.sequence}, got {after_sequence}"
                )

            active = self.get_active_checkpoint(owner_id)
            if active is not None:
                raise CheckpointAlreadyActive(active.checkpoint_id)

            if reason is None:
                reason = f"Manual rollback to sequence {after_sequence}"

            checkpoint = Checkpoint(
                checkpoint_id=new_id(),
                owner_id=owner_id,
                chain_id=chain_id,
                checkpoint_type="rollback",
                after_sequence=after_sequence,
                created_by=HUMAN,
                authorized_by=HUMAN,
                reason=reason,
                created_at=self.clock.now(),
            )
            self.checkpoint_store.insert(checkpoint)

            try:
                self.audit.record(
                    owner_id,
                    "rollback_created",
                    "success",
                    details={
                        "checkpoint_id": checkpoint.checkpoint_id,
                        "after_sequence": after_sequence,
                        "reason": reason,
                    },
                    actor=HUMAN,
                )
            except Exception:
                # No rollback may stay active without its audit entry
                self.checkpoint_store.update(checkpoint.deactivated(self.clock.now()))
                logger.error(
                    "Rollback audit failed, checkpoint withdrawn",
                    extra={"trace_id": owner_id, "checkpoint_id": checkpoint.checkpoint_id},
                )
                raise

        metrics.track_checkpoint("rollback_created")
        logger.info(
            "Rollback checkpoint created",
            extra={"trace_id": owner_id, "after_sequence": after_sequence},
        )
        return checkpoint

    def recover(self, owner_id: str, authorized_by: Optional[str]) -> Checkpoint:
        """
        Deactivate the active checkpoint, restoring full visibility.

        Raises:
            HumanAuthorizationRequired: authorized_by is not "human"
            NoActiveCheckpoint: Nothing to recover from
        """
        if authorized_by != HUMAN:
            self._deny(owner_id, "recovery", authorized_by)
            raise HumanAuthorizationRequired("recovery requires human authorization")

        with self._owner_lock(owner_id), self.checkpoint_store.locked(owner_id):
            active = self.get_active_checkpoint(owner_id)
            if active is None:
                raise NoActiveCheckpoint(f"no active checkpoint for owner {owner_id}")

            deactivated = active.deactivated(self.clock.now())
            self.checkpoint_store.update(deactivated)

            try:
                self.audit.record(
                    owner_id,
                    "recovery",
                    "success",
                    details={
                        "checkpoint_id": deactivated.checkpoint_id,
                        "original_after_sequence": deactivated.after_sequence,
                    },
                    actor=HUMAN,
                )
            except Exception:
                self.checkpoint_store.update(active)
                logger.error(
                    "Recovery audit failed, checkpoint restored",
                    extra={"trace_id": owner_id, "checkpoint_id": active.checkpoint_id},
                )
                raise

        metrics.track_checkpoint("recovery")
        logger.info(
            "Recovered from rollback checkpoint",
            extra={"trace_id": owner_id, "after_sequence": deactivated.after_sequence},
        )
        return deactivated

    def get_active_checkpoint(self, owner_id: str) -> Optional[Checkpoint]:
        """Most recent checkpoint still active, or None."""
        for cp in self.checkpoint_store.list_for_owner(owner_id):
            if cp.active:
                return cp
        return None

    def list_checkpoints(self, owner_id: str, include_inactive: bool = False) -> List[Checkpoint]:
        checkpoints = self.checkpoint_store.list_for_owner(owner_id)
        if include_inactive:
            return checkpoints
        return [cp for cp in checkpoints if cp.active]

    def canonical_view(self, owner_id: str, limit: Optional[int] = None) -> List[ChainElement]:
        """
        Elements visible under the active checkpoint (all when none is active),
        ascending by sequence and capped at limit when given.
        """
        active = self.get_active_checkpoint(owner_id)
        max_sequence = active.after_sequence if active else None
        elements = self.chain_store.list_elements(entry_chain_id(owner_id), max_sequence=max_sequence)
        if limit is not None:
            elements = elements[: max(limit, 0)]
        return elements

    def hidden_count(self, owner_id: str) -> int:
        """Number of elements hidden by the active checkpoint."""
        active = self.get_active_checkpoint(owner_id)
        if active is None:
            return 0
        return self.chain_store.count_after(entry_chain_id(owner_id), active.after_sequence)

    def _deny(self, owner_id: str, action: str, authorized_by: Optional[str]) -> None:
        logger.warning(
            "Checkpoint operation denied without human authorization",
            extra={"trace_id": owner_id, "action": action},
        )
        self.audit.record(
            owner_id,
            action,
            "denied",
            details={
                "reason": "human authorization required",
                "authorized_by": authorized_by,
            },
            actor=authorized_by or "unknown",
        )
