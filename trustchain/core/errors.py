"""
Exception types for the trusted memory engine.

Verification findings (broken links, hash mismatches) are not exceptions;
see trustchain.verify.
"""


class TrustChainError(Exception):
    """Base class for all trusted memory errors."""
    pass


class HumanAuthorizationRequired(TrustChainError):
    """Raised when a checkpoint operation is not authorized by a human."""
    pass


class NoChainedEntries(TrustChainError):
    """Raised when a rollback is requested on a chain with no elements."""
    pass


class NoActiveCheckpoint(TrustChainError):
    """Raised when recovery is requested but no checkpoint is active."""
    pass


class CheckpointAlreadyActive(TrustChainError):
    """Raised when a rollback is requested while another one is active."""

    def __init__(self, checkpoint_id: str) -> None:
        super().__init__(f"checkpoint already active: {checkpoint_id}")
        self.checkpoint_id = checkpoint_id


class InvalidCheckpointSequence(TrustChainError):
    """Raised when after_sequence is outside the chain's range."""
    pass


class Immutable(TrustChainError):
    """Raised when an edit or delete targets a trusted-memory record."""

    def __init__(self, element_id: str, kind: str) -> None:
        super().__init__(f"trusted memory is immutable: {kind} denied for {element_id}")
        self.element_id = element_id
        self.kind = kind


class StorageConflict(TrustChainError):
    """Raised by a store when (chain_id, sequence) is already taken."""

    def __init__(self, chain_id: str, sequence: int) -> None:
        super().__init__(f"sequence {sequence} already exists in chain {chain_id}")
        self.chain_id = chain_id
        self.sequence = sequence


class AppendFailed(TrustChainError):
    """Raised when an append exhausts its conflict retries."""
    pass


class HashComputationFailed(TrustChainError):
    """Raised when content or link fields cannot be hashed."""
    pass


class StoreError(TrustChainError):
    """Raised when a storage backend operation fails."""
    pass


class CorruptElement(StoreError):
    """
    Raised when a stored element no longer parses.

    position is the 1-based line of the bad record; preceding holds the
    elements that parsed before it, in storage order.
    """

    def __init__(self, chain_id: str, position: int, reason: str, preceding=None) -> None:
        super().__init__(f"corrupt element at line {position} of chain {chain_id}: {reason}")
        self.chain_id = chain_id
        self.position = position
        self.reason = reason
        self.preceding = list(preceding or [])
