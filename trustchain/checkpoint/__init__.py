"""
Rollback checkpoints gating the canonical view of a chain.

Provides:
- Checkpoint model with JSON serialization
- CheckpointManager: human-gated rollback and recovery
"""

from .model import Checkpoint, CHECKPOINT_TYPES
from .manager import CheckpointManager

__all__ = ["Checkpoint", "CHECKPOINT_TYPES", "CheckpointManager"]
