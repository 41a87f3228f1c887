"""
Persistence for chains, checkpoints and audit entries.

This module provides:
- ChainStore / CheckpointStore / AuditStore: Abstract contracts
- Memory*Store: In-process, thread-safe storage
- File*Store: Append-only JSONL / JSON file storage
"""

from .base import ChainStore, CheckpointStore, AuditStore
from .memory_store import MemoryChainStore, MemoryCheckpointStore, MemoryAuditStore
from .file_store import FileChainStore, FileCheckpointStore, FileAuditStore

__all__ = [
    "ChainStore",
    "CheckpointStore",
    "AuditStore",
    "MemoryChainStore",
    "MemoryCheckpointStore",
    "MemoryAuditStore",
    "FileChainStore",
    "FileCheckpointStore",
    "FileAuditStore",
]
