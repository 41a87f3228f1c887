"""
Environment-based configuration.

Environment Variables:
    TRUSTCHAIN_ROOT: File store root directory - default: ~/.trustchain/data
    TRUSTCHAIN_MAX_APPEND_RETRIES: Conflict retries per append - default: 3
    TRUSTCHAIN_AUDIT_QUERY_LIMIT: Default audit query size - default: 100
    TRUSTCHAIN_KEY_PATH: Ed25519 key for head attestations - default: ~/.trustchain/keys/head_ed25519
    TRUSTCHAIN_METRICS_ENABLED: Start the metrics server (true/false) - default: false
    TRUSTCHAIN_METRICS_PORT: HTTP port for /metrics - default: 9108
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_MAX_APPEND_RETRIES = 3
DEFAULT_AUDIT_QUERY_LIMIT = 100
MAX_AUDIT_QUERY_LIMIT = 1000
DEFAULT_METRICS_PORT = 9108


def _env_int(key: str, default: int) -> int:
    val = os.getenv(key)
    if not val:
        return default
    try:
        parsed = int(val)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _env_bool(key: str, default: bool = False) -> bool:
    val = os.getenv(key)
    if val is None:
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


def default_root() -> str:
    return str(Path.home() / ".trustchain" / "data")


def default_key_path() -> str:
    return str(Path.home() / ".trustchain" / "keys" / "head_ed25519")


@dataclass(frozen=True)
class Settings:
    root: str
    max_append_retries: int = DEFAULT_MAX_APPEND_RETRIES
    audit_query_limit: int = DEFAULT_AUDIT_QUERY_LIMIT
    key_path: Optional[str] = None
    metrics_enabled: bool = False
    metrics_port: int = DEFAULT_METRICS_PORT

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            root=os.getenv("TRUSTCHAIN_ROOT") or default_root(),
            max_append_retries=_env_int(
                "TRUSTCHAIN_MAX_APPEND_RETRIES", DEFAULT_MAX_APPEND_RETRIES
            ),
            audit_query_limit=min(
                _env_int("TRUSTCHAIN_AUDIT_QUERY_LIMIT", DEFAULT_AUDIT_QUERY_LIMIT),
                MAX_AUDIT_QUERY_LIMIT,
            ),
            key_path=os.getenv("TRUSTCHAIN_KEY_PATH") or default_key_path(),
            metrics_enabled=_env_bool("TRUSTCHAIN_METRICS_ENABLED"),
            metrics_port=_env_int("TRUSTCHAIN_METRICS_PORT", DEFAULT_METRICS_PORT),
        )
