"""
Owner model and trust policy.

The policy is an explicit value handed to the guard and the facade; nothing
in the engine inspects account types at runtime.
"""

from dataclasses import dataclass
from enum import Enum


class TrustPolicy(str, Enum):
    TRUSTED = "trusted"
    STANDARD = "standard"


@dataclass(frozen=True)
class Owner:
    """
    Account that owns chains.

    Fields:
        id: Owner identifier (also the default entry chain id)
        trusted_memory_mode: Whether trusted memory is enabled
        account_type: "human" or "ai" (informational)
    """
    id: str
    trusted_memory_mode: bool = False
    account_type: str = "human"

    @property
    def policy(self) -> TrustPolicy:
        return TrustPolicy.TRUSTED if self.trusted_memory_mode else TrustPolicy.STANDARD

    @property
    def is_ai(self) -> bool:
        return self.account_type == "ai"


def entry_chain_id(owner_id: str) -> str:
    """Default per-account chain id."""
    return owner_id


def agent_chain_id(owner_id: str, agent: str = "reader") -> str:
    """Chain id for memories produced by one agent for one owner."""
    return f"user:{owner_id}:agent:{agent}"
