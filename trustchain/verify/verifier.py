"""
Chain verification.

Replays a chain from its genesis hash and checks, for every element:
1. previous_hash matches the expected predecessor hash (catches deletions,
   reorderings and injected elements)
2. hash recomputes from the element's own stored fields (catches edits)

Findings are returned as data, never raised.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from .. import metrics
from ..core.elements import ChainElement
from ..core.hasher import genesis_hash, link_hash
from ..core.errors import CorruptElement, HashComputationFailed
from ..store.base import ChainStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    """
    Base verification outcome.

    Fields:
        chain_id: Chain that was verified
        checked: Elements fully verified before stopping
    """
    chain_id: str
    checked: int = 0

    kind = "unknown"

    @property
    def valid(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["result"] = self.kind
        data["valid"] = self.valid
        return data


@dataclass(frozen=True)
class Verified(VerificationResult):
    head_hash: Optional[str] = None

    kind = "verified"


@dataclass(frozen=True)
class EmptyChain(VerificationResult):
    kind = "empty_chain"


@dataclass(frozen=True)
class BrokenLink(VerificationResult):
    element_id: str = ""
    sequence: int = 0
    expected_previous: str = ""
    actual_previous: str = ""

    kind = "broken_link"

    @property
    def valid(self) -> bool:
        return False


@dataclass(frozen=True)
class HashMismatch(VerificationResult):
    element_id: str = ""
    sequence: int = 0
    expected_hash: str = ""
    actual_hash: str = ""

    kind = "hash_mismatch"

    @property
    def valid(self) -> bool:
        return False


def verify_chain(store: ChainStore, chain_id: str) -> VerificationResult:
    """
    Verify a chain end to end.

    Never mutates state; safe to run concurrently with appends (may observe
    a slightly stale tail).

    A stored record that no longer parses is reported as a HashMismatch at
    its position, after the records before it have been checked.

    Returns:
        Verified, EmptyChain, BrokenLink or HashMismatch
    """
    try:
        elements = store.list_elements(chain_id)
    except CorruptElement as ex:
        result = _walk(chain_id, ex.preceding)
        if not result.valid:
            return _finding(result)
        logger.warning(
            "Unreadable chain element",
            extra={"trace_id": chain_id, "position": ex.position, "reason": ex.reason},
        )
        return _finding(
            HashMismatch(chain_id=chain_id, checked=result.checked, sequence=ex.position)
        )

    if not elements:
        metrics.track_verify(EmptyChain.kind)
        return EmptyChain(chain_id=chain_id)

    result = _walk(chain_id, elements)
    if not result.valid:
        return _finding(result)

    metrics.track_verify(Verified.kind)
    return result


def _walk(chain_id: str, elements: List[ChainElement]) -> VerificationResult:
    expected_previous = genesis_hash(chain_id)
    checked = 0

    for el in elements:
        if el.previous_hash != expected_previous:
            return BrokenLink(
                chain_id=chain_id,
                checked=checked,
                element_id=el.element_id,
                sequence=el.sequence,
                expected_previous=expected_previous,
                actual_previous=el.previous_hash,
            )

        try:
            computed = link_hash(el.link_fields())
        except HashComputationFailed:
            # Stored fields no longer form a hashable link
            computed = ""

        # The element's claimed chain_id is part of its hash
        if computed != el.hash or el.chain_id != chain_id:
            return HashMismatch(
                chain_id=chain_id,
                checked=checked,
                element_id=el.element_id,
                sequence=el.sequence,
                expected_hash=computed,
                actual_hash=el.hash,
            )

        expected_previous = el.hash
        checked += 1

    return Verified(chain_id=chain_id, checked=checked, head_hash=expected_previous)


def _finding(result: VerificationResult) -> VerificationResult:
    metrics.track_verify(result.kind)
    logger.warning(
        "Chain verification failed",
        extra={"trace_id": result.chain_id, "finding": result.kind},
    )
    return result
