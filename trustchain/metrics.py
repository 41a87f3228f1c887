"""
Prometheus metrics for trustchain.

Usage:
    from trustchain.metrics import init_metrics, track_append

    init_metrics()
    track_append(count=3)

Tracking helpers are no-ops until init_metrics() has run, so library users
that never start a metrics server pay nothing.
"""

import logging
import threading

from prometheus_client import Counter, start_http_server

logger = logging.getLogger(__name__)

ELEMENTS_APPENDED: "Counter" = None  # type: ignore
APPEND_CONFLICTS: "Counter" = None  # type: ignore
VERIFY_RESULTS: "Counter" = None  # type: ignore
GUARD_DENIALS: "Counter" = None  # type: ignore
CHECKPOINT_TRANSITIONS: "Counter" = None  # type: ignore

_metrics_initialized = False
_metrics_lock = threading.Lock()


def init_metrics() -> None:
    """
    Initialize Prometheus metrics (call once at startup).

    Thread-safe via module-level lock; repeated calls are ignored.
    """
    global ELEMENTS_APPENDED, APPEND_CONFLICTS, VERIFY_RESULTS
    global GUARD_DENIALS, CHECKPOINT_TRANSITIONS
    global _metrics_initialized

    with _metrics_lock:
        if _metrics_initialized:
            return

        ELEMENTS_APPENDED = Counter(
            "trustchain_elements_appended_total",
            "Total number of chain elements persisted",
        )
        APPEND_CONFLICTS = Counter(
            "trustchain_append_conflicts_total",
            "Total number of (chain_id, sequence) collisions retried",
        )
        VERIFY_RESULTS = Counter(
            "trustchain_verify_results_total",
            "Chain verification outcomes",
            labelnames=["result"],
        )
        GUARD_DENIALS = Counter(
            "trustchain_guard_denials_total",
            "Mutations denied on trusted memory records",
            labelnames=["kind"],
        )
        CHECKPOINT_TRANSITIONS = Counter(
            "trustchain_checkpoint_transitions_total",
            "Checkpoint lifecycle transitions",
            labelnames=["action"],
        )

        _metrics_initialized = True
        logger.info("Prometheus metrics initialized")


def start_metrics_server(enabled: bool, port: int) -> None:
    """
    Start Prometheus metrics HTTP server in background thread.

    Args:
        enabled: Whether to start metrics server
        port: HTTP port for /metrics endpoint
    """
    if not enabled:
        logger.info("Metrics server disabled")
        return

    init_metrics()
    start_http_server(port, addr="0.0.0.0")
    logger.info(f"Metrics server started on http://0.0.0.0:{port}/metrics")


def track_append(count: int = 1) -> None:
    if ELEMENTS_APPENDED is not None:
        ELEMENTS_APPENDED.inc(count)


def track_conflict() -> None:
    if APPEND_CONFLICTS is not None:
        APPEND_CONFLICTS.inc()


def track_verify(result: str) -> None:
    if VERIFY_RESULTS is not None:
        VERIFY_RESULTS.labels(result=result).inc()


def track_denial(kind: str) -> None:
    if GUARD_DENIALS is not None:
        GUARD_DENIALS.labels(kind=kind).inc()


def track_checkpoint(action: str) -> None:
    if CHECKPOINT_TRANSITIONS is not None:
        CHECKPOINT_TRANSITIONS.labels(action=action).inc()
