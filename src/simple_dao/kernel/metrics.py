"""
Prometheus metrics for Simple DAO

Counters and histograms describing what the organization is doing:
commands handled, events written, votes and outcomes.
"""

import time
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from prometheus_client import Counter, Gauge, Histogram, start_http_server

# ============================================================================
# Event Store Metrics
# ============================================================================

events_appended_total = Counter(
    "dao_events_appended_total",
    "Total number of events appended to the event store",
    ["stream_type", "event_type"],
)

events_loaded_total = Counter(
    "dao_events_loaded_total",
    "Total number of events loaded from the event store",
    ["stream_type"],
)

stream_version_conflicts_total = Counter(
    "dao_stream_version_conflicts_total",
    "Total number of optimistic locking version conflicts",
    ["stream_type"],
)

# ============================================================================
# Command Processing Metrics
# ============================================================================

command_duration_seconds = Histogram(
    "dao_command_duration_seconds",
    "Duration of command processing in seconds",
    ["command_type"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

commands_processed_total = Counter(
    "dao_commands_processed_total",
    "Total number of commands processed",
    ["command_type", "status"],  # status: success, failure
)

# ============================================================================
# Governance Metrics
# ============================================================================

proposals_created_total = Counter(
    "dao_proposals_created_total",
    "Total number of proposals created",
    ["kind"],
)

votes_cast_total = Counter(
    "dao_votes_cast_total",
    "Total number of accepted votes",
    ["kind"],
)

proposal_outcomes_total = Counter(
    "dao_proposal_outcomes_total",
    "Total number of proposals leaving the Active status",
    ["status"],  # Passed, Rejected, Expired
)

tokens_distributed_total = Counter(
    "dao_tokens_distributed_total",
    "Total number of tokens distributed to members after founding",
)

active_proposals = Gauge(
    "dao_active_proposals",
    "Proposals still open for voting at the last observed block",
)

# ============================================================================
# Helper Functions
# ============================================================================

P = ParamSpec("P")
R = TypeVar("R")


def track_command_duration(command_type: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator recording duration and success/failure of a command

    Args:
        command_type: Type of command being processed (e.g. "CastVote")
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            status = "success"
            try:
                return func(*args, **kwargs)
            except Exception:
                status = "failure"
                raise
            finally:
                duration = time.perf_counter() - start
                command_duration_seconds.labels(command_type=command_type).observe(duration)
                commands_processed_total.labels(
                    command_type=command_type, status=status
                ).inc()

        return wrapper

    return decorator


def start_metrics_server(port: int = 9090) -> None:
    """Expose metrics over HTTP on ``port``"""
    start_http_server(port)
