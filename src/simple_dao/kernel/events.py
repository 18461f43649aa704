"""
Base Event model for the organization's append-only history

Events are immutable facts about what happened to the organization.
The event log is the source of truth: balances, membership and proposals
are all projections rebuilt by replaying it.
"""

from pydantic import BaseModel, Field


class Event(BaseModel):
    """
    Base event class - every committed state change is one of these

    Events are:
    - Immutable (frozen once created)
    - Append-only (never deleted, proposals are never removed)
    - Stamped with the logical block at which they happened
    - Versioned per stream (optimistic locking)
    - Replayable (deterministic state reconstruction)

    The combination of stream_id + version provides optimistic locking,
    while command_id ensures idempotency.
    """

    event_id: str = Field(
        ...,
        description="Unique event identifier",
    )

    stream_id: str = Field(
        ...,
        description="Aggregate identifier: 'organization' or 'proposal-<id>'",
    )

    stream_type: str = Field(
        ...,
        description="Type of aggregate: 'organization' or 'proposal'",
    )

    event_type: str = Field(
        ...,
        description="Specific event type: 'ProposalCreated', 'VoteCast', etc.",
    )

    block: int = Field(
        ...,
        description="Logical clock reading (block height) when the event occurred",
        ge=0,
    )

    actor_id: str | None = Field(
        default=None,
        description="Identity that caused this event (None for system events)",
    )

    command_id: str = Field(
        ...,
        description="ID of command that caused this event (idempotency key)",
    )

    payload: dict = Field(
        default_factory=dict,
        description="Event-specific data (must be JSON-serializable)",
    )

    version: int = Field(
        ...,
        description="Stream version after this event (monotonically increasing)",
        ge=1,
    )

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "event_id": "evt-0001",
                    "stream_id": "proposal-1",
                    "stream_type": "proposal",
                    "event_type": "VoteCast",
                    "block": 42,
                    "actor_id": "alice",
                    "command_id": "cmd-123",
                    "payload": {"proposal_id": 1, "voter": "alice", "option": 0},
                    "version": 2,
                }
            ]
        },
    }


def create_event(
    *,
    event_id: str,
    stream_id: str,
    stream_type: str,
    event_type: str,
    block: int,
    command_id: str,
    version: int,
    actor_id: str | None = None,
    payload: dict | None = None,
) -> Event:
    """Factory function for creating events with all required fields"""
    return Event(
        event_id=event_id,
        stream_id=stream_id,
        stream_type=stream_type,
        event_type=event_type,
        block=block,
        actor_id=actor_id,
        command_id=command_id,
        payload=payload or {},
        version=version,
    )
