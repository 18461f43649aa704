"""
Kernel - event log, clock and cross-cutting infrastructure

The kernel knows nothing about proposals or tokens. It supplies the
append-only event log the organization's state is rebuilt from, the
logical clock deadlines are measured against, the notification bus, and
logging/metrics/error plumbing shared by the governance module.
"""

from simple_dao.kernel.bus import ALL_EVENTS, EventBus
from simple_dao.kernel.clock import LogicalClock, ManualClock
from simple_dao.kernel.errors import (
    AlreadyVoted,
    ClockRegression,
    CommandIdempotencyViolation,
    DAOError,
    EmptyMembers,
    EventStoreError,
    InsufficientBalance,
    InvalidOption,
    InvalidProposalType,
    InvalidVotingPeriod,
    NotMember,
    OrganizationAlreadyExists,
    OrganizationNotFound,
    ProposalExpired,
    ProposalNotFound,
    StreamVersionConflict,
)
from simple_dao.kernel.events import Event
from simple_dao.kernel.ids import generate_id
from simple_dao.kernel.policy import GovernancePolicy

__all__ = [
    # IDs
    "generate_id",
    # Clock
    "LogicalClock",
    "ManualClock",
    # Events & bus
    "Event",
    "EventBus",
    "ALL_EVENTS",
    # Policy
    "GovernancePolicy",
    # Errors
    "DAOError",
    "EventStoreError",
    "CommandIdempotencyViolation",
    "StreamVersionConflict",
    "OrganizationNotFound",
    "OrganizationAlreadyExists",
    "ClockRegression",
    "EmptyMembers",
    "InvalidVotingPeriod",
    "NotMember",
    "ProposalNotFound",
    "ProposalExpired",
    "AlreadyVoted",
    "InvalidOption",
    "InvalidProposalType",
    "InsufficientBalance",
]
