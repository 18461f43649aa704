"""
Pytest configuration and shared fixtures

Fun fact: Files named conftest.py are discovered automatically and their
fixtures are available to every test in the same directory and below!
"""

import tempfile
from pathlib import Path
from typing import Iterator

import pytest

from simple_dao.dao import DAO
from simple_dao.governance.handlers import GovernanceCommandHandlers
from simple_dao.governance.projections import Ledger, MembershipRegistry, ProposalStore
from simple_dao.kernel.bus import EventBus
from simple_dao.kernel.clock import ManualClock
from simple_dao.kernel.event_store import SQLiteEventStore
from simple_dao.kernel.policy import GovernancePolicy

MEMBERS = ["alice", "bob", "carol"]


@pytest.fixture
def temp_db() -> Iterator[Path]:
    """Provide a temporary database file that's cleaned up after test"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "dao.db"


@pytest.fixture
def event_store(temp_db: Path) -> SQLiteEventStore:
    """Provide a fresh event store for each test"""
    return SQLiteEventStore(temp_db)


@pytest.fixture
def clock() -> ManualClock:
    """
    Provide a controllable logical clock

    Starts at block 100 so tests can tell "genesis" apart from "now".
    """
    return ManualClock(100)


@pytest.fixture
def policy() -> GovernancePolicy:
    """Ten-block voting window, two votes before any outcome"""
    return GovernancePolicy(voting_period=10, min_votes_required=2)


@pytest.fixture
def handlers(policy: GovernancePolicy) -> GovernanceCommandHandlers:
    """Provide command handlers bound to the test policy"""
    return GovernanceCommandHandlers(policy)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def dao(temp_db: Path, clock: ManualClock, bus: EventBus) -> DAO:
    """
    Provide a founded organization

    alice, bob and carol share a supply of 1000 (333 each, 1 unassigned);
    proposals stay open for 10 blocks and need 2 votes before an outcome.
    """
    return DAO.found(
        temp_db,
        members=MEMBERS,
        total_supply=1000,
        voting_period=10,
        min_votes_required=2,
        clock=clock,
        bus=bus,
    )


@pytest.fixture
def founded_projections(handlers: GovernanceCommandHandlers):
    """
    Membership, ledger and proposal store after founding with MEMBERS

    Built by applying a real OrganizationInitialized event, no database.
    """
    from simple_dao.governance.commands import FoundOrganization
    from simple_dao.governance.handlers import found_organization

    _, events = found_organization(
        FoundOrganization(
            members=MEMBERS, total_supply=1000, voting_period=10, min_votes_required=2
        ),
        command_id="cmd-found",
        actor_id="organization",
        now=100,
    )
    membership = MembershipRegistry()
    ledger = Ledger()
    for event in events:
        membership.apply_event(event)
        ledger.apply_event(event)
    return membership, ledger, ProposalStore()
