"""
Tests for governance projections and the lazy-expiry proposal views
"""

import pytest

from simple_dao.governance.models import Proposal, ProposalKind, ProposalStatus
from simple_dao.governance.projections import Ledger, MembershipRegistry, ProposalStore
from simple_dao.kernel.errors import ProposalNotFound
from simple_dao.kernel.events import create_event
from simple_dao.kernel.ids import generate_id


def proposal_event(event_type: str, proposal_id: int, version: int, block: int, payload: dict):
    return create_event(
        event_id=generate_id(),
        stream_id=f"proposal-{proposal_id}",
        stream_type="proposal",
        event_type=event_type,
        block=block,
        actor_id="alice",
        command_id=generate_id(),
        payload={"proposal_id": proposal_id, **payload},
        version=version,
    )


def created(proposal_id: int, deadline: int = 110, options=None):
    options = options or ["yes", "no"]
    return proposal_event(
        "ProposalCreated",
        proposal_id,
        1,
        100,
        {
            "name": f"Proposal {proposal_id}",
            "description": "",
            "author": "alice",
            "kind": "MultipleChoice",
            "options": options,
            "requested_amount": None,
            "created_at": 100,
            "deadline": deadline,
        },
    )


def make_proposal(**overrides) -> Proposal:
    data = {
        "proposal_id": 1,
        "name": "Offsite",
        "author": "alice",
        "kind": ProposalKind.MULTIPLE_CHOICE,
        "options": ["Lisbon", "Berlin"],
        "votes": [0, 0],
        "created_at": 100,
        "deadline": 110,
    }
    data.update(overrides)
    return Proposal(**data)


# Proposal model


def test_status_at_before_and_at_deadline() -> None:
    proposal = make_proposal()
    assert proposal.status_at(100) == ProposalStatus.ACTIVE
    assert proposal.status_at(110) == ProposalStatus.ACTIVE


def test_status_at_after_deadline_is_expired() -> None:
    proposal = make_proposal()
    assert proposal.status_at(111) == ProposalStatus.EXPIRED
    assert proposal.status == ProposalStatus.ACTIVE  # nothing written


def test_terminal_status_is_not_overridden_by_deadline() -> None:
    proposal = make_proposal(status=ProposalStatus.PASSED)
    assert proposal.status_at(500) == ProposalStatus.PASSED


def test_view_at_is_detached() -> None:
    proposal = make_proposal()
    view = proposal.view_at(200)

    view.votes[0] = 99
    view.voters.append("mallory")

    assert view.status == ProposalStatus.EXPIRED
    assert proposal.votes == [0, 0]
    assert proposal.voters == []
    assert proposal.status == ProposalStatus.ACTIVE


def test_is_terminal() -> None:
    assert not ProposalStatus.ACTIVE.is_terminal
    assert ProposalStatus.PASSED.is_terminal
    assert ProposalStatus.REJECTED.is_terminal
    assert ProposalStatus.EXPIRED.is_terminal


def test_proposal_requires_options() -> None:
    with pytest.raises(ValueError):
        make_proposal(options=[], votes=[])


# Membership and ledger


def test_membership_registry(founded_projections) -> None:
    membership, _, _ = founded_projections

    assert membership.all_members() == ["alice", "bob", "carol"]
    assert membership.is_member("bob")
    assert not membership.is_member("mallory")
    assert "carol" in membership
    assert len(membership) == 3


def test_ledger_after_founding(founded_projections) -> None:
    _, ledger, _ = founded_projections

    assert ledger.balance_of("alice") == 333
    assert ledger.balance_of("mallory") == 0
    assert ledger.total_supply == 1000
    assert ledger.unassigned == 1
    assert ledger.version == 1


def test_ledger_applies_distribution(founded_projections) -> None:
    _, ledger, _ = founded_projections

    ledger.apply_event(
        create_event(
            event_id=generate_id(),
            stream_id="organization",
            stream_type="organization",
            event_type="TokensDistributed",
            block=105,
            actor_id="organization",
            command_id=generate_id(),
            payload={"recipient": "bob", "amount": 67, "distributed_at": 105},
            version=2,
        )
    )

    assert ledger.balance_of("bob") == 400
    assert ledger.total_supply == 1067
    assert ledger.version == 2
    assert ledger.unassigned == 1


def test_empty_ledger() -> None:
    ledger = Ledger()
    assert ledger.total_supply == 0
    assert ledger.balance_of("alice") == 0
    assert MembershipRegistry().all_members() == []


# Proposal store


def test_store_applies_creation() -> None:
    store = ProposalStore()
    store.apply_event(created(1))

    proposal = store.get(1)
    assert proposal.votes == [0, 0]
    assert proposal.status == ProposalStatus.ACTIVE
    assert store.version(1) == 1
    assert store.next_id() == 2
    assert len(store) == 1


def test_store_applies_votes_and_status() -> None:
    store = ProposalStore()
    store.apply_event(created(1))
    store.apply_event(
        proposal_event("VoteCast", 1, 2, 101, {"voter": "bob", "option": 1, "cast_at": 101})
    )
    store.apply_event(
        proposal_event(
            "ProposalStatusChanged",
            1,
            3,
            101,
            {
                "previous_status": "Active",
                "new_status": "Passed",
                "reason": "majority_reached",
                "total_votes": 1,
                "votes": [0, 1],
                "changed_at": 101,
            },
        )
    )

    proposal = store.get(1)
    assert proposal.votes == [0, 1]
    assert proposal.voters == ["bob"]
    assert proposal.status == ProposalStatus.PASSED
    assert store.version(1) == 3


def test_store_get_unknown() -> None:
    store = ProposalStore()
    with pytest.raises(ProposalNotFound):
        store.get(1)
    with pytest.raises(ProposalNotFound):
        store.view(1, 100)
    assert store.version(1) == 0
    assert store.next_id() == 1


def test_list_active_excludes_expired_without_writing() -> None:
    store = ProposalStore()
    store.apply_event(created(1, deadline=110))
    store.apply_event(created(2, deadline=150))
    store.apply_event(created(3, deadline=130))

    assert store.list_active(100) == [1, 2, 3]
    assert store.list_active(120) == [2, 3]
    assert store.list_active(200) == []
    assert store.get(1).status == ProposalStatus.ACTIVE


def test_view_applies_lazy_expiry() -> None:
    store = ProposalStore()
    store.apply_event(created(1, deadline=110))

    assert store.view(1, 110).status == ProposalStatus.ACTIVE
    assert store.view(1, 111).status == ProposalStatus.EXPIRED
    assert store.get(1).status == ProposalStatus.ACTIVE


def test_summaries_filter_by_observed_status() -> None:
    store = ProposalStore()
    store.apply_event(created(1, deadline=110))
    store.apply_event(created(2, deadline=150))

    summaries = store.summaries(120)
    assert [s.proposal_id for s in summaries] == [1, 2]
    assert [s.status for s in summaries] == [ProposalStatus.EXPIRED, ProposalStatus.ACTIVE]

    expired = store.summaries(120, ProposalStatus.EXPIRED)
    assert [s.proposal_id for s in expired] == [1]
