"""
Governance Events - what happened to the organization

Payload models for the events recorded in the log and announced on the
bus. OrganizationInitialized, TokensDistributed, ProposalCreated and
VoteCast are the public notifications; ProposalStatusChanged records every
move out of Active.
"""

from pydantic import BaseModel

from simple_dao.governance.models import ProposalKind, ProposalStatus


# Organization stream


class OrganizationInitialized(BaseModel):
    """
    The organization was founded

    Carries the founding policy so replays evaluate outcomes with the
    parameters in force at founding.
    """

    members: list[str]
    total_supply: int
    tokens_per_member: int
    unassigned: int
    voting_period: int
    min_votes_required: int
    policy_version: str
    founded_at: int


class TokensDistributed(BaseModel):
    """New tokens were credited to a member (total supply grows)"""

    recipient: str
    amount: int
    distributed_at: int


# Proposal streams


class ProposalCreated(BaseModel):
    """A proposal was opened for voting"""

    proposal_id: int
    name: str
    description: str
    author: str
    kind: ProposalKind
    options: list[str]
    requested_amount: int | None
    created_at: int
    deadline: int


class VoteCast(BaseModel):
    """A member's vote was counted"""

    proposal_id: int
    voter: str
    option: int
    cast_at: int


class ProposalStatusChanged(BaseModel):
    """
    A proposal left the Active status

    reason: "majority_reached" | "majority_not_reached" | "deadline_passed"
    """

    proposal_id: int
    previous_status: ProposalStatus
    new_status: ProposalStatus
    reason: str
    total_votes: int
    votes: list[int]
    changed_at: int
