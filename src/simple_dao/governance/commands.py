"""
Governance Commands - intentions to change the organization

Commands carry only what the caller supplied. Shape checks that map to a
governance error (empty membership, bad options, out-of-range vote) are
left to the invariants so they surface as typed DAO errors; pydantic only
rejects payloads no caller could mean (negative amounts).
"""

from pydantic import BaseModel, Field

from simple_dao.governance.models import ProposalKind


class FoundOrganization(BaseModel):
    """
    Found the organization with its fixed membership

    The supply is split evenly among the members; any remainder of the
    floor division stays unassigned.
    """

    members: list[str]
    total_supply: int = Field(..., ge=0)
    voting_period: int
    min_votes_required: int = Field(default=1, ge=0)


class DistributeTokens(BaseModel):
    """Credit new tokens from the organization to a member"""

    recipient: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0)


class CreateProposal(BaseModel):
    """
    Put a question to the membership

    MultipleChoice needs at least one option; MoneyRequest needs exactly
    one option and an amount.
    """

    name: str
    description: str = ""
    kind: ProposalKind
    options: list[str] = Field(default_factory=list)
    amount: int | None = Field(default=None, ge=0)


class CastVote(BaseModel):
    """Vote for one option of an open proposal"""

    proposal_id: int
    option: int

