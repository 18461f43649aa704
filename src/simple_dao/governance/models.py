"""
Governance Domain Models - proposals and their read models

A proposal is a question put to the membership: either a multiple-choice
question or a request for money with a single approval option. It is open
for ``voting_period`` blocks and then settles into exactly one terminal
status.
"""

from enum import Enum

from pydantic import BaseModel, Field
from sqlmodel import SQLModel


class ProposalKind(str, Enum):
    """What a proposal asks the membership to decide"""

    MULTIPLE_CHOICE = "MultipleChoice"  # Pick one of several options
    MONEY_REQUEST = "MoneyRequest"  # Approve a single requested amount


class ProposalStatus(str, Enum):
    """
    Proposal lifecycle states

    ACTIVE → PASSED | REJECTED | EXPIRED. The three outcomes are terminal:
    a proposal that has left ACTIVE never returns to it.
    """

    ACTIVE = "Active"
    PASSED = "Passed"
    REJECTED = "Rejected"
    EXPIRED = "Expired"

    @property
    def is_terminal(self) -> bool:
        return self is not ProposalStatus.ACTIVE


class Proposal(BaseModel):
    """
    A proposal and its running tally

    Attributes:
        proposal_id: 1-based id, never reused
        name: Short title
        description: Free-form text
        author: Member who created the proposal
        kind: MultipleChoice or MoneyRequest
        options: Option labels, never empty; exactly one for MoneyRequest
        requested_amount: Tokens requested (MoneyRequest only)
        votes: Per-option counts, same length as options
        voters: Members who have voted (each at most once)
        status: Persisted lifecycle state
        created_at: Block of creation
        deadline: Last block at which votes are accepted
    """

    proposal_id: int = Field(ge=1)
    name: str
    description: str = ""
    author: str
    kind: ProposalKind
    options: list[str] = Field(min_length=1)
    requested_amount: int | None = None
    votes: list[int]
    voters: list[str] = Field(default_factory=list)
    status: ProposalStatus = ProposalStatus.ACTIVE
    created_at: int
    deadline: int

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "proposal_id": 1,
                    "name": "Team offsite",
                    "description": "Where should we go?",
                    "author": "alice",
                    "kind": "MultipleChoice",
                    "options": ["Lisbon", "Berlin"],
                    "requested_amount": None,
                    "votes": [1, 0],
                    "voters": ["bob"],
                    "status": "Active",
                    "created_at": 10,
                    "deadline": 110,
                }
            ]
        }
    }

    def total_votes(self) -> int:
        return sum(self.votes)

    def has_voted(self, identity: str) -> bool:
        return identity in self.voters

    def is_past_deadline(self, now: int) -> bool:
        """Deadline is inclusive: votes at the deadline block still count"""
        return now > self.deadline

    def status_at(self, now: int) -> ProposalStatus:
        """
        Status as observed at block ``now``

        Pure: an Active proposal whose deadline has passed reads as Expired
        without anything being written.
        """
        if self.status == ProposalStatus.ACTIVE and self.is_past_deadline(now):
            return ProposalStatus.EXPIRED
        return self.status

    def view_at(self, now: int) -> "Proposal":
        """Copy of this proposal carrying the status observed at ``now``"""
        return self.model_copy(
            update={"status": self.status_at(now)},
            deep=True,
        )


# Read models for queries


class ProposalSummary(SQLModel):
    """
    Lightweight proposal summary for listings and dashboards

    Status already has lazy expiry applied for the query block.
    """

    proposal_id: int
    name: str
    author: str
    kind: ProposalKind
    status: ProposalStatus
    total_votes: int
    deadline: int
    requested_amount: int | None = None


class OptionTally(BaseModel):
    """Vote count for one option"""

    index: int
    label: str
    votes: int


class ProposalResult(BaseModel):
    """
    Tally of a proposal at a given block

    ``leading_options`` lists every option index holding the maximum count
    (several on a tie, none before the first vote).
    """

    proposal_id: int
    status: ProposalStatus
    total_votes: int
    min_votes_required: int
    quorum_reached: bool
    tally: list[OptionTally]
    leading_options: list[int]

