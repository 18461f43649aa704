"""
Governance Policy - process-wide voting parameters

The policy is fixed when the organization is founded and recorded in the
OrganizationInitialized event, so a replayed organization always evaluates
outcomes with the parameters it was founded under.
"""

from pydantic import BaseModel, Field

from simple_dao.kernel.errors import InvalidVotingPeriod


class GovernancePolicy(BaseModel):
    """
    Voting parameters of one organization

    ``voting_period`` has no pydantic bound: validate_policy() reports a
    non-positive value as InvalidVotingPeriod.
    """

    policy_version: str = Field(
        default="1.0",
        description="Policy version for tracking changes over time",
    )

    voting_period: int = Field(
        ...,
        description="Blocks a proposal stays open: deadline = created_at + voting_period",
    )

    min_votes_required: int = Field(
        default=1,
        ge=0,
        description="Votes that must be cast before an outcome can be decided",
    )

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {"policy_version": "1.0", "voting_period": 100, "min_votes_required": 2}
            ]
        },
    }


def validate_policy(policy: GovernancePolicy) -> None:
    """
    Check construction-time policy constraints

    Raises:
        InvalidVotingPeriod: If the voting period is not positive
    """
    if policy.voting_period <= 0:
        raise InvalidVotingPeriod(policy.voting_period)
