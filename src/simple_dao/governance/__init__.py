"""
Governance Module - membership, tokens and proposal voting

- Membership fixed at founding
- A token ledger credited only by the organization
- Proposals (multiple choice or money request) with a voting window
  measured in blocks, one vote per member, majority outcomes
"""

from simple_dao.governance.models import (
    Proposal,
    ProposalKind,
    ProposalResult,
    ProposalStatus,
    ProposalSummary,
)

__all__ = [
    "Proposal",
    "ProposalKind",
    "ProposalStatus",
    "ProposalSummary",
    "ProposalResult",
]
