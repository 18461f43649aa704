"""
Governance Invariants - rules every state change must respect

Pure functions: they read state, raise a typed DAO error when a rule would
be broken, and never write anything. Handlers call them in the order the
engine reports errors.
"""

from simple_dao.governance.models import Proposal, ProposalKind, ProposalStatus
from simple_dao.kernel.errors import (
    AlreadyVoted,
    EmptyMembers,
    InvalidOption,
    InvalidProposalType,
    NotMember,
    ProposalExpired,
)


# Membership & ledger


def normalize_members(members: list[str]) -> list[str]:
    """
    Collapse duplicate identities, keeping first-seen order

    Raises:
        EmptyMembers: If no identity is given
    """
    unique = list(dict.fromkeys(members))
    if not unique:
        raise EmptyMembers()
    return unique


def split_supply(total_supply: int, member_count: int) -> tuple[int, int]:
    """
    Split the founding supply evenly with floor division

    Returns:
        (tokens_per_member, unassigned remainder)

    Example:
        >>> split_supply(1000, 3)
        (333, 1)
    """
    if member_count <= 0:
        raise EmptyMembers()
    per_member = total_supply // member_count
    return per_member, total_supply - per_member * member_count


def validate_member(identity: str, members: set[str] | list[str]) -> None:
    """
    Raises:
        NotMember: If ``identity`` is outside the membership
    """
    if identity not in members:
        raise NotMember(identity)


# Proposal creation


def validate_proposal_shape(
    kind: ProposalKind, options: list[str], amount: int | None
) -> None:
    """
    Check that options and amount fit the proposal kind

    Raises:
        InvalidProposalType: MultipleChoice without options, or
            MoneyRequest without an amount or with other than one option
    """
    if kind == ProposalKind.MULTIPLE_CHOICE:
        if not options:
            raise InvalidProposalType(kind.value, "at least one option is required")
    elif kind == ProposalKind.MONEY_REQUEST:
        if amount is None:
            raise InvalidProposalType(kind.value, "an amount is required")
        if len(options) != 1:
            raise InvalidProposalType(
                kind.value, f"exactly one option is required, got {len(options)}"
            )


# Voting


def validate_not_voted(proposal: Proposal, identity: str) -> None:
    """
    Raises:
        AlreadyVoted: If ``identity`` already has a counted vote
    """
    if proposal.has_voted(identity):
        raise AlreadyVoted(proposal.proposal_id, identity)


def validate_accepting_votes(proposal: Proposal) -> None:
    """
    Check the persisted status only; deadline expiry is handled separately
    because discovering it must be committed.

    Raises:
        ProposalExpired: If the proposal already left Active
    """
    if proposal.status.is_terminal:
        raise ProposalExpired(proposal.proposal_id, proposal.status.value)


def validate_option(proposal: Proposal, option: int) -> None:
    """
    Raises:
        InvalidOption: If ``option`` is not an index into the options
    """
    if option < 0 or option >= len(proposal.options):
        raise InvalidOption(proposal.proposal_id, option, len(proposal.options))


# Outcome


def evaluate_outcome(
    kind: ProposalKind, votes: list[int], min_votes_required: int
) -> tuple[ProposalStatus, str | None]:
    """
    Decide whether a tally settles the proposal

    Nothing is decided while fewer than ``min_votes_required`` votes are
    cast. After that:
    - MultipleChoice passes when the leading option holds a strict majority
      of the votes cast (``max > total // 2``); otherwise it stays Active.
      Voting alone never rejects a multiple-choice proposal, only the
      deadline ends one that never reaches a majority.
    - MoneyRequest passes when its approval count is a strict majority of
      the votes cast, and is rejected otherwise.

    An exact half never passes.

    Returns:
        (status, reason) - status is ACTIVE with reason None when the tally
        does not settle the proposal
    """
    total = sum(votes)
    if total < min_votes_required:
        return ProposalStatus.ACTIVE, None

    if kind == ProposalKind.MULTIPLE_CHOICE:
        leading = max(votes, default=0)
        if leading > total // 2:
            return ProposalStatus.PASSED, "majority_reached"
        return ProposalStatus.ACTIVE, None

    approvals = votes[0] if votes else 0
    if approvals > total // 2:
        return ProposalStatus.PASSED, "majority_reached"
    return ProposalStatus.REJECTED, "majority_not_reached"
