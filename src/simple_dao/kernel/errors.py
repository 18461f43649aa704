"""
Custom exceptions for Simple DAO

Every failure the engine can report is a typed exception. Domain errors
carry a stable ``code`` matching the governance error taxonomy so that
callers (CLI, HTTP surfaces, indexers) can branch on it without parsing
messages.

Fun fact: The word "quorum" comes from Latin commissions that began
"quorum vos ... unum esse volumus" - "of whom we wish that you be one".
"""


class DAOError(Exception):
    """Base exception for all Simple DAO errors"""

    code: str = "DAOError"


# Infrastructure errors


class EventStoreError(DAOError):
    """Base class for event store errors"""

    code = "EventStoreError"


class CommandIdempotencyViolation(EventStoreError):
    """
    Raised when a command_id collides with events that cannot be returned

    Normally a repeated command_id is SUCCESS - the store returns the
    events the first execution produced.
    """

    code = "CommandIdempotencyViolation"

    def __init__(self, command_id: str, message: str = "") -> None:
        self.command_id = command_id
        super().__init__(
            message or f"Command {command_id} already processed (idempotency preserved)"
        )


class StreamVersionConflict(EventStoreError):
    """
    Raised when stream version doesn't match expected (optimistic locking)

    Indicates a concurrent writer - caller should reload and retry.
    """

    code = "StreamVersionConflict"

    def __init__(
        self, stream_id: str, expected_version: int, actual_version: int
    ) -> None:
        self.stream_id = stream_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Stream {stream_id} version mismatch: "
            f"expected {expected_version}, got {actual_version}"
        )


class OrganizationNotFound(DAOError):
    """Raised when opening an event log that holds no founded organization"""

    code = "OrganizationNotFound"

    def __init__(self, location: str) -> None:
        self.location = location
        super().__init__(f"No organization has been founded in {location}")


class OrganizationAlreadyExists(DAOError):
    """Raised when founding an organization in an already founded event log"""

    code = "OrganizationAlreadyExists"

    def __init__(self, location: str) -> None:
        self.location = location
        super().__init__(f"An organization is already founded in {location}")


class ClockRegression(DAOError):
    """Raised when a logical clock would move backwards"""

    code = "ClockRegression"

    def __init__(self, current_block: int, requested_block: int) -> None:
        self.current_block = current_block
        self.requested_block = requested_block
        super().__init__(
            f"Logical clock cannot move from block {current_block} "
            f"back to block {requested_block}"
        )


# Construction errors


class EmptyMembers(DAOError):
    """Raised when an organization is founded without members"""

    code = "EmptyMembers"

    def __init__(self) -> None:
        super().__init__("An organization needs at least one founding member")


class InvalidVotingPeriod(DAOError):
    """Raised when the voting period is not a positive number of blocks"""

    code = "InvalidVotingPeriod"

    def __init__(self, voting_period: int) -> None:
        self.voting_period = voting_period
        super().__init__(
            f"Voting period must be a positive number of blocks, got {voting_period}"
        )


# Governance errors


class NotMember(DAOError):
    """Raised when an identity outside the membership acts or receives tokens"""

    code = "NotMember"

    def __init__(self, identity: str) -> None:
        self.identity = identity
        super().__init__(f"{identity} is not a member of the organization")


class ProposalNotFound(DAOError):
    """Raised when a proposal does not exist"""

    code = "ProposalNotFound"

    def __init__(self, proposal_id: int) -> None:
        self.proposal_id = proposal_id
        super().__init__(f"Proposal {proposal_id} not found")


class ProposalExpired(DAOError):
    """
    Raised when voting on a proposal that no longer accepts votes

    Covers both proposals already in a terminal status and proposals whose
    deadline has just been discovered to have passed. In the latter case
    ``events`` holds the expiry transition that must be committed even
    though the vote itself failed.
    """

    code = "ProposalExpired"

    def __init__(
        self, proposal_id: int, status: str, events: list | None = None
    ) -> None:
        self.proposal_id = proposal_id
        self.status = status
        self.events = events or []
        super().__init__(
            f"Proposal {proposal_id} is {status} and no longer accepts votes"
        )


class AlreadyVoted(DAOError):
    """Raised when a member votes twice on the same proposal"""

    code = "AlreadyVoted"

    def __init__(self, proposal_id: int, identity: str) -> None:
        self.proposal_id = proposal_id
        self.identity = identity
        super().__init__(f"{identity} has already voted on proposal {proposal_id}")


class InvalidOption(DAOError):
    """Raised when a vote names an option the proposal does not have"""

    code = "InvalidOption"

    def __init__(self, proposal_id: int, option: int, option_count: int) -> None:
        self.proposal_id = proposal_id
        self.option = option
        self.option_count = option_count
        super().__init__(
            f"Option {option} is out of range for proposal {proposal_id} "
            f"({option_count} options)"
        )


class InvalidProposalType(DAOError):
    """Raised when a proposal's options/amount do not fit its kind"""

    code = "InvalidProposalType"

    def __init__(self, kind: str, reason: str) -> None:
        self.kind = kind
        self.reason = reason
        super().__init__(f"Invalid {kind} proposal: {reason}")


class InsufficientBalance(DAOError):
    """
    Reserved for balance-consuming operations

    No current operation debits a balance, so nothing raises this yet.
    """

    code = "InsufficientBalance"

    def __init__(self, identity: str, balance: int, required: int) -> None:
        self.identity = identity
        self.balance = balance
        self.required = required
        super().__init__(
            f"{identity} holds {balance} tokens but {required} are required"
        )
