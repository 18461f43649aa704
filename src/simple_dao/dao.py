"""
DAO - Main façade class

The primary interface to the governance engine. It hides the event log,
projections and handlers behind the operations an organization needs:
distribute tokens, create proposals, vote, and query.

Every mutating call runs to completion as one serialized operation: the
clock is read once, handlers decide, events are appended atomically, and
only then are projections updated and notifications published.

Example:
    >>> from simple_dao import DAO
    >>> from simple_dao.kernel.clock import ManualClock
    >>> clock = ManualClock()
    >>> dao = DAO.found("dao.db", ["alice", "bob", "carol"], total_supply=1000,
    ...                 voting_period=100, min_votes_required=2, clock=clock)
    >>> pid = dao.create_proposal("alice", "Offsite", "Where?", "MultipleChoice",
    ...                           ["Lisbon", "Berlin"])
    >>> dao.vote("bob", pid, 0)
    >>> dao.get_proposal(pid).votes
    [1, 0]
"""

from pathlib import Path
from typing import Callable

from simple_dao.governance.commands import (
    CastVote,
    CreateProposal,
    DistributeTokens,
    FoundOrganization,
)
from simple_dao.governance.handlers import GovernanceCommandHandlers, found_organization
from simple_dao.governance.models import (
    OptionTally,
    Proposal,
    ProposalKind,
    ProposalResult,
    ProposalStatus,
    ProposalSummary,
)
from simple_dao.governance.projections import Ledger, MembershipRegistry, ProposalStore
from simple_dao.kernel.bus import EventBus
from simple_dao.kernel.clock import LogicalClock, ManualClock
from simple_dao.kernel.errors import (
    CommandIdempotencyViolation,
    OrganizationAlreadyExists,
    OrganizationNotFound,
    ProposalExpired,
)
from simple_dao.kernel.event_store import SQLiteEventStore
from simple_dao.kernel.events import Event
from simple_dao.kernel.ids import ORGANIZATION_STREAM, generate_id, proposal_stream_id
from simple_dao.kernel.logging import LogOperation, get_logger
from simple_dao.kernel.metrics import (
    active_proposals,
    proposal_outcomes_total,
    proposals_created_total,
    tokens_distributed_total,
    track_command_duration,
    votes_cast_total,
)
from simple_dao.kernel.policy import GovernancePolicy

logger = get_logger(__name__)

ORGANIZATION_ACTOR = "organization"

# Event types a first submission of each command can leave under its id;
# a late vote leaves only the expiry status change
COMMAND_EVENT_TYPES = {
    "DistributeTokens": {"TokensDistributed"},
    "CreateProposal": {"ProposalCreated"},
    "CastVote": {"VoteCast", "ProposalStatusChanged"},
}


class DAO:
    """
    Simple DAO main façade

    Provides a unified API for:
    - Token distribution to members
    - Proposal creation and voting
    - Read-only queries with lazy deadline expiry
    - Notifications of every committed event
    """

    def __init__(
        self,
        sqlite_path: str | Path,
        clock: LogicalClock | None = None,
        bus: EventBus | None = None,
    ) -> None:
        """
        Open an event log and rebuild the organization from it

        Use found() to create a new organization and open() to require an
        existing one.

        Args:
            sqlite_path: Path to SQLite database
            clock: Block height source (a ManualClock resuming at the latest
                recorded block if None)
            bus: Notification bus (a private one if None)
        """
        self.sqlite_path = Path(sqlite_path)
        self.event_store = SQLiteEventStore(self.sqlite_path)
        self.clock = clock or ManualClock(self.event_store.latest_block())
        self.bus = bus or EventBus()

        self.membership = MembershipRegistry()
        self.ledger = Ledger()
        self.proposal_store = ProposalStore()

        self.policy: GovernancePolicy | None = None
        self.handlers: GovernanceCommandHandlers | None = None

        self._rebuild_projections()

    @classmethod
    def found(
        cls,
        sqlite_path: str | Path,
        members: list[str],
        total_supply: int,
        voting_period: int,
        min_votes_required: int = 1,
        clock: LogicalClock | None = None,
        bus: EventBus | None = None,
        actor_id: str = ORGANIZATION_ACTOR,
    ) -> "DAO":
        """
        Found a new organization

        Args:
            sqlite_path: Path to a new (or empty) SQLite database
            members: Founding member identities, fixed from now on
            total_supply: Tokens split evenly among members (floor division)
            voting_period: Blocks each proposal stays open
            min_votes_required: Votes needed before an outcome is decided
            clock: Block height source
            bus: Notification bus; subscribers registered before founding
                receive OrganizationInitialized
            actor_id: Who is founding the organization

        Raises:
            EmptyMembers: If members is empty
            InvalidVotingPeriod: If voting_period <= 0
            OrganizationAlreadyExists: If the database already holds one
        """
        command = FoundOrganization(
            members=members,
            total_supply=total_supply,
            voting_period=voting_period,
            min_votes_required=min_votes_required,
        )
        clock = clock or ManualClock()
        now = clock.now()

        with LogOperation(logger, "found_organization", member_count=len(members), block=now):
            # Validated before the database file is created
            _, events = found_organization(command, generate_id(), actor_id, now)

            dao = cls(sqlite_path, clock=clock, bus=bus)
            if dao.policy is not None:
                raise OrganizationAlreadyExists(str(dao.sqlite_path))
            dao._commit(events)
        return dao

    @classmethod
    def open(
        cls,
        sqlite_path: str | Path,
        clock: LogicalClock | None = None,
        bus: EventBus | None = None,
    ) -> "DAO":
        """
        Open an existing organization

        Raises:
            OrganizationNotFound: If nothing was founded in this database
        """
        dao = cls(sqlite_path, clock=clock, bus=bus)
        dao._require_organization()
        return dao

    def _rebuild_projections(self) -> None:
        """Rebuild all projections from event store"""
        for event in self.event_store.load_all_events():
            self._apply(event)
        if self.policy is not None:
            logger.debug(
                "Organization rebuilt",
                members=len(self.membership),
                proposals=len(self.proposal_store),
            )

    def _apply(self, event: Event) -> None:
        """Route an event to the projections that track it"""
        if event.stream_type == "organization":
            if event.event_type == "OrganizationInitialized":
                self.policy = GovernancePolicy(
                    voting_period=event.payload["voting_period"],
                    min_votes_required=event.payload["min_votes_required"],
                    policy_version=event.payload.get("policy_version", "1.0"),
                )
                self.handlers = GovernanceCommandHandlers(self.policy)
                self.membership.apply_event(event)
            self.ledger.apply_event(event)
        elif event.stream_type == "proposal":
            self.proposal_store.apply_event(event)

    def _commit(self, events: list[Event]) -> list[Event]:
        """
        Append events, then apply and announce them

        A repeated command id makes the store hand back the events recorded
        the first time; those are already applied and announced, so nothing
        else happens.
        """
        if not events:
            return []

        stream_id = events[0].stream_id
        stored = self.event_store.append(stream_id, events[0].version - 1, events)
        if stored[0].event_id != events[0].event_id:
            return stored

        for event in stored:
            self._apply(event)
            self._record_metrics(event)
        self.bus.publish_events(stored)
        return stored

    def _record_metrics(self, event: Event) -> None:
        if event.event_type == "ProposalCreated":
            proposals_created_total.labels(kind=event.payload["kind"]).inc()
        elif event.event_type == "VoteCast":
            proposal = self.proposal_store.get(event.payload["proposal_id"])
            votes_cast_total.labels(kind=proposal.kind.value).inc()
        elif event.event_type == "ProposalStatusChanged":
            proposal_outcomes_total.labels(status=event.payload["new_status"]).inc()
        elif event.event_type == "TokensDistributed":
            tokens_distributed_total.inc(event.payload["amount"])

    def _recorded(self, command_id: str | None, command_type: str) -> list[Event]:
        """
        Events an earlier submission of this command id committed

        Raises:
            CommandIdempotencyViolation: If the id was used for another
                kind of command
        """
        if command_id is None:
            return []
        recorded = self.event_store.load_command(command_id)
        if recorded and recorded[0].event_type not in COMMAND_EVENT_TYPES[command_type]:
            raise CommandIdempotencyViolation(
                command_id,
                f"Command {command_id} was already used for {recorded[0].event_type}, "
                f"not {command_type}",
            )
        return recorded

    def _require_organization(self) -> GovernanceCommandHandlers:
        if self.handlers is None:
            raise OrganizationNotFound(str(self.sqlite_path))
        return self.handlers

    # Token operations

    @track_command_duration("DistributeTokens")
    def distribute_tokens(
        self,
        recipient: str,
        amount: int,
        actor_id: str = ORGANIZATION_ACTOR,
        command_id: str | None = None,
    ) -> None:
        """
        Credit ``amount`` new tokens to a member

        Whether ``actor_id`` may do this is decided by the caller's
        authorization layer, not here.

        Raises:
            NotMember: If recipient is not a member
        """
        handlers = self._require_organization()
        if self._recorded(command_id, "DistributeTokens"):
            return
        command = DistributeTokens(recipient=recipient, amount=amount)
        now = self.clock.now()

        with LogOperation(
            logger, "distribute_tokens", recipient=recipient, amount=amount, block=now
        ):
            events = handlers.handle_distribute_tokens(
                command,
                command_id or generate_id(),
                actor_id,
                now,
                self.membership,
                self.ledger,
            )
            self._commit(events)

    # Proposal operations

    @track_command_duration("CreateProposal")
    def create_proposal(
        self,
        caller: str,
        name: str,
        description: str,
        kind: str | ProposalKind,
        options: list[str],
        amount: int | None = None,
        command_id: str | None = None,
    ) -> int:
        """
        Open a new proposal for voting

        Args:
            caller: Identity creating the proposal (recorded as author)
            name: Short title
            description: Free-form text
            kind: "MultipleChoice" or "MoneyRequest"
            options: Option labels (exactly one for MoneyRequest)
            amount: Requested tokens (MoneyRequest only)
            command_id: Idempotency key; a retry with the same key returns
                the id allocated the first time

        Returns:
            The new proposal id

        Raises:
            InvalidProposalType: If options/amount do not fit the kind
        """
        handlers = self._require_organization()
        recorded = self._recorded(command_id, "CreateProposal")
        if recorded:
            return recorded[0].payload["proposal_id"]
        command = CreateProposal(
            name=name,
            description=description,
            kind=ProposalKind(kind),
            options=options,
            amount=amount,
        )
        now = self.clock.now()

        with LogOperation(
            logger, "create_proposal", caller=caller, kind=command.kind.value, block=now
        ):
            events = handlers.handle_create_proposal(
                command,
                command_id or generate_id(),
                caller,
                now,
                self.proposal_store,
            )
            stored = self._commit(events)
            return stored[0].payload["proposal_id"]

    @track_command_duration("CastVote")
    def vote(
        self,
        caller: str,
        proposal_id: int,
        option: int,
        command_id: str | None = None,
    ) -> None:
        """
        Cast ``caller``'s vote for ``option`` on a proposal

        A vote arriving after the deadline marks the proposal Expired
        (that change is kept) and fails.

        Raises:
            NotMember, ProposalNotFound, AlreadyVoted, ProposalExpired,
            InvalidOption
        """
        handlers = self._require_organization()
        # A late vote records only the expiry under its command id; retrying
        # it must still fail
        if any(e.event_type == "VoteCast" for e in self._recorded(command_id, "CastVote")):
            return
        command = CastVote(proposal_id=proposal_id, option=option)
        now = self.clock.now()
        command_id = command_id or generate_id()

        with LogOperation(
            logger, "vote", caller=caller, proposal_id=proposal_id, option=option, block=now
        ):
            try:
                events = handlers.handle_cast_vote(
                    command,
                    command_id,
                    caller,
                    now,
                    self.membership,
                    self.proposal_store,
                )
            except ProposalExpired as e:
                if e.events:
                    self._commit(e.events)
                raise
            self._commit(events)

    # Queries

    def get_proposal(self, proposal_id: int) -> Proposal:
        """
        Proposal as observed at the current block

        An Active proposal past its deadline reads as Expired; nothing is
        written.

        Raises:
            ProposalNotFound: If no proposal has this id
        """
        self._require_organization()
        return self.proposal_store.view(proposal_id, self.clock.now())

    def get_active_proposals(self) -> list[int]:
        """Ids of proposals still open for voting, ascending"""
        self._require_organization()
        active = self.proposal_store.list_active(self.clock.now())
        active_proposals.set(len(active))
        return active

    def list_proposals(
        self, status: str | ProposalStatus | None = None
    ) -> list[ProposalSummary]:
        """Summaries of all proposals, optionally filtered by observed status"""
        self._require_organization()
        wanted = ProposalStatus(status) if status is not None else None
        return self.proposal_store.summaries(self.clock.now(), wanted)

    def get_proposal_summary(self, proposal_id: int) -> ProposalSummary:
        """
        Raises:
            ProposalNotFound: If no proposal has this id
        """
        self._require_organization()
        self.proposal_store.get(proposal_id)
        return next(
            summary
            for summary in self.proposal_store.summaries(self.clock.now())
            if summary.proposal_id == proposal_id
        )

    def get_proposal_result(self, proposal_id: int) -> ProposalResult:
        """
        Tally of a proposal at the current block

        Raises:
            ProposalNotFound: If no proposal has this id
        """
        handlers = self._require_organization()
        proposal = self.get_proposal(proposal_id)
        total = proposal.total_votes()
        leading = max(proposal.votes) if total else 0
        return ProposalResult(
            proposal_id=proposal.proposal_id,
            status=proposal.status,
            total_votes=total,
            min_votes_required=handlers.policy.min_votes_required,
            quorum_reached=total >= handlers.policy.min_votes_required,
            tally=[
                OptionTally(index=index, label=label, votes=votes)
                for index, (label, votes) in enumerate(zip(proposal.options, proposal.votes))
            ],
            leading_options=[
                index for index, votes in enumerate(proposal.votes) if total and votes == leading
            ],
        )

    def has_voted(self, proposal_id: int, identity: str) -> bool:
        """
        Raises:
            ProposalNotFound: If no proposal has this id
        """
        self._require_organization()
        return self.proposal_store.get(proposal_id).has_voted(identity)

    def get_member_balance(self, identity: str) -> int:
        """Token balance; 0 for identities never credited"""
        self._require_organization()
        return self.ledger.balance_of(identity)

    def get_members(self) -> list[str]:
        """Member identities in founding order"""
        self._require_organization()
        return self.membership.all_members()

    def get_total_supply(self) -> int:
        self._require_organization()
        return self.ledger.total_supply

    def get_unassigned_supply(self) -> int:
        """Founding remainder held by no member"""
        self._require_organization()
        return self.ledger.unassigned

    def is_member(self, identity: str) -> bool:
        self._require_organization()
        return self.membership.is_member(identity)

    def current_block(self) -> int:
        return self.clock.now()

    def history(self, proposal_id: int | None = None) -> list[Event]:
        """
        Audit trail in commit order

        Args:
            proposal_id: Only this proposal's events; the whole log if None

        Raises:
            ProposalNotFound: If proposal_id is given but unknown
        """
        self._require_organization()
        if proposal_id is None:
            return self.event_store.load_all_events()
        self.proposal_store.get(proposal_id)
        return self.event_store.load_stream(proposal_stream_id(proposal_id))

    def organization_events(self) -> list[Event]:
        """Founding and distribution events"""
        self._require_organization()
        return self.event_store.load_stream(ORGANIZATION_STREAM)

    # Notifications

    def subscribe(self, event_type: str, handler: Callable[[Event], None]) -> None:
        """Receive committed events of ``event_type`` ("*" for all)"""
        self.bus.subscribe(event_type, handler)

    def unsubscribe(self, event_type: str, handler: Callable[[Event], None]) -> None:
        """Stop delivering ``event_type`` to ``handler``"""
        self.bus.unsubscribe(event_type, handler)
