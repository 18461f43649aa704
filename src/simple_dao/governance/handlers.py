"""
Governance Handlers - Command→Event transformation

Handlers:
1. Read current state (from projections)
2. Check invariants in the order errors are reported
3. Build events if valid
4. Return events for the façade to append and apply

They never mutate projections themselves, so a rejected command cannot
leave partial changes behind.
"""

from simple_dao.governance.commands import (
    CastVote,
    CreateProposal,
    DistributeTokens,
    FoundOrganization,
)
from simple_dao.governance.events import (
    OrganizationInitialized,
    ProposalCreated,
    ProposalStatusChanged,
    TokensDistributed,
    VoteCast,
)
from simple_dao.governance.invariants import (
    evaluate_outcome,
    normalize_members,
    split_supply,
    validate_accepting_votes,
    validate_member,
    validate_not_voted,
    validate_option,
    validate_proposal_shape,
)
from simple_dao.governance.models import Proposal, ProposalKind, ProposalStatus
from simple_dao.governance.projections import Ledger, MembershipRegistry, ProposalStore
from simple_dao.kernel.errors import ProposalExpired
from simple_dao.kernel.events import Event, create_event
from simple_dao.kernel.ids import ORGANIZATION_STREAM, generate_id, proposal_stream_id
from simple_dao.kernel.policy import GovernancePolicy, validate_policy


def found_organization(
    command: FoundOrganization,
    command_id: str,
    actor_id: str | None,
    now: int,
) -> tuple[GovernancePolicy, list[Event]]:
    """
    Handle FoundOrganization command

    Runs before any policy exists, so it lives outside the handler class.

    Returns:
        (policy, events) - the validated founding policy and the
        OrganizationInitialized event

    Raises:
        EmptyMembers: If no member is given
        InvalidVotingPeriod: If voting_period <= 0
    """
    members = normalize_members(command.members)
    policy = GovernancePolicy(
        voting_period=command.voting_period,
        min_votes_required=command.min_votes_required,
    )
    validate_policy(policy)

    per_member, unassigned = split_supply(command.total_supply, len(members))

    payload = OrganizationInitialized(
        members=members,
        total_supply=command.total_supply,
        tokens_per_member=per_member,
        unassigned=unassigned,
        voting_period=policy.voting_period,
        min_votes_required=policy.min_votes_required,
        policy_version=policy.policy_version,
        founded_at=now,
    ).model_dump(mode="json")

    event = create_event(
        event_id=generate_id(),
        stream_id=ORGANIZATION_STREAM,
        stream_type="organization",
        event_type="OrganizationInitialized",
        block=now,
        command_id=command_id,
        actor_id=actor_id,
        payload=payload,
        version=1,
    )
    return policy, [event]


class GovernanceCommandHandlers:
    """
    Command handlers for a founded organization

    Handlers convert commands into events, enforcing invariants against
    the projections they are given.
    """

    def __init__(self, policy: GovernancePolicy) -> None:
        """
        Args:
            policy: Founding policy (voting period, minimum votes)
        """
        self.policy = policy

    def handle_distribute_tokens(
        self,
        command: DistributeTokens,
        command_id: str,
        actor_id: str | None,
        now: int,
        membership: MembershipRegistry,
        ledger: Ledger,
    ) -> list[Event]:
        """
        Handle DistributeTokens command

        Who may distribute is decided outside the engine; here only the
        recipient is checked.

        Raises:
            NotMember: If the recipient is not a member
        """
        validate_member(command.recipient, membership)

        payload = TokensDistributed(
            recipient=command.recipient,
            amount=command.amount,
            distributed_at=now,
        ).model_dump(mode="json")

        event = create_event(
            event_id=generate_id(),
            stream_id=ORGANIZATION_STREAM,
            stream_type="organization",
            event_type="TokensDistributed",
            block=now,
            command_id=command_id,
            actor_id=actor_id,
            payload=payload,
            version=ledger.version + 1,
        )
        return [event]

    def handle_create_proposal(
        self,
        command: CreateProposal,
        command_id: str,
        caller: str,
        now: int,
        proposal_store: ProposalStore,
    ) -> list[Event]:
        """
        Handle CreateProposal command

        The id is peeked from the store's allocator; it is only consumed
        when the resulting event is applied, so a rejected creation never
        burns an id.

        Raises:
            InvalidProposalType: If options/amount do not fit the kind
        """
        validate_proposal_shape(command.kind, command.options, command.amount)

        proposal_id = proposal_store.next_id()
        requested_amount = (
            command.amount if command.kind == ProposalKind.MONEY_REQUEST else None
        )

        payload = ProposalCreated(
            proposal_id=proposal_id,
            name=command.name,
            description=command.description,
            author=caller,
            kind=command.kind,
            options=command.options,
            requested_amount=requested_amount,
            created_at=now,
            deadline=now + self.policy.voting_period,
        ).model_dump(mode="json")

        event = create_event(
            event_id=generate_id(),
            stream_id=proposal_stream_id(proposal_id),
            stream_type="proposal",
            event_type="ProposalCreated",
            block=now,
            command_id=command_id,
            actor_id=caller,
            payload=payload,
            version=1,
        )
        return [event]

    def handle_cast_vote(
        self,
        command: CastVote,
        command_id: str,
        caller: str,
        now: int,
        membership: MembershipRegistry,
        proposal_store: ProposalStore,
    ) -> list[Event]:
        """
        Handle CastVote command

        Checks, in order: membership, existence, double vote, persisted
        status, deadline, option range. A deadline found to have passed
        produces an expiry event that travels on the raised error so the
        caller can commit it.

        Returns:
            VoteCast, followed by ProposalStatusChanged when the vote
            settles the proposal

        Raises:
            NotMember, ProposalNotFound, AlreadyVoted, ProposalExpired,
            InvalidOption
        """
        validate_member(caller, membership)
        proposal = proposal_store.get(command.proposal_id)
        validate_not_voted(proposal, caller)
        validate_accepting_votes(proposal)

        version = proposal_store.version(proposal.proposal_id)

        if proposal.is_past_deadline(now):
            expiry = self._status_change_event(
                proposal,
                ProposalStatus.EXPIRED,
                "deadline_passed",
                proposal.votes,
                command_id,
                caller,
                now,
                version + 1,
            )
            raise ProposalExpired(
                proposal.proposal_id, ProposalStatus.EXPIRED.value, events=[expiry]
            )

        validate_option(proposal, command.option)

        votes = list(proposal.votes)
        votes[command.option] += 1

        vote_payload = VoteCast(
            proposal_id=proposal.proposal_id,
            voter=caller,
            option=command.option,
            cast_at=now,
        ).model_dump(mode="json")

        events = [
            create_event(
                event_id=generate_id(),
                stream_id=proposal_stream_id(proposal.proposal_id),
                stream_type="proposal",
                event_type="VoteCast",
                block=now,
                command_id=command_id,
                actor_id=caller,
                payload=vote_payload,
                version=version + 1,
            )
        ]

        status, reason = evaluate_outcome(
            proposal.kind, votes, self.policy.min_votes_required
        )
        if status != ProposalStatus.ACTIVE:
            events.append(
                self._status_change_event(
                    proposal,
                    status,
                    reason or "",
                    votes,
                    command_id,
                    caller,
                    now,
                    version + 2,
                )
            )

        return events

    def _status_change_event(
        self,
        proposal: Proposal,
        new_status: ProposalStatus,
        reason: str,
        votes: list[int],
        command_id: str,
        actor_id: str | None,
        now: int,
        version: int,
    ) -> Event:
        payload = ProposalStatusChanged(
            proposal_id=proposal.proposal_id,
            previous_status=proposal.status,
            new_status=new_status,
            reason=reason,
            total_votes=sum(votes),
            votes=votes,
            changed_at=now,
        ).model_dump(mode="json")

        return create_event(
            event_id=generate_id(),
            stream_id=proposal_stream_id(proposal.proposal_id),
            stream_type="proposal",
            event_type="ProposalStatusChanged",
            block=now,
            command_id=command_id,
            actor_id=actor_id,
            payload=payload,
            version=version,
        )
