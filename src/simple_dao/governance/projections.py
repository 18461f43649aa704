"""
Governance Projections - state rebuilt from the event log

MembershipRegistry, Ledger and ProposalStore are lookup tables keyed by
identity or proposal id. They change only by applying committed events,
so a failed command leaves them untouched and replaying the log always
reproduces them exactly.
"""

from simple_dao.governance.models import (
    Proposal,
    ProposalStatus,
    ProposalSummary,
)
from simple_dao.kernel.errors import ProposalNotFound
from simple_dao.kernel.events import Event
from simple_dao.kernel.ids import ProposalIdAllocator


class MembershipRegistry:
    """
    Projection: the fixed set of member identities

    Filled once by OrganizationInitialized, read-only afterwards.
    """

    def __init__(self) -> None:
        self._members: list[str] = []
        self._lookup: set[str] = set()

    def apply_event(self, event: Event) -> None:
        """Apply an event to update projection state"""
        if event.event_type == "OrganizationInitialized":
            self._members = list(event.payload["members"])
            self._lookup = set(self._members)

    def is_member(self, identity: str) -> bool:
        return identity in self._lookup

    def all_members(self) -> list[str]:
        """Members in founding order"""
        return list(self._members)

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, identity: object) -> bool:
        return identity in self._lookup


class Ledger:
    """
    Projection: token balance per member and total supply

    The total supply only grows. It can exceed the sum of balances by the
    remainder left unassigned when the founding supply was split.
    """

    def __init__(self) -> None:
        self.balances: dict[str, int] = {}
        self.total_supply: int = 0
        self.version: int = 0  # organization stream version

    def apply_event(self, event: Event) -> None:
        """Apply an event to update projection state"""
        if event.event_type == "OrganizationInitialized":
            per_member = event.payload["tokens_per_member"]
            self.balances = {member: per_member for member in event.payload["members"]}
            self.total_supply = event.payload["total_supply"]
            self.version = event.version

        elif event.event_type == "TokensDistributed":
            recipient = event.payload["recipient"]
            amount = event.payload["amount"]
            self.balances[recipient] = self.balances.get(recipient, 0) + amount
            self.total_supply += amount
            self.version = event.version

    def balance_of(self, identity: str) -> int:
        """Balance of ``identity``; 0 for identities never credited"""
        return self.balances.get(identity, 0)

    @property
    def unassigned(self) -> int:
        return self.total_supply - sum(self.balances.values())


class ProposalStore:
    """
    Projection: every proposal ever created, keyed by id

    Proposals are never removed. Reads come in two flavours:
    - get(): the persisted record, as the voting path needs it
    - view()/list_active()/summaries(): lazy-expiry views for a given
      block that never write anything
    """

    def __init__(self) -> None:
        self.proposals: dict[int, Proposal] = {}
        self.versions: dict[int, int] = {}
        self.allocator = ProposalIdAllocator()

    def apply_event(self, event: Event) -> None:
        """Apply an event to update projection state"""
        payload = event.payload

        if event.event_type == "ProposalCreated":
            proposal_id = payload["proposal_id"]
            self.proposals[proposal_id] = Proposal(
                proposal_id=proposal_id,
                name=payload["name"],
                description=payload["description"],
                author=payload["author"],
                kind=payload["kind"],
                options=payload["options"],
                requested_amount=payload.get("requested_amount"),
                votes=[0] * len(payload["options"]),
                voters=[],
                status=ProposalStatus.ACTIVE,
                created_at=payload["created_at"],
                deadline=payload["deadline"],
            )
            self.allocator.observe(proposal_id)

        elif event.event_type == "VoteCast":
            proposal = self.proposals.get(payload["proposal_id"])
            if proposal is None:
                return
            proposal.votes[payload["option"]] += 1
            proposal.voters.append(payload["voter"])

        elif event.event_type == "ProposalStatusChanged":
            proposal = self.proposals.get(payload["proposal_id"])
            if proposal is None:
                return
            proposal.status = ProposalStatus(payload["new_status"])

        else:
            return

        self.versions[payload["proposal_id"]] = event.version

    def next_id(self) -> int:
        """Id the next successful creation will be assigned"""
        return self.allocator.peek()

    def get(self, proposal_id: int) -> Proposal:
        """
        Persisted proposal record

        Raises:
            ProposalNotFound: If no proposal has this id
        """
        proposal = self.proposals.get(proposal_id)
        if proposal is None:
            raise ProposalNotFound(proposal_id)
        return proposal

    def version(self, proposal_id: int) -> int:
        """Stream version of a proposal (0 if unknown)"""
        return self.versions.get(proposal_id, 0)

    def view(self, proposal_id: int, now: int) -> Proposal:
        """
        Detached copy of a proposal as observed at block ``now``

        Raises:
            ProposalNotFound: If no proposal has this id
        """
        return self.get(proposal_id).view_at(now)

    def list_active(self, now: int) -> list[int]:
        """Ids still open at ``now``, ascending"""
        return [
            proposal_id
            for proposal_id in sorted(self.proposals)
            if self.proposals[proposal_id].status == ProposalStatus.ACTIVE
            and not self.proposals[proposal_id].is_past_deadline(now)
        ]

    def summaries(
        self, now: int, status: ProposalStatus | None = None
    ) -> list[ProposalSummary]:
        """Summaries in ascending id order, optionally filtered by observed status"""
        summaries = []
        for proposal_id in sorted(self.proposals):
            proposal = self.proposals[proposal_id]
            observed = proposal.status_at(now)
            if status is not None and observed != status:
                continue
            summaries.append(
                ProposalSummary(
                    proposal_id=proposal_id,
                    name=proposal.name,
                    author=proposal.author,
                    kind=proposal.kind,
                    status=observed,
                    total_votes=proposal.total_votes(),
                    deadline=proposal.deadline,
                    requested_amount=proposal.requested_amount,
                )
            )
        return summaries

    def __len__(self) -> int:
        return len(self.proposals)
