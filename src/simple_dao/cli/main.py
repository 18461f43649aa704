"""
Simple DAO CLI

Command-line interface for running an organization from a local event log.

Usage:
    simple-dao init --db dao.db --member alice --member bob --supply 1000 --voting-period 100
    simple-dao distribute --to alice --amount 50
    simple-dao proposal create --caller alice --name "Offsite" --option Lisbon --option Berlin
    simple-dao vote --caller bob --proposal 1 --option 0
    simple-dao proposal show --id 1
    simple-dao balance --member alice

Every mutating command accepts --block to advance the logical clock; without
it the latest block recorded in the log is used.
"""

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from pydantic import ValidationError
import typer
from typing_extensions import Annotated

from simple_dao.dao import DAO
from simple_dao.governance.models import ProposalKind, ProposalStatus
from simple_dao.health_server import initialize_health_server, run_health_server
from simple_dao.kernel.clock import ManualClock
from simple_dao.kernel.errors import DAOError
from simple_dao.kernel.logging import configure_logging
from simple_dao.kernel.metrics import start_metrics_server

configure_logging(json_output=False, log_level="WARNING")

app = typer.Typer(
    name="simple-dao",
    help="Simple DAO - tokens and proposal voting for a fixed membership",
    add_completion=False,
)

proposal_app = typer.Typer(help="Proposal commands")
app.add_typer(proposal_app, name="proposal")

DEFAULT_DB = Path(".dao.db")

DbOption = Annotated[Optional[Path], typer.Option("--db", help="Database path")]
BlockOption = Annotated[
    Optional[int],
    typer.Option("--block", help="Current block height (defaults to latest recorded)"),
]


@contextmanager
def domain_errors() -> Iterator[None]:
    """Turn DAO errors and rejected inputs into a one-line message and exit code 1"""
    try:
        yield
    except DAOError as e:
        typer.echo(f"Error [{e.code}]: {e}", err=True)
        raise typer.Exit(1)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        typer.echo(f"Error [ValidationError]: {problems}", err=True)
        raise typer.Exit(1)


def get_dao(db_path: Optional[Path] = None, block: Optional[int] = None) -> DAO:
    """Open the organization stored at ``db_path``"""
    db = db_path or DEFAULT_DB
    if not db.exists():
        typer.echo(f"Error: Database not found: {db}", err=True)
        typer.echo(f"Run 'simple-dao init --db {db} ...' to found an organization", err=True)
        raise typer.Exit(1)

    with domain_errors():
        dao = DAO.open(db)
        if block is not None:
            dao.clock.set_block(block)
    return dao


@app.command()
def init(
    member: Annotated[
        List[str], typer.Option("--member", help="Founding member (repeatable)")
    ],
    supply: Annotated[int, typer.Option("--supply", help="Founding token supply")],
    voting_period: Annotated[
        int, typer.Option("--voting-period", help="Blocks each proposal stays open")
    ],
    min_votes: Annotated[
        int, typer.Option("--min-votes", help="Votes needed before an outcome")
    ] = 1,
    db: Annotated[Path, typer.Option("--db", help="Database path")] = DEFAULT_DB,
    block: Annotated[int, typer.Option("--block", help="Founding block height")] = 0,
) -> None:
    """Found a new organization"""
    if db.exists():
        typer.echo(f"Error: Database already exists: {db}", err=True)
        raise typer.Exit(1)

    with domain_errors():
        dao = DAO.found(
            db,
            members=member,
            total_supply=supply,
            voting_period=voting_period,
            min_votes_required=min_votes,
            clock=ManualClock(block),
        )

    members = dao.get_members()
    typer.echo(f"✓ Founded organization: {db}")
    typer.echo(f"  Members: {', '.join(members)}")
    typer.echo(f"  Tokens per member: {dao.get_member_balance(members[0])}")
    typer.echo(f"  Total supply: {dao.get_total_supply()}")
    typer.echo(f"  Unassigned: {dao.get_unassigned_supply()}")


@app.command()
def distribute(
    to: Annotated[str, typer.Option("--to", help="Receiving member")],
    amount: Annotated[int, typer.Option("--amount", help="Tokens to credit")],
    db: DbOption = None,
    block: BlockOption = None,
) -> None:
    """Distribute new tokens to a member"""
    dao = get_dao(db, block)
    with domain_errors():
        dao.distribute_tokens(to, amount)

    typer.echo(f"✓ Distributed {amount} tokens to {to}")
    typer.echo(f"  Balance: {dao.get_member_balance(to)}")
    typer.echo(f"  Total supply: {dao.get_total_supply()}")


@app.command()
def vote(
    caller: Annotated[str, typer.Option("--caller", help="Voting member")],
    proposal: Annotated[int, typer.Option("--proposal", help="Proposal ID")],
    option: Annotated[int, typer.Option("--option", help="Option index (0-based)")],
    db: DbOption = None,
    block: BlockOption = None,
) -> None:
    """Cast a vote"""
    dao = get_dao(db, block)
    with domain_errors():
        dao.vote(caller, proposal, option)
        result = dao.get_proposal(proposal)

    typer.echo(f"✓ Vote recorded on proposal {proposal}")
    typer.echo(f"  Votes: {result.votes}")
    typer.echo(f"  Status: {result.status.value}")


@app.command()
def balance(
    member: Annotated[str, typer.Option("--member", help="Member identity")],
    db: DbOption = None,
) -> None:
    """Show a member's token balance"""
    dao = get_dao(db)
    with domain_errors():
        typer.echo(str(dao.get_member_balance(member)))


@app.command()
def members(
    db: DbOption = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output JSON")] = False,
) -> None:
    """List members with their balances"""
    dao = get_dao(db)
    with domain_errors():
        identities = dao.get_members()

    if json_output:
        typer.echo(
            json.dumps({identity: dao.get_member_balance(identity) for identity in identities})
        )
        return

    typer.echo(f"Members ({len(identities)}):")
    for identity in identities:
        typer.echo(f"  {identity}: {dao.get_member_balance(identity)}")


@app.command()
def supply(db: DbOption = None) -> None:
    """Show total token supply"""
    dao = get_dao(db)
    with domain_errors():
        typer.echo(str(dao.get_total_supply()))


@app.command()
def history(
    proposal: Annotated[
        Optional[int], typer.Option("--proposal", help="Only this proposal's events")
    ] = None,
    db: DbOption = None,
) -> None:
    """Show the event log"""
    dao = get_dao(db)
    with domain_errors():
        events = dao.history(proposal)

    for event in events:
        actor = event.actor_id or "-"
        typer.echo(
            f"[{event.block}] {event.event_type} {event.stream_id} v{event.version} "
            f"by {actor}: {json.dumps(event.payload, sort_keys=True)}"
        )


@app.command()
def serve(
    db: DbOption = None,
    port: Annotated[int, typer.Option("--port", help="Health server port")] = 8080,
    metrics_port: Annotated[
        int, typer.Option("--metrics-port", help="Prometheus metrics port")
    ] = 9090,
) -> None:
    """Serve health probes and Prometheus metrics for an organization"""
    dao = get_dao(db)
    start_metrics_server(metrics_port)
    initialize_health_server(dao.sqlite_path, dao)
    run_health_server(port=port)


# Proposal commands


@proposal_app.command("create")
def proposal_create(
    caller: Annotated[str, typer.Option("--caller", help="Proposing member")],
    name: Annotated[str, typer.Option("--name", help="Proposal title")],
    option: Annotated[
        List[str], typer.Option("--option", help="Option label (repeatable)")
    ],
    kind: Annotated[
        str, typer.Option("--kind", help="MultipleChoice or MoneyRequest")
    ] = ProposalKind.MULTIPLE_CHOICE.value,
    description: Annotated[str, typer.Option("--description", help="Details")] = "",
    amount: Annotated[
        Optional[int], typer.Option("--amount", help="Requested tokens (MoneyRequest)")
    ] = None,
    db: DbOption = None,
    block: BlockOption = None,
) -> None:
    """Create a proposal"""
    dao = get_dao(db, block)
    try:
        proposal_kind = ProposalKind(kind)
    except ValueError:
        typer.echo(f"Error: Unknown proposal kind: {kind}", err=True)
        raise typer.Exit(1)

    with domain_errors():
        proposal_id = dao.create_proposal(
            caller, name, description, proposal_kind, option, amount
        )
        proposal = dao.get_proposal(proposal_id)

    typer.echo(f"✓ Created proposal: {proposal_id}")
    typer.echo(f"  Kind: {proposal.kind.value}")
    typer.echo(f"  Options: {', '.join(proposal.options)}")
    typer.echo(f"  Deadline: block {proposal.deadline}")


@proposal_app.command("list")
def proposal_list(
    status: Annotated[
        Optional[str],
        typer.Option("--status", help="Active, Passed, Rejected or Expired"),
    ] = None,
    db: DbOption = None,
    block: BlockOption = None,
) -> None:
    """List proposals"""
    dao = get_dao(db, block)
    try:
        wanted = ProposalStatus(status) if status else None
    except ValueError:
        typer.echo(f"Error: Unknown status: {status}", err=True)
        raise typer.Exit(1)

    summaries = dao.list_proposals(wanted)
    if not summaries:
        typer.echo("No proposals")
        return

    typer.echo(f"Proposals ({len(summaries)}):")
    for summary in summaries:
        typer.echo(
            f"  {summary.proposal_id}: {summary.name} [{summary.status.value}] "
            f"{summary.total_votes} votes, deadline {summary.deadline}"
        )


@proposal_app.command("show")
def proposal_show(
    id: Annotated[int, typer.Option("--id", help="Proposal ID")],
    db: DbOption = None,
    block: BlockOption = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output JSON")] = False,
) -> None:
    """Show a proposal and its tally"""
    dao = get_dao(db, block)
    with domain_errors():
        proposal = dao.get_proposal(id)
        result = dao.get_proposal_result(id)

    if json_output:
        typer.echo(proposal.model_dump_json())
        return

    typer.echo(f"Proposal {proposal.proposal_id}: {proposal.name}")
    typer.echo(f"  Author: {proposal.author}")
    typer.echo(f"  Kind: {proposal.kind.value}")
    if proposal.requested_amount is not None:
        typer.echo(f"  Requested amount: {proposal.requested_amount}")
    typer.echo(f"  Status: {proposal.status.value}")
    typer.echo(f"  Window: blocks {proposal.created_at}-{proposal.deadline}")
    for tally in result.tally:
        typer.echo(f"  [{tally.index}] {tally.label}: {tally.votes}")
    typer.echo(
        f"  Votes cast: {result.total_votes} "
        f"(minimum {result.min_votes_required}, "
        f"{'reached' if result.quorum_reached else 'not reached'})"
    )


def main() -> None:
    """Entry point for CLI"""
    app()


if __name__ == "__main__":
    main()
