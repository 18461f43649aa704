"""
CLI integration tests

Every command runs against a real database in a temporary directory
through Typer's CliRunner.

Fun fact: The first command-line interface (CLI) was created in 1964 for the Dartmouth Time Sharing System.
It revolutionized computing by allowing users to interact with computers through text commands!
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from simple_dao.cli.main import app


@pytest.fixture
def runner():
    """Typer CLI test runner"""
    return CliRunner()


@pytest.fixture
def db(runner, tmp_path) -> Path:
    """A founded organization: alice, bob, carol with 1000 tokens, 10-block window"""
    db_path = tmp_path / "dao.db"
    result = runner.invoke(
        app,
        [
            "init", "--db", str(db_path),
            "--member", "alice", "--member", "bob", "--member", "carol",
            "--supply", "1000", "--voting-period", "10", "--min-votes", "2",
            "--block", "100",
        ],
    )
    assert result.exit_code == 0, result.output
    return db_path


def create_offsite(runner, db: Path) -> None:
    result = runner.invoke(
        app,
        [
            "proposal", "create", "--db", str(db), "--caller", "alice",
            "--name", "Offsite", "--option", "Lisbon", "--option", "Berlin",
        ],
    )
    assert result.exit_code == 0, result.output


# =============================================================================
# Initialization
# =============================================================================


def test_init_creates_database(runner, db):
    assert db.exists()


def test_init_output(runner, tmp_path):
    db_path = tmp_path / "new.db"
    result = runner.invoke(
        app,
        ["init", "--db", str(db_path), "--member", "alice", "--member", "bob",
         "--supply", "101", "--voting-period", "5"],
    )

    assert result.exit_code == 0
    assert "Founded organization" in result.output
    assert "Tokens per member: 50" in result.output
    assert "Total supply: 101" in result.output
    assert "Unassigned: 1" in result.output


def test_init_with_existing_database(runner, db):
    result = runner.invoke(
        app,
        ["init", "--db", str(db), "--member", "dave", "--supply", "1", "--voting-period", "5"],
    )

    assert result.exit_code == 1
    assert "already exists" in result.output


def test_init_with_invalid_voting_period(runner, tmp_path):
    db_path = tmp_path / "bad.db"
    result = runner.invoke(
        app,
        ["init", "--db", str(db_path), "--member", "alice", "--supply", "1", "--voting-period", "0"],
    )

    assert result.exit_code == 1
    assert "InvalidVotingPeriod" in result.output
    assert not db_path.exists()


def test_command_without_database(runner, tmp_path):
    result = runner.invoke(app, ["supply", "--db", str(tmp_path / "missing.db")])

    assert result.exit_code == 1
    assert "Database not found" in result.output


# =============================================================================
# Tokens and membership
# =============================================================================


def test_balance_and_supply(runner, db):
    result = runner.invoke(app, ["balance", "--db", str(db), "--member", "bob"])
    assert result.exit_code == 0
    assert result.output.strip() == "333"

    result = runner.invoke(app, ["supply", "--db", str(db)])
    assert result.output.strip() == "1000"


def test_distribute(runner, db):
    result = runner.invoke(app, ["distribute", "--db", str(db), "--to", "carol", "--amount", "7"])

    assert result.exit_code == 0
    assert "Distributed 7 tokens to carol" in result.output
    assert "Balance: 340" in result.output
    assert "Total supply: 1007" in result.output


def test_distribute_to_non_member(runner, db):
    result = runner.invoke(app, ["distribute", "--db", str(db), "--to", "mallory", "--amount", "7"])

    assert result.exit_code == 1
    assert "Error [NotMember]" in result.output


def test_negative_amount_reported_without_traceback(runner, db):
    result = runner.invoke(app, ["distribute", "--db", str(db), "--to", "bob", "--amount=-5"])

    assert result.exit_code == 1
    assert "Error [ValidationError]: amount:" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)


def test_init_with_negative_supply(runner, tmp_path):
    db_path = tmp_path / "neg.db"
    result = runner.invoke(
        app,
        ["init", "--db", str(db_path), "--member", "alice", "--supply=-1", "--voting-period", "5"],
    )

    assert result.exit_code == 1
    assert "Error [ValidationError]: total_supply:" in result.output
    assert not db_path.exists()


def test_members_json(runner, db):
    result = runner.invoke(app, ["members", "--db", str(db), "--json"])

    assert result.exit_code == 0
    assert json.loads(result.output) == {"alice": 333, "bob": 333, "carol": 333}


def test_members_text(runner, db):
    result = runner.invoke(app, ["members", "--db", str(db)])

    assert "Members (3):" in result.output
    assert "alice: 333" in result.output


# =============================================================================
# Proposals and voting
# =============================================================================


def test_proposal_create(runner, db):
    result = runner.invoke(
        app,
        ["proposal", "create", "--db", str(db), "--caller", "alice",
         "--name", "Offsite", "--option", "Lisbon", "--option", "Berlin"],
    )

    assert result.exit_code == 0
    assert "Created proposal: 1" in result.output
    assert "Deadline: block 110" in result.output


def test_proposal_with_empty_name(runner, db):
    result = runner.invoke(
        app,
        ["proposal", "create", "--db", str(db), "--caller", "alice", "--name", "", "--option", "a"],
    )

    assert result.exit_code == 0
    assert "Created proposal: 1" in result.output


def test_money_request_with_two_options_fails(runner, db):
    result = runner.invoke(
        app,
        ["proposal", "create", "--db", str(db), "--caller", "alice", "--name", "Grant",
         "--kind", "MoneyRequest", "--option", "yes", "--option", "no", "--amount", "5"],
    )

    assert result.exit_code == 1
    assert "InvalidProposalType" in result.output


def test_unknown_kind(runner, db):
    result = runner.invoke(
        app,
        ["proposal", "create", "--db", str(db), "--caller", "alice", "--name", "X",
         "--kind", "Lottery", "--option", "a"],
    )

    assert result.exit_code == 1
    assert "Unknown proposal kind" in result.output


def test_vote_and_pass(runner, db):
    create_offsite(runner, db)

    result = runner.invoke(
        app, ["vote", "--db", str(db), "--caller", "alice", "--proposal", "1", "--option", "1"]
    )
    assert result.exit_code == 0
    assert "Vote recorded on proposal 1" in result.output
    assert "Status: Active" in result.output

    result = runner.invoke(
        app, ["vote", "--db", str(db), "--caller", "bob", "--proposal", "1", "--option", "1"]
    )
    assert "Votes: [0, 2]" in result.output
    assert "Status: Passed" in result.output


def test_double_vote(runner, db):
    create_offsite(runner, db)
    args = ["vote", "--db", str(db), "--caller", "alice", "--proposal", "1", "--option", "0"]
    runner.invoke(app, args)

    result = runner.invoke(app, args)

    assert result.exit_code == 1
    assert "Error [AlreadyVoted]" in result.output


def test_late_vote_expires_proposal(runner, db):
    create_offsite(runner, db)

    result = runner.invoke(
        app,
        ["vote", "--db", str(db), "--caller", "alice", "--proposal", "1", "--option", "0",
         "--block", "111"],
    )
    assert result.exit_code == 1
    assert "Error [ProposalExpired]" in result.output

    result = runner.invoke(app, ["proposal", "list", "--db", str(db), "--status", "Expired"])
    assert "1: Offsite [Expired]" in result.output


def test_block_cannot_go_backwards(runner, db):
    result = runner.invoke(
        app, ["distribute", "--db", str(db), "--to", "bob", "--amount", "1", "--block", "50"]
    )

    assert result.exit_code == 1
    assert "ClockRegression" in result.output


def test_proposal_list_empty(runner, db):
    result = runner.invoke(app, ["proposal", "list", "--db", str(db)])

    assert result.exit_code == 0
    assert "No proposals" in result.output


def test_proposal_show(runner, db):
    create_offsite(runner, db)
    runner.invoke(
        app, ["vote", "--db", str(db), "--caller", "carol", "--proposal", "1", "--option", "0"]
    )

    result = runner.invoke(app, ["proposal", "show", "--db", str(db), "--id", "1"])

    assert result.exit_code == 0
    assert "Proposal 1: Offsite" in result.output
    assert "[0] Lisbon: 1" in result.output
    assert "[1] Berlin: 0" in result.output
    assert "minimum 2, not reached" in result.output


def test_proposal_show_json(runner, db):
    create_offsite(runner, db)

    result = runner.invoke(app, ["proposal", "show", "--db", str(db), "--id", "1", "--json"])

    data = json.loads(result.output)
    assert data["proposal_id"] == 1
    assert data["options"] == ["Lisbon", "Berlin"]
    assert data["status"] == "Active"


def test_proposal_show_unknown(runner, db):
    result = runner.invoke(app, ["proposal", "show", "--db", str(db), "--id", "9"])

    assert result.exit_code == 1
    assert "Error [ProposalNotFound]" in result.output


def test_history(runner, db):
    create_offsite(runner, db)

    result = runner.invoke(app, ["history", "--db", str(db)])
    assert "OrganizationInitialized organization v1" in result.output
    assert "ProposalCreated proposal-1 v1" in result.output

    result = runner.invoke(app, ["history", "--db", str(db), "--proposal", "1"])
    assert "OrganizationInitialized" not in result.output
