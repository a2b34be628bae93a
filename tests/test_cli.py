"""CLI commands against a temporary config and database."""

import pytest
from typer.testing import CliRunner

from predbets.cli.app import app

runner = CliRunner()


@pytest.fixture
def cli(tmp_path):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    db = tmp_path / "cli.duckdb"
    (config_dir / "default.toml").write_text(
        f'[storage]\ndb_path = "{db.as_posix()}"\n\n[settlement]\ndefault_fee_basis_points = 200\n\n'
        '[logging]\nlevel = "ERROR"\n'
    )

    def invoke(*args: str):
        return runner.invoke(app, ["--config-dir", str(config_dir), *args])

    return invoke


def test_market_lifecycle(cli):
    assert cli("accounts", "deposit", "alice", "--amount", "1000").exit_code == 0
    assert cli("accounts", "deposit", "bob", "--amount", "1000").exit_code == 0

    result = cli("markets", "create", "m1", "--as", "admin")
    assert result.exit_code == 0, result.output
    assert "fee 200 bp" in result.output

    assert cli("bets", "place", "m1", "--vote", "yes", "--amount", "700", "--as", "alice").exit_code == 0
    result = cli("bets", "place", "m1", "--vote", "no", "--amount", "300", "--as", "bob")
    assert result.exit_code == 0
    assert "yes=700  no=300" in result.output

    result = cli("markets", "odds", "m1")
    assert "70.00%" in result.output

    result = cli("markets", "resolve", "m1", "--winner", "yes", "--as", "admin")
    assert result.exit_code == 0
    assert "yes wins" in result.output

    result = cli("bets", "claim", "m1", "--as", "alice")
    assert result.exit_code == 0
    assert "Paid 980 to alice" in result.output

    result = cli("accounts", "balance", "alice")
    assert "alice: 1280" in result.output

    result = cli("audit")
    assert result.exit_code == 0, result.output
    assert "OK  m1" in result.output
    assert "Ledger journal sum: 0" in result.output


def test_rejections_print_code_and_exit_1(cli):
    cli("markets", "create", "m1", "--as", "admin")
    result = cli("markets", "resolve", "m1", "--winner", "yes", "--as", "mallory")
    assert result.exit_code == 1
    assert "unauthorized" in result.output

    result = cli("bets", "claim", "m1", "--as", "alice")
    assert result.exit_code == 1
    assert "market_not_resolved" in result.output

    result = cli("markets", "show", "missing")
    assert result.exit_code == 1
    assert "market_not_found" in result.output


def test_list_and_log_stats(cli):
    cli("accounts", "deposit", "alice", "--amount", "100")
    cli("markets", "create", "m1", "--as", "admin")
    cli("bets", "place", "m1", "--vote", "no", "--amount", "40", "--as", "alice")
    assert "Total: 1 markets" in cli("markets", "list").output
    assert "Total: 1 bets" in cli("bets", "list", "--user", "alice").output
    assert "Last bet: alice 40 on no" in cli("markets", "show", "m1").output
    stats = cli("log", "stats")
    assert "Total events: 1" in stats.output
    assert "volume=40" in stats.output


def test_quote(cli):
    cli("accounts", "deposit", "alice", "--amount", "1000")
    cli("markets", "create", "m1", "--as", "admin")
    cli("bets", "place", "m1", "--vote", "yes", "--amount", "600", "--as", "alice")
    result = cli("bets", "quote", "m1", "--vote", "yes", "--amount", "100")
    # pool 700, fee 14, all of it on yes
    assert "Projected payout: 98 " in result.output


def test_audit_unknown_market(cli):
    result = cli("audit", "--market", "nope")
    assert result.exit_code == 1
