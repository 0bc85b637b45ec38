"""Unit tests for the developer CLI."""

import logging
from pathlib import Path

import click
import pytest
import yaml
from click.testing import CliRunner

from portfolio_engine.cli import cli, parse_allocations
from portfolio_engine.storage import SQLiteStateStore


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Undo the handler the CLI installs on the root logger."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Config pointing the CLI at a temporary database."""
    path = tmp_path / "cli.yaml"
    path.write_text(
        yaml.dump(
            {
                "logging": {"level": "ERROR"},
                "storage": {"db_path": str(tmp_path / "cli.db")},
                "portfolio": {"admin": "admin"},
            }
        )
    )
    return path


def run(config_file: Path, *args: str):
    """Invoke the CLI with the test config."""
    runner = CliRunner()
    return runner.invoke(cli, ["--config", str(config_file), *args])


class TestParseAllocations:
    """Test cases for parse_allocations."""

    def test_parse(self) -> None:
        """Test token:percentage pairs are split."""
        tokens, percentages = parse_allocations(("token-a:6000", "ns:token-b:4000"))

        assert tokens == ["token-a", "ns:token-b"]
        assert percentages == [6000, 4000]

    def test_missing_separator(self) -> None:
        """Test entries without a colon are rejected."""
        with pytest.raises(click.BadParameter, match="expected 'token:percentage'"):
            parse_allocations(("token-a",))

    def test_non_integer_percentage(self) -> None:
        """Test percentages must be integers."""
        with pytest.raises(click.BadParameter, match="must be an integer"):
            parse_allocations(("token-a:60.5",))


class TestCli:
    """End-to-end CLI commands against SQLite."""

    def test_create_show_status_rebalance(self, config_file: Path) -> None:
        """Test the full create → status → rebalance flow."""
        result = run(
            config_file, "--caller", "alice", "--tick", "100",
            "create", "-t", "token-a:6000", "-t", "token-b:4000",
        )
        assert result.exit_code == 0, result.output
        assert "Created portfolio 1" in result.output

        result = run(config_file, "show", "1")
        assert result.exit_code == 0, result.output
        assert "alice" in result.output
        assert "token-a" in result.output

        result = run(config_file, "--tick", "300", "status", "1")
        assert result.exit_code == 0, result.output
        assert "needs rebalance: yes" in result.output

        result = run(config_file, "--caller", "alice", "--tick", "300", "rebalance", "1")
        assert result.exit_code == 0, result.output
        assert "rebalanced at tick 300" in result.output

        result = run(config_file, "--tick", "400", "status", "1")
        assert "needs rebalance: no" in result.output

    def test_update_and_user(self, config_file: Path) -> None:
        """Test updating a slot and listing an account's portfolios."""
        run(config_file, "--caller", "bob", "create", "-t", "x:5000", "-t", "y:5000")
        run(config_file, "--caller", "bob", "create", "-t", "x:5000", "-t", "y:5000")

        result = run(config_file, "--caller", "bob", "update", "2", "1", "7000")
        assert result.exit_code == 0, result.output
        assert "slot 1 set to 7000 bps" in result.output

        result = run(config_file, "user", "bob")
        assert "1, 2" in result.output

    def test_rejection_exit_code(self, config_file: Path) -> None:
        """Test rejected operations print the error code and exit 1."""
        run(config_file, "--caller", "alice", "create", "-t", "x:5000", "-t", "y:5000")

        result = run(config_file, "--caller", "mallory", "rebalance", "1")

        assert result.exit_code == 1
        assert "NotAuthorized" in result.output

    def test_caller_required(self, config_file: Path) -> None:
        """Test mutating commands need --caller."""
        result = run(config_file, "rebalance", "1")

        assert result.exit_code != 0
        assert "--caller is required" in result.output

    def test_show_missing(self, config_file: Path) -> None:
        """Test showing an unknown portfolio exits 1."""
        result = run(config_file, "show", "5")

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_rebalance_before_creation_tick(self, config_file: Path) -> None:
        """Test a rebalance at an earlier tick is rejected and not recorded."""
        run(
            config_file, "--caller", "alice", "--tick", "500",
            "create", "-t", "x:5000", "-t", "y:5000",
        )

        result = run(config_file, "--caller", "alice", "--tick", "3", "rebalance", "1")
        assert result.exit_code == 1
        assert "InvalidTick" in result.output

        store = SQLiteStateStore(config_file.parent / "cli.db")
        assert store.get_portfolio(1).last_rebalanced == 500
        store.close()

    def test_runs_with_packaged_defaults(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test the CLI starts without --config outside the source tree."""
        monkeypatch.chdir(tmp_path)
        runner = CliRunner()

        result = runner.invoke(cli, ["--db", str(tmp_path / "own.db"), "show", "1"])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_missing_config_file(self, tmp_path: Path) -> None:
        """Test a missing --config file is a usage error, not a traceback."""
        result = run(tmp_path / "absent.yaml", "show", "1")

        assert result.exit_code == 2
        assert "does not exist" in result.output

    def test_show_escapes_markup(self, config_file: Path) -> None:
        """Test owner and token text is printed literally, not as markup."""
        run(
            config_file, "--caller", "[bold]eve", "create",
            "-t", "[bold]x:5000", "-t", "y:5000",
        )

        result = run(config_file, "show", "1")

        assert result.exit_code == 0, result.output
        assert "[bold]eve" in result.output
        assert "[bold]x" in result.output
