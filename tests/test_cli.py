"""Tests for CLI commands."""

import re
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from sqlhelper.cli.main import cli


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text."""
    ansi_escape = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')
    return ansi_escape.sub('', text)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path, connection_string: str) -> Path:
    """A configuration file with one reachable and one unreachable connection."""
    path = tmp_path / "sqlhelper.yaml"
    path.write_text(yaml.safe_dump({
        "connections": {
            "Orders": connection_string,
            "Broken": f"sqlite:///{tmp_path / 'no' / 'such' / 'dir.db'}",
        },
        "default_connection": "Orders",
    }), encoding="utf-8")
    return path


class TestConfigCommands:
    def test_sample_then_validate(self, runner: CliRunner, tmp_path: Path) -> None:
        output_file = tmp_path / "sample.yaml"

        result = runner.invoke(cli, ["config", "sample", str(output_file)])
        assert result.exit_code == 0
        assert output_file.exists()

        result = runner.invoke(cli, ["config", "validate", str(output_file)])
        assert result.exit_code == 0
        assert "is valid" in strip_ansi(result.output)
        assert "Default" in strip_ansi(result.output)

    def test_validate_invalid_file(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("bulk_copy:\n  batch_size: 0\n", encoding="utf-8")

        result = runner.invoke(cli, ["config", "validate", str(path)])

        assert result.exit_code == 1
        assert "validation failed" in strip_ansi(result.output)


class TestDatabaseCommands:
    def test_connections(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["--config", str(config_file), "db", "connections"])

        output = strip_ansi(result.output)
        assert result.exit_code == 0
        assert "Orders" in output
        assert "Broken" in output
        assert "sqlite" in output

    def test_check_single_connection(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["--config", str(config_file), "db", "check", "Orders"])

        assert result.exit_code == 0
        assert "OK" in strip_ansi(result.output)

    def test_check_reports_failures(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["--config", str(config_file), "db", "check"])

        output = strip_ansi(result.output)
        assert result.exit_code == 1
        assert "FAILED" in output
        assert "OK" in output

    def test_check_unknown_key(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["--config", str(config_file), "db", "check", "Missing"])

        assert result.exit_code == 1
        assert "Missing" in strip_ansi(result.output)

    def test_query(self, runner: CliRunner, config_file: Path, db) -> None:
        db.insert_many("Orders", {"Name": "Acme", "Amount": 100})

        result = runner.invoke(cli, ["--config", str(config_file), "db", "query", "Orders", "SELECT Name, Amount FROM Orders"])

        output = strip_ansi(result.output)
        assert result.exit_code == 0
        assert "Acme" in output
        assert "1 row(s)" in output

    def test_query_failure(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["--config", str(config_file), "db", "query", "Orders", "SELECT * FROM MissingTable"])

        assert result.exit_code == 1
        assert "Query failed" in strip_ansi(result.output)

    def test_exists(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["--config", str(config_file), "db", "exists", "Orders", "ActiveUsers"])
        assert result.exit_code == 0
        assert "exists" in strip_ansi(result.output)

        result = runner.invoke(cli, ["--config", str(config_file), "db", "exists", "Orders", "MissingTable"])
        assert result.exit_code == 1
        assert "not found" in strip_ansi(result.output)
