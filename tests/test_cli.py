"""Tests for the CLI.

These tests run commands against a temporary SQLite database and a
mocked CPI process.
"""

import json
import subprocess
import sys
from unittest.mock import MagicMock, patch

import pytest
import yaml
from sqlalchemy import text
from typer.testing import CliRunner

from stemcell_manager import __version__
from stemcell_manager.cli import app
from stemcell_manager.db import create_all_tables, get_engine

runner = CliRunner()


def _cpi_response(result: object) -> MagicMock:
    completed = MagicMock()
    completed.returncode = 0
    completed.stdout = json.dumps({"result": result, "error": None, "log": ""})
    completed.stderr = ""
    return completed


@pytest.fixture
def env(tmp_path, monkeypatch):
    """Point the CLI at a temporary database and a dummy CPI."""
    monkeypatch.setenv("STEMCELL_DB_URL", f"sqlite:///{tmp_path / 'state.sqlite'}")
    monkeypatch.setenv("STEMCELL_CPI_PATH", str(tmp_path / "cpi"))
    return tmp_path


@pytest.fixture
def stemcell_dir(tmp_path):
    """Create an extracted stemcell directory."""
    path = tmp_path / "ubuntu-1.0"
    path.mkdir()
    (path / "stemcell.MF").write_text(
        yaml.safe_dump(
            {"name": "ubuntu", "version": "1.0", "cloud_properties": {"x": 1}}
        )
    )
    (path / "image").write_bytes(b"image")
    return path


class TestCLIHelp:
    """Test CLI help and version commands."""

    def test_help_returns_zero(self) -> None:
        """CLI --help should return exit code 0."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Stemcell Manager" in result.stdout

    def test_version_flag(self) -> None:
        """CLI --version should print version and exit 0."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_no_args_shows_help(self) -> None:
        """CLI with no args should show help."""
        result = runner.invoke(app, [])
        assert "Usage:" in result.stdout


class TestCLIConfig:
    """Test CLI config command."""

    def test_config_command(self, env) -> None:
        """CLI config should show configuration."""
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "Database URL" in result.stdout
        assert "CPI path" in result.stdout

    def test_config_json(self, env) -> None:
        """CLI config --json should output JSON."""
        result = runner.invoke(app, ["config", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert "db_url" in data
        assert "cpi_path" in data


class TestCLIStemcells:
    """Test stemcell commands end to end."""

    def test_list_empty(self, env) -> None:
        """list on an empty store should report nothing found."""
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 0
        assert "No stemcells found" in result.stdout

    def test_upload_then_list(self, env, stemcell_dir) -> None:
        """upload should record the stemcell; list --json should show it."""
        with patch("stemcell_manager.cloud.cpi.subprocess.run") as mock_run:
            mock_run.return_value = _cpi_response("cid-1")
            result = runner.invoke(app, ["upload", str(stemcell_dir)])

        assert result.exit_code == 0, result.stdout
        assert "cid-1" in result.stdout

        result = runner.invoke(app, ["list", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert len(data) == 1
        assert data[0]["name"] == "ubuntu"
        assert data[0]["cid"] == "cid-1"
        assert data[0]["current"] is False

    def test_second_upload_is_skipped(self, env, stemcell_dir) -> None:
        """A repeated upload should skip and not call the CPI again."""
        with patch("stemcell_manager.cloud.cpi.subprocess.run") as mock_run:
            mock_run.return_value = _cpi_response("cid-1")
            runner.invoke(app, ["upload", str(stemcell_dir)])
            result = runner.invoke(app, ["upload", str(stemcell_dir)])

        assert result.exit_code == 0
        assert "Skipped" in result.stdout
        assert mock_run.call_count == 1

    def test_upload_without_cpi(self, env, stemcell_dir, monkeypatch) -> None:
        """upload should fail when no CPI is configured."""
        monkeypatch.delenv("STEMCELL_CPI_PATH")
        result = runner.invoke(app, ["upload", str(stemcell_dir)])
        assert result.exit_code == 1
        assert "No CPI configured" in result.stdout

    def test_upload_missing_directory(self, env) -> None:
        """upload should fail for a missing directory."""
        result = runner.invoke(app, ["upload", str(env / "missing")])
        assert result.exit_code == 1
        assert "Directory not found" in result.stdout

    def test_upload_cpi_failure(self, env, stemcell_dir) -> None:
        """A CPI error should fail the upload without recording anything."""
        with patch("stemcell_manager.cloud.cpi.subprocess.run") as mock_run:
            failed = MagicMock()
            failed.returncode = 0
            failed.stdout = json.dumps(
                {"result": None, "error": {"type": "X", "message": "nope"}}
            )
            failed.stderr = ""
            mock_run.return_value = failed
            result = runner.invoke(app, ["upload", str(stemcell_dir)])

        assert result.exit_code == 1
        assert "Upload failed" in result.stdout

        result = runner.invoke(app, ["list", "--json"])
        assert result.stdout.strip() == "[]"

    def test_set_current_and_unused(self, env, tmp_path) -> None:
        """set-current should exclude that stemcell from unused."""
        with patch("stemcell_manager.cloud.cpi.subprocess.run") as mock_run:
            mock_run.side_effect = [_cpi_response("cid-1"), _cpi_response("cid-2")]
            for version in ("1.0", "2.0"):
                path = tmp_path / f"sc-{version}"
                path.mkdir()
                (path / "stemcell.MF").write_text(
                    yaml.safe_dump({"name": "ubuntu", "version": version})
                )
                (path / "image").write_bytes(b"image")
                assert runner.invoke(app, ["upload", str(path)]).exit_code == 0

        result = runner.invoke(app, ["set-current", "ubuntu", "2.0"])
        assert result.exit_code == 0

        result = runner.invoke(app, ["current"])
        assert "cid-2" in result.stdout

        result = runner.invoke(app, ["unused", "--json"])
        data = json.loads(result.stdout)
        assert [s["cid"] for s in data] == ["cid-1"]

    def test_set_current_unknown(self, env) -> None:
        """set-current should fail for an unknown stemcell."""
        result = runner.invoke(app, ["set-current", "ubuntu", "9.9"])
        assert result.exit_code == 1
        assert "Stemcell not found" in result.stdout

    def test_current_none(self, env) -> None:
        """current should report when no stemcell is current."""
        result = runner.invoke(app, ["current"])
        assert result.exit_code == 0
        assert "No current stemcell" in result.stdout

    def test_delete_unused(self, env, stemcell_dir) -> None:
        """delete-unused should delete through the CPI and drop records."""
        with patch("stemcell_manager.cloud.cpi.subprocess.run") as mock_run:
            mock_run.return_value = _cpi_response("cid-1")
            runner.invoke(app, ["upload", str(stemcell_dir)])

            mock_run.return_value = _cpi_response(None)
            result = runner.invoke(app, ["delete-unused"])

        assert result.exit_code == 0
        assert "Deleting unused stemcell 'cid-1'" in result.stdout
        request = json.loads(mock_run.call_args.kwargs["input"])
        assert request["method"] == "delete_stemcell"
        assert request["arguments"] == ["cid-1"]

        result = runner.invoke(app, ["list", "--json"])
        assert result.stdout.strip() == "[]"


class TestCLIStoreFailures:
    """Test commands when the database rejects a write."""

    @staticmethod
    def _abort(env, statement: str, condition: str = "1") -> None:
        engine = get_engine(f"sqlite:///{env / 'state.sqlite'}")
        create_all_tables(engine)
        with engine.begin() as conn:
            conn.execute(
                text(
                    f"CREATE TRIGGER abort_{statement.lower()} BEFORE {statement} "
                    f"ON stemcells WHEN {condition} "
                    "BEGIN SELECT RAISE(ABORT, 'write rejected'); END"
                )
            )
        engine.dispose()

    def test_upload_rejected_save_names_cid(self, env, stemcell_dir) -> None:
        """A rejected save should report the orphaned cid, not a database error."""
        self._abort(env, "INSERT")
        with patch("stemcell_manager.cloud.cpi.subprocess.run") as mock_run:
            mock_run.return_value = _cpi_response("cid-1")
            result = runner.invoke(app, ["upload", str(stemcell_dir)])

        assert result.exit_code == 1
        assert "Upload failed" in result.stdout
        assert "cid=cid-1" in result.stdout
        assert "Database error" not in result.stdout

    def test_delete_unused_keeps_completed_deletions(self, env, tmp_path) -> None:
        """Deletions before a rejected record delete should be kept."""
        with patch("stemcell_manager.cloud.cpi.subprocess.run") as mock_run:
            mock_run.side_effect = [_cpi_response("cid-1"), _cpi_response("cid-2")]
            for version in ("1.0", "2.0"):
                path = tmp_path / f"sc-{version}"
                path.mkdir()
                (path / "stemcell.MF").write_text(
                    yaml.safe_dump({"name": "ubuntu", "version": version})
                )
                (path / "image").write_bytes(b"image")
                assert runner.invoke(app, ["upload", str(path)]).exit_code == 0

        self._abort(env, "DELETE", "OLD.cid = 'cid-2'")
        with patch("stemcell_manager.cloud.cpi.subprocess.run") as mock_run:
            mock_run.return_value = _cpi_response(None)
            result = runner.invoke(app, ["delete-unused"])

        assert result.exit_code == 1
        assert "Delete failed" in result.stdout
        assert "'cid-2'" in result.stdout

        result = runner.invoke(app, ["list", "--json"])
        assert [s["cid"] for s in json.loads(result.stdout)] == ["cid-2"]


class TestModuleEntryPoint:
    """Test python -m stemcell_manager entry point."""

    def test_module_help(self) -> None:
        """python -m stemcell_manager --help should work."""
        result = subprocess.run(
            [sys.executable, "-m", "stemcell_manager", "--help"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "Stemcell Manager" in result.stdout
