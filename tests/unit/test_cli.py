"""Tests for the insights-core-updater command line."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
import structlog
import structlog.testing
from typer.testing import CliRunner

from insights_core_updater import __version__
from insights_core_updater.cli import app
from insights_core_updater.models import UpdateResult, UpdateStatus

runner = CliRunner()


@pytest.fixture(autouse=True)
def _env(tmp_path: Path, monkeypatch):
    """Point every configurable path into tmp_path."""
    monkeypatch.setenv("INSIGHTS_CORE_UPDATER_CACHE_FILE_PATH", str(tmp_path / "c.cache"))
    monkeypatch.setenv("INSIGHTS_CORE_UPDATER_CORE_FILE_PATH", str(tmp_path / "core.egg"))
    monkeypatch.setenv("INSIGHTS_CORE_UPDATER_LOG_FILE_PATH", str(tmp_path / "u.log"))
    monkeypatch.delenv("INSIGHTS_CORE_UPDATER_DEBUG", raising=False)


@pytest.fixture()
def setup_logging_mock():
    with patch("insights_core_updater.cli.setup_logging") as mock, structlog.testing.capture_logs():
        yield mock


def _invoke(result: UpdateResult, *args: str):
    with patch("insights_core_updater.cli._execute", AsyncMock(return_value=result)) as mock:
        outcome = runner.invoke(app, list(args))
    return outcome, mock


class TestCliOutcomes:
    """User-facing messages and exit codes."""

    def test_nothing_to_do(self, setup_logging_mock) -> None:
        outcome, _ = _invoke(UpdateResult(status=UpdateStatus.NO_UPDATE))
        assert outcome.exit_code == 0
        assert "Nothing to do." in outcome.output

    def test_updated(self, setup_logging_mock, tmp_path: Path) -> None:
        result = UpdateResult(status=UpdateStatus.UPDATED, core_path=tmp_path / "core.egg")
        outcome, _ = _invoke(result)
        assert outcome.exit_code == 0
        assert f"New Core saved at {tmp_path / 'core.egg'}." in outcome.output

    def test_not_registered(self, setup_logging_mock) -> None:
        outcome, _ = _invoke(UpdateResult(status=UpdateStatus.NOT_REGISTERED))
        assert outcome.exit_code == 0
        assert "not registered" in outcome.output

    def test_fetch_failure(self, setup_logging_mock) -> None:
        result = UpdateResult(status=UpdateStatus.FAILED, failed_stage="fetch_core", error="503")
        outcome, _ = _invoke(result)
        assert outcome.exit_code == 1
        assert "Core could not be fetched." in outcome.output

    def test_save_failure(self, setup_logging_mock) -> None:
        result = UpdateResult(status=UpdateStatus.FAILED, failed_stage="save_cache", error="x")
        outcome, _ = _invoke(result)
        assert outcome.exit_code == 1
        assert "Core could not be saved." in outcome.output

    def test_check_available(self, setup_logging_mock) -> None:
        outcome, mock = _invoke(UpdateResult(status=UpdateStatus.AVAILABLE), "--check")
        assert outcome.exit_code == 0
        assert "Update available." in outcome.output
        assert mock.call_args.args[1] is True

    def test_run_is_default(self, setup_logging_mock) -> None:
        _, mock = _invoke(UpdateResult(status=UpdateStatus.NO_UPDATE))
        assert mock.call_args.args[1] is False

    def test_json_output(self, setup_logging_mock) -> None:
        result = UpdateResult(status=UpdateStatus.FAILED, failed_stage="probe", error="timeout")
        outcome, _ = _invoke(result, "--check", "--json")
        assert outcome.exit_code == 1
        data = json.loads(outcome.stdout)
        assert data["status"] == "failed"
        assert data["failed_stage"] == "probe"

    def test_unexpected_error_exits_cleanly(self, setup_logging_mock) -> None:
        crash = AsyncMock(side_effect=RuntimeError("boom"))
        with (
            patch("insights_core_updater.cli._execute", crash),
            patch("insights_core_updater.cli.get_logger") as get_logger,
        ):
            outcome = runner.invoke(app, [])
        assert outcome.exit_code == 1
        assert not isinstance(outcome.exception, RuntimeError)
        get_logger.return_value.exception.assert_called_once_with("updater_crashed")
        assert "Core could not be fetched." in outcome.output
        assert "Traceback" not in outcome.output


class TestCliOptions:
    def test_version(self) -> None:
        outcome = runner.invoke(app, ["--version"])
        assert outcome.exit_code == 0
        assert __version__ in outcome.output

    def test_debug_enables_console_logging(self, setup_logging_mock) -> None:
        _invoke(UpdateResult(status=UpdateStatus.NO_UPDATE), "--debug")
        settings = setup_logging_mock.call_args.args[0]
        assert settings.debug is True

    def test_settings_from_environment(self, setup_logging_mock, tmp_path: Path) -> None:
        _, mock = _invoke(UpdateResult(status=UpdateStatus.NO_UPDATE))
        settings = mock.call_args.args[0]
        assert settings.cache_file_path == tmp_path / "c.cache"
        assert settings.debug is False

    def test_invalid_configuration(self, monkeypatch, setup_logging_mock) -> None:
        monkeypatch.setenv("INSIGHTS_CORE_UPDATER_REQUEST_TIMEOUT", "0")
        outcome = runner.invoke(app, [])
        assert outcome.exit_code == 1
        assert "Invalid configuration" in outcome.output
        setup_logging_mock.assert_not_called()

    def test_help(self) -> None:
        outcome = runner.invoke(app, ["--help"])
        assert outcome.exit_code == 0
        assert "--check" in outcome.output


class TestCliEndToEnd:
    """Runs the real updater against an unregistered tmp layout."""

    def test_unregistered_host(self, monkeypatch, tmp_path: Path, setup_logging_mock) -> None:
        monkeypatch.setenv("INSIGHTS_CORE_UPDATER_RHSM_IDENTITY_DIRECTORY", str(tmp_path / "pki"))
        monkeypatch.setenv(
            "INSIGHTS_CORE_UPDATER_CLIENT_CONFIG_DIRECTORY", str(tmp_path / "client")
        )
        outcome = runner.invoke(app, [])
        assert outcome.exit_code == 0
        assert "not registered" in outcome.output
        assert not (tmp_path / "c.cache").exists()
