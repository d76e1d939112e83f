"""Tests for the command-line interface."""

import importlib
import json
import sys

import pytest
from typer.testing import CliRunner

from work_timesheet import __version__
from work_timesheet.__main__ import main
from work_timesheet.exceptions import UnknownProjectError
from work_timesheet.storage.config_manager import ConfigManager

cli_module = importlib.import_module("work_timesheet.cli.app")

runner = CliRunner()


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    config_file = tmp_path / "config" / "config.ini"
    data_dir = tmp_path / "data"
    monkeypatch.setattr(cli_module, "CONFIG_FILE", config_file)
    monkeypatch.setattr(cli_module, "get_data_dir", lambda: data_dir)
    ConfigManager(config_file, data_dir).save_new_config({"save_debounce": 0.0})
    return data_dir


def _stored(data_dir):
    raw = (data_dir / "storage" / "workTimesheet_data.val").read_text(encoding="utf-8")
    return json.loads(raw)


def test_version():
    result = runner.invoke(cli_module.app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_add_and_show_day(cli_env):
    result = runner.invoke(cli_module.app, ["add", "2024-03-05", "Development", "7.5"])
    assert result.exit_code == 0, result.output
    assert "Booked 7.5h on Development" in result.output

    stored = _stored(cli_env)
    assert stored["entries"][0]["projectId"] == 1
    assert stored["entries"][0]["synced"] is True

    result = runner.invoke(cli_module.app, ["day", "2024-03-05"])
    assert result.exit_code == 0
    assert stored["entries"][0]["id"] in result.output


def test_add_offline_marks_entry_unsynced(cli_env):
    result = runner.invoke(cli_module.app, ["--offline", "add", "2024-03-05", "2", "1"])
    assert result.exit_code == 0, result.output
    assert "Working offline" in result.output
    assert _stored(cli_env)["entries"][0]["synced"] is False


def test_add_unknown_project(cli_env):
    result = runner.invoke(cli_module.app, ["add", "2024-03-05", "Gardening", "1"])
    assert result.exit_code == 1
    assert isinstance(result.exception, UnknownProjectError)


def test_delete(cli_env):
    runner.invoke(cli_module.app, ["add", "2024-03-05", "Design", "2"])
    entry_id = _stored(cli_env)["entries"][0]["id"]

    result = runner.invoke(cli_module.app, ["delete", entry_id])

    assert result.exit_code == 0
    assert f"Deleted entry {entry_id}" in result.output
    assert _stored(cli_env)["entries"] == []


def test_project_add_and_list(cli_env):
    result = runner.invoke(
        cli_module.app, ["project", "add", "Research", "--color", "#ABCDEF"]
    )
    assert result.exit_code == 0, result.output

    result = runner.invoke(cli_module.app, ["project", "list"])
    assert result.exit_code == 0
    assert "Research" in result.output
    assert "#abcdef" in result.output


def test_stats_all(cli_env):
    runner.invoke(cli_module.app, ["add", "2024-03-05", "Meetings", "2"])
    result = runner.invoke(cli_module.app, ["stats", "--period", "all"])
    assert result.exit_code == 0
    assert "Meetings" in result.output
    assert "Total" in result.output


def test_stats_rejects_unknown_period(cli_env):
    result = runner.invoke(cli_module.app, ["stats", "--period", "decade"])
    assert result.exit_code == 2


def test_calendar_for_month(cli_env):
    result = runner.invoke(cli_module.app, ["calendar", "--month", "2024-02"])
    assert result.exit_code == 0
    assert "February 2024" in result.output


def test_save_writes_both_copies(cli_env):
    result = runner.invoke(cli_module.app, ["save"])
    assert result.exit_code == 0
    assert "Saving..." in result.output
    storage = cli_env / "storage"
    assert (storage / "workTimesheet_data.val").read_text(encoding="utf-8") == (
        storage / "workTimesheet_backup.val"
    ).read_text(encoding="utf-8")


def test_entry_point_reports_application_errors(cli_env, monkeypatch, capsys):
    monkeypatch.setattr(
        sys, "argv", ["timesheet", "add", "2024-03-05", "Gardening", "1"]
    )

    with pytest.raises(SystemExit) as exc_info:
        main()

    assert exc_info.value.code == 1
    assert "UnknownProjectError" in capsys.readouterr().err


def test_entry_point_exits_cleanly(cli_env, monkeypatch):
    monkeypatch.setattr(sys, "argv", ["timesheet", "--version"])
    with pytest.raises(SystemExit) as exc_info:
        main()
    assert exc_info.value.code == 0
