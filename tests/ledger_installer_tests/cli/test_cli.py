"""CLI tests: command resolution, exit codes and stream usage.

The transport and device manager are replaced with fakes, so no Ledger is
needed.
"""

import json

import pytest
from click.testing import CliRunner

from ledger_installer import cli as cli_module
from ledger_installer.cli import cli
from ledger_installer.commands import USAGE_MESSAGE
from ledger_installer.device.apps import LedgerApp
from ledger_installer.device.errors import (
    AppAlreadyInstalledError,
    AppAlreadyLatestError,
    AppNotFoundError,
    AppNotInstalledError,
)
from ledger_installer.exceptions import TransportError


class FakeSession:
    def __init__(self):
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False


@pytest.fixture
def device(monkeypatch, fake_manager):
    """Patch the CLI so it talks to ``fake_manager`` instead of USB."""
    state = {"opened": 0, "sessions": [], "manager": fake_manager}

    def fake_open_transport(timeout):
        state["opened"] += 1
        session = FakeSession()
        state["sessions"].append(session)
        return session

    monkeypatch.setattr(cli_module, "open_transport", fake_open_transport)
    monkeypatch.setattr(cli_module, "build_device_manager", lambda session, config: fake_manager)
    return state


def invoke(args=(), env=None):
    runner = CliRunner()
    return runner.invoke(cli, list(args), env=env or {})


def test_missing_command_prints_usage_without_opening_transport(device):
    result = invoke()
    assert result.exit_code == 1
    assert USAGE_MESSAGE in result.stderr
    assert result.stdout == ""
    assert device["opened"] == 0


@pytest.mark.parametrize("keyword", ["", "install", "firmware", "GETINFO", " getinfo ", "getinfo\n"])
def test_unknown_command_fails_without_device(device, keyword):
    result = invoke(env={"LEDGER_COMMAND": keyword})
    assert result.exit_code == 1
    assert "Invalid or no command specified" in result.stderr
    assert device["opened"] == 0


def test_install_success_exits_zero_with_clean_stderr(device):
    result = invoke(env={"LEDGER_COMMAND": "installapp"})
    assert result.exit_code == 0, result.output
    assert "Successfully installed the app." in result.stdout
    assert result.stderr == ""
    assert device["manager"].calls == [("install_app", LedgerApp.BITCOIN)]
    assert device["sessions"][0].closed


def test_update_already_latest_exits_one(device):
    device["manager"].failures["update_app"] = AppAlreadyLatestError("same hash")
    result = invoke(env={"LEDGER_COMMAND": "updateapp"})
    assert result.exit_code == 1
    assert "Bitcoin app is already at the latest version." in result.stderr
    assert "Successfully" not in result.stdout


@pytest.mark.parametrize(
    "command, primitive, error",
    [
        ("installapp", "install_app", AppAlreadyInstalledError("x")),
        ("installapp", "install_app", AppNotFoundError("x")),
        ("updateapp", "update_app", AppNotInstalledError("x")),
        ("updateapp", "update_app", AppNotFoundError("x")),
        ("updateapp", "update_app", AppAlreadyLatestError("x")),
    ],
)
def test_documented_failures_exit_one_with_message(device, command, primitive, error):
    device["manager"].failures[primitive] = error
    result = invoke(env={"LEDGER_COMMAND": command})
    assert result.exit_code == 1
    assert result.stderr.strip()
    assert len(result.stderr.strip().splitlines()) == 1


@pytest.mark.parametrize(
    "env, expected",
    [
        ({"LEDGER_COMMAND": "installapp", "LEDGER_SOLANA": "1"}, LedgerApp.SOLANA),
        ({"LEDGER_COMMAND": "installapp", "LEDGER_SOLANA": "", "LEDGER_TESTNET": "1"}, LedgerApp.SOLANA),
        ({"LEDGER_COMMAND": "installapp", "LEDGER_TESTNET": "yes"}, LedgerApp.BITCOIN_TESTNET),
        ({"LEDGER_COMMAND": "installapp"}, LedgerApp.BITCOIN),
    ],
)
def test_target_selection_from_environment(device, env, expected):
    result = invoke(env=env)
    assert result.exit_code == 0, result.output
    assert device["manager"].calls == [("install_app", expected)]


def test_options_override_environment(device):
    result = invoke(["--command", "openapp", "--testnet"], env={"LEDGER_COMMAND": "getinfo"})
    assert result.exit_code == 0, result.output
    assert device["manager"].calls == [("open_app", LedgerApp.BITCOIN_TESTNET)]
    assert result.stdout == ""


def test_solana_option_wins_over_testnet(device):
    result = invoke(["--command", "updateapp", "--testnet", "--solana"])
    assert result.exit_code == 0, result.output
    assert device["manager"].calls == [("update_app", LedgerApp.SOLANA)]
    assert "Successfully updated the Solana app." in result.stdout


def test_updatefirm_fails_without_touching_device(device):
    result = invoke(env={"LEDGER_COMMAND": "updatefirm"})
    assert result.exit_code == 1
    assert "Firmware update is not implemented." in result.stderr
    assert device["opened"] == 0
    assert device["manager"].calls == []


def test_getinfo_prints_device_and_apps(device):
    result = invoke(env={"LEDGER_COMMAND": "getinfo"})
    assert result.exit_code == 0, result.output
    assert "Installed applications:" in result.stdout
    assert "Bitcoin" in result.stdout
    assert result.stderr == ""


def test_genuine_check_success(device):
    result = invoke(env={"LEDGER_COMMAND": "genuinecheck"})
    assert result.exit_code == 0, result.output
    assert "Your Ledger is genuine." in result.stdout


def test_transport_failure_exits_one(monkeypatch, fake_manager):
    def no_device(timeout):
        raise TransportError("Error connecting to Ledger device: Exception : No dongle found.")

    monkeypatch.setattr(cli_module, "open_transport", no_device)
    result = invoke(env={"LEDGER_COMMAND": "getinfo"})
    assert result.exit_code == 1
    assert "Error connecting to Ledger device" in result.stderr
    assert fake_manager.calls == []


def test_invalid_numeric_setting_exits_one(device):
    result = invoke(env={"LEDGER_COMMAND": "getinfo", "LEDGER_PROVIDER": "many"})
    assert result.exit_code == 1
    assert "LEDGER_PROVIDER" in result.stderr
    assert device["opened"] == 0


def test_log_file_receives_json_records(device, tmp_path):
    log_file = tmp_path / "logs" / "ledger.json"
    result = invoke(
        ["--log-file", str(log_file)],
        env={"LEDGER_COMMAND": "updatefirm", "LEDGER_LOG_LEVEL": "INFO"},
    )
    assert result.exit_code == 1
    records = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert any(record["message"] == "CLI error: Firmware update is not implemented." for record in records)
    assert all(record["service"] == "ledger_installer" for record in records)


def test_version_option():
    result = invoke(["--version"])
    assert result.exit_code == 0
    assert "ledger-installer" in result.stdout
