"""
Test configuration and fixtures
"""
import sys
from pathlib import Path

# Add project root and src to Python path
project_root = Path(__file__).parent.parent
src_path = project_root / "src"

sys.path.insert(0, str(project_root))
sys.path.insert(0, str(src_path))

import pytest

from ledger_installer.device.apps import AppDescriptor, DeviceInfo

LEDGER_ENV_VARS = (
    "LEDGER_COMMAND",
    "LEDGER_TESTNET",
    "LEDGER_SOLANA",
    "LEDGER_MANAGER_API_URL",
    "LEDGER_SCRIPT_RUNNER_URL",
    "LEDGER_PROVIDER",
    "LEDGER_HTTP_TIMEOUT",
    "LEDGER_EXCHANGE_TIMEOUT",
    "LEDGER_LOG_LEVEL",
    "LEDGER_LOG_FILE",
)


class FakeDeviceManager:
    """
    In-memory device manager for TESTING ONLY.

    Records every primitive call in ``calls``. A primitive raises the
    exception registered for it in ``failures``.
    """

    def __init__(self, failures=None, apps=None):
        self.failures = failures or {}
        self.apps = apps if apps is not None else [
            AppDescriptor(name="Bitcoin", flags=0, code_hash="aa" * 32, hash="bb" * 32),
        ]
        self.calls = []

    def _call(self, name, *args):
        self.calls.append((name, *args))
        if name in self.failures:
            raise self.failures[name]

    def device_info(self):
        self._call("device_info")
        return DeviceInfo(target_id=0x33000004, se_version="2.2.3", flags=b"\x00", mcu_version="2.30")

    def list_installed_apps(self):
        self._call("list_installed_apps")
        return list(self.apps)

    def genuine_check(self):
        self._call("genuine_check")

    def install_app(self, app):
        self._call("install_app", app)

    def update_app(self, app):
        self._call("update_app", app)

    def open_app(self, app):
        self._call("open_app", app)


@pytest.fixture(autouse=True)
def clean_ledger_env(monkeypatch):
    """Keep LEDGER_* variables from the host out of every test."""
    for name in LEDGER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_manager():
    return FakeDeviceManager()
