"""
Device-management primitives.

Provides:
- ``DeviceManager`` protocol: the capability surface the workflows call
- ``LedgerDeviceManager``: implementation over a HID ``DeviceSession`` plus
  Ledger's manager API and HSM script runner

Security Note:
    Nothing here verifies signatures or authenticity locally. The genuine
    check and app installs are driven by Ledger's HSM; this module only
    relays APDUs between the HSM and the device.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ledger_installer.config import LedgerConfig
from ledger_installer.device.apps import AppDescriptor, DeviceInfo, LedgerApp, parse_app_list
from ledger_installer.device.errors import (
    AppAlreadyInstalledError,
    AppAlreadyLatestError,
    AppNotFoundError,
    AppNotInstalledError,
    DeviceCommunicationError,
    DeviceManagerError,
    HsmError,
    NotGenuineError,
)
from ledger_installer.device.hsm import ManagerApiClient, ScriptRunner
from ledger_installer.device.transport import DeviceSession

logger = logging.getLogger(__name__)

GET_VERSION_APDU = bytes.fromhex("e001000000")
LIST_APPS_APDU = bytes.fromhex("e0de000000")
LIST_APPS_CONTINUE_APDU = bytes.fromhex("e0df000000")
OPEN_APP_HEADER = bytes.fromhex("e0d80000")
SW_NO_MORE_APPS = 0x6A83
GENUINE_RESULT = "0000"


@runtime_checkable
class DeviceManager(Protocol):
    """
    Capability surface of the device-management layer.

    Every method blocks until the device (and, where involved, the operator
    confirming on it) answers. Failures are raised as
    ``ledger_installer.device.errors.DeviceManagerError`` subclasses.
    """

    def device_info(self) -> DeviceInfo:
        ...

    def list_installed_apps(self) -> List[AppDescriptor]:
        ...

    def genuine_check(self) -> None:
        """
        Raises:
            NotGenuineError: If the HSM does not recognize the device
        """
        ...

    def install_app(self, app: LedgerApp) -> None:
        """
        Raises:
            AppAlreadyInstalledError: If the app is already on the device
            AppNotFoundError: If the catalog has no such app for this device
        """
        ...

    def update_app(self, app: LedgerApp) -> None:
        """
        Raises:
            AppNotInstalledError: If the app is not on the device
            AppNotFoundError: If the catalog has no such app for this device
            AppAlreadyLatestError: If the installed build is the catalog's
        """
        ...

    def open_app(self, app: LedgerApp) -> None:
        ...


class LedgerDeviceManager:
    """Device-management primitives for a Ledger device."""

    def __init__(self, session: DeviceSession, api: ManagerApiClient, runner: ScriptRunner):
        self.session = session
        self.api = api
        self.runner = runner
        self._info: Optional[DeviceInfo] = None
        self._device_version_id: Optional[int] = None
        self._firmware: Optional[Dict[str, Any]] = None

    def device_info(self) -> DeviceInfo:
        if self._info is None:
            data = self.session.exchange(GET_VERSION_APDU)
            try:
                self._info = DeviceInfo.from_apdu(data)
            except ValueError as exc:
                raise DeviceManagerError(str(exc)) from exc
            logger.debug(
                "Device info fetched",
                extra={"event": "device.info", "target_id": self._info.target_id},
            )
        return self._info

    def list_installed_apps(self) -> List[AppDescriptor]:
        apps: List[AppDescriptor] = []
        apdu = LIST_APPS_APDU
        while True:
            try:
                page = self.session.exchange(apdu)
            except DeviceCommunicationError as exc:
                if exc.sw == SW_NO_MORE_APPS:
                    break
                raise
            if not page:
                break
            try:
                apps.extend(parse_app_list(page))
            except ValueError as exc:
                raise DeviceManagerError(str(exc)) from exc
            apdu = LIST_APPS_CONTINUE_APDU
        logger.debug("Installed apps listed", extra={"event": "device.apps", "count": len(apps)})
        return apps

    def _device_ids(self) -> tuple[int, Dict[str, Any]]:
        """Return the catalog's device version id and firmware record."""
        if self._firmware is None:
            info = self.device_info()
            try:
                self._device_version_id = self.api.get_device_version(info.target_id)["id"]
                firmware = self.api.get_firmware_version(self._device_version_id, info.se_version)
            except (KeyError, TypeError) as exc:
                raise HsmError(f"Unknown device in the manager catalog: {exc}") from exc
            if not isinstance(firmware, dict) or "id" not in firmware or "perso" not in firmware:
                raise HsmError(f"Unknown firmware {info.se_version} in the manager catalog")
            self._firmware = firmware
        return self._device_version_id, self._firmware

    def genuine_check(self) -> None:
        info = self.device_info()
        _, firmware = self._device_ids()
        result = self.runner.run(
            "genuine",
            {"targetId": info.target_id, "perso": firmware["perso"]},
        )
        if result != GENUINE_RESULT:
            raise NotGenuineError(f"device is not genuine (result {result!r})")
        logger.info("Genuine check passed", extra={"event": "device.genuine"})

    def _catalog_entry(self, app: LedgerApp) -> Dict[str, Any]:
        device_version_id, firmware = self._device_ids()
        for entry in self.api.get_app_versions(device_version_id, firmware["id"]):
            if entry.get("name") == app.app_name:
                return entry
        raise AppNotFoundError(f"{app.app_name} is not in the manager catalog")

    def _installed(self, app: LedgerApp) -> Optional[AppDescriptor]:
        for installed in self.list_installed_apps():
            if installed.name == app.app_name:
                return installed
        return None

    def _run_install_script(self, entry: Dict[str, Any], firmware_field: str, key_field: str) -> None:
        """Run the install script with the catalog's ``firmware_field``/``key_field`` pair."""
        try:
            params = {
                "targetId": self.device_info().target_id,
                "perso": entry["perso"],
                "deleteKey": entry["delete_key"],
                "firmware": entry[firmware_field],
                "firmwareKey": entry[key_field],
                "hash": entry["hash"],
            }
        except KeyError as exc:
            raise HsmError(f"Catalog entry is missing {exc}") from exc
        empty = sorted(name for name, value in params.items() if value in (None, ""))
        if empty:
            raise HsmError(f"Catalog entry has no value for {', '.join(empty)}")
        self.runner.run("install", params)

    def install_app(self, app: LedgerApp) -> None:
        entry = self._catalog_entry(app)
        if self._installed(app) is not None:
            raise AppAlreadyInstalledError(f"{app.app_name} is already installed")
        self._run_install_script(entry, "firmware", "firmware_key")
        logger.info("App installed", extra={"event": "app.install", "app": app.app_name})

    def update_app(self, app: LedgerApp) -> None:
        entry = self._catalog_entry(app)
        installed = self._installed(app)
        if installed is None:
            raise AppNotInstalledError(f"{app.app_name} is not installed")
        if installed.hash == entry.get("hash"):
            raise AppAlreadyLatestError(f"{app.app_name} is already at version {entry.get('version')}")
        # The OS has no in-place upgrade: uninstall, then install the new build.
        self._run_install_script(entry, "delete", "delete_key")
        self._run_install_script(entry, "firmware", "firmware_key")
        logger.info(
            "App updated",
            extra={"event": "app.update", "app": app.app_name, "version": entry.get("version")},
        )

    def open_app(self, app: LedgerApp) -> None:
        name = app.app_name.encode("ascii")
        self.session.exchange(OPEN_APP_HEADER + len(name).to_bytes(1, "big") + name)


def build_device_manager(session: DeviceSession, config: LedgerConfig) -> LedgerDeviceManager:
    api = ManagerApiClient(config.manager_api_url, provider=config.provider, timeout=config.http_timeout)
    runner = ScriptRunner(config.script_runner_url, session)
    return LedgerDeviceManager(session, api, runner)
