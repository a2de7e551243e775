"""
Per-operation workflows.

Each workflow is a short, fixed sequence of device-management calls. Any
failure is raised as a ``LedgerInstallerError`` with the message the operator
will see; nothing here exits the process or retries.
"""

from __future__ import annotations

import logging

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ledger_installer.commands import (
    GenuineCheck,
    GetInfo,
    Install,
    Open,
    Operation,
    Target,
    Update,
    UpdateFirmware,
)
from ledger_installer.device.apps import LedgerApp
from ledger_installer.device.errors import (
    AppAlreadyInstalledError,
    AppAlreadyLatestError,
    AppNotFoundError,
    AppNotInstalledError,
    DeviceManagerError,
)
from ledger_installer.device.manager import DeviceManager
from ledger_installer.exceptions import (
    DeviceQueryError,
    GenuineCheckError,
    InstallError,
    InstallFailure,
    OpenError,
    UnimplementedError,
    UpdateError,
    UpdateFailure,
)

logger = logging.getLogger(__name__)

MANAGER_CONFIRMATION_NOTICE = (
    "You may have to allow on your device 1) listing installed apps "
    "2) the Ledger manager to install the app."
)
FIRMWARE_UPDATE_MESSAGE = "Firmware update is not implemented."

_DISPLAY_NAMES = {
    Target.BITCOIN: "Bitcoin",
    Target.SOLANA: "Solana",
}


def _success_suffix(target: Target) -> str:
    return "the Solana app" if target is Target.SOLANA else "the app"


def show_device_info(manager: DeviceManager, console: Console) -> None:
    try:
        info = manager.device_info()
    except DeviceManagerError as exc:
        raise DeviceQueryError(f"Error fetching device info: {exc}") from exc

    table = Table(title="Information about the device", show_header=False, box=box.ROUNDED)
    for label, value in info.as_rows():
        table.add_row(f"[bold cyan]{label}", escape(value))
    console.print(table)

    console.print(
        "Querying installed applications from your Ledger. You might have to confirm on your device."
    )
    try:
        apps = manager.list_installed_apps()
    except DeviceManagerError as exc:
        raise DeviceQueryError(f"Error listing installed applications: {exc}.") from exc

    console.print("Installed applications:")
    for app in apps:
        console.print(f"  - {escape(str(app))}")


def perform_genuine_check(manager: DeviceManager, console: Console) -> None:
    console.print(
        "Querying Ledger's remote HSM to perform the genuine check. "
        "You might have to confirm the operation on your device."
    )
    try:
        manager.genuine_check()
    except DeviceManagerError as exc:
        raise GenuineCheckError(f"Error when performing genuine check: {exc}") from exc
    console.print("[bold green]Success.[/] Your Ledger is genuine.")


def install(manager: DeviceManager, operation: Install, console: Console) -> None:
    name = _DISPLAY_NAMES[operation.target]
    app = LedgerApp.for_target(operation.target, operation.network)
    console.print(MANAGER_CONFIRMATION_NOTICE)
    try:
        manager.install_app(app)
    except AppAlreadyInstalledError as exc:
        raise InstallError(
            InstallFailure.ALREADY_INSTALLED,
            f"{name} app already installed. Use the update command to update it.",
        ) from exc
    except AppNotFoundError as exc:
        raise InstallError(InstallFailure.APP_NOT_FOUND, f"Could not get info about {name} app.") from exc
    except DeviceManagerError as exc:
        raise InstallError(InstallFailure.OTHER, f"Error installing {name} app: {exc}.") from exc
    console.print(f"Successfully installed {_success_suffix(operation.target)}.")


def update(manager: DeviceManager, operation: Update, console: Console) -> None:
    name = _DISPLAY_NAMES[operation.target]
    app = LedgerApp.for_target(operation.target, operation.network)
    console.print(MANAGER_CONFIRMATION_NOTICE)
    try:
        manager.update_app(app)
    except AppNotInstalledError as exc:
        raise UpdateError(
            UpdateFailure.NOT_INSTALLED,
            f"{name} app isn't installed. Use the install command instead.",
        ) from exc
    except AppNotFoundError as exc:
        raise UpdateError(UpdateFailure.APP_NOT_FOUND, f"Could not get info about {name} app.") from exc
    except AppAlreadyLatestError as exc:
        raise UpdateError(
            UpdateFailure.ALREADY_LATEST, f"{name} app is already at the latest version."
        ) from exc
    except DeviceManagerError as exc:
        raise UpdateError(UpdateFailure.OTHER, f"Error updating {name} app: {exc}.") from exc
    console.print(f"Successfully updated {_success_suffix(operation.target)}.")


def open_application(manager: DeviceManager, operation: Open) -> None:
    name = _DISPLAY_NAMES[operation.target]
    app = LedgerApp.for_target(operation.target, operation.network)
    try:
        manager.open_app(app)
    except DeviceManagerError as exc:
        raise OpenError(f"Error opening {name} app: {exc}") from exc


def update_firmware() -> None:
    raise UnimplementedError(FIRMWARE_UPDATE_MESSAGE)


def run_operation(operation: Operation, manager: DeviceManager, console: Console) -> None:
    """Run the workflow matching ``operation`` against an open device."""
    logger.info("Running workflow", extra={"event": "workflow.start", "operation": repr(operation)})
    if isinstance(operation, GetInfo):
        show_device_info(manager, console)
    elif isinstance(operation, GenuineCheck):
        perform_genuine_check(manager, console)
    elif isinstance(operation, Install):
        install(manager, operation, console)
    elif isinstance(operation, Update):
        update(manager, operation, console)
    elif isinstance(operation, Open):
        open_application(manager, operation)
    elif isinstance(operation, UpdateFirmware):
        update_firmware()
    else:
        raise TypeError(f"Unknown operation: {operation!r}")
    logger.info("Workflow completed", extra={"event": "workflow.done", "operation": repr(operation)})
