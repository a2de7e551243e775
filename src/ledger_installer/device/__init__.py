"""Device layer: HID transport and device-management primitives."""

from ledger_installer.device.apps import AppDescriptor, DeviceInfo, LedgerApp
from ledger_installer.device.manager import DeviceManager, LedgerDeviceManager, build_device_manager
from ledger_installer.device.transport import DeviceSession, open_transport

__all__ = [
    "AppDescriptor",
    "DeviceInfo",
    "DeviceManager",
    "DeviceSession",
    "LedgerApp",
    "LedgerDeviceManager",
    "build_device_manager",
    "open_transport",
]
