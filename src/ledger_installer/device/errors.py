"""
Errors raised by the device-management primitives.

``DeviceManagerError`` is the catch-all; the subclasses are the outcomes the
workflows report with a dedicated message.
"""

from __future__ import annotations


class DeviceManagerError(Exception):
    """Base class for failures of a device-management primitive."""
    pass


class DeviceCommunicationError(DeviceManagerError):
    """An APDU exchange with the device failed (bad status word, HID error)."""

    def __init__(self, message: str, sw: int | None = None, data: bytes = b"") -> None:
        super().__init__(message)
        self.sw = sw
        self.data = data


class HsmError(DeviceManagerError):
    """Ledger's manager API or script runner returned an error or was unreachable."""
    pass


class NotGenuineError(DeviceManagerError):
    """The HSM answered the genuine check with a non-genuine result."""
    pass


class AppAlreadyInstalledError(DeviceManagerError):
    pass


class AppNotInstalledError(DeviceManagerError):
    pass


class AppNotFoundError(DeviceManagerError):
    """The application is not in the manager catalog for this device/firmware."""
    pass


class AppAlreadyLatestError(DeviceManagerError):
    pass
