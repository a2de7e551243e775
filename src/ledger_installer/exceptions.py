"""
Workflow-level exception hierarchy for the Ledger installer.

Every failure a run can end with is one of these types. Workflows raise them,
the CLI turns them into a one-line message on stderr and a non-zero exit.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class LedgerInstallerError(Exception):
    """Base exception for all installer failures.

    Attributes:
        message: Human-readable, single-line description shown to the operator
        details: Additional context about the error (logged, never printed)
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(LedgerInstallerError):
    """Raised when no command, or an unknown one, was configured."""
    pass


class TransportError(LedgerInstallerError):
    """Raised when the HID channel to the device cannot be opened."""
    pass


class DeviceQueryError(LedgerInstallerError):
    """Raised when fetching device info or the installed app list fails."""
    pass


class GenuineCheckError(LedgerInstallerError):
    """Raised when the genuine check fails or the device is not genuine."""
    pass


class InstallFailure(Enum):
    ALREADY_INSTALLED = "already_installed"
    APP_NOT_FOUND = "app_not_found"
    OTHER = "other"


class UpdateFailure(Enum):
    NOT_INSTALLED = "not_installed"
    APP_NOT_FOUND = "app_not_found"
    ALREADY_LATEST = "already_latest"
    OTHER = "other"


class InstallError(LedgerInstallerError):
    """Raised when installing an application fails.

    ``kind`` tells which of the documented install failures happened.
    """

    def __init__(
        self,
        kind: InstallFailure,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)
        self.kind = kind


class UpdateError(LedgerInstallerError):
    """Raised when updating an application fails."""

    def __init__(
        self,
        kind: UpdateFailure,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)
        self.kind = kind


class OpenError(LedgerInstallerError):
    """Raised when the device refuses to open an application."""
    pass


class UnimplementedError(LedgerInstallerError):
    """Raised by operations that exist in the command set but are not built."""
    pass
