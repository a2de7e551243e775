"""
HID transport to a Ledger device.

Thin wrapper over ``ledgerblue``: it claims the first Ledger dongle found on
the USB bus and exposes raw APDU exchange for the device-management
primitives. Exactly one session exists per run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ledger_installer.config import DEFAULT_EXCHANGE_TIMEOUT
from ledger_installer.device.errors import DeviceCommunicationError
from ledger_installer.exceptions import TransportError

logger = logging.getLogger(__name__)


@dataclass
class DeviceSession:
    """Live binding to one dongle.

    All primitives borrow the session; it is closed once, when the run ends.
    """

    dongle: object
    # Seconds: ledgerblue compares it against time.time() deltas.
    timeout: float = DEFAULT_EXCHANGE_TIMEOUT
    _closed: bool = field(default=False, repr=False)

    def exchange(self, apdu: bytes) -> bytes:
        """Send an APDU and return the response data without the status word.

        Raises:
            DeviceCommunicationError: On a non-0x9000 status or an HID failure
        """
        from ledgerblue.commException import CommException

        logger.debug("APDU => %s", apdu.hex())
        try:
            response = self.dongle.exchange(bytearray(apdu), timeout=self.timeout)
        except CommException as exc:
            logger.debug("APDU <= status 0x%04x", exc.sw)
            raise DeviceCommunicationError(
                f"{exc.message} (status 0x{exc.sw:04x})", sw=exc.sw, data=bytes(exc.data or b"")
            ) from exc
        except (KeyboardInterrupt, SystemExit):
            raise
        except BaseException as exc:
            # ledgerblue raises a bare BaseException when an HID write fails.
            raise DeviceCommunicationError(f"HID communication failure: {exc}") from exc
        logger.debug("APDU <= %s", bytes(response).hex())
        return bytes(response)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.dongle.close()
        except Exception as exc:  # pragma: no cover - best effort on teardown
            logger.warning("Error closing Ledger transport: %s", exc)

    def __enter__(self) -> "DeviceSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_transport(timeout: float = DEFAULT_EXCHANGE_TIMEOUT) -> DeviceSession:
    """Enumerate HID devices and claim the Ledger.

    Raises:
        TransportError: If the HID backend cannot be initialized or no Ledger
            device could be opened
    """
    try:
        import hid  # noqa: F401  (HID backend used by ledgerblue)
        from ledgerblue.comm import getDongle
    except (ImportError, OSError) as exc:
        raise TransportError(f"Error initializing HID api: {exc}.") from exc

    from ledgerblue.commException import CommException

    try:
        dongle = getDongle(False)
    except (CommException, OSError) as exc:
        raise TransportError(f"Error connecting to Ledger device: {exc}.") from exc

    logger.info("Ledger transport opened", extra={"event": "transport.open"})
    return DeviceSession(dongle=dongle, timeout=timeout)
