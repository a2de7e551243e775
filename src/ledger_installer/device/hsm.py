"""
Clients for Ledger's remote manager services.

- ``ManagerApiClient``: HTTP catalog of device versions, firmwares and apps
- ``ScriptRunner``: websocket relay that lets Ledger's HSM drive the device
  (genuine check, app install and uninstall) by asking us to forward APDUs
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import requests
from websockets.exceptions import WebSocketException
from websockets.sync.client import connect

from ledger_installer.device.errors import DeviceCommunicationError, HsmError
from ledger_installer.device.transport import DeviceSession

logger = logging.getLogger(__name__)

SW_OK = "9000"


class ManagerApiClient:
    """Client for the manager HTTP API."""

    def __init__(self, base_url: str, provider: int = 1, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.provider = provider
        self.timeout = timeout

    def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        """Make HTTP request to the manager API."""
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        logger.debug("Manager API request: %s %s", method, url)
        try:
            response = requests.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            logger.debug("Manager API response: status=%d", response.status_code)
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error("Manager API error: %s", e)
            raise HsmError(f"Manager API error: {e}") from e
        except ValueError as e:
            raise HsmError(f"Manager API returned invalid JSON: {e}") from e

    def get_device_version(self, target_id: int) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/get_device_version",
            json={"provider": self.provider, "target_id": target_id},
        )

    def get_firmware_version(self, device_version_id: int, se_version: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/get_firmware_version",
            json={
                "device_version": device_version_id,
                "version_name": se_version,
                "provider": self.provider,
            },
        )

    def get_app_versions(self, device_version_id: int, firmware_id: int) -> List[Dict[str, Any]]:
        """List the application versions available for this device and firmware."""
        data = self._request(
            "POST",
            "/get_apps",
            json={
                "provider": self.provider,
                "current_se_firmware_final_version": firmware_id,
                "device_version": device_version_id,
            },
        )
        if not isinstance(data, dict) or "application_versions" not in data:
            raise HsmError("Manager API returned no application versions")
        return list(data["application_versions"] or [])


class ScriptRunner:
    """Relay between the HSM script runner and the device.

    The server sends JSON messages ``{"nonce", "query", "data"}``:

    - ``exchange``: forward one APDU, answer with its response
    - ``bulk``: forward a list of APDUs, answer once with the last response
    - ``success``: the script finished; ``result`` (or ``data``) holds the outcome
    - ``error``: the script failed; ``data`` holds the reason
    """

    def __init__(self, base_url: str, session: DeviceSession):
        self.base_url = base_url.rstrip("/")
        self.session = session

    def run(self, script: str, params: Dict[str, Any]) -> Optional[str]:
        """Run a script to completion and return its result payload, if any."""
        url = f"{self.base_url}/{script}?{urlencode(params)}"
        logger.info("Running HSM script", extra={"event": "hsm.script", "script": script})
        try:
            with connect(url) as websocket:
                while True:
                    message = json.loads(websocket.recv())
                    query = message.get("query")
                    if query == "success":
                        return message.get("result") or message.get("data")
                    if query == "error":
                        raise HsmError(f"HSM script '{script}' failed: {message.get('data')}")
                    if query == "exchange":
                        reply = self._exchange(message["nonce"], message["data"])
                    elif query == "bulk":
                        reply = self._bulk(message["nonce"], message["data"])
                    else:
                        raise HsmError(f"Unexpected HSM query: {query!r}")
                    websocket.send(json.dumps(reply))
        except (WebSocketException, OSError) as e:
            logger.error("Script runner connection error: %s", e)
            raise HsmError(f"Script runner connection error: {e}") from e
        except (ValueError, KeyError) as e:
            raise HsmError(f"Malformed script runner message: {e}") from e

    def _exchange(self, nonce: Any, apdu_hex: str) -> Dict[str, Any]:
        # The HSM reads the status word, so it is put back after the data.
        try:
            data = self.session.exchange(bytes.fromhex(apdu_hex))
        except DeviceCommunicationError as e:
            if e.sw is None:
                raise HsmError(f"Device stopped answering: {e}") from e
            logger.debug("Relayed APDU failed: %s", e)
            return {"nonce": nonce, "response": "error", "data": e.data.hex() + f"{e.sw:04x}"}
        return {"nonce": nonce, "response": "success", "data": data.hex() + SW_OK}

    def _bulk(self, nonce: Any, apdus: List[str]) -> Dict[str, Any]:
        last = b""
        for apdu_hex in apdus:
            try:
                last = self.session.exchange(bytes.fromhex(apdu_hex))
            except DeviceCommunicationError as e:
                raise HsmError(f"Device rejected a bulk APDU: {e}") from e
        return {"nonce": nonce, "response": "success", "data": last.hex() + SW_OK}
