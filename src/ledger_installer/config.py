"""
Process configuration for the Ledger installer.

Everything is read once from the environment at startup and frozen into a
``LedgerConfig``. Nothing below the CLI reads ``os.environ`` directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from ledger_installer.exceptions import ConfigurationError

COMMAND_ENV = "LEDGER_COMMAND"
TESTNET_ENV = "LEDGER_TESTNET"
SOLANA_ENV = "LEDGER_SOLANA"

DEFAULT_MANAGER_API_URL = "https://manager.api.live.ledger.com/api"
DEFAULT_SCRIPT_RUNNER_URL = "wss://scriptrunner.api.live.ledger.com/update"
DEFAULT_PROVIDER = 1
DEFAULT_HTTP_TIMEOUT = 30.0
# Seconds. Installs wait on the operator confirming on the device.
DEFAULT_EXCHANGE_TIMEOUT = 300.0
DEFAULT_LOG_LEVEL = "WARNING"


def _parse_number(environ: Mapping[str, str], name: str, default, cast):
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(
            f"Invalid value for {name}: {raw!r}.",
            details={"env": name},
        ) from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}.", details={"env": name})
    return value


@dataclass(frozen=True)
class LedgerConfig:
    """Configuration snapshot for a single run.

    Attributes:
        command: Command keyword, ``None`` when not provided
        testnet: Select the Bitcoin testnet application
        solana: Select the Solana application (wins over ``testnet``)
    """

    command: Optional[str] = None
    testnet: bool = False
    solana: bool = False
    manager_api_url: str = DEFAULT_MANAGER_API_URL
    script_runner_url: str = DEFAULT_SCRIPT_RUNNER_URL
    provider: int = DEFAULT_PROVIDER
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    exchange_timeout: float = DEFAULT_EXCHANGE_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LedgerConfig":
        """Build the configuration from environment variables.

        ``LEDGER_TESTNET`` and ``LEDGER_SOLANA`` are presence flags: any value,
        including an empty one, turns them on.
        """
        if environ is None:
            environ = os.environ
        return cls(
            command=environ.get(COMMAND_ENV),
            testnet=TESTNET_ENV in environ,
            solana=SOLANA_ENV in environ,
            manager_api_url=environ.get("LEDGER_MANAGER_API_URL", DEFAULT_MANAGER_API_URL).rstrip("/"),
            script_runner_url=environ.get("LEDGER_SCRIPT_RUNNER_URL", DEFAULT_SCRIPT_RUNNER_URL).rstrip("/"),
            provider=_parse_number(environ, "LEDGER_PROVIDER", DEFAULT_PROVIDER, int),
            http_timeout=_parse_number(environ, "LEDGER_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT, float),
            exchange_timeout=_parse_number(
                environ, "LEDGER_EXCHANGE_TIMEOUT", DEFAULT_EXCHANGE_TIMEOUT, float
            ),
            log_level=environ.get("LEDGER_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper() or DEFAULT_LOG_LEVEL,
            log_file=environ.get("LEDGER_LOG_FILE") or None,
        )

    def with_overrides(
        self,
        command: Optional[str] = None,
        testnet: bool = False,
        solana: bool = False,
        log_file: Optional[str] = None,
    ) -> "LedgerConfig":
        """Merge command-line options: the keyword replaces, flags add."""
        return replace(
            self,
            command=command if command is not None else self.command,
            testnet=self.testnet or testnet,
            solana=self.solana or solana,
            log_file=log_file or self.log_file,
        )
