"""
Command resolution.

Turns a ``LedgerConfig`` into exactly one ``Operation``. This module has no
side effects and never touches the device.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from ledger_installer.config import COMMAND_ENV, SOLANA_ENV, TESTNET_ENV, LedgerConfig
from ledger_installer.exceptions import ConfigurationError

USAGE_MESSAGE = (
    "Invalid or no command specified. The command must be passed through the "
    f"{COMMAND_ENV} env var (getinfo, genuinecheck, installapp, updateapp, openapp, updatefirm). "
    f"Set {TESTNET_ENV} to use the Bitcoin testnet app instead where applicable, "
    f"or {SOLANA_ENV} to use the Solana app."
)


class Target(Enum):
    BITCOIN = "bitcoin"
    SOLANA = "solana"


class Network(Enum):
    MAIN = "main"
    TEST = "test"


@dataclass(frozen=True)
class GetInfo:
    pass


@dataclass(frozen=True)
class GenuineCheck:
    pass


@dataclass(frozen=True)
class Install:
    target: Target
    network: Network = Network.MAIN


@dataclass(frozen=True)
class Update:
    target: Target
    network: Network = Network.MAIN


@dataclass(frozen=True)
class Open:
    target: Target
    network: Network = Network.MAIN


@dataclass(frozen=True)
class UpdateFirmware:
    pass


Operation = Union[GetInfo, GenuineCheck, Install, Update, Open, UpdateFirmware]

_SIMPLE_COMMANDS = {
    "getinfo": GetInfo,
    "genuinecheck": GenuineCheck,
    "updatefirm": UpdateFirmware,
}

_APP_COMMANDS = {
    "installapp": Install,
    "updateapp": Update,
    "openapp": Open,
}


def _select_app(config: LedgerConfig) -> tuple[Target, Network]:
    # Solana has a single network, so it wins over the testnet flag.
    if config.solana:
        return Target.SOLANA, Network.MAIN
    if config.testnet:
        return Target.BITCOIN, Network.TEST
    return Target.BITCOIN, Network.MAIN


def resolve_operation(config: LedgerConfig) -> Operation:
    """Resolve the configured command keyword into an ``Operation``.

    Raises:
        ConfigurationError: If the keyword is missing or unknown
    """
    keyword = config.command
    if keyword in _SIMPLE_COMMANDS:
        return _SIMPLE_COMMANDS[keyword]()
    if keyword in _APP_COMMANDS:
        target, network = _select_app(config)
        return _APP_COMMANDS[keyword](target, network)
    raise ConfigurationError(USAGE_MESSAGE, details={"command": keyword})
