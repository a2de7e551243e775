"""
Device and application models, and the parsers for the APDU payloads that
describe them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List

from ledger_installer.commands import Network, Target


class LedgerApp(Enum):
    """On-device applications this tool manages, keyed by their catalog name."""

    BITCOIN = "Bitcoin"
    BITCOIN_TESTNET = "Bitcoin Test"
    SOLANA = "Solana"

    @property
    def app_name(self) -> str:
        return self.value

    @classmethod
    def for_target(cls, target: Target, network: Network) -> "LedgerApp":
        if target is Target.SOLANA:
            return cls.SOLANA
        return cls.BITCOIN_TESTNET if network is Network.TEST else cls.BITCOIN


@dataclass(frozen=True)
class DeviceInfo:
    """What the device reports about itself in answer to the get-version APDU."""

    target_id: int
    se_version: str
    flags: bytes
    mcu_version: str

    @classmethod
    def from_apdu(cls, data: bytes) -> "DeviceInfo":
        """Parse ``target_id(4) | len | se_version | len | flags | len | mcu_version``."""
        try:
            target_id = int.from_bytes(data[0:4], "big")
            offset = 4
            se_len = data[offset]
            se_version = data[offset + 1 : offset + 1 + se_len].decode("ascii")
            offset += 1 + se_len
            flags_len = data[offset]
            flags = bytes(data[offset + 1 : offset + 1 + flags_len])
            offset += 1 + flags_len
            mcu_len = data[offset]
            mcu_version = data[offset + 1 : offset + 1 + mcu_len].rstrip(b"\x00").decode("ascii")
        except (IndexError, UnicodeDecodeError) as exc:
            raise ValueError(f"Malformed device info response ({len(data)} bytes)") from exc
        return cls(target_id=target_id, se_version=se_version, flags=flags, mcu_version=mcu_version)

    def as_rows(self) -> List[tuple[str, str]]:
        return [
            ("Target ID", f"0x{self.target_id:08x}"),
            ("SE version", self.se_version),
            ("MCU version", self.mcu_version),
            ("Flags", self.flags.hex() or "-"),
        ]


@dataclass(frozen=True)
class AppDescriptor:
    """An application installed on the device."""

    name: str
    flags: int
    code_hash: str
    hash: str

    def __str__(self) -> str:
        return f"{self.name} (hash {self.hash[:16]}...)"


def parse_app_list(data: bytes) -> List[AppDescriptor]:
    """Parse one page of the list-apps answer.

    The first byte is the format version; each entry is
    ``len | blocks(2) | flags(2) | code_hash(32) | hash(32) | name_len | name``.
    """
    apps: List[AppDescriptor] = []
    offset = 1
    try:
        while offset < len(data):
            cursor = offset + 1 + 2  # entry length, block count
            flags = int.from_bytes(data[cursor : cursor + 2], "big")
            cursor += 2
            code_hash = bytes(data[cursor : cursor + 32]).hex()
            cursor += 32
            full_hash = bytes(data[cursor : cursor + 32]).hex()
            cursor += 32
            name_len = data[cursor]
            name = bytes(data[cursor + 1 : cursor + 1 + name_len]).decode("ascii")
            apps.append(AppDescriptor(name=name, flags=flags, code_hash=code_hash, hash=full_hash))
            offset = cursor + 1 + name_len
    except (IndexError, UnicodeDecodeError) as exc:
        raise ValueError("Malformed application list response") from exc
    return apps
