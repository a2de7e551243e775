"""Tests for device info and application list parsing."""

import pytest

from ledger_installer.commands import Network, Target
from ledger_installer.device.apps import DeviceInfo, LedgerApp, parse_app_list


def _lv(value: bytes) -> bytes:
    return len(value).to_bytes(1, "big") + value


def build_version_response(target_id=0x33000004, se="2.2.3", flags=b"\x00\x00\x00\x00", mcu=b"2.30\x00"):
    return target_id.to_bytes(4, "big") + _lv(se.encode()) + _lv(flags) + _lv(mcu)


def build_app_entry(name: str, flags: int = 0x0800, code_hash: bytes = b"\x01" * 32, full_hash: bytes = b"\x02" * 32):
    body = (
        (12).to_bytes(2, "big")
        + flags.to_bytes(2, "big")
        + code_hash
        + full_hash
        + _lv(name.encode())
    )
    return (len(body) + 1).to_bytes(1, "big") + body


def test_device_info_parses_version_response():
    info = DeviceInfo.from_apdu(build_version_response())
    assert info.target_id == 0x33000004
    assert info.se_version == "2.2.3"
    assert info.flags == b"\x00\x00\x00\x00"
    assert info.mcu_version == "2.30"


def test_device_info_rows_are_printable():
    rows = dict(DeviceInfo.from_apdu(build_version_response()).as_rows())
    assert rows["Target ID"] == "0x33000004"
    assert rows["SE version"] == "2.2.3"


@pytest.mark.parametrize("payload", [b"", b"\x33\x00\x00\x04", b"\x33\x00\x00\x04\x05ab"])
def test_device_info_rejects_truncated_response(payload):
    with pytest.raises(ValueError):
        DeviceInfo.from_apdu(payload)


def test_parse_app_list_reads_every_entry():
    page = b"\x01" + build_app_entry("Bitcoin") + build_app_entry("Solana", full_hash=b"\x03" * 32)
    apps = parse_app_list(page)
    assert [app.name for app in apps] == ["Bitcoin", "Solana"]
    assert apps[0].flags == 0x0800
    assert apps[0].code_hash == "01" * 32
    assert apps[1].hash == "03" * 32


def test_parse_app_list_empty_page():
    assert parse_app_list(b"\x01") == []


def test_parse_app_list_rejects_truncated_entry():
    page = b"\x01" + build_app_entry("Bitcoin")[:40]
    with pytest.raises(ValueError):
        parse_app_list(page)


@pytest.mark.parametrize(
    "target, network, expected",
    [
        (Target.BITCOIN, Network.MAIN, LedgerApp.BITCOIN),
        (Target.BITCOIN, Network.TEST, LedgerApp.BITCOIN_TESTNET),
        (Target.SOLANA, Network.MAIN, LedgerApp.SOLANA),
        (Target.SOLANA, Network.TEST, LedgerApp.SOLANA),
    ],
)
def test_app_selection_uses_network_for_bitcoin_only(target, network, expected):
    assert LedgerApp.for_target(target, network) is expected


def test_catalog_names():
    assert LedgerApp.BITCOIN.app_name == "Bitcoin"
    assert LedgerApp.BITCOIN_TESTNET.app_name == "Bitcoin Test"
    assert LedgerApp.SOLANA.app_name == "Solana"
