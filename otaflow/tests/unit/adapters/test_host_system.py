from __future__ import annotations

import sys
from collections import namedtuple
from pathlib import Path

import pytest

from otaflow.adapters import host_system
from otaflow.adapters.host_system import HostSystem, format_mac

_Usage = namedtuple("_Usage", "total used free")


def test_format_mac_pads_and_uppercases() -> None:
    assert format_mac(0x0A0B0C0D0E0F) == "0A:0B:0C:0D:0E:0F"
    assert format_mac(0x1) == "00:00:00:00:00:01"


def test_hardware_info_reports_node_and_disk(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(host_system.uuid, "getnode", lambda: 0xA4CF12345678)
    seen = {}

    def fake_usage(path):
        seen["path"] = Path(path)
        return _Usage(total=4 * 1024 * 1024, used=0, free=0x100800)

    monkeypatch.setattr(host_system.psutil, "disk_usage", fake_usage)

    info = HostSystem(tmp_path / "missing" / "deeper").hardware_info()

    assert info.mac == "A4:CF:12:34:56:78"
    assert info.chip_id == 0x345678
    assert info.chip_size == 4 * 1024 * 1024
    assert info.ota_size == 0xFF000
    # Falls back to the closest existing directory.
    assert seen["path"] == tmp_path


def test_mac_override_wins(tmp_path: Path) -> None:
    info = HostSystem(tmp_path, mac="02:00:00:00:00:01").hardware_info()

    assert info.mac == "02:00:00:00:00:01"


def test_restart_reexecutes_interpreter(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls = []
    monkeypatch.setattr(host_system.os, "execv", lambda exe, args: calls.append((exe, args)))

    HostSystem(tmp_path, argv=["-m", "otaflow", "--loop"]).restart()

    assert calls == [(sys.executable, [sys.executable, "-m", "otaflow", "--loop"])]
