from __future__ import annotations

from otaflow.domain.events import UpdateEvent
from otaflow.domain.identity import (
    DeviceIdentity,
    HardwareInfo,
    build_identity_headers,
    ota_space,
)


def test_identity_headers_carry_all_device_fields() -> None:
    identity = DeviceIdentity(
        server="http://u.example/ota",
        device="SONOFF",
        version="1.0.0",
        build="b42",
        is_core=True,
    )
    hardware = HardwareInfo(mac="AA:BB:CC:DD:EE:FF", chip_id=0xDDEEFF, chip_size=4194304, ota_size=1044480)

    headers = build_identity_headers(identity, hardware)

    assert headers == {
        "X-DEVICE-MAC": "AA:BB:CC:DD:EE:FF",
        "X-DEVICE-CLASS": "SONOFF",
        "X-DEVICE-VERSION": "1.0.0",
        "X-DEVICE-BUILD": "b42",
        "X-DEVICE-COREBUILD": "1",
        "X-DEVICE-CHIPID": str(0xDDEEFF),
        "X-DEVICE-CHIPSIZE": "4194304",
        "X-DEVICE-OTASIZE": "1044480",
    }


def test_corebuild_header_is_zero_for_regular_firmware() -> None:
    identity = DeviceIdentity(server="http://s", device="d", version="1")
    hardware = HardwareInfo(mac="m", chip_id=1, chip_size=2, ota_size=3)

    assert build_identity_headers(identity, hardware)["X-DEVICE-COREBUILD"] == "0"


def test_ota_space_rounds_down_and_reserves_a_sector() -> None:
    assert ota_space(0x100000) == 0xFF000
    assert ota_space(0x100800) == 0xFF000
    assert ota_space(0x2000) == 0x1000


def test_ota_space_never_goes_negative() -> None:
    assert ota_space(0) == 0
    assert ota_space(0x0FFF) == 0


def test_error_events_are_flagged() -> None:
    assert UpdateEvent.PARSE_ERROR.is_error
    assert UpdateEvent.CONFIGURATION_ERROR.is_error
    assert not UpdateEvent.UP_TO_DATE.is_error
    assert not UpdateEvent.END.is_error


def test_ota_space_handles_large_disks() -> None:
    assert ota_space(0x1_0000_0800) == 0xFFFFF000
