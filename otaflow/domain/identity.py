"""Device identity values and the request headers derived from them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

SECTOR_SIZE = 0x1000
_SECTOR_MASK = ~(SECTOR_SIZE - 1)


@dataclass(frozen=True)
class DeviceIdentity:
    """What the device tells the update server about itself.

    Attributes:
        server: Base URL of the update server; also the manifest endpoint.
        device: Device class identifier the server keys manifests on.
        version: Currently running firmware version.
        build: Currently running build identifier.
        is_core: Core firmware accepts updates even without auto-update.
    """

    server: str
    device: str
    version: str
    build: str = ""
    is_core: bool = False


@dataclass(frozen=True)
class HardwareInfo:
    """Hardware identification reported with each manifest request."""

    mac: str
    chip_id: int
    chip_size: int
    ota_size: int


def ota_space(free_bytes: int) -> int:
    """Round free image space down to whole sectors, keeping one in reserve."""
    return max(0, int(free_bytes) - SECTOR_SIZE) & _SECTOR_MASK


def build_identity_headers(identity: DeviceIdentity, hardware: HardwareInfo) -> Dict[str, str]:
    """Return the ``X-DEVICE-*`` headers for one manifest request."""
    return {
        "X-DEVICE-MAC": hardware.mac,
        "X-DEVICE-CLASS": identity.device,
        "X-DEVICE-VERSION": identity.version,
        "X-DEVICE-BUILD": identity.build,
        "X-DEVICE-COREBUILD": "1" if identity.is_core else "0",
        "X-DEVICE-CHIPID": str(hardware.chip_id),
        "X-DEVICE-CHIPSIZE": str(hardware.chip_size),
        "X-DEVICE-OTASIZE": str(hardware.ota_size),
    }


__all__ = [
    "DeviceIdentity",
    "HardwareInfo",
    "SECTOR_SIZE",
    "build_identity_headers",
    "ota_space",
]
