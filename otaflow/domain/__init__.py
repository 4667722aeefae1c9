"""Domain package exports for update values and rules."""

from .events import UpdateEvent
from .identity import DeviceIdentity, HardwareInfo, build_identity_headers
from .manifest import interpret_payload, resolve_image_url
from .update_models import (
    CheckResult,
    CycleResult,
    InstallStep,
    LastResult,
    UpdateManifest,
)

__all__ = [
    "CheckResult",
    "CycleResult",
    "DeviceIdentity",
    "HardwareInfo",
    "InstallStep",
    "LastResult",
    "UpdateEvent",
    "UpdateManifest",
    "build_identity_headers",
    "interpret_payload",
    "resolve_image_url",
]
