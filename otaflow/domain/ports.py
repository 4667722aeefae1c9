from __future__ import annotations

from typing import Callable, Protocol

from otaflow.domain.events import UpdateEvent
from otaflow.domain.identity import DeviceIdentity, HardwareInfo
from otaflow.domain.update_models import ImageKind


# ---- Error model ----
class UseCaseError(Exception):
    """Base class for use case level errors (caller-presentable)."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


EventListener = Callable[[UpdateEvent], None]


# ---- Ports (Hexagonal boundaries) ----
class TransportPort(Protocol):
    """Issue the manifest request against the update server.

    Implementations raise adapter errors (see ``otaflow.adapters.api_errors``)
    for anything other than an HTTP 200 answer.
    """

    def check_configuration(self) -> None: ...  # raises ConfigurationError
    def fetch_manifest(
        self, identity: DeviceIdentity, hardware: HardwareInfo
    ) -> str: ...  # response body of a 200 answer


class InstallerPort(Protocol):
    """Stream one image into its on-device partition, all or nothing."""

    def install(self, kind: ImageKind, url: str) -> int: ...  # bytes written


class SystemPort(Protocol):
    """Host facts sent to the server and the restart hook."""

    def hardware_info(self) -> HardwareInfo: ...
    def restart(self) -> None: ...  # does not return on real hardware
