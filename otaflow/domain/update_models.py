"""Typed domain objects for update check/apply cycles."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Optional

from otaflow.domain.events import UpdateEvent


ImageKind = Literal["filesystem", "firmware"]
CheckStatus = Literal["no_response", "parse_error", "up_to_date", "update_available"]
InstallOutcome = Literal["not_requested", "installed", "failed", "skipped"]


@dataclass(frozen=True)
class UpdateManifest:
    """Images the server announced for this device.

    An empty ``firmware``/``filesystem`` means "nothing to install" for that
    partition.
    """

    version: str = ""
    firmware: str = ""
    filesystem: Optional[str] = None

    @property
    def has_images(self) -> bool:
        return bool(self.firmware) or bool(self.filesystem)


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one manifest fetch + interpretation."""

    status: CheckStatus
    manifest: Optional[UpdateManifest] = None
    error_number: int = 0
    error_string: str = ""

    @property
    def update_available(self) -> bool:
        return self.status == "update_available" and self.manifest is not None


@dataclass(frozen=True)
class InstallStep:
    """Result of one image install attempt."""

    kind: ImageKind
    url: str
    outcome: InstallOutcome
    bytes_written: int = 0
    error_number: int = 0
    error_string: str = ""


@dataclass
class CycleResult:
    """Per-cycle aggregate, created at cycle start and mutated by the client.

    Attributes:
        check: Manifest check outcome, ``None`` when the cycle never fetched.
        manifest: Manifest seen this cycle when an update was available.
        filesystem_outcome: What happened to the filesystem image.
        firmware_outcome: What happened to the firmware image.
        updates_applied: Number of images installed successfully.
        fatal_error: Short description of the failure that ended the cycle.
        error_number: Numeric code recorded for that failure.
        restart_requested: Whether the client asked the system to restart.
        events: Events emitted during the cycle, in order.
    """

    check: Optional[CheckStatus] = None
    manifest: Optional[UpdateManifest] = None
    filesystem_outcome: InstallOutcome = "not_requested"
    firmware_outcome: InstallOutcome = "not_requested"
    updates_applied: int = 0
    fatal_error: Optional[str] = None
    error_number: int = 0
    restart_requested: bool = False
    events: List[UpdateEvent] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Return whether the cycle finished without an error event or fatal error."""
        if self.fatal_error:
            return False
        return not any(event.is_error for event in self.events)


@dataclass(frozen=True)
class LastResult:
    """Caller-visible state that survives until the next cycle overwrites it."""

    new_version: str = ""
    new_firmware: str = ""
    new_filesystem: str = ""
    error_number: int = 0
    error_string: str = ""


__all__ = [
    "CheckResult",
    "CheckStatus",
    "CycleResult",
    "ImageKind",
    "InstallOutcome",
    "InstallStep",
    "LastResult",
    "UpdateManifest",
]
