"""Use case installing a manifest's images, filesystem strictly first."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from otaflow.domain.manifest import resolve_image_url
from otaflow.domain.ports import InstallerPort
from otaflow.domain.update_models import (
    ImageKind,
    InstallOutcome,
    InstallStep,
    UpdateManifest,
)
from otaflow.usecases.error_mapping import error_details

log = logging.getLogger(__name__)

StepHook = Callable[[InstallStep], None]


def _noop(*_: object, **__: object) -> None:
    """Default no-op step hook."""


@dataclass
class ApplyUpdateResult:
    """Install steps in execution order."""

    steps: List[InstallStep] = field(default_factory=list)

    @property
    def updates_applied(self) -> int:
        return sum(1 for step in self.steps if step.outcome == "installed")

    @property
    def failed(self) -> bool:
        return any(step.outcome == "failed" for step in self.steps)

    def outcome(self, kind: ImageKind) -> InstallOutcome:
        for step in self.steps:
            if step.kind == kind:
                return step.outcome
        return "not_requested"


@dataclass
class ApplyUpdate:
    """Use-case callable for the filesystem-then-firmware install sequence.

    Attributes:
        installer_port: Writes one image into its partition.
    """

    installer_port: InstallerPort

    def __call__(
        self,
        *,
        server: str,
        manifest: UpdateManifest,
        on_step: Optional[StepHook] = None,
    ) -> ApplyUpdateResult:
        """Install the manifest's images.

        Args:
            server: Update server base URL, used for relative references.
            manifest: Images announced by the server.
            on_step: Called after every step, before the next one starts.

        Returns:
            ApplyUpdateResult: One entry per image reference in the manifest.

        Call Chain:
            ``UpdateClient.handle`` -> ``ApplyUpdate.__call__`` ->
            ``InstallerPort.install``.
        """
        hook = on_step or _noop
        result = ApplyUpdateResult()
        plan = (("filesystem", manifest.filesystem or ""), ("firmware", manifest.firmware or ""))
        for kind, reference in plan:
            if not reference:
                continue
            url = resolve_image_url(server, reference)
            if result.failed:
                # A failed filesystem image leaves the firmware untouched.
                step = InstallStep(kind=kind, url=url, outcome="skipped")
                log.info("Skipping %s image after an earlier failure", kind)
            else:
                step = self._install(kind, url)
            result.steps.append(step)
            hook(step)
        return result

    def _install(self, kind: ImageKind, url: str) -> InstallStep:
        try:
            written = self.installer_port.install(kind, url)
        except Exception as exc:
            number, message = error_details(exc)
            log.warning("Installing %s image from %s failed [%s]: %s", kind, url, number, message)
            return InstallStep(
                kind=kind,
                url=url,
                outcome="failed",
                error_number=number,
                error_string=message,
            )
        return InstallStep(kind=kind, url=url, outcome="installed", bytes_written=int(written or 0))


__all__ = ["ApplyUpdate", "ApplyUpdateResult"]
