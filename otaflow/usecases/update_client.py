"""Update cycle coordinator: check, decide, install, restart.

One call to ``UpdateClient.handle`` is one cycle::

    Start -> Checking -> NotNeeded                      -> End
                      -> Evaluating -> Updating -> Reset (restart)
                                                -> End

Events are delivered synchronously to the ``on_event`` listener in cycle
order. ``START`` is always first and ``END`` always last, except when the
transport configuration is unusable (a lone ``CONFIGURATION_ERROR``).
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from otaflow.adapters.api_errors import ConfigurationError
from otaflow.domain.events import UpdateEvent
from otaflow.domain.identity import DeviceIdentity
from otaflow.domain.ports import (
    EventListener,
    InstallerPort,
    SystemPort,
    TransportPort,
    UseCaseError,
)
from otaflow.domain.update_models import (
    CheckResult,
    CycleResult,
    InstallStep,
    LastResult,
    UpdateManifest,
)
from otaflow.usecases.apply_update import ApplyUpdate
from otaflow.usecases.check_for_update import CheckForUpdate
from otaflow.usecases.error_mapping import error_details

log = logging.getLogger(__name__)

_CHECK_EVENTS = {
    "no_response": UpdateEvent.NO_RESPONSE_ERROR,
    "parse_error": UpdateEvent.PARSE_ERROR,
    "up_to_date": UpdateEvent.UP_TO_DATE,
}
_STEP_EVENTS = {
    ("filesystem", "installed"): UpdateEvent.FILESYSTEM_UPDATED,
    ("filesystem", "failed"): UpdateEvent.FILESYSTEM_UPDATE_ERROR,
    ("firmware", "installed"): UpdateEvent.FIRMWARE_UPDATED,
    ("firmware", "failed"): UpdateEvent.FIRMWARE_UPDATE_ERROR,
}


class UpdateClient:
    """Long-lived update client owning the caller-queryable last result.

    The client is not reentrant: callers must not start a cycle while another
    one is running.
    """

    def __init__(
        self,
        identity: DeviceIdentity,
        transport_port: TransportPort,
        installer_port: InstallerPort,
        system_port: SystemPort,
        on_event: Optional[EventListener] = None,
    ) -> None:
        """Wire the client to its collaborators.

        Raises:
            UseCaseError: If the identity has no server URL.
        """
        self.identity = identity
        self.transport_port = transport_port
        self.installer_port = installer_port
        self.system_port = system_port
        self.on_event = on_event
        self.uc_check = CheckForUpdate(transport_port, system_port)
        self.uc_apply = ApplyUpdate(installer_port)
        self._last = LastResult()

    @property
    def identity(self) -> DeviceIdentity:
        return self._identity

    @identity.setter
    def identity(self, value: DeviceIdentity) -> None:
        if not (value.server or "").strip():
            raise UseCaseError("SERVER_NOT_CONFIGURED", "No update server configured.")
        self._identity = value

    # ---- queryable state ----
    @property
    def last_result(self) -> LastResult:
        return self._last

    @property
    def new_version(self) -> str:
        return self._last.new_version

    @property
    def new_firmware(self) -> str:
        return self._last.new_firmware

    @property
    def new_filesystem(self) -> str:
        return self._last.new_filesystem

    @property
    def error_number(self) -> int:
        return self._last.error_number

    @property
    def error_string(self) -> str:
        return self._last.error_string

    # ---- cycle ----
    def handle(self, auto_update: bool = False) -> CycleResult:
        """Run one check-and-possibly-update cycle.

        Args:
            auto_update: Install an available update even on non-core firmware.

        Returns:
            CycleResult: What happened this cycle. When a restart is triggered
            on real hardware this call does not return.
        """
        result = CycleResult()
        try:
            self.transport_port.check_configuration()
        except ConfigurationError as exc:
            number, message = error_details(exc)
            log.error("Update transport misconfigured: %s", message)
            self._record_error(result, number, message)
            self._emit(result, UpdateEvent.CONFIGURATION_ERROR)
            return result

        self._emit(result, UpdateEvent.START)
        log.info("Checking for firmware updates at %s", self.identity.server)
        check = self.uc_check(self.identity)
        result.check = check.status

        if check.update_available:
            self._on_update_available(result, check.manifest, auto_update)
        else:
            self._on_no_update(result, check)

        log.debug("Update cycle done")
        self._emit(result, UpdateEvent.END)
        return result

    def _on_no_update(self, result: CycleResult, check: CheckResult) -> None:
        if check.status == "no_response":
            if check.error_number or check.error_string:
                self._record_error(result, check.error_number, check.error_string)
            else:
                result.fatal_error = "Empty manifest response"
        elif check.status == "parse_error":
            result.fatal_error = f"Malformed manifest: {check.error_string}"
        self._emit(result, _CHECK_EVENTS[check.status])

    def _on_update_available(
        self, result: CycleResult, manifest: UpdateManifest, auto_update: bool
    ) -> None:
        result.manifest = manifest
        self._last = replace(
            self._last,
            new_version=manifest.version,
            new_firmware=manifest.firmware,
            new_filesystem=manifest.filesystem or "",
        )
        self._emit(result, UpdateEvent.UPDATE_AVAILABLE)

        should_update = auto_update or self.identity.is_core
        log.info("Should update to %s? %s", manifest.version, "yes" if should_update else "no")
        if not should_update:
            return

        self._emit(result, UpdateEvent.UPDATING)
        applied = self.uc_apply(
            server=self.identity.server,
            manifest=manifest,
            on_step=lambda step: self._on_step(result, step),
        )
        if applied.failed or applied.updates_applied == 0:
            return

        result.restart_requested = True
        self._emit(result, UpdateEvent.RESET)
        log.warning("Applied %d update(s), restarting", applied.updates_applied)
        try:
            self.system_port.restart()
        except OSError as exc:
            _, message = error_details(exc)
            log.error("Restart failed: %s", message)
            result.fatal_error = f"Restart failed: {message}"

    def _on_step(self, result: CycleResult, step: InstallStep) -> None:
        if step.kind == "filesystem":
            result.filesystem_outcome = step.outcome
        else:
            result.firmware_outcome = step.outcome
        if step.outcome == "installed":
            result.updates_applied += 1
        elif step.outcome == "failed":
            self._record_error(result, step.error_number, step.error_string)
        event = _STEP_EVENTS.get((step.kind, step.outcome))
        if event is not None:
            self._emit(result, event)

    def _record_error(self, result: CycleResult, number: int, message: str) -> None:
        result.fatal_error = message
        result.error_number = number
        self._last = replace(self._last, error_number=number, error_string=message)

    def _emit(self, result: CycleResult, event: UpdateEvent) -> None:
        result.events.append(event)
        log.debug("Event %s", event.name)
        if self.on_event is None:
            return
        try:
            self.on_event(event)
        except Exception:
            log.exception("Update event listener failed on %s", event.name)


__all__ = ["UpdateClient"]
