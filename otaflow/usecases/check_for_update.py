"""Use case for asking the update server whether new images exist."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from otaflow.domain.identity import DeviceIdentity
from otaflow.domain.manifest import interpret_payload
from otaflow.domain.ports import SystemPort, TransportPort
from otaflow.domain.update_models import CheckResult
from otaflow.usecases.error_mapping import error_details

log = logging.getLogger(__name__)


@dataclass
class CheckForUpdate:
    """Use-case callable: one manifest fetch followed by interpretation.

    At most one request is made; a failed fetch is reported as ``no_response``
    with the transport's error code and message, never retried here.
    """

    transport_port: TransportPort
    system_port: SystemPort

    def __call__(self, identity: DeviceIdentity) -> CheckResult:
        try:
            hardware = self.system_port.hardware_info()
            payload = self.transport_port.fetch_manifest(identity, hardware)
        except Exception as exc:
            number, message = error_details(exc)
            log.warning("Manifest request failed [%s]: %s", number, message)
            return CheckResult(status="no_response", error_number=number, error_string=message)

        result = interpret_payload(payload)
        if result.status == "no_response":
            log.info("Update server returned an empty manifest")
        elif result.status == "parse_error":
            log.warning("Update server returned a malformed manifest: %s", result.error_string)
        elif result.status == "up_to_date":
            log.info("Firmware is up to date")
        else:
            log.info("New firmware available: %s", result.manifest.version if result.manifest else "")
        return result


__all__ = ["CheckForUpdate"]
