"""REST adapter implementing ``TransportPort``.

Issues the single manifest request of a cycle, decorated with the device
identity headers, and returns the body of a 200 answer.

Dependencies:
    - ``UpdateSession``/``HttpConfig``/``TlsConfig`` for shared HTTP policy.
    - ``api_errors`` helpers for status-to-error conversion.

Call context:
    - Invoked by ``otaflow/usecases/check_for_update.py``.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

from otaflow.domain.identity import DeviceIdentity, HardwareInfo, build_identity_headers
from otaflow.domain.ports import TransportPort

from otaflow.adapters.api_errors import (
    ApiClientError,
    ApiError,
    ApiServerError,
    build_error_message,
    parse_error_payload,
)
from otaflow.adapters.http_client import HttpConfig, TlsConfig, UpdateSession

log = logging.getLogger(__name__)


class ManifestRestAdapter(TransportPort):
    """Manifest request transport, plain or TLS-secured."""

    def __init__(
        self,
        *,
        timeout_s: float = 1.0,
        tls: Optional[TlsConfig] = None,
        cfg: Optional[HttpConfig] = None,
    ) -> None:
        """Create the adapter.

        Args:
            timeout_s: Manifest request timeout, ignored when ``cfg`` is given.
            tls: Secure variant settings; ``None`` selects the plain variant.
            cfg: Full HTTP configuration shared with other adapters.
        """
        self.cfg = cfg or HttpConfig(manifest_timeout_s=timeout_s)
        self.session = UpdateSession(self.cfg, tls)

    @property
    def secure(self) -> bool:
        return self.session.tls is not None

    def check_configuration(self) -> None:
        """Raise ``ConfigurationError`` when the TLS setup cannot be used."""
        self.session.check_configuration()

    def fetch_manifest(self, identity: DeviceIdentity, hardware: HardwareInfo) -> str:
        """GET the manifest for this device.

        Args:
            identity: Device identity for this cycle.
            hardware: Hardware facts for the identity headers.

        Returns:
            Response body text of an HTTP 200 answer (possibly empty).

        Raises:
            ValueError: If no server URL is configured.
            ApiError: For any non-200 answer or transport failure.
        """
        url = (identity.server or "").strip()
        if not url:
            raise ValueError("No update server configured")
        headers = build_identity_headers(identity, hardware)
        headers["Accept"] = "application/json"
        with self.session.get(url, headers=headers, timeout=self.cfg.manifest_timeout_s) as resp:
            log.debug("Manifest GET %s -> %s", url, resp.status_code)
            self._ensure_ok(resp, "fetch_manifest")
            return resp.text or ""

    # ------------------------------------------------------------------
    @staticmethod
    def _ensure_ok(resp: requests.Response, ctx: str) -> None:
        """Raise typed adapter errors for anything but HTTP 200.

        Raises:
            ApiClientError: For HTTP 4xx responses.
            ApiServerError: For HTTP 5xx responses.
            ApiError: For all other non-200 responses.
        """
        status = resp.status_code
        if status == 200:
            return
        payload = parse_error_payload(resp)
        message = build_error_message(ctx, status, payload, getattr(resp, "reason", "") or "")
        if 400 <= status < 500:
            raise ApiClientError(message, status=status, payload=payload, context=ctx)
        if 500 <= status < 600:
            raise ApiServerError(message, status=status, payload=payload, context=ctx)
        raise ApiError(message, number=status, status=status, payload=payload, context=ctx)


__all__ = ["ManifestRestAdapter"]
