"""Tests for the manifest transport adapter."""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

pytest.importorskip("requests")

from otaflow.adapters.api_errors import (
    ApiClientError,
    ApiError,
    ApiServerError,
    ApiTimeoutError,
    ConfigurationError,
)
from otaflow.adapters.http_client import TlsConfig
from otaflow.adapters.manifest_rest import ManifestRestAdapter
from otaflow.domain.identity import DeviceIdentity, HardwareInfo

IDENTITY = DeviceIdentity(
    server="http://u.example/ota",
    device="LIGHT",
    version="1.0.0",
    build="abc",
    is_core=False,
)
HARDWARE = HardwareInfo(mac="AA:BB:CC:DD:EE:FF", chip_id=0xDDEEFF, chip_size=1 << 22, ota_size=1 << 20)


class _FakeResponse:
    """Minimal response double compatible with adapter parsing helpers."""

    def __init__(self, status_code: int, text: str = "", reason: str = "") -> None:
        self.status_code = status_code
        self.text = text
        self.reason = reason

    def json(self):
        return json.loads(self.text)


class _FakeSession:
    """Session double recording the one GET of a fetch."""

    def __init__(self, response: Any) -> None:
        self._response = response
        self.tls = None
        self.calls: List[Dict[str, Any]] = []

    @contextmanager
    def get(
        self,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        stream: bool = False,
    ):
        self.calls.append({"url": url, "headers": dict(headers or {}), "timeout": timeout})
        if isinstance(self._response, Exception):
            raise self._response
        yield self._response


def _adapter_with(response: Any) -> tuple[ManifestRestAdapter, _FakeSession]:
    adapter = ManifestRestAdapter()
    session = _FakeSession(response)
    adapter.session = session  # type: ignore[assignment]
    return adapter, session


def test_fetch_returns_body_of_200_answer() -> None:
    adapter, session = _adapter_with(_FakeResponse(200, '{"version":"2.0"}'))

    body = adapter.fetch_manifest(IDENTITY, HARDWARE)

    assert body == '{"version":"2.0"}'
    assert len(session.calls) == 1
    assert session.calls[0]["url"] == "http://u.example/ota"
    assert session.calls[0]["timeout"] == 1.0


def test_fetch_sends_identity_headers() -> None:
    adapter, session = _adapter_with(_FakeResponse(200, "{}"))

    adapter.fetch_manifest(IDENTITY, HARDWARE)

    headers = session.calls[0]["headers"]
    assert headers["X-DEVICE-MAC"] == "AA:BB:CC:DD:EE:FF"
    assert headers["X-DEVICE-CLASS"] == "LIGHT"
    assert headers["X-DEVICE-VERSION"] == "1.0.0"
    assert headers["X-DEVICE-BUILD"] == "abc"
    assert headers["X-DEVICE-COREBUILD"] == "0"
    assert headers["X-DEVICE-OTASIZE"] == str(1 << 20)
    assert headers["Accept"] == "application/json"


def test_fetch_raises_client_error_with_status_number() -> None:
    adapter, _ = _adapter_with(_FakeResponse(404, "", reason="Not Found"))

    with pytest.raises(ApiClientError) as exc:
        adapter.fetch_manifest(IDENTITY, HARDWARE)

    assert exc.value.number == 404
    assert "Not Found" in str(exc.value)


def test_fetch_raises_server_error_on_5xx() -> None:
    adapter, _ = _adapter_with(_FakeResponse(503, '{"detail": "maintenance"}'))

    with pytest.raises(ApiServerError) as exc:
        adapter.fetch_manifest(IDENTITY, HARDWARE)

    assert exc.value.number == 503
    assert "maintenance" in str(exc.value)


def test_fetch_treats_other_2xx_as_failure() -> None:
    adapter, _ = _adapter_with(_FakeResponse(204))

    with pytest.raises(ApiError) as exc:
        adapter.fetch_manifest(IDENTITY, HARDWARE)

    assert exc.value.number == 204


def test_fetch_propagates_transport_errors() -> None:
    adapter, _ = _adapter_with(ApiTimeoutError("Timeout reading from http://u.example/ota"))

    with pytest.raises(ApiTimeoutError) as exc:
        adapter.fetch_manifest(IDENTITY, HARDWARE)

    assert exc.value.number == -11


def test_fetch_requires_server_url() -> None:
    adapter, session = _adapter_with(_FakeResponse(200, "{}"))

    with pytest.raises(ValueError):
        adapter.fetch_manifest(DeviceIdentity(server=" ", device="d", version="1"), HARDWARE)
    assert session.calls == []


def test_plain_adapter_configuration_is_always_valid() -> None:
    adapter = ManifestRestAdapter()

    adapter.check_configuration()

    assert not adapter.secure


def test_secure_adapter_rejects_empty_trust_store(tmp_path: Path) -> None:
    bundle = tmp_path / "certs.pem"
    bundle.write_text("no certificates here\n", encoding="ascii")
    adapter = ManifestRestAdapter(tls=TlsConfig(ca_bundle=str(bundle)))

    assert adapter.secure
    with pytest.raises(ConfigurationError):
        adapter.check_configuration()
