from __future__ import annotations

import json
from pathlib import Path

import pytest

pytest.importorskip("requests")

from otaflow.adapters.http_client import TlsConfig
from otaflow.adapters.image_installer import HttpImageInstaller
from otaflow.adapters.manifest_rest import ManifestRestAdapter
from otaflow.app.settings import ClientSettings, apply_overrides, build_client, load_settings
from otaflow.domain.ports import UseCaseError


def _write(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_defaults_without_config_file() -> None:
    settings = load_settings(environ={})

    assert settings == ClientSettings()
    assert not settings.secure
    assert settings.tls() is None


def test_file_values_are_coerced(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "otaflow.json",
        {
            "server": " http://u.example/ota ",
            "device": "sensor",
            "version": 3,
            "is_core": "yes",
            "interval_s": "120",
            "manifest_timeout_s": 2,
            "firmware_capacity": "4096",
        },
    )

    settings = load_settings(path, environ={})

    assert settings.server == "http://u.example/ota"
    assert settings.version == "3"
    assert settings.is_core is True
    assert settings.interval_s == 120
    assert settings.manifest_timeout_s == 2.0
    assert settings.firmware_capacity == 4096
    identity = settings.identity()
    assert identity.server == "http://u.example/ota"
    assert identity.is_core is True


def test_environment_overrides_file(tmp_path: Path) -> None:
    path = _write(tmp_path / "otaflow.json", {"server": "http://a.example", "auto_update": False})

    settings = load_settings(
        environ={
            "OTAFLOW_CONFIG": str(path),
            "OTAFLOW_SERVER": "http://b.example",
            "OTAFLOW_AUTO_UPDATE": "1",
            "OTAFLOW_DEVICE": "",
        }
    )

    assert settings.server == "http://b.example"
    assert settings.auto_update is True
    assert settings.device == ""


def test_missing_explicit_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="not found"):
        load_settings(tmp_path / "nope.json", environ={})


@pytest.mark.parametrize("content", ["{broken", "[1, 2]"])
def test_bad_file_content_is_an_error(tmp_path: Path, content: str) -> None:
    path = tmp_path / "otaflow.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError):
        load_settings(path, environ={})


@pytest.mark.parametrize(
    "raw",
    [
        {"colour": "blue"},
        {"interval_s": 0},
        {"interval_s": "soon"},
        {"interval_s": True},
        {"download_timeout_s": -1},
        {"firmware_capacity": -5},
    ],
)
def test_invalid_values_are_rejected(raw) -> None:
    with pytest.raises(ValueError):
        apply_overrides(ClientSettings(), raw)


def test_tls_prefers_given_trust_source() -> None:
    settings = ClientSettings(fingerprint="AA:BB")

    tls = settings.tls()

    assert settings.secure
    assert tls == TlsConfig(fingerprint="AA:BB", ca_bundle=None)


def test_build_client_wires_adapters(tmp_path: Path) -> None:
    events = []
    settings = ClientSettings(
        server="http://u.example/ota",
        device="sensor",
        version="1.0",
        firmware_path=str(tmp_path / "fw.bin"),
        filesystem_path=str(tmp_path / "fs.img"),
        firmware_capacity=2048,
    )

    client = build_client(settings, on_event=events.append)

    assert isinstance(client.transport_port, ManifestRestAdapter)
    assert isinstance(client.installer_port, HttpImageInstaller)
    assert client.installer_port.partitions["firmware"].capacity == 2048
    assert client.installer_port.version == "1.0"
    assert client.system_port.storage_dir == tmp_path
    assert client.on_event == events.append


def test_build_client_requires_server() -> None:
    with pytest.raises(UseCaseError):
        build_client(ClientSettings())
