"""Typed client settings loaded from JSON and ``OTAFLOW_*`` environment."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from otaflow.adapters.host_system import HostSystem
from otaflow.adapters.http_client import HttpConfig, TlsConfig
from otaflow.adapters.image_installer import HttpImageInstaller, Partition
from otaflow.adapters.manifest_rest import ManifestRestAdapter
from otaflow.domain.identity import DeviceIdentity
from otaflow.domain.ports import EventListener
from otaflow.usecases.update_client import UpdateClient

CONFIG_ENV_VAR = "OTAFLOW_CONFIG"
ENV_OVERRIDES: Dict[str, str] = {
    "OTAFLOW_SERVER": "server",
    "OTAFLOW_DEVICE": "device",
    "OTAFLOW_VERSION": "version",
    "OTAFLOW_BUILD": "build",
    "OTAFLOW_CORE": "is_core",
    "OTAFLOW_AUTO_UPDATE": "auto_update",
    "OTAFLOW_INTERVAL_S": "interval_s",
    "OTAFLOW_FINGERPRINT": "fingerprint",
    "OTAFLOW_CA_BUNDLE": "ca_bundle",
}

_STR_FIELDS = {
    "server",
    "device",
    "version",
    "build",
    "fingerprint",
    "ca_bundle",
    "firmware_path",
    "filesystem_path",
}
_BOOL_FIELDS = {"is_core", "auto_update"}
_FLOAT_FIELDS = {"manifest_timeout_s", "download_timeout_s"}
_OPTIONAL_INT_FIELDS = {"firmware_capacity", "filesystem_capacity"}


@dataclass
class ClientSettings:
    """Runtime settings for one device.

    Attributes mirror the JSON keys of the config file.
    """

    server: str = ""
    device: str = ""
    version: str = ""
    build: str = ""
    is_core: bool = False
    auto_update: bool = False
    interval_s: int = 3600
    fingerprint: str = ""
    ca_bundle: str = ""
    manifest_timeout_s: float = 1.0
    download_timeout_s: float = 60.0
    firmware_path: str = "firmware.bin"
    filesystem_path: str = "filesystem.img"
    firmware_capacity: Optional[int] = None
    filesystem_capacity: Optional[int] = None

    @property
    def secure(self) -> bool:
        return bool(self.fingerprint or self.ca_bundle)

    def identity(self) -> DeviceIdentity:
        return DeviceIdentity(
            server=self.server,
            device=self.device,
            version=self.version,
            build=self.build,
            is_core=self.is_core,
        )

    def tls(self) -> Optional[TlsConfig]:
        if not self.secure:
            return None
        return TlsConfig(fingerprint=self.fingerprint or None, ca_bundle=self.ca_bundle or None)


def load_settings(
    path: str | Path | None = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> ClientSettings:
    """Load settings from a JSON file, then apply environment overrides.

    Args:
        path: Config file; falls back to ``$OTAFLOW_CONFIG``. Missing is allowed
            when no path was given explicitly.
        environ: Environment mapping, ``os.environ`` by default.

    Returns:
        ClientSettings: Validated settings.

    Raises:
        ValueError: Unknown keys, wrong value types, or an explicitly named
            config file that does not exist or is not a JSON object.
    """
    env = os.environ if environ is None else environ
    explicit = path is not None
    config_path = Path(path) if path is not None else None
    if config_path is None and env.get(CONFIG_ENV_VAR):
        config_path = Path(env[CONFIG_ENV_VAR])
        explicit = True

    raw: Dict[str, Any] = {}
    if config_path is not None:
        config_path = config_path.expanduser()
        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                try:
                    data = json.load(f)
                except ValueError as exc:
                    raise ValueError(f"{config_path}: invalid JSON ({exc})") from exc
            if not isinstance(data, dict):
                raise ValueError(f"{config_path}: expected a JSON object")
            raw.update(data)
        elif explicit:
            raise ValueError(f"Config file not found: {config_path}")

    for var, key in ENV_OVERRIDES.items():
        value = env.get(var)
        if value is not None and value != "":
            raw[key] = value

    return apply_overrides(ClientSettings(), raw)


def apply_overrides(settings: ClientSettings, raw: Mapping[str, Any]) -> ClientSettings:
    """Return ``settings`` with coerced values from ``raw`` applied."""
    known = {f.name for f in fields(ClientSettings)}
    updates: Dict[str, Any] = {}
    for key, value in raw.items():
        if key not in known:
            raise ValueError(f"Unknown config field: {key}")
        updates[key] = _coerce(key, value)
    return replace(settings, **updates)


def build_client(
    settings: ClientSettings, *, on_event: Optional[EventListener] = None
) -> UpdateClient:
    """Compose adapters for ``settings`` and return a ready client.

    Raises:
        UseCaseError: If no server URL is configured.
    """
    cfg = HttpConfig(
        manifest_timeout_s=settings.manifest_timeout_s,
        download_timeout_s=settings.download_timeout_s,
    )
    tls = settings.tls()
    transport = ManifestRestAdapter(tls=tls, cfg=cfg)
    firmware_path = Path(settings.firmware_path).expanduser()
    installer = HttpImageInstaller(
        {
            "firmware": Partition(firmware_path, settings.firmware_capacity),
            "filesystem": Partition(
                Path(settings.filesystem_path).expanduser(), settings.filesystem_capacity
            ),
        },
        version=settings.version,
        tls=tls,
        cfg=cfg,
    )
    system = HostSystem(firmware_path.parent)
    return UpdateClient(settings.identity(), transport, installer, system, on_event=on_event)


def _coerce(key: str, value: Any) -> Any:
    if key in _STR_FIELDS:
        return "" if value is None else str(value).strip()
    if key in _BOOL_FIELDS:
        return _coerce_bool(value)
    if key in _FLOAT_FIELDS:
        return _coerce_positive_float(key, value)
    if key in _OPTIONAL_INT_FIELDS:
        return None if value in (None, "") else _coerce_int(key, value, minimum=0)
    if key == "interval_s":
        return _coerce_int(key, value, minimum=1)
    raise ValueError(f"Unhandled config field: {key}")


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _coerce_int(name: str, value: Any, *, minimum: int) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer.")
    if isinstance(value, (int, float)):
        coerced = int(value)
    elif isinstance(value, str):
        try:
            coerced = int(value.strip())
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{name} must be an integer.") from exc
    else:
        raise ValueError(f"{name} must be an integer.")
    if coerced < minimum:
        raise ValueError(f"{name} must be at least {minimum}.")
    return coerced


def _coerce_positive_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number.")
    try:
        coerced = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a number.") from exc
    if coerced <= 0:
        raise ValueError(f"{name} must be positive.")
    return coerced


__all__ = [
    "ClientSettings",
    "ENV_OVERRIDES",
    "apply_overrides",
    "build_client",
    "load_settings",
]
