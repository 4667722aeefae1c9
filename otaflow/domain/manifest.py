"""Interpretation of the update server's manifest answer.

The server answers the manifest request with a small JSON object:

* ``{}`` when the device already runs the latest build;
* ``{"version": ..., "firmware": ..., "fs": ...}`` when images are published.

``fs`` and ``spiffs`` both name the filesystem image; ``fs`` wins when both are
present. No version comparison happens here: the server decides applicability.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from otaflow.domain.update_models import CheckResult, UpdateManifest

log = logging.getLogger(__name__)

FILESYSTEM_KEYS = ("fs", "spiffs")
_ABSOLUTE_PREFIXES = ("http://", "https://")


def interpret_payload(payload: str | None) -> CheckResult:
    """Classify a raw manifest response body.

    Args:
        payload: Body text returned by the transport; empty when nothing came back.

    Returns:
        CheckResult: ``no_response`` for an empty body, ``parse_error`` for a
        body that is not a JSON object, ``up_to_date`` for ``{}`` and
        ``update_available`` (with manifest) otherwise.
    """
    if not payload:
        return CheckResult(status="no_response")

    try:
        document = json.loads(payload)
    except ValueError as exc:
        log.debug("Manifest is not valid JSON: %s", exc)
        return CheckResult(status="parse_error", error_string=str(exc))
    if not isinstance(document, dict):
        log.debug("Manifest is JSON but not an object: %s", type(document).__name__)
        return CheckResult(status="parse_error", error_string="expected a JSON object")

    if not document:
        return CheckResult(status="up_to_date")

    filesystem = None
    for key in FILESYSTEM_KEYS:
        if key in document:
            filesystem = _as_text(document[key])
            break

    # Missing version/firmware keys are tolerated; an empty firmware reference
    # simply means there is no firmware image to install.
    manifest = UpdateManifest(
        version=_as_text(document.get("version")),
        firmware=_as_text(document.get("firmware")),
        filesystem=filesystem,
    )
    return CheckResult(status="update_available", manifest=manifest)


def resolve_image_url(server: str, path: str) -> str:
    """Return an absolute image URL for a manifest reference.

    Absolute ``http(s)://`` references are returned unchanged; anything else is
    joined onto the server URL with exactly one ``/``.
    """
    if path.lower().startswith(_ABSOLUTE_PREFIXES):
        return path
    return f"{server.rstrip('/')}/{path.lstrip('/')}"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


__all__ = ["FILESYSTEM_KEYS", "interpret_payload", "resolve_image_url"]
