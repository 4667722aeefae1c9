from __future__ import annotations

import pytest

from otaflow.domain.manifest import interpret_payload, resolve_image_url
from otaflow.domain.update_models import UpdateManifest


@pytest.mark.parametrize("payload", ["", None])
def test_empty_payload_is_no_response(payload) -> None:
    result = interpret_payload(payload)

    assert result.status == "no_response"
    assert result.manifest is None


@pytest.mark.parametrize(
    "payload",
    ["not json", "{", "   ", "[]", '["version"]', "42", '"text"', "null"],
)
def test_non_object_payload_is_parse_error(payload: str) -> None:
    result = interpret_payload(payload)

    assert result.status == "parse_error"
    assert result.manifest is None


def test_empty_object_is_up_to_date() -> None:
    assert interpret_payload("{}").status == "up_to_date"
    assert interpret_payload(" { } \n").status == "up_to_date"


def test_version_and_firmware_without_filesystem() -> None:
    result = interpret_payload('{"version":"2.0","firmware":"x.bin"}')

    assert result.status == "update_available"
    assert result.update_available
    assert result.manifest == UpdateManifest(version="2.0", firmware="x.bin", filesystem=None)


def test_fs_wins_over_spiffs() -> None:
    result = interpret_payload(
        '{"version":"1.2.3","firmware":"fw.bin","spiffs":"old.bin","fs":"fs.bin"}'
    )

    assert result.manifest is not None
    assert result.manifest.filesystem == "fs.bin"


def test_spiffs_used_when_fs_absent() -> None:
    result = interpret_payload('{"version":"1.2.3","firmware":"fw.bin","spiffs":"sp.bin"}')

    assert result.manifest is not None
    assert result.manifest.filesystem == "sp.bin"


def test_missing_fields_become_empty_strings() -> None:
    result = interpret_payload('{"other": true}')

    assert result.status == "update_available"
    assert result.manifest == UpdateManifest(version="", firmware="", filesystem=None)
    assert not result.manifest.has_images


def test_non_string_values_are_rendered_as_text() -> None:
    result = interpret_payload('{"version": 3, "firmware": "fw.bin", "fs": null}')

    assert result.manifest is not None
    assert result.manifest.version == "3"
    assert result.manifest.filesystem == ""


def test_relative_reference_is_joined_to_server() -> None:
    assert (
        resolve_image_url("http://u.example/ota", "img/fw.bin")
        == "http://u.example/ota/img/fw.bin"
    )


def test_absolute_reference_is_returned_unchanged() -> None:
    assert resolve_image_url("http://u.example/ota", "https://cdn.example/fw.bin") == (
        "https://cdn.example/fw.bin"
    )
    assert resolve_image_url("http://u.example/ota", "HTTP://cdn.example/fw.bin") == (
        "HTTP://cdn.example/fw.bin"
    )


def test_join_uses_a_single_separator() -> None:
    assert resolve_image_url("http://u.example/ota/", "/img/fw.bin") == (
        "http://u.example/ota/img/fw.bin"
    )
