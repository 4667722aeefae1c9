"""Lifecycle events emitted by one update cycle, in cycle order."""

from __future__ import annotations

from enum import Enum


class UpdateEvent(Enum):
    START = "start"
    UP_TO_DATE = "up_to_date"
    UPDATE_AVAILABLE = "update_available"
    UPDATING = "updating"
    FILESYSTEM_UPDATED = "filesystem_updated"
    FIRMWARE_UPDATED = "firmware_updated"
    RESET = "reset"
    END = "end"
    NO_RESPONSE_ERROR = "no_response_error"
    PARSE_ERROR = "parse_error"
    FILESYSTEM_UPDATE_ERROR = "filesystem_update_error"
    FIRMWARE_UPDATE_ERROR = "firmware_update_error"
    CONFIGURATION_ERROR = "configuration_error"

    @property
    def is_error(self) -> bool:
        """Return whether the event reports a failed step."""
        return self in ERROR_EVENTS


ERROR_EVENTS = frozenset(
    {
        UpdateEvent.NO_RESPONSE_ERROR,
        UpdateEvent.PARSE_ERROR,
        UpdateEvent.FILESYSTEM_UPDATE_ERROR,
        UpdateEvent.FIRMWARE_UPDATE_ERROR,
        UpdateEvent.CONFIGURATION_ERROR,
    }
)


__all__ = ["UpdateEvent", "ERROR_EVENTS"]
