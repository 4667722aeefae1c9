"""Translate adapter errors into the numeric code/message pairs callers query."""

from __future__ import annotations

from typing import Tuple

from otaflow.adapters.api_errors import (
    ApiError,
    ConfigurationError,
    InstallError,
    TransportErrorCode,
)
from otaflow.domain.ports import UseCaseError


def error_details(exc: BaseException) -> Tuple[int, str]:
    """Return ``(number, message)`` for an adapter exception.

    Args:
        exc: Exception raised by a port implementation.

    Returns:
        Tuple[int, str]: HTTP status or negative transport/installer code, and
        a human-readable message. Unknown exceptions map to
        ``TransportErrorCode.CONNECTION_FAILED`` with their text.
    """
    if isinstance(exc, InstallError):
        return exc.number, exc.message
    if isinstance(exc, ApiError):
        return exc.number, str(exc)
    if isinstance(exc, ConfigurationError):
        return 0, str(exc) or "Invalid transport configuration."
    if isinstance(exc, UseCaseError):
        return 0, exc.message
    message = str(exc) or exc.__class__.__name__
    return int(TransportErrorCode.CONNECTION_FAILED), message


__all__ = ["error_details"]
