from __future__ import annotations

from enum import IntEnum
from typing import Any, Optional


class TransportErrorCode(IntEnum):
    """Negative codes for failures that never produced an HTTP status."""

    CONNECTION_FAILED = -1
    CONNECTION_LOST = -5
    NO_HTTP_SERVER = -7
    READ_TIMEOUT = -11


class InstallErrorCode(IntEnum):
    """Codes reported by image installers."""

    TOO_LESS_SPACE = -100
    SERVER_NOT_REPORT_SIZE = -101
    SERVER_FILE_NOT_FOUND = -102
    SERVER_FORBIDDEN = -103
    SERVER_WRONG_HTTP_CODE = -104
    SERVER_FAULTY_MD5 = -105
    SERVER_UNAUTHORIZED = -108
    MD5_MISMATCH = -109
    STREAM_INCOMPLETE = -110
    WRITE_FAILED = -111


class ApiError(RuntimeError):
    """Base class for update-server transport failures.

    ``number`` is the numeric error code exposed to callers: the HTTP status
    for status failures, a ``TransportErrorCode`` otherwise.
    """

    def __init__(
        self,
        message: str,
        *,
        number: int,
        status: Optional[int] = None,
        payload: Any = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.number = int(number)
        self.status = status
        self.payload = payload
        self.context = context


class ApiClientError(ApiError):
    """HTTP 4xx from the update server."""

    def __init__(
        self,
        message: str,
        *,
        status: int,
        payload: Any = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            number=status,
            status=status,
            payload=payload,
            context=context,
        )


class ApiServerError(ApiError):
    """HTTP 5xx from the update server."""

    def __init__(
        self,
        message: str,
        *,
        status: int,
        payload: Any = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            number=status,
            status=status,
            payload=payload,
            context=context,
        )


class ApiTimeoutError(ApiError):
    """The server accepted the connection but did not answer in time."""

    def __init__(self, message: str, *, context: Optional[str] = None) -> None:
        super().__init__(message, number=TransportErrorCode.READ_TIMEOUT, context=context)


class ApiConnectionError(ApiError):
    """DNS, connect or TLS handshake failure."""

    def __init__(self, message: str, *, context: Optional[str] = None) -> None:
        super().__init__(message, number=TransportErrorCode.CONNECTION_FAILED, context=context)


class InstallError(RuntimeError):
    """An image could not be written to its partition."""

    def __init__(self, number: int, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.number = int(number)
        self.message = message
        self.url = url


class ConfigurationError(RuntimeError):
    """The transport cannot be used as configured (e.g. empty trust store)."""


def parse_error_payload(resp: Any) -> Any:
    """Best-effort extraction of error payload without raising."""
    try:
        return resp.json()
    except Exception:
        snippet = getattr(resp, "text", "")
        if not snippet:
            return None
        return snippet[:400]


def build_error_message(ctx: str, status: int, payload: Any, reason: str = "") -> str:
    detail = first_string(payload) or (reason or "").strip()
    if detail:
        return f"{ctx}: {detail} (HTTP {status})"
    return f"{ctx}: HTTP {status}"


def first_string(payload: Any) -> Optional[str]:
    if isinstance(payload, str):
        text = payload.strip()
        return text[:200] or None
    if isinstance(payload, dict):
        for key in ("detail", "message", "error", "title"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            if isinstance(value, (list, dict)):
                candidate = first_string(value)
                if candidate:
                    return candidate
    if isinstance(payload, list):
        for item in payload:
            candidate = first_string(item)
            if candidate:
                return candidate
    return None
