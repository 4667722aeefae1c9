"""Shared HTTP transport utilities for the manifest and image adapters.

This module provides a thin wrapper around ``requests.Session`` so adapter
implementations share timeout policy, TLS policy and error translation.

Dependencies:
    - ``requests`` for network I/O.
    - ``otaflow.adapters.api_errors`` for typed transport failures.

Call context:
    - Constructed by ``otaflow/adapters/manifest_rest.py`` and
      ``otaflow/adapters/image_installer.py``.
    - Used only inside adapter layer methods; use cases interact through ports.
"""

from __future__ import annotations

import re
import string
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

import requests
from requests import exceptions as req_exc
from requests.adapters import HTTPAdapter

from otaflow import __version__
from otaflow.adapters.api_errors import (
    ApiConnectionError,
    ApiTimeoutError,
    ConfigurationError,
)

_PEM_MARKER = "-----BEGIN CERTIFICATE-----"
_DIGEST_LENGTHS = (32, 40, 64)  # md5, sha1, sha256 hex
# OpenSSL looks up certificates in a CA directory by subject hash only.
_HASHED_NAME = re.compile(r"^[0-9a-f]{8}\.\d+$")


@dataclass
class HttpConfig:
    """Timeout configuration for adapter HTTP calls.

    Attributes:
        manifest_timeout_s: Timeout in seconds for the manifest request.
        download_timeout_s: Timeout in seconds for each image download read.
        user_agent: ``User-Agent`` header sent with every request.
        chunk_size: Read size when streaming image bodies.
    """
    manifest_timeout_s: float = 1.0
    download_timeout_s: float = 60.0
    user_agent: str = field(default_factory=lambda: f"otaflow/{__version__}")
    chunk_size: int = 4096


@dataclass(frozen=True)
class TlsConfig:
    """Server authentication for the secure transport variant.

    Exactly one of ``fingerprint`` (pinned certificate digest) or
    ``ca_bundle`` (PEM bundle file, or a directory of hash-named
    certificates as produced by ``openssl rehash``) is expected.
    """
    fingerprint: Optional[str] = None
    ca_bundle: Optional[str] = None

    def validate(self) -> None:
        """Raise ``ConfigurationError`` if the TLS settings cannot be used.

        Raises:
            ConfigurationError: Both or neither option set, malformed
                fingerprint, or a trust store that is unreadable or holds no
                certificate OpenSSL can find.
        """
        if self.fingerprint and self.ca_bundle:
            raise ConfigurationError("Use either a certificate fingerprint or a CA bundle, not both")
        if self.fingerprint:
            normalize_fingerprint(self.fingerprint)
            return
        if not self.ca_bundle:
            raise ConfigurationError("Secure transport needs a fingerprint or a CA bundle")
        try:
            found = count_certificates(self.ca_bundle)
        except OSError as exc:
            raise ConfigurationError(f"Cannot read CA bundle {self.ca_bundle}: {exc}") from exc
        if found == 0:
            raise ConfigurationError(f"No CA certificates found in {self.ca_bundle}")

    @property
    def verify(self) -> Union[bool, str]:
        """Value for ``requests``' ``verify`` argument."""
        if self.fingerprint:
            # The pinned digest replaces chain validation.
            return False
        return str(self.ca_bundle)


def normalize_fingerprint(value: str) -> str:
    """Return a lowercase, separator-free hex digest.

    Accepts ``AA:BB:...`` and ``AA BB ...`` forms.

    Raises:
        ConfigurationError: If the value is not an md5/sha1/sha256 hex digest.
    """
    digest = "".join(ch for ch in str(value) if ch not in ": ").lower()
    if len(digest) not in _DIGEST_LENGTHS or any(ch not in string.hexdigits for ch in digest):
        raise ConfigurationError(f"Invalid certificate fingerprint: {value!r}")
    return digest


def count_certificates(location: str | Path) -> int:
    """Count PEM certificates OpenSSL can load from a bundle or CA directory.

    In a directory only hash-named entries (``5ad8a5d6.0``) count; plain
    ``*.pem`` files there are invisible to certificate lookup.

    Raises:
        OSError: If a CA directory cannot be listed.
    """
    path = Path(location).expanduser()
    if path.is_dir():
        files = [p for p in sorted(path.iterdir()) if _HASHED_NAME.match(p.name)]
    elif path.is_file():
        files = [path]
    else:
        return 0
    total = 0
    for item in files:
        try:
            total += item.read_text(encoding="ascii", errors="ignore").count(_PEM_MARKER)
        except OSError:
            continue
    return total


class FingerprintAdapter(HTTPAdapter):
    """Transport adapter that pins the server certificate digest."""

    def __init__(self, fingerprint: str, **kwargs) -> None:
        # HTTPAdapter.__init__ builds the pool manager, so set this first.
        self.fingerprint = normalize_fingerprint(fingerprint)
        super().__init__(**kwargs)

    def init_poolmanager(self, connections, maxsize, block=False, **pool_kwargs):
        pool_kwargs["assert_fingerprint"] = self.fingerprint
        super().init_poolmanager(connections, maxsize, block=block, **pool_kwargs)


class UpdateSession:
    """One-shot requests wrapper: a fresh connection per request, no retries.

    This class is transport-only. Callers decide how to map non-200 responses
    into adapter errors.
    """

    def __init__(self, cfg: HttpConfig, tls: Optional[TlsConfig] = None) -> None:
        """Store timeout and TLS policy.

        Args:
            cfg: Shared timeout settings.
            tls: TLS policy for the secure variant, or ``None`` for plain HTTP
                with default certificate handling.
        """
        self.cfg = cfg
        self.tls = tls

    def check_configuration(self) -> None:
        """Validate TLS settings before any request is made."""
        if self.tls is not None:
            self.tls.validate()

    def _new_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "User-Agent": self.cfg.user_agent,
                "Connection": "close",
            }
        )
        if self.tls is not None:
            session.verify = self.tls.verify
            if self.tls.fingerprint:
                session.mount("https://", FingerprintAdapter(self.tls.fingerprint))
        return session

    @contextmanager
    def get(
        self,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        stream: bool = False,
    ) -> Iterator[requests.Response]:
        """Send one GET request and yield the response.

        The session and response are closed when the ``with`` block exits.

        Args:
            url: Absolute URL.
            headers: Extra request headers.
            timeout: Optional timeout override in seconds.
            stream: Whether to stream the response body.

        Raises:
            ApiTimeoutError: The server did not answer within the timeout.
            ApiConnectionError: DNS, connect or TLS failure, or a malformed URL.

        Call Chain:
            Adapter methods -> ``UpdateSession.get`` -> ``requests.Session.get``.
        """
        context = f"GET {url}"
        session = self._new_session()
        try:
            kwargs: Dict[str, Any] = {}
            if self.tls is not None:
                # Per-request verify is not replaced by REQUESTS_CA_BUNDLE/CURL_CA_BUNDLE.
                kwargs["verify"] = self.tls.verify
            try:
                resp = session.get(
                    url,
                    headers=dict(headers or {}),
                    timeout=timeout or self.cfg.manifest_timeout_s,
                    stream=stream,
                    allow_redirects=True,
                    **kwargs,
                )
            except req_exc.ConnectTimeout as exc:
                raise ApiConnectionError(f"Timeout connecting to {url}", context=context) from exc
            except req_exc.Timeout as exc:
                raise ApiTimeoutError(f"Timeout reading from {url}", context=context) from exc
            except req_exc.SSLError as exc:
                raise ApiConnectionError(f"TLS handshake with {url} failed", context=context) from exc
            except req_exc.RequestException as exc:
                raise ApiConnectionError(f"Cannot reach {url}: {exc}", context=context) from exc
            try:
                yield resp
            finally:
                resp.close()
        finally:
            session.close()


__all__ = [
    "FingerprintAdapter",
    "HttpConfig",
    "TlsConfig",
    "UpdateSession",
    "count_certificates",
    "normalize_fingerprint",
]
