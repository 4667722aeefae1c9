"""HTTP adapter implementing ``InstallerPort`` for file-backed partitions.

The image at a URL is streamed into a temporary file next to the partition
file and moved over it only after size and digest checks pass, so a failed
install never leaves a half-written partition behind.

Dependencies:
    - ``UpdateSession``/``HttpConfig``/``TlsConfig`` for shared HTTP policy.
    - ``urllib3`` raw streaming, so the body is written exactly as sent.

Call context:
    - Invoked by ``otaflow/usecases/apply_update.py``.
"""

from __future__ import annotations

import hashlib
import logging
import os
import string
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

import psutil
import requests
from requests import exceptions as req_exc
from urllib3 import exceptions as urllib3_exc

from otaflow.domain.ports import InstallerPort
from otaflow.domain.update_models import ImageKind

from otaflow.adapters.api_errors import (
    ApiError,
    InstallError,
    InstallErrorCode,
    TransportErrorCode,
)
from otaflow.adapters.http_client import HttpConfig, TlsConfig, UpdateSession

log = logging.getLogger(__name__)

_MODES: Dict[str, str] = {"firmware": "sketch", "filesystem": "spiffs"}
_STATUS_ERRORS = {
    401: (InstallErrorCode.SERVER_UNAUTHORIZED, "Unauthorized (401)"),
    403: (InstallErrorCode.SERVER_FORBIDDEN, "Forbidden (403)"),
    404: (InstallErrorCode.SERVER_FILE_NOT_FOUND, "File Not Found (404)"),
}


@dataclass(frozen=True)
class Partition:
    """On-disk target for one image kind.

    Attributes:
        path: File replaced by a successful install.
        capacity: Maximum image size in bytes; free disk space when ``None``.
    """
    path: Path
    capacity: Optional[int] = None

    def available(self) -> int:
        if self.capacity is not None:
            return int(self.capacity)
        directory = self.path.parent
        while not directory.exists() and directory != directory.parent:
            directory = directory.parent
        return psutil.disk_usage(str(directory)).free


class HttpImageInstaller(InstallerPort):
    """Download images over HTTP(S) and write them to partition files."""

    def __init__(
        self,
        partitions: Mapping[str, Partition | str | Path],
        *,
        version: str = "",
        tls: Optional[TlsConfig] = None,
        cfg: Optional[HttpConfig] = None,
    ) -> None:
        """Create the installer.

        Args:
            partitions: Mapping from image kind to ``Partition`` or target path.
            version: Running version, reported with each image request.
            tls: TLS settings shared with the manifest transport.
            cfg: Shared HTTP configuration.

        Raises:
            ValueError: If ``partitions`` is empty or names an unknown kind.
        """
        if not partitions:
            raise ValueError("HttpImageInstaller requires at least one partition")
        unknown = set(partitions) - set(_MODES)
        if unknown:
            raise ValueError(f"Unknown image kinds: {', '.join(sorted(unknown))}")
        self.partitions: Dict[str, Partition] = {
            kind: value if isinstance(value, Partition) else Partition(Path(value))
            for kind, value in partitions.items()
        }
        self.version = version
        self.cfg = cfg or HttpConfig()
        self.session = UpdateSession(self.cfg, tls)

    def install(self, kind: ImageKind, url: str) -> int:
        """Stream the image at ``url`` into the partition for ``kind``.

        Args:
            kind: ``"filesystem"`` or ``"firmware"``.
            url: Absolute image URL.

        Returns:
            Number of bytes written.

        Raises:
            InstallError: On any download, verification or write failure.

        Side Effects:
            Replaces the partition file on success.
        """
        partition = self.partitions.get(kind)
        if partition is None:
            raise InstallError(
                InstallErrorCode.WRITE_FAILED, f"No partition configured for {kind}", url=url
            )
        try:
            free = partition.available()
        except OSError as exc:
            raise InstallError(InstallErrorCode.WRITE_FAILED, str(exc), url=url) from exc
        headers = {
            "X-DEVICE-MODE": _MODES[kind],
            "X-DEVICE-FREE-SPACE": str(free),
            "X-DEVICE-VERSION": self.version,
            "Accept-Encoding": "identity",
        }
        log.info("Installing %s image from %s", kind, url)
        try:
            with self.session.get(
                url, headers=headers, timeout=self.cfg.download_timeout_s, stream=True
            ) as resp:
                self._ensure_ok(resp, url)
                size = self._content_length(resp, url)
                if size > free:
                    raise InstallError(
                        InstallErrorCode.TOO_LESS_SPACE,
                        f"Not Enough space ({size} > {free} bytes)",
                        url=url,
                    )
                expected_md5 = self._expected_md5(resp, url)
                written = self._write_atomically(partition.path, resp, size, expected_md5, url)
        except ApiError as exc:
            raise InstallError(exc.number, str(exc), url=url) from exc
        log.info("Installed %s image (%d bytes) to %s", kind, written, partition.path)
        return written

    # ------------------------------------------------------------------
    @staticmethod
    def _ensure_ok(resp: requests.Response, url: str) -> None:
        status = resp.status_code
        if status == 200:
            return
        code, message = _STATUS_ERRORS.get(
            status,
            (InstallErrorCode.SERVER_WRONG_HTTP_CODE, f"Wrong HTTP Code ({status})"),
        )
        raise InstallError(code, message, url=url)

    @staticmethod
    def _content_length(resp: requests.Response, url: str) -> int:
        raw = resp.headers.get("Content-Length", "")
        try:
            size = int(raw)
        except (TypeError, ValueError):
            size = 0
        if size <= 0:
            raise InstallError(
                InstallErrorCode.SERVER_NOT_REPORT_SIZE,
                "Server Did Not Report Size",
                url=url,
            )
        return size

    @staticmethod
    def _expected_md5(resp: requests.Response, url: str) -> Optional[str]:
        value = resp.headers.get("x-MD5")
        if value is None:
            return None
        digest = value.strip().lower()
        if len(digest) != 32 or any(ch not in string.hexdigits for ch in digest):
            raise InstallError(
                InstallErrorCode.SERVER_FAULTY_MD5, "Wrong MD5 header from server", url=url
            )
        return digest

    def _write_atomically(
        self,
        target: Path,
        resp: requests.Response,
        size: int,
        expected_md5: Optional[str],
        url: str,
    ) -> int:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.", suffix=".part", dir=str(target.parent)
            )
        except OSError as exc:
            raise InstallError(InstallErrorCode.WRITE_FAILED, str(exc), url=url) from exc

        tmp_path = Path(tmp_name)
        digest = hashlib.md5(usedforsecurity=False)
        written = 0
        try:
            with os.fdopen(fd, "wb") as handle:
                try:
                    # Image bytes as sent: Content-Length and x-MD5 describe the
                    # undecoded body even under Content-Encoding.
                    for chunk in resp.raw.stream(self.cfg.chunk_size, decode_content=False):
                        if not chunk:
                            continue
                        handle.write(chunk)
                        digest.update(chunk)
                        written += len(chunk)
                except (req_exc.RequestException, urllib3_exc.HTTPError) as exc:
                    raise InstallError(
                        TransportErrorCode.CONNECTION_LOST,
                        f"Connection lost after {written} bytes",
                        url=url,
                    ) from exc
                handle.flush()
                os.fsync(handle.fileno())
            if written != size:
                raise InstallError(
                    InstallErrorCode.STREAM_INCOMPLETE,
                    f"Expected {size} bytes, received {written}",
                    url=url,
                )
            if expected_md5 and digest.hexdigest() != expected_md5:
                raise InstallError(InstallErrorCode.MD5_MISMATCH, "MD5 Failed", url=url)
            os.replace(tmp_path, target)
        except OSError as exc:
            raise InstallError(InstallErrorCode.WRITE_FAILED, str(exc), url=url) from exc
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
        return written


__all__ = ["HttpImageInstaller", "Partition"]
