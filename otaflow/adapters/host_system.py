"""``SystemPort`` implementation for a Linux-class host.

Hardware facts come from the network interface address and the filesystem
holding the image partitions; restart re-executes the running interpreter.
"""

from __future__ import annotations

import logging
import os
import sys
import uuid
from pathlib import Path
from typing import Optional, Sequence

import psutil

from otaflow.domain.identity import HardwareInfo, ota_space
from otaflow.domain.ports import SystemPort

log = logging.getLogger(__name__)


def format_mac(node: int) -> str:
    """Format a 48-bit hardware address as ``AA:BB:CC:DD:EE:FF``."""
    mac_hex = "{:012x}".format(node & 0xFFFFFFFFFFFF)
    return ":".join(mac_hex[i : i + 2] for i in range(0, 12, 2)).upper()


class HostSystem(SystemPort):
    """Report host identification and restart the current process."""

    def __init__(
        self,
        storage_dir: str | Path = ".",
        *,
        mac: Optional[str] = None,
        argv: Optional[Sequence[str]] = None,
    ) -> None:
        """
        Args:
            storage_dir: Directory on the filesystem that receives images.
            mac: Override for the reported hardware address.
            argv: Command line used on restart; defaults to ``sys.argv``.
        """
        self.storage_dir = Path(storage_dir).expanduser()
        self._mac = mac
        self._argv = list(argv) if argv is not None else None

    def hardware_info(self) -> HardwareInfo:
        node = uuid.getnode()
        mac = self._mac or format_mac(node)
        usage = psutil.disk_usage(str(self._existing_dir()))
        return HardwareInfo(
            mac=mac,
            # Chip id is the lower half of the hardware address.
            chip_id=node & 0xFFFFFF,
            chip_size=usage.total,
            ota_size=ota_space(usage.free),
        )

    def restart(self) -> None:
        """Replace the running process with a fresh copy of itself."""
        argv = self._argv if self._argv is not None else list(sys.argv)
        log.warning("Restarting: %s %s", sys.executable, " ".join(argv))
        logging.shutdown()
        sys.stdout.flush()
        sys.stderr.flush()
        os.execv(sys.executable, [sys.executable, *argv])

    def _existing_dir(self) -> Path:
        directory = self.storage_dir
        while not directory.exists() and directory != directory.parent:
            directory = directory.parent
        return directory


__all__ = ["HostSystem", "format_mac"]
