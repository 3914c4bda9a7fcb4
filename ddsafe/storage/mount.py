"""Mount inspection and unmounting for the target device.

Active mounts are read from /proc/mounts. A mount belongs to the target when
its source is the device node itself or one of its partitions (``/dev/sdb1``,
``/dev/mmcblk0p2``, ``/dev/nvme0n1p1``).
"""

from __future__ import annotations

import re
import subprocess
from pathlib import Path

from ddsafe.exceptions import UnmountFailedError
from ddsafe.logging import LoggerFactory

from .commands import run_command, with_sudo

PROC_MOUNTS = Path("/proc/mounts")

_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")

log = LoggerFactory.for_devices()


def _unescape_mount_field(value: str) -> str:
    # /proc/mounts encodes space, tab, newline and backslash as octal
    return _OCTAL_ESCAPE.sub(lambda match: chr(int(match.group(1), 8)), value)


def is_partition_of(source: str, device: str) -> bool:
    if source == device:
        return True
    if not source.startswith(device):
        return False
    # nvme0n1p1, mmcblk0p2: a trailing digit needs the "p" separator
    suffix = r"p\d+" if device[-1:].isdigit() else r"\d+"
    return re.fullmatch(suffix, source[len(device):]) is not None


def list_mountpoints(device: str, mounts_path: Path = PROC_MOUNTS) -> list[str]:
    """Return mount points of device and its partitions, in mount order."""
    mountpoints: list[str] = []
    try:
        with open(mounts_path, "r", encoding="utf-8") as mounts_file:
            for line in mounts_file:
                parts = line.split()
                if len(parts) < 2:
                    continue
                source = _unescape_mount_field(parts[0])
                if is_partition_of(source, device):
                    mountpoints.append(_unescape_mount_field(parts[1]))
    except FileNotFoundError:
        log.warning(f"{mounts_path} not available; assuming {device} is not mounted")
    return mountpoints


def unmount_device(
    device: str,
    *,
    use_sudo: bool = False,
    dry_run: bool = False,
    mounts_path: Path = PROC_MOUNTS,
) -> list[str]:
    """Unmount every mount point of device.

    Mount points are unmounted deepest first so nested mounts come off before
    their parents. With dry_run the mount points are only reported.

    Returns:
        The mount points that were (or would be) unmounted.

    Raises:
        UnmountFailedError: If any umount fails. The write must not go ahead.
    """
    mountpoints = list_mountpoints(device, mounts_path)
    if not mountpoints:
        log.debug(f"No mounted partitions on {device}")
        return []

    ordered = sorted(mountpoints, key=lambda mp: mp.count("/"), reverse=True)
    if dry_run:
        for mountpoint in ordered:
            log.info(f"Dry run: would unmount {mountpoint}")
        return ordered

    failed = []
    for mountpoint in ordered:
        try:
            run_command(with_sudo(["umount", mountpoint], use_sudo), check=True)
            log.info(f"Unmounted {mountpoint}")
        except (subprocess.CalledProcessError, OSError) as error:
            log.error(f"Failed to unmount {mountpoint}: {error}")
            failed.append(mountpoint)

    if failed:
        raise UnmountFailedError(device, failed)
    return ordered
