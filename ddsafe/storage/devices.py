"""Block device enumeration using lsblk.

Devices are listed with::

    lsblk --nodeps --pairs --paths --output NAME,SIZE,MODEL

which prints one ``KEY="value"`` line per whole disk, in the kernel's order.
Loop devices are dropped. Each remaining device is paired with its partition
count, read from sysfs, and returned as an immutable DeviceRecord.

The list is rebuilt on every call; nothing is cached because the device set
may change between listing and writing.
"""

from __future__ import annotations

import re
import subprocess
from pathlib import Path

from ddsafe.domain import DeviceRecord
from ddsafe.exceptions import ResourceUnavailableError
from ddsafe.logging import LoggerFactory

from .commands import run_command

LSBLK_COMMAND = [
    "lsblk",
    "--nodeps",
    "--pairs",
    "--paths",
    "--output",
    "NAME,SIZE,MODEL",
]
LOOP_DEVICE_PATTERN = re.compile(r"^(?:/dev/)?loop\d*$")
SYS_CLASS_BLOCK = Path("/sys/class/block")

_PAIR_PATTERN = re.compile(r'([A-Z0-9_:-]+)="((?:[^"\\]|\\.)*)"')
_HEX_ESCAPE = re.compile(r"\\x([0-9a-fA-F]{2})")

log = LoggerFactory.for_devices()


def _unescape(value: str) -> str:
    return _HEX_ESCAPE.sub(lambda match: chr(int(match.group(1), 16)), value)


def parse_lsblk_pairs(output: str) -> list[dict[str, str]]:
    """Parse ``lsblk --pairs`` output into one dict per line."""
    rows = []
    for line in output.splitlines():
        if not line.strip():
            continue
        rows.append(
            {key: _unescape(value) for key, value in _PAIR_PATTERN.findall(line)}
        )
    return rows


def is_loop_device(name: str) -> bool:
    return bool(LOOP_DEVICE_PATTERN.match(name))


def count_partitions(device_name: str, sys_root: Path = SYS_CLASS_BLOCK) -> int:
    """Count partitions of a disk from /sys/class/block/<disk>/<part>/partition."""
    short_name = Path(device_name).name
    device_dir = sys_root / short_name
    try:
        return sum(
            1
            for child in device_dir.iterdir()
            if child.name.startswith(short_name) and (child / "partition").exists()
        )
    except OSError:
        return 0


def list_devices(sys_root: Path = SYS_CLASS_BLOCK) -> list[DeviceRecord]:
    """Return every non-loop block device in listing order.

    Returns an empty list when lsblk reports nothing; the caller decides
    whether that is fatal.

    Raises:
        ResourceUnavailableError: If lsblk cannot be run.
    """
    try:
        result = run_command(LSBLK_COMMAND, log_output=False)
    except (subprocess.CalledProcessError, OSError) as error:
        raise ResourceUnavailableError(f"lsblk failed: {error}") from error

    records = []
    for row in parse_lsblk_pairs(result.stdout):
        name = row.get("NAME", "")
        if not name or is_loop_device(name):
            continue
        records.append(
            DeviceRecord(
                name=name,
                size=row.get("SIZE", "").strip(),
                model=row.get("MODEL", "").strip(),
                partition_count=count_partitions(name, sys_root),
            )
        )

    if records:
        log.debug(
            f"lsblk found {len(records)} devices: "
            f"{', '.join(record.name for record in records)}"
        )
    else:
        log.debug("lsblk found no block devices")
    return records


def resolve_device_node(name: str) -> str:
    """Convert a kernel name ("sdb") to a device node path ("/dev/sdb")."""
    name = name.strip()
    return name if name.startswith("/") else f"/dev/{name}"


def find_device(devices: list[DeviceRecord], name: str):
    """Return the first device whose name equals name, or None."""
    for device in devices:
        if device.name == name:
            return device
    return None
