"""Thin client for a MinIO-compatible object store through the ``mc`` CLI.

Only the calls needed to pick and stream an image are wrapped: reachability,
stat, recursive listing and cat. ``mc --json`` prints one JSON document per
line; lines with ``"status": "error"`` are skipped or raised as appropriate.
"""

from __future__ import annotations

import json
import re
import subprocess
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ddsafe.exceptions import InputUnreadableError
from ddsafe.logging import LoggerFactory

from .commands import run_command

log = LoggerFactory.for_source()

_FRACTION = re.compile(r"\.(\d{6})\d+")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse mc's RFC 3339 timestamps, which may carry nanoseconds."""
    if not value:
        return None
    text = _FRACTION.sub(r".\1", value.strip())
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        log.debug(f"Unparseable timestamp from mc: {value!r}")
        return None


@dataclass(frozen=True)
class ObjectEntry:
    key: str
    size: Optional[int]
    modified: Optional[datetime]


class ObjectStoreClient:
    """Runs mc subcommands against an alias configured in mc."""

    def __init__(self, mc_path: str = "mc"):
        self.mc_path = mc_path

    def is_reachable(self, alias: str) -> bool:
        try:
            result = run_command(
                [self.mc_path, "ls", "--json", f"{alias}/"],
                check=False,
                log_output=False,
            )
        except OSError as error:
            log.debug(f"mc could not be started: {error}")
            return False
        return result.returncode == 0

    def stat(self, target: str) -> ObjectEntry:
        """Return size and modification time of one object.

        Raises:
            InputUnreadableError: If the object does not exist or mc fails.
        """
        try:
            result = run_command([self.mc_path, "stat", "--json", target], check=True)
        except (subprocess.CalledProcessError, OSError) as error:
            raise InputUnreadableError(target, _error_text(error)) from error
        for document in _json_lines(result.stdout):
            if document.get("status") == "error":
                raise InputUnreadableError(target, _mc_error_message(document))
            return ObjectEntry(
                key=target,
                size=_as_int(document.get("size")),
                modified=parse_timestamp(document.get("lastModified")),
            )
        raise InputUnreadableError(target, "empty response from mc stat")

    def list_recursive(self, prefix: str) -> list[ObjectEntry]:
        """List every object below prefix with its modification time.

        Raises:
            InputUnreadableError: If the listing fails.
        """
        try:
            result = run_command(
                [self.mc_path, "ls", "--recursive", "--json", prefix],
                check=True,
                log_output=False,
            )
        except (subprocess.CalledProcessError, OSError) as error:
            raise InputUnreadableError(prefix, _error_text(error)) from error
        entries = []
        for document in _json_lines(result.stdout):
            if document.get("status") == "error":
                log.warning(f"mc ls: {_mc_error_message(document)}")
                continue
            if document.get("type") == "folder" or not document.get("key"):
                continue
            entries.append(
                ObjectEntry(
                    key=document["key"],
                    size=_as_int(document.get("size")),
                    modified=parse_timestamp(document.get("lastModified")),
                )
            )
        log.debug(f"mc listed {len(entries)} objects under {prefix}")
        return entries

    def cat_command(self, target: str) -> list[str]:
        return [self.mc_path, "cat", target]


def _json_lines(output: str):
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            document = json.loads(line)
        except json.JSONDecodeError:
            log.debug(f"Skipping non-JSON mc output: {line}")
            continue
        if isinstance(document, dict):
            yield document


def _mc_error_message(document: dict) -> str:
    error = document.get("error")
    if isinstance(error, dict):
        return error.get("message") or "unknown error"
    return str(error or "unknown error")


def _error_text(error: Exception) -> str:
    stderr = getattr(error, "stderr", None)
    if stderr:
        return stderr.strip()
    return str(error)


def _as_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
