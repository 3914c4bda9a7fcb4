"""Resolve the -i/-n arguments to a concrete, readable transfer source.

Input forms:
    PATH               local image file
    DIR or DIR/GLOB    with -n: newest local file in DIR matching GLOB
    ALIAS:PATH         object in the mc alias ALIAS ("store:bucket/pi.img.gz")
    ALIAS:PREFIX/GLOB  with -n: newest object below PREFIX matching GLOB

An existing local path always wins over the ALIAS:PATH reading, so a local
file literally named ``a:b`` is still treated as local.
"""

from __future__ import annotations

import fnmatch
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from ddsafe.config import WriteConfig
from ddsafe.domain import TransferSource
from ddsafe.exceptions import InputUnreadableError, StoreUnreachableError
from ddsafe.logging import LoggerFactory
from ddsafe.storage.object_store import ObjectStoreClient

REMOTE_PATTERN = re.compile(r"^([A-Za-z0-9_-]+):(.+)$")
GLOB_CHARS = set("*?[")

log = LoggerFactory.for_source()


def parse_remote(input_path: str) -> Optional[tuple[str, str]]:
    """Split ALIAS:PATH, or return None for local inputs."""
    if os.path.exists(input_path):
        return None
    match = REMOTE_PATTERN.match(input_path)
    if not match:
        return None
    return match.group(1), match.group(2).lstrip("/")


def is_remote(input_path: str) -> bool:
    return parse_remote(input_path) is not None


def _split_glob(path: str) -> tuple[str, str]:
    head, _, tail = path.rstrip("/").rpartition("/")
    if GLOB_CHARS & set(tail):
        return head, tail
    return path.rstrip("/"), "*"


def newest_local_file(input_path: str) -> Path:
    """Pick the most recently modified regular file for -n.

    Raises:
        InputUnreadableError: If the directory is missing or nothing matches.
    """
    path = Path(input_path)
    if path.is_dir():
        directory, pattern = path, "*"
    else:
        directory, pattern = path.parent, path.name
    if not directory.is_dir():
        raise InputUnreadableError(str(directory), "not a directory")

    candidates = [
        candidate
        for candidate in directory.glob(pattern)
        if candidate.is_file()
    ]
    if not candidates:
        raise InputUnreadableError(
            str(directory / pattern), "no matching files"
        )
    newest = max(candidates, key=lambda candidate: candidate.stat().st_mtime)
    log.debug(f"Newest of {len(candidates)} files matching {pattern}: {newest}")
    return newest


def _local_source(path: Path) -> TransferSource:
    if not path.is_file():
        raise InputUnreadableError(str(path), "not a regular file")
    if not os.access(path, os.R_OK):
        raise InputUnreadableError(str(path), "permission denied")
    stat = path.stat()
    return TransferSource.for_location(
        str(path),
        size=stat.st_size,
        modified=datetime.fromtimestamp(stat.st_mtime),
    )


def _remote_source(
    alias: str, path: str, newest: bool, client: ObjectStoreClient
) -> TransferSource:
    if not client.is_reachable(alias):
        raise StoreUnreachableError(alias)

    if not newest:
        target = f"{alias}/{path}"
        entry = client.stat(target)
        return TransferSource.for_location(
            target, remote=True, size=entry.size, modified=entry.modified
        )

    prefix, pattern = _split_glob(path)
    prefix_target = f"{alias}/{prefix}/" if prefix else f"{alias}/"
    entries = [
        entry
        for entry in client.list_recursive(prefix_target)
        if entry.modified is not None
        and fnmatch.fnmatch(entry.key.rsplit("/", 1)[-1], pattern)
    ]
    if not entries:
        raise InputUnreadableError(f"{prefix_target}{pattern}", "no matching objects")
    entry = max(entries, key=lambda candidate: candidate.modified)
    return TransferSource.for_location(
        f"{prefix_target}{entry.key}",
        remote=True,
        size=entry.size,
        modified=entry.modified,
    )


def resolve_source(
    config: WriteConfig, client: Optional[ObjectStoreClient] = None
) -> TransferSource:
    """Resolve config.input_path to a readable TransferSource.

    Raises:
        InputUnreadableError: If the file or object cannot be read.
        StoreUnreachableError: If the object store alias does not answer.
    """
    remote = parse_remote(config.input_path)
    if remote is not None:
        alias, path = remote
        client = client or ObjectStoreClient(config.mc_path)
        source = _remote_source(alias, path, config.newest, client)
    elif config.newest:
        source = _local_source(newest_local_file(config.input_path))
    else:
        source = _local_source(Path(config.input_path))

    log.info(f"Input: {source.describe()}")
    return source
