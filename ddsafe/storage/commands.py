"""Subprocess helpers shared by the enumerator, unmounter and object store client."""

from __future__ import annotations

import shutil
import subprocess
from typing import Iterable, Optional, Sequence

from ddsafe.exceptions import MissingDependencyError
from ddsafe.logging import get_logger

log = get_logger(source="command", tags=["command"])
output_log = get_logger(source="command", tags=["command", "output"])


def run_command(command: Sequence[str], check=True, log_output=True, log_command=True):
    """Run a command capturing text output, logging it at DEBUG."""
    if log_command:
        log.debug(f"Running command: {' '.join(command)}")
    try:
        result = subprocess.run(
            list(command), check=check, text=True, capture_output=True
        )
    except subprocess.CalledProcessError as error:
        log.debug(f"Command failed: {' '.join(command)}")
        if error.stdout:
            output_log.debug(f"stdout: {error.stdout.strip()}")
        if error.stderr:
            output_log.debug(f"stderr: {error.stderr.strip()}")
        raise
    if result.stdout and (log_output or result.returncode != 0):
        output_log.debug(f"stdout: {result.stdout.strip()}")
    if result.stderr and (log_output or result.returncode != 0):
        output_log.debug(f"stderr: {result.stderr.strip()}")
    if log_command:
        log.debug(f"Command completed with return code {result.returncode}")
    return result


def with_sudo(command: Sequence[str], use_sudo: bool) -> list[str]:
    if use_sudo:
        return ["sudo", *command]
    return list(command)


def find_program(program: str) -> Optional[str]:
    return shutil.which(program)


def require_programs(programs: Iterable[str]) -> None:
    """Raise MissingDependencyError for the first program not on PATH."""
    for program in programs:
        if find_program(program) is None:
            raise MissingDependencyError(program)
        log.debug(f"Found dependency: {program}")
