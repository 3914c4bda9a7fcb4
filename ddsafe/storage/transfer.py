"""Build and run the copy pipeline.

    local image       dd if=IMAGE of=DEVICE ...
    local .gz image   gunzip -c IMAGE | dd of=DEVICE ...
    remote image      mc cat ALIAS/KEY | dd of=DEVICE ...
    remote .gz image  mc cat ALIAS/KEY | gunzip -c | dd of=DEVICE ...

Stages are chained with pipes in this process; dd's progress output goes
straight to the terminal.
"""

from __future__ import annotations

import subprocess
from typing import Sequence

from ddsafe.domain import TransferSource
from ddsafe.exceptions import TransferError
from ddsafe.logging import LoggerFactory

from .commands import with_sudo
from .object_store import ObjectStoreClient


def build_dd_command(
    target: str,
    block_size: str,
    input_file: str | None = None,
    use_sudo: bool = False,
) -> list[str]:
    command = ["dd"]
    if input_file is not None:
        command.append(f"if={input_file}")
    command.extend([f"of={target}", f"bs={block_size}", "conv=fsync", "status=progress"])
    return with_sudo(command, use_sudo)


def build_pipeline(
    source: TransferSource,
    target: str,
    block_size: str,
    *,
    use_sudo: bool = False,
    mc_path: str = "mc",
) -> list[list[str]]:
    """Return the commands to run, in pipe order."""
    commands: list[list[str]] = []
    if source.remote:
        commands.append(ObjectStoreClient(mc_path).cat_command(source.location))
    if source.compressed:
        if source.remote:
            commands.append(["gunzip", "-c"])
        else:
            commands.append(["gunzip", "-c", source.location])

    direct_input = None if commands else source.location
    commands.append(build_dd_command(target, block_size, direct_input, use_sudo))
    return commands


def format_pipeline(commands: Sequence[Sequence[str]]) -> str:
    return " | ".join(" ".join(command) for command in commands)


def run_pipeline(commands: Sequence[Sequence[str]], log=None) -> None:
    """Run commands connected by pipes and wait for all of them.

    Raises:
        TransferError: If any stage cannot be started or exits non-zero.
    """
    log = log or LoggerFactory.for_transfer()
    log.debug(f"Running pipeline: {format_pipeline(commands)}")

    processes: list[subprocess.Popen] = []
    previous_stdout = None
    try:
        for position, command in enumerate(commands):
            is_last = position == len(commands) - 1
            process = subprocess.Popen(
                list(command),
                stdin=previous_stdout,
                stdout=None if is_last else subprocess.PIPE,
            )
            if previous_stdout is not None:
                # Let the upstream stage see SIGPIPE if this one exits early
                previous_stdout.close()
            previous_stdout = process.stdout
            processes.append(process)
    except OSError as error:
        for process in processes:
            process.kill()
            process.wait()
        raise TransferError(
            f"Could not start {command[0]}: {error}", command=command
        ) from error

    failures = []
    for command, process in zip(commands, processes):
        returncode = process.wait()
        log.debug(f"{command[0]} exited with {returncode}")
        if returncode != 0:
            failures.append((command, returncode))

    if failures:
        command, returncode = failures[-1]
        names = ", ".join(f"{c[0]} ({code})" for c, code in failures)
        raise TransferError(
            f"Copy failed: {names}", command=command, returncode=returncode
        )
