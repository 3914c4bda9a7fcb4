"""
Pytest configuration and shared fixtures for ddsafe tests.

Subprocesses are never run for real: lsblk, umount, mc and dd are always
patched at the module that calls them.
"""

from io import StringIO
from typing import List

import pytest
from rich.console import Console

from ddsafe.domain import DeviceRecord
from ddsafe.ui.console import Prompter


# ==============================================================================
# Device Fixtures
# ==============================================================================


@pytest.fixture
def lsblk_pairs_output() -> str:
    """lsblk --nodeps --pairs --paths output with a loop device and two disks."""
    return (
        'NAME="/dev/loop0" SIZE="55.5M" MODEL=""\n'
        'NAME="/dev/nvme0n1" SIZE="476.9G" MODEL="Samsung SSD 970 EVO Plus 500GB"\n'
        'NAME="/dev/sda" SIZE="14.9G" MODEL="Cruzer Blade"\n'
        'NAME="/dev/loop12" SIZE="4K" MODEL=""\n'
    )


@pytest.fixture
def two_devices() -> List[DeviceRecord]:
    return [
        DeviceRecord(name="/dev/a", size="8G", model="Alpha", partition_count=1),
        DeviceRecord(name="/dev/b", size="16G", model="Beta", partition_count=2),
    ]


@pytest.fixture
def usb_devices() -> List[DeviceRecord]:
    """A system disk and two identical USB sticks."""
    return [
        DeviceRecord(name="/dev/nvme0n1", size="476.9G", model="Samsung SSD 970", partition_count=3),
        DeviceRecord(name="/dev/sda", size="14.9G", model="Cruzer Blade", partition_count=1),
        DeviceRecord(name="/dev/sdb", size="14.9G", model="Cruzer Blade", partition_count=2),
    ]


# ==============================================================================
# Prompt Fixtures
# ==============================================================================


class ScriptedInput:
    """Input function that replays answers and records the prompts shown."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.prompts: List[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


@pytest.fixture
def make_prompter():
    """Factory returning (prompter, scripted_input, output_buffer)."""

    def _make(*answers):
        buffer = StringIO()
        console = Console(file=buffer, force_terminal=False, width=120)
        scripted = ScriptedInput(answers)
        return Prompter(console, scripted), scripted, buffer

    return _make
