"""Exceptions raised while preparing and performing a device write.

Exception Hierarchy:
    DdSafeError (base)
        ├── ConfigurationError
        ├── ResourceUnavailableError
        │   ├── MissingDependencyError
        │   ├── InputUnreadableError
        │   ├── StoreUnreachableError
        │   ├── NoDevicesFoundError
        │   └── SoleDeviceRefusedError
        ├── ConstraintMismatchError
        ├── UserDeclinedError
        ├── UnmountFailedError
        └── TransferError

Configuration errors are raised before any device or network I/O. Every
other error surfaces as soon as it is detected; nothing is retried.

Usage:
    from ddsafe.exceptions import NoDevicesFoundError

    if not devices:
        raise NoDevicesFoundError()
"""

from __future__ import annotations

from typing import Sequence


class DdSafeError(Exception):
    """Base exception for all ddsafe failures."""


class ConfigurationError(DdSafeError):
    """A flag value, pattern or required input is invalid."""

    def __init__(self, option: str, reason: str):
        self.option = option
        self.reason = reason
        super().__init__(f"Invalid {option}: {reason}")


class ResourceUnavailableError(DdSafeError):
    """Base exception for missing inputs, programs, stores or devices."""


class MissingDependencyError(ResourceUnavailableError):
    """A required external program is not installed."""

    def __init__(self, program: str):
        self.program = program
        super().__init__(f"Required program not found: {program}")


class InputUnreadableError(ResourceUnavailableError):
    """The transfer source cannot be read."""

    def __init__(self, location: str, reason: str = ""):
        self.location = location
        self.reason = reason
        msg = f"Cannot read input {location}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class StoreUnreachableError(ResourceUnavailableError):
    """The object store alias does not answer."""

    def __init__(self, alias: str, reason: str = ""):
        self.alias = alias
        self.reason = reason
        msg = f"Object store {alias} is unreachable"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class NoDevicesFoundError(ResourceUnavailableError):
    """No candidate block devices were enumerated."""

    def __init__(self):
        super().__init__("No block devices found")


class SoleDeviceRefusedError(ResourceUnavailableError):
    """Only one device exists, which is unlikely to be a write target."""

    def __init__(self, device_name: str):
        self.device_name = device_name
        super().__init__(
            f"Only one block device found ({device_name}); refusing to select it"
        )


class ConstraintMismatchError(DdSafeError):
    """The target failed an enabled size or model constraint."""

    def __init__(
        self,
        device_name: str,
        failed: Sequence[str],
        alternatives: Sequence[str] = (),
    ):
        self.device_name = device_name
        self.failed = list(failed)
        self.alternatives = list(alternatives)
        msg = f"{device_name} does not match expected {' and '.join(self.failed)}"
        if self.alternatives:
            msg += f"; matching devices: {', '.join(self.alternatives)}"
        super().__init__(msg)


class UserDeclinedError(DdSafeError):
    """The user answered no to a confirmation."""

    def __init__(self, question: str = ""):
        self.question = question
        super().__init__("Aborted by user")


class UnmountFailedError(DdSafeError):
    """Failed to unmount one or more mount points of the target."""

    def __init__(self, device_name: str, mountpoints: list[str]):
        self.device_name = device_name
        self.mountpoints = mountpoints
        mounts_str = ", ".join(mountpoints)
        super().__init__(
            f"Failed to unmount {device_name}. " f"Active mountpoints: {mounts_str}"
        )


class TransferError(DdSafeError):
    """A stage of the copy pipeline exited with an error."""

    def __init__(self, message: str, command: Sequence[str] = (), returncode: int = 1):
        self.command = list(command)
        self.returncode = returncode
        super().__init__(message)
