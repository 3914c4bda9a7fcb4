"""Resolve exactly one target device."""

from __future__ import annotations

from typing import Optional, Sequence

from ddsafe.domain import DeviceRecord, MatchConstraint
from ddsafe.exceptions import NoDevicesFoundError, SoleDeviceRefusedError
from ddsafe.logging import LoggerFactory
from ddsafe.storage.devices import resolve_device_node
from ddsafe.ui.console import Prompter, print_devices

from . import matcher

log = LoggerFactory.for_devices()


def select_target(
    devices: Sequence[DeviceRecord],
    explicit: Optional[str],
    constraint: MatchConstraint,
    prompter: Prompter,
) -> str:
    """Return the device path to write to.

    An explicit name (-o) is used as given, normalised to /dev/. Otherwise the
    devices are listed with constraint matches highlighted and the user picks
    one by number.

    A machine with a single block device almost certainly has no spare disk
    to overwrite, so a one-device listing is refused even when -o names it.

    Raises:
        NoDevicesFoundError: If devices is empty.
        SoleDeviceRefusedError: If devices holds exactly one entry.
        UserDeclinedError: If input ends before a device is chosen.
    """
    if not devices:
        raise NoDevicesFoundError()
    if len(devices) == 1:
        raise SoleDeviceRefusedError(devices[0].name)

    if explicit:
        target = resolve_device_node(explicit)
        log.debug(f"Target given on command line: {target}")
        return target

    print_devices(prompter.console, devices, matcher.evaluate(devices, "", constraint))
    index = prompter.choose_index(len(devices))
    target = devices[index].name
    log.info(f"Selected {devices[index].format_label()}")
    return target
