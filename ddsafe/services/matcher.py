"""Match devices against the expected size and model.

Pure functions over the enumerated device list; nothing here touches a device
or prints anything. Highlighting is done by ddsafe.ui.console from the
MatchReport.
"""

from __future__ import annotations

from typing import Iterable, Optional

from ddsafe.domain import (
    DeviceRecord,
    GateState,
    MatchConstraint,
    MatchReport,
    MatchResult,
)
from ddsafe.storage.devices import find_device


def size_matches(device: Optional[DeviceRecord], constraint: MatchConstraint) -> bool:
    """Exact string comparison; "8G" does not match "8.0G"."""
    if not constraint.size_enabled:
        return True
    return device is not None and device.size == constraint.size


def model_matches(device: Optional[DeviceRecord], constraint: MatchConstraint) -> bool:
    if not constraint.model_enabled:
        return True
    return device is not None and constraint.model.search(device.model) is not None


def evaluate(
    devices: Iterable[DeviceRecord],
    target: str,
    constraint: MatchConstraint,
) -> MatchReport:
    """Check target and every other device against constraint.

    When several devices share the target's name only the first in listing
    order is treated as the target.
    """
    devices = tuple(devices)
    target_device = find_device(list(devices), target)

    results = []
    for device in devices:
        results.append(
            MatchResult(
                device=device,
                size_matches=constraint.size_enabled and size_matches(device, constraint),
                model_matches=constraint.model_enabled
                and model_matches(device, constraint),
                is_selected_target=device is target_device,
            )
        )

    target_result = None
    if target_device is not None:
        target_result = MatchResult(
            device=target_device,
            size_matches=size_matches(target_device, constraint),
            model_matches=model_matches(target_device, constraint),
            is_selected_target=True,
        )

    return MatchReport(
        target=target,
        constraint=constraint,
        target_result=target_result,
        results=tuple(results),
        size_matching=tuple(r.device for r in results if r.size_matches),
        model_matching=tuple(r.device for r in results if r.model_matches),
    )


def gate_state(report: MatchReport) -> GateState:
    return GateState.MATCH_OK if report.overall_match else GateState.MATCH_FAIL
