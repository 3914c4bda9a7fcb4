"""Domain objects shared by the matcher, selector and gate."""

from .models import (
    DeviceRecord,
    GateOutcome,
    GateState,
    MatchConstraint,
    MatchReport,
    MatchResult,
    TransferSource,
)

__all__ = [
    "DeviceRecord",
    "GateOutcome",
    "GateState",
    "MatchConstraint",
    "MatchReport",
    "MatchResult",
    "TransferSource",
]
