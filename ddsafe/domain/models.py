"""Domain objects for a single device write.

Everything here is an immutable snapshot taken during one invocation; nothing
is persisted between runs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


# ==============================================================================
# Device Domain
# ==============================================================================


@dataclass(frozen=True)
class DeviceRecord:
    """A block device as listed by lsblk.

    Sizes stay in lsblk's human-readable form ("250G") because constraints are
    compared against that text verbatim.
    """

    name: str  # e.g., "/dev/sdb"
    size: str  # e.g., "14.9G"
    model: str = ""
    partition_count: int = 0

    def format_label(self) -> str:
        """Return e.g. "/dev/sdb 14.9G SanDisk Cruzer"."""
        parts = [self.name, self.size]
        if self.model:
            parts.append(self.model)
        return " ".join(parts)


# ==============================================================================
# Matching Domain
# ==============================================================================


@dataclass(frozen=True)
class MatchConstraint:
    """Expected identity of the target device.

    A constraint left as None is disabled.
    """

    size: Optional[str] = None
    model: Optional[re.Pattern] = None

    @property
    def size_enabled(self) -> bool:
        return self.size is not None

    @property
    def model_enabled(self) -> bool:
        return self.model is not None

    @property
    def any_enabled(self) -> bool:
        return self.size_enabled or self.model_enabled


@dataclass(frozen=True)
class MatchResult:
    """Outcome of checking one device against the constraint.

    In MatchReport.results a disabled constraint is reported as not matched,
    so it is never highlighted. MatchReport.target_result treats it as
    satisfied.
    """

    device: DeviceRecord
    size_matches: bool
    model_matches: bool
    is_selected_target: bool = False


@dataclass(frozen=True)
class MatchReport:
    """Matcher output for a chosen target across the whole device list."""

    target: str
    constraint: MatchConstraint
    target_result: Optional[MatchResult]
    results: tuple[MatchResult, ...] = ()
    size_matching: tuple[DeviceRecord, ...] = ()
    model_matching: tuple[DeviceRecord, ...] = ()

    @property
    def target_found(self) -> bool:
        return self.target_result is not None

    @property
    def size_matches(self) -> bool:
        if not self.constraint.size_enabled:
            return True
        return self.target_result is not None and self.target_result.size_matches

    @property
    def model_matches(self) -> bool:
        if not self.constraint.model_enabled:
            return True
        return self.target_result is not None and self.target_result.model_matches

    @property
    def overall_match(self) -> bool:
        return self.size_matches and self.model_matches

    def failed_constraints(self) -> list[str]:
        """Names of the enabled constraints the target does not satisfy."""
        failed = []
        if not self.size_matches:
            failed.append(f"size {self.constraint.size}")
        if not self.model_matches:
            failed.append(f"model /{self.constraint.model.pattern}/")
        return failed

    def alternatives(self) -> list[DeviceRecord]:
        """Devices other than the target that satisfy every failed constraint."""
        candidates = []
        for result in self.results:
            if result.is_selected_target:
                continue
            if not self.size_matches and not result.size_matches:
                continue
            if not self.model_matches and not result.model_matches:
                continue
            candidates.append(result.device)
        return candidates


class GateState(Enum):
    """Matcher outcome as seen by the confirmation gate."""

    MATCH_OK = "match_ok"
    MATCH_FAIL = "match_fail"


class GateOutcome(Enum):
    """Terminal state of the confirmation gate."""

    PROCEED = "proceed"
    ABORT = "abort"


# ==============================================================================
# Transfer Domain
# ==============================================================================


@dataclass(frozen=True)
class TransferSource:
    """Where the image bytes come from.

    For remote sources location is the object-store target ("alias/bucket/key").
    """

    location: str
    remote: bool = False
    size: Optional[int] = None
    modified: Optional[datetime] = None
    compressed: bool = False

    @classmethod
    def for_location(
        cls,
        location: str,
        *,
        remote: bool = False,
        size: Optional[int] = None,
        modified: Optional[datetime] = None,
    ) -> TransferSource:
        return cls(
            location=location,
            remote=remote,
            size=size,
            modified=modified,
            compressed=location.lower().endswith(".gz"),
        )

    def describe(self) -> str:
        parts = [self.location]
        if self.size is not None:
            parts.append(f"{self.size} bytes")
        if self.modified is not None:
            parts.append(f"modified {self.modified:%Y-%m-%d %H:%M:%S}")
        return ", ".join(parts)
