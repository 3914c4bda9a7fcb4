"""Defaults file and the immutable per-invocation configuration."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ddsafe.domain import MatchConstraint
from ddsafe.exceptions import ConfigurationError
from ddsafe.logging import LoggerFactory


SETTINGS_PATH = Path(
    os.environ.get(
        "DDSAFE_SETTINGS_PATH",
        Path.home() / ".config" / "ddsafe" / "settings.json",
    )
)

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_BLOCK_SIZE = "4M"
DEFAULT_MC_PATH = "mc"

DEFAULT_SETTINGS: dict[str, Any] = {
    "block_size": DEFAULT_BLOCK_SIZE,
    "mc_path": DEFAULT_MC_PATH,
    "use_sudo": False,
}

# dd accepts a number with an optional multiplicative suffix
BLOCK_SIZE_PATTERN = re.compile(r"^[1-9]\d*(?:[cwbkKMGTP]|[kKMGTP]i?B)?$")

log = LoggerFactory.for_system()


def load_settings(path: Optional[Path] = None) -> dict[str, Any]:
    """Return built-in defaults overlaid with the user's settings file.

    A missing, unreadable or malformed file leaves the defaults untouched.
    Unknown keys and values of the wrong JSON type are ignored.
    """
    values = dict(DEFAULT_SETTINGS)
    path = path or SETTINGS_PATH
    if not path.exists():
        return values
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return values
    if not isinstance(data, dict):
        return values
    for key, default in DEFAULT_SETTINGS.items():
        if key not in data:
            continue
        if type(data[key]) is not type(default):
            log.warning(
                f"Ignoring {key} in {path}: expected {type(default).__name__}, "
                f"got {data[key]!r}"
            )
            continue
        values[key] = data[key]
    return values


def compile_model_pattern(pattern: Optional[str]) -> Optional[re.Pattern]:
    """Compile the -m pattern, rejecting invalid regular expressions."""
    if pattern is None:
        return None
    try:
        return re.compile(pattern)
    except re.error as error:
        raise ConfigurationError("model pattern", f"{pattern!r}: {error}") from error


def validate_block_size(block_size: str) -> str:
    if not BLOCK_SIZE_PATTERN.match(str(block_size)):
        raise ConfigurationError("block size", repr(block_size))
    return str(block_size)


@dataclass(frozen=True)
class WriteConfig:
    """Every choice made on the command line, validated once up front."""

    input_path: Optional[str] = None
    newest: bool = False
    output: Optional[str] = None
    mc_path: str = DEFAULT_MC_PATH
    constraint: MatchConstraint = MatchConstraint()
    use_sudo: bool = False
    block_size: str = DEFAULT_BLOCK_SIZE
    list_only: bool = False
    dry_run: bool = False
    force: bool = False
    debug: bool = False

    @classmethod
    def from_args(cls, args, defaults: Optional[dict[str, Any]] = None) -> WriteConfig:
        """Build a config from parsed argparse arguments.

        Raises:
            ConfigurationError: If any value is invalid. Nothing has touched a
                device or the network at this point.
        """
        defaults = defaults if defaults is not None else load_settings()

        size = args.size
        if size is not None:
            size = size.strip()
            if not size:
                raise ConfigurationError("expected size", "empty value")
        model = compile_model_pattern(args.model)

        block_size = validate_block_size(args.block_size or defaults["block_size"])

        if not args.list_only and not args.input:
            raise ConfigurationError("input", "an input path (-i) is required")
        if args.newest and not args.input:
            raise ConfigurationError("input", "-n needs a directory given with -i")

        return cls(
            input_path=args.input,
            newest=args.newest,
            output=args.output,
            mc_path=args.mc_path or defaults["mc_path"],
            constraint=MatchConstraint(size=size, model=model),
            use_sudo=args.use_sudo or bool(defaults["use_sudo"]),
            block_size=block_size,
            list_only=args.list_only,
            dry_run=args.dry_run,
            force=args.force,
            debug=args.debug,
        )
