from __future__ import annotations

import os
import sys
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from loguru import Logger

from loguru import logger

DEFAULT_LOG_DIR = Path(
    os.environ.get(
        "DDSAFE_LOG_DIR",
        Path.home() / ".local" / "state" / "ddsafe" / "logs",
    )
)


def _should_log_command_output(record) -> bool:
    """Hide raw subprocess output from the console unless it is a problem."""
    tags = record["extra"].get("tags", [])
    if "output" in tags:
        return record["level"].no >= logger.level("WARNING").no
    return True


def setup_logging(
    *,
    debug: bool = False,
    log_dir: Path | None = None,
    console: bool = True,
) -> Logger:
    """
    Setup logging sinks for a single invocation.

    Logging Tiers:
    - ERROR: Failed validation, unmount or transfer
    - SUCCESS/INFO: Selected source and target, confirmations, completed writes
    - DEBUG: Every external command and its output

    Log Files:
    - operations.log: INFO+ events (30 day retention)
    - debug.log: DEBUG+ events when --debug is enabled (3 day retention)

    Args:
        debug: Enable DEBUG level logging
        log_dir: Custom log directory (defaults to ~/.local/state/ddsafe/logs)
        console: Attach the stderr sink
    """
    logger.remove()
    logger.configure(extra={"job_id": "-", "tags": [], "source": "ddsafe"})

    console_level = "DEBUG" if debug else "INFO"

    if console:
        logger.add(
            sys.stderr,
            level=console_level,
            backtrace=False,
            diagnose=False,
            filter=None if debug else _should_log_command_output,
            colorize=True,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{extra[source]: <8}</cyan> | "
                "{message}"
            ),
        )

    log_dir = log_dir or DEFAULT_LOG_DIR
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        logger.warning(f"Log directory {log_dir} unavailable: {error}")
        return logger

    # Operations log keeps a record of every write attempt
    logger.add(
        log_dir / "operations.log",
        level="INFO",
        rotation="5 MB",
        retention="30 days",
        compression="zip",
        backtrace=False,
        diagnose=False,
        format=(
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{extra[source]: <8} | "
            "{extra[job_id]: <15} | "
            "{message}"
        ),
    )

    if debug:
        logger.add(
            log_dir / "debug.log",
            level="DEBUG",
            rotation="10 MB",
            retention="3 days",
            compression="zip",
            backtrace=True,
            diagnose=True,
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{extra[source]: <8} | "
                "{extra[job_id]: <15} | "
                "{extra[tags]} | "
                "{message}"
            ),
        )

    return logger


def get_logger(
    *,
    job_id: str | None = None,
    tags: Iterable[str] | None = None,
    source: str | None = None,
) -> Logger:
    """
    Get a logger with bound context.

    Args:
        job_id: Job identifier for tracking a write
        tags: Tags for filtering (e.g., ["devices", "output"])
        source: Source component (e.g., "devices", "transfer")

    Returns:
        Logger with bound context
    """
    extras: dict[str, object] = {}
    if job_id is not None:
        extras["job_id"] = job_id
    if tags is not None:
        extras["tags"] = list(tags)
    if source is not None:
        extras["source"] = source
    return logger.bind(**extras)


@contextmanager
def operation_context(operation: str, **details):
    """
    Track a long-running operation with automatic timing.

    Logs operation start, completion and failure with the elapsed time.

    Example:
        with operation_context("write", source="pi.img", target="/dev/sdb") as log:
            log.debug("Starting dd")
    """
    job_id = f"{operation}-{uuid.uuid4().hex[:8]}"

    with logger.contextualize(job_id=job_id, operation=operation, **details):
        start_time = time.time()
        log = logger.bind(source=operation, job_id=job_id, tags=[operation])
        log.info(f"{operation.capitalize()} started", **details)
        try:
            yield log
            duration = time.time() - start_time
            log.success(
                f"{operation.capitalize()} completed",
                duration_seconds=round(duration, 2),
            )
        except Exception as e:
            duration = time.time() - start_time
            log.error(
                f"{operation.capitalize()} failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_seconds=round(duration, 2),
            )
            raise


class LoggerFactory:
    """
    Factory for creating domain-specific loggers with automatic context.
    """

    @staticmethod
    def for_devices() -> Logger:
        """Logger for device enumeration and unmounting."""
        return logger.bind(source="devices", tags=["devices"])

    @staticmethod
    def for_source() -> Logger:
        """Logger for input resolution and the object store client."""
        return logger.bind(source="source", tags=["source"])

    @staticmethod
    def for_transfer(job_id: str | None = None) -> Logger:
        """Logger for the dd pipeline."""
        if job_id is None:
            job_id = f"write-{uuid.uuid4().hex[:8]}"
        return logger.bind(job_id=job_id, source="transfer", tags=["transfer"])

    @staticmethod
    def for_system() -> Logger:
        """Logger for startup, configuration and dependency checks."""
        return logger.bind(source="system", tags=["system"])
