"""
Event logging for the persistence layer and the cache gateway.

Each event goes to the standard `logging` tree (rendered by the CLI's
RichHandler) and, when enabled, as one JSON object per line to a daily
file under the data directory.
"""

import json
import logging
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, TextIO


class StructuredLogger:
    """
    Logs named events with key/value context.

    Usage:
        events = StructuredLogger("work_timesheet", log_dir=Path("logs"))
        events.info("save_completed", entries=42, projects=4, size_bytes=1830)
    """

    def __init__(
        self,
        name: str,
        log_dir: Path | None = None,
        enable_json: bool = True,
        enable_console: bool = True,
    ):
        """
        Args:
            name: Name of the `logging` logger events are forwarded to.
            log_dir: Directory for the JSON lines files; None disables them.
            enable_json: Write JSON lines when a log directory is given.
            enable_console: Forward events to the `logging` logger.
        """
        self.name = name
        self.enable_console = enable_console
        self.enable_json = enable_json and log_dir is not None
        self._logger = logging.getLogger(name)
        self._context: dict[str, Any] = {"session": uuid.uuid4().hex[:12]}
        self._json_file: TextIO | None = None

        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            path = log_dir / f"work_timesheet_{datetime.now():%Y%m%d}.jsonl"
            self._json_file = open(path, "a", encoding="utf-8")  # noqa: SIM115

    def set_session_context(self, **kwargs) -> None:
        """Adds fields written with every JSON event of this session."""
        self._context.update(kwargs)

    @staticmethod
    def _format_message(event: str, **context) -> str:
        fields = " ".join(f"{key}={value}" for key, value in context.items())
        return f"[{event}] {fields}".rstrip()

    def _write_json(self, level: str, event: str, **context) -> None:
        if self._json_file is None or self._json_file.closed:
            return
        record = {
            "ts": datetime.now().isoformat(timespec="milliseconds"),
            "level": level,
            "event": event,
            **self._context,
            **context,
        }
        try:
            self._json_file.write(json.dumps(record, default=str) + "\n")
            self._json_file.flush()
        except (OSError, ValueError) as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _emit(self, level: int, event: str, **context) -> None:
        if self.enable_console:
            # Event names are bracketed; disable rich markup so they print verbatim.
            self._logger.log(
                level,
                self._format_message(event, **context),
                extra={"markup": False},
            )
        if self.enable_json:
            self._write_json(logging.getLevelName(level), event, **context)

    def debug(self, event: str, **context) -> None:
        self._emit(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        self._emit(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        self._emit(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        self._emit(logging.ERROR, event, **context)

    def close(self) -> None:
        if self._json_file is not None and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class StorageLogger:
    """Specialized logger for durable storage events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def snapshot_loaded(self, source: str, projects: int, entries: int):
        """Log where the in-memory collections were loaded from."""
        self.logger.info(
            "snapshot_loaded", source=source, projects=projects, entries=entries
        )

    def save_completed(self, projects: int, entries: int, size_bytes: int):
        """Log a successful redundant write."""
        self.logger.debug(
            "save_completed",
            projects=projects,
            entries=entries,
            size_bytes=size_bytes,
        )

    def save_failed(self, error: str, attempt: int, retry_in_s: float | None):
        """Log a failed save attempt."""
        self.logger.warning(
            "save_failed", error=error, attempt=attempt, retry_in_s=retry_in_s
        )

    def save_abandoned(self, error: str, attempts: int):
        """Log that the retry budget was exhausted."""
        self.logger.error("save_abandoned", error=error, attempts=attempts)

    def cleanup_performed(self, removed_keys: list[str]):
        """Log storage-pressure eviction."""
        self.logger.warning(
            "storage_cleanup", removed=len(removed_keys), keys=removed_keys
        )


class GatewayLogger:
    """Specialized logger for offline cache gateway events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def cache_hit(self, url: str):
        self.logger.debug("gateway_cache_hit", url=url)

    def network_fetch(self, url: str, status: int, cached: bool, duration_ms: float):
        """Log a request that went to the upstream origin."""
        self.logger.debug(
            "gateway_network_fetch",
            url=url,
            status=status,
            cached=cached,
            duration_ms=round(duration_ms, 2),
        )

    def fetch_failed(self, url: str, error: str, fallback: bool):
        self.logger.warning(
            "gateway_fetch_failed", url=url, error=error, fallback=fallback
        )

    def bucket_deleted(self, name: str):
        self.logger.info("gateway_bucket_deleted", bucket=name)

    def lifecycle(self, phase: str, **context):
        """Log install/activate/sync phases."""
        self.logger.info(f"gateway_{phase}", **context)


def create_structured_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> tuple[StructuredLogger, StorageLogger, GatewayLogger]:
    """
    Create all structured loggers.

    Returns:
        Tuple of (base_logger, storage_logger, gateway_logger)
    """
    base = StructuredLogger("work_timesheet", log_dir=log_dir, enable_json=enable_json)
    storage = StorageLogger(base)
    gateway = GatewayLogger(base)

    return base, storage, gateway
