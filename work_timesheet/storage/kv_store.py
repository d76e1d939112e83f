"""
A small file-backed key/value store with a byte quota, used as the durable
local storage for timesheet snapshots.

Each key is stored as its own file holding the raw string value. Writes are
atomic (temp file + rename), so a crash mid-write leaves the previous value.
"""

import logging
import os
from pathlib import Path
from urllib.parse import quote, unquote

from work_timesheet.exceptions import (
    StorageQuotaExceededError,
    StorageUnavailableError,
)

log = logging.getLogger(__name__)

_VALUE_SUFFIX = ".val"


class KeyValueStore:
    """String-keyed store of string values with an optional size quota."""

    def __init__(
        self,
        root_dir: Path,
        prefix: str = "workTimesheet_",
        quota_bytes: int | None = None,
    ):
        """
        Initializes the store.

        Args:
            root_dir: Directory holding one file per key.
            prefix: The application namespace; see `namespaced_keys`.
            quota_bytes: Maximum total size of all stored values, or None for
            no limit.
        """
        self.root_dir = root_dir
        self.prefix = prefix
        self.quota_bytes = quota_bytes
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(
                f"Cannot create storage directory '{root_dir}': {e}"
            ) from e

    def _path_for(self, key: str) -> Path:
        return self.root_dir / f"{quote(key, safe='')}{_VALUE_SUFFIX}"

    def get_item(self, key: str) -> str | None:
        """Returns the stored value, or None if the key does not exist."""
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            log.debug(f"Storage read failed for key '{key}': {e}")
            return None

    def set_item(self, key: str, value: str) -> None:
        """
        Stores a value.

        Raises:
            StorageQuotaExceededError: If the write would exceed the quota.
            StorageUnavailableError: If the underlying file cannot be written.
        """
        path = self._path_for(key)
        encoded = value.encode("utf-8")

        if self.quota_bytes is not None:
            current = self.usage_bytes()
            existing = path.stat().st_size if path.is_file() else 0
            projected = current - existing + len(encoded)
            if projected > self.quota_bytes:
                raise StorageQuotaExceededError(
                    f"Writing '{key}' needs {projected} bytes, quota is "
                    f"{self.quota_bytes} bytes."
                )

        tmp_path = path.with_name(path.name + ".tmp")
        try:
            with open(tmp_path, "wb") as f:
                f.write(encoded)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageUnavailableError(f"Failed to write key '{key}': {e}") from e

    def remove_item(self, key: str) -> bool:
        """Deletes a key. Returns False if it did not exist."""
        try:
            self._path_for(key).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            log.warning(f"Failed to remove storage key '{key}': {e}")
            return False

    def keys(self) -> list[str]:
        """All keys currently in the store, in no particular order."""
        return [
            unquote(p.name[: -len(_VALUE_SUFFIX)])
            for p in self.root_dir.glob(f"*{_VALUE_SUFFIX}")
            if p.is_file()
        ]

    def namespaced_keys(self) -> list[str]:
        """Keys belonging to this application's namespace."""
        return [k for k in self.keys() if k.startswith(self.prefix)]

    def usage_bytes(self) -> int:
        total = 0
        for p in self.root_dir.glob(f"*{_VALUE_SUFFIX}"):
            try:
                total += p.stat().st_size
            except OSError:
                continue
        return total

    def clear(self) -> int:
        """Removes every namespaced key and returns how many were removed."""
        removed = 0
        for key in self.namespaced_keys():
            if self.remove_item(key):
                removed += 1
        return removed
