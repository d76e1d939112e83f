"""
Async context manager that wires a persistence manager for one CLI command.
"""

import logging
from pathlib import Path

from work_timesheet.core.persistence import PersistenceManager
from work_timesheet.core.views import TimesheetView
from work_timesheet.models.config import AppConfig
from work_timesheet.storage.kv_store import KeyValueStore
from work_timesheet.utils.structured_logger import create_structured_logger

log = logging.getLogger(__name__)


class TimesheetSession:
    """
    Opens the data store, loads the timesheet and, on exit, waits for any
    pending save retries and the deferred save step to finish.
    """

    def __init__(self, config: AppConfig, view: TimesheetView, online: bool = True):
        self.config = config
        self.view = view
        self.online = online
        self.manager: PersistenceManager | None = None
        self._structured_log = None

    async def __aenter__(self) -> PersistenceManager:
        data_dir = Path(self.config.data_dir)
        log_dir = data_dir / "logs" if self.config.json_logs else None
        self._structured_log, storage_log, _ = create_structured_logger(
            log_dir=log_dir, enable_json=self.config.json_logs
        )
        self._structured_log.set_session_context(data_dir=str(data_dir))
        store = KeyValueStore(
            data_dir / "storage",
            prefix=self.config.key_prefix,
            quota_bytes=self.config.quota_kb * 1024 if self.config.quota_kb else None,
        )
        self.manager = PersistenceManager(
            store,
            self.view,
            self.config,
            online=self.online,
            storage_logger=storage_log,
        )
        source = self.manager.load()
        log.debug(f"Timesheet loaded from {source}.")
        if not self.online:
            self.manager.set_online(False)
        return self.manager

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            if self.manager is not None:
                await self.manager.drain()
        finally:
            if self._structured_log is not None:
                self._structured_log.close()
        return False
