"""Per-run execution context shared by every agent and the process strategy."""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from ..logger import get_run_logger


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    message: str


@dataclass
class ExecutionContext:
    """Shared scratch space and append-only log for a single crew run.

    Shared memory is last-write-wins; task-scoped memory is a map of maps
    keyed by task (or run) id. Nothing is removed except by the ``clear_*``
    methods.
    """

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    _shared: Dict[str, Any] = field(default_factory=dict, repr=False)
    _task_scoped: Dict[str, Dict[str, Any]] = field(default_factory=dict, repr=False)
    _log_history: List[LogEntry] = field(default_factory=list, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _log_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self):
        self._logger = get_run_logger(__name__, self.run_id)

    # ── Shared memory ─────────────────────────────────────────

    def store_shared_data(self, key: str, value: Any) -> None:
        with self._lock:
            self._shared[key] = value

    def retrieve_shared_data(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._shared.get(key, default)

    def shared_snapshot(self) -> Dict[str, Any]:
        """Copy of shared memory at this instant."""
        with self._lock:
            return dict(self._shared)

    @property
    def shared_memory(self) -> Mapping[str, Any]:
        return MappingProxyType(self.shared_snapshot())

    def clear_shared_data(self) -> None:
        with self._lock:
            self._shared.clear()

    # ── Task-scoped memory ────────────────────────────────────

    def store_task_data(self, task_id: str, key: str, value: Any) -> None:
        with self._lock:
            self._task_scoped.setdefault(task_id, {})[key] = value

    def retrieve_task_data(self, task_id: str, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._task_scoped.get(task_id, {}).get(key, default)

    def get_task_scoped_data(self, task_id: str) -> Dict[str, Any]:
        with self._lock:
            return dict(self._task_scoped.get(task_id, {}))

    def task_ids(self) -> List[str]:
        with self._lock:
            return list(self._task_scoped)

    def clear_task_data(self, task_id: str) -> None:
        with self._lock:
            self._task_scoped.pop(task_id, None)

    # ── Log ───────────────────────────────────────────────────

    def log(self, message: str) -> LogEntry:
        with self._log_lock:
            entry = LogEntry(timestamp=datetime.now(), message=message)
            self._log_history.append(entry)
        self._logger.debug(message)
        return entry

    def get_log_history(self, since: Optional[int] = None) -> List[LogEntry]:
        """Snapshot of the log, optionally starting at index ``since``."""
        with self._log_lock:
            return list(self._log_history[since or 0:])

    def log_size(self) -> int:
        with self._log_lock:
            return len(self._log_history)

    def clear_log_history(self) -> None:
        with self._log_lock:
            self._log_history.clear()
