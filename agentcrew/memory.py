"""Agent memory: a small key/value store consulted when building prompts."""

import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, List, Mapping, Optional

from .logger import get_logger

_log = get_logger(__name__)


class Memory(ABC):
    """Key/value memory with a simple relevance search."""

    @abstractmethod
    def add(self, key: str, value: Any) -> None: ...

    def add_all(self, data: Mapping[str, Any]) -> None:
        for key, value in data.items():
            self.add(key, value)

    @abstractmethod
    def get(self, key: str) -> Any: ...

    @abstractmethod
    def get_all(self) -> List[Any]: ...

    @abstractmethod
    def search(self, query: str, top_k: int) -> List[Any]:
        """Return up to ``top_k`` stored values relevant to ``query``."""

    @abstractmethod
    def clear(self) -> None: ...


class ShortTermMemory(Memory):
    """In-process memory with least-recently-used eviction.

    ``search`` is a case-insensitive substring match over keys and the string
    form of values, returned oldest first. A ``capacity`` of ``None`` or 0
    means unbounded.
    """

    def __init__(self, capacity: Optional[int] = None):
        self.capacity = capacity or None
        self._store: "OrderedDict[str, Any]" = OrderedDict()
        self._lock = threading.Lock()

    def add(self, key: str, value: Any) -> None:
        if key is None or value is None:
            _log.warning("ShortTermMemory: ignoring entry with empty key or value")
            return
        with self._lock:
            self._store[key] = value
            self._store.move_to_end(key)
            if self.capacity is not None:
                while len(self._store) > self.capacity:
                    self._store.popitem(last=False)

    def get(self, key: str) -> Any:
        with self._lock:
            if key not in self._store:
                return None
            self._store.move_to_end(key)
            return self._store[key]

    def get_all(self) -> List[Any]:
        with self._lock:
            return list(self._store.values())

    def search(self, query: str, top_k: int) -> List[Any]:
        if not query or not query.strip() or top_k <= 0:
            return []
        needle = query.lower()
        with self._lock:
            items = list(self._store.items())
        hits = [
            value for key, value in items
            if needle in key.lower() or needle in str(value).lower()
        ]
        return hits[:top_k]

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._store)
