"""Tool capability used by agents mid-reasoning."""

import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional

from ..logger import get_logger

_log = get_logger(__name__)

_shared_pool: Optional[ThreadPoolExecutor] = None
_shared_pool_lock = threading.Lock()


def _tool_pool() -> ThreadPoolExecutor:
    global _shared_pool
    with _shared_pool_lock:
        if _shared_pool is None:
            _shared_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="tool")
        return _shared_pool


class Tool(ABC):
    """A named capability with a declared parameter schema.

    ``use`` returns a future that always resolves; failures are reported as
    descriptive strings so the agent can show them to the model.
    """

    name: str = ""
    description: str = ""

    @property
    def parameter_schema(self) -> Dict[str, str]:
        """Map of parameter name to a human-readable description."""
        return {}

    @abstractmethod
    def use(self, parameters: Dict[str, Any]) -> Future: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class FunctionTool(Tool):
    """Tool backed by a plain function, run on a shared thread pool."""

    def __init__(
        self,
        name: str,
        description: str,
        func: Callable[..., Any],
        parameter_schema: Optional[Dict[str, str]] = None,
        json_schema: Optional[dict] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.name = name
        self.description = description
        self.func = func
        self._parameter_schema = dict(parameter_schema or {})
        self.json_schema = json_schema
        self._executor = executor

    @property
    def parameter_schema(self) -> Dict[str, str]:
        return dict(self._parameter_schema)

    def __call__(self, *args, **kwargs):
        return self.func(*args, **kwargs)

    def use(self, parameters: Dict[str, Any]) -> Future:
        executor = self._executor or _tool_pool()
        try:
            return executor.submit(self._invoke, dict(parameters or {}))
        except RuntimeError:
            future: Future = Future()
            future.set_result(self._invoke(dict(parameters or {})))
            return future

    def _invoke(self, parameters: Dict[str, Any]) -> str:
        try:
            result = self.func(**parameters)
        except Exception as e:
            _log.warning("Tool %s failed: %s", self.name, e)
            return f"Error: {self.name} failed: {e}"
        return "" if result is None else str(result)
