"""Task definitions and the task status state machine."""

import threading
import uuid
from concurrent.futures import Future, InvalidStateError
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..errors import TaskStateError
from ..logger import get_logger

_log = get_logger(__name__)


class TaskStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    AWAITING_HUMAN_INPUT = "awaiting_human_input"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED})

_TRANSITIONS = {
    TaskStatus.PENDING: {TaskStatus.IN_PROGRESS, TaskStatus.FAILED},
    TaskStatus.IN_PROGRESS: {
        TaskStatus.AWAITING_HUMAN_INPUT, TaskStatus.COMPLETED, TaskStatus.FAILED,
    },
    TaskStatus.AWAITING_HUMAN_INPUT: {TaskStatus.IN_PROGRESS, TaskStatus.FAILED},
    TaskStatus.COMPLETED: set(),
    TaskStatus.FAILED: set(),
}


@dataclass(frozen=True)
class TaskResult:
    """Outcome delivered to a task's completion callback."""

    status: TaskStatus
    output: Optional[str] = None
    error: Optional[str] = None

    def __post_init__(self):
        if self.status.is_terminal and (self.output is None) == (self.error is None):
            raise ValueError("A terminal TaskResult carries exactly one of output or error")

    @classmethod
    def success(cls, output: str) -> "TaskResult":
        return cls(TaskStatus.COMPLETED, output=output)

    @classmethod
    def failure(cls, error: str) -> "TaskResult":
        return cls(TaskStatus.FAILED, error=error)

    @property
    def ok(self) -> bool:
        return self.status is TaskStatus.COMPLETED


class HumanInputHandle:
    """One-shot signal carrying the human's answer to a waiting task.

    The first ``resolve``/``cancel`` wins; later calls return ``False`` and
    change nothing.
    """

    def __init__(self):
        self._future: Future = Future()

    @property
    def future(self) -> Future:
        return self._future

    @property
    def done(self) -> bool:
        return self._future.done()

    def resolve(self, value: str) -> bool:
        try:
            self._future.set_result(value)
        except InvalidStateError:
            return False
        return True

    def cancel(self, error: Optional[BaseException] = None) -> bool:
        if error is None:
            return self._future.cancel()
        try:
            self._future.set_exception(error)
        except InvalidStateError:
            return False
        return True


StatusListener = Callable[["Task", TaskStatus, TaskStatus], None]


@dataclass(eq=False)
class Task:
    """A unit of work handed to an agent or a crew."""

    description: str
    input: Dict[str, Any] = field(default_factory=dict)
    expected_output: str = ""
    callback: Optional[Callable[[TaskResult], None]] = None
    requires_human_input: bool = False
    human_input: Optional[str] = None
    assigned_agent: Any = None
    status: TaskStatus = TaskStatus.PENDING
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    _handle: Optional[HumanInputHandle] = field(default=None, init=False, repr=False)
    _listeners: List[StatusListener] = field(default_factory=list, init=False, repr=False)
    _delegates: List["Task"] = field(default_factory=list, init=False, repr=False)
    _parent: Optional["Task"] = field(default=None, init=False, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    # ── State transitions ─────────────────────────────────────

    def set_status(self, status: TaskStatus) -> None:
        with self._lock:
            old = self._transition(status)
        self._notify(old, status)

    def complete_task(self, result: TaskResult) -> None:
        """Move to the result's terminal status and hand the result to the callback."""
        with self._lock:
            old = self._transition(result.status)
            callback = self.callback
        self._notify(old, result.status)
        if callback is not None and old is not result.status:
            callback(result)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def awaiting_human_input(self) -> bool:
        return self.status is TaskStatus.AWAITING_HUMAN_INPUT

    def _transition(self, status: TaskStatus) -> TaskStatus:
        # caller holds self._lock
        old = self.status
        if status is old:
            return old
        if status not in _TRANSITIONS[old]:
            raise TaskStateError(self.id, old, status)
        self.status = status
        return old

    def _notify(self, old: TaskStatus, new: TaskStatus) -> None:
        if old is new:
            return
        for listener in list(self._listeners):
            try:
                listener(self, old, new)
            except Exception:
                _log.exception("Status listener failed for task %s", self.id)

    def add_status_listener(self, listener: StatusListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    # ── Human in the loop ─────────────────────────────────────

    def await_human_input(self) -> HumanInputHandle:
        """Install a fresh completion handle and enter AWAITING_HUMAN_INPUT.

        The handle is in place before the status changes, so a concurrent
        ``set_human_input`` can never observe the waiting state without it.
        """
        with self._lock:
            if not self.requires_human_input or self.human_input is not None:
                raise TaskStateError(self.id, self.status, TaskStatus.AWAITING_HUMAN_INPUT)
            handle = HumanInputHandle()
            self._handle = handle
            try:
                old = self._transition(TaskStatus.AWAITING_HUMAN_INPUT)
            except TaskStateError:
                self._handle = None
                raise
            parent = self._parent
        self._notify(old, TaskStatus.AWAITING_HUMAN_INPUT)
        if parent is not None:
            parent._on_delegate_awaiting(self)
        return handle

    def set_human_input(self, value: str) -> bool:
        """Supply the human's answer; a no-op unless the task is waiting for one."""
        with self._lock:
            if self.status is not TaskStatus.AWAITING_HUMAN_INPUT:
                _log.warning(
                    "Task %s: human input set, but task was not awaiting it (status: %s)",
                    self.id, self.status.name,
                )
                return False
            if not self._answerable():
                _log.warning("Task %s: human input set, but the wait was already abandoned", self.id)
                return False
            self.human_input = value
            old = self._transition(TaskStatus.IN_PROGRESS)
            handle, self._handle = self._handle, None
            waiting = [d for d in self._delegates if d.awaiting_human_input]
        self._notify(old, TaskStatus.IN_PROGRESS)
        if handle is not None:
            handle.resolve(value)
        for delegate in waiting:
            delegate.set_human_input(value)
        return True

    def cancel_human_input(self, error: Optional[BaseException] = None) -> bool:
        """Abandon the wait on this task and on every delegate still waiting.

        Pending handles are rejected with ``error`` (or cancelled without one).
        Returns ``True`` if any handle was rejected.
        """
        with self._lock:
            handle, self._handle = self._handle, None
            waiting = [d for d in self._delegates if d.awaiting_human_input]
        rejected = handle is not None and handle.cancel(error)
        for delegate in waiting:
            rejected = delegate.cancel_human_input(error) or rejected
        return rejected

    def _answerable(self) -> bool:
        # a live handle here or on a waiting delegate
        with self._lock:
            if self._handle is not None:
                return True
            return any(d._answerable() for d in self._delegates if d.awaiting_human_input)

    def _on_delegate_awaiting(self, delegate: "Task") -> None:
        with self._lock:
            answer = self.human_input
            old = self.status
            if answer is None and old is TaskStatus.IN_PROGRESS:
                self._transition(TaskStatus.AWAITING_HUMAN_INPUT)
        if answer is not None:
            # The parent was answered before this delegate started waiting.
            delegate.set_human_input(answer)
        elif old is TaskStatus.IN_PROGRESS:
            self._notify(old, TaskStatus.AWAITING_HUMAN_INPUT)

    # ── Derived tasks ─────────────────────────────────────────

    def derive(
        self,
        description: Optional[str] = None,
        input: Optional[Dict[str, Any]] = None,
        expected_output: Optional[str] = None,
        callback: Optional[Callable[[TaskResult], None]] = None,
        inherit_human_input: bool = False,
    ) -> "Task":
        """Build an independently owned task from this one.

        With ``inherit_human_input`` the copy carries the human-input flag and
        any answer already given; if it still needs an answer it is registered
        as a delegate, so ``set_human_input`` on this task reaches it.
        """
        child = Task(
            description=self.description if description is None else description,
            input=dict(self.input if input is None else input),
            expected_output=self.expected_output if expected_output is None else expected_output,
            callback=callback,
        )
        if inherit_human_input:
            with self._lock:
                child.requires_human_input = self.requires_human_input
                child.human_input = self.human_input
                if child.requires_human_input and child.human_input is None:
                    child._parent = self
                    self._delegates.append(child)
        return child

    def to_dict(self) -> Dict[str, Any]:
        agent = self.assigned_agent
        return {
            "id": self.id,
            "description": self.description,
            "input": dict(self.input),
            "expected_output": self.expected_output,
            "status": self.status.value,
            "requires_human_input": self.requires_human_input,
            "human_input": self.human_input,
            "assigned_agent": getattr(agent, "name", None),
        }
