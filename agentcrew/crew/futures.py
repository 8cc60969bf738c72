"""Combinators for ``concurrent.futures.Future`` used to chain agent steps.

Continuations never block: each one is attached with ``add_done_callback``
and, when an executor is given, submitted to it instead of running on the
thread that completed the source future.
"""

import threading
from concurrent.futures import CancelledError, Executor, Future, InvalidStateError
from typing import Any, Callable, Iterable, List, Optional, Tuple

from ..logger import get_logger

_log = get_logger(__name__)

__all__ = [
    "resolved", "failed", "outcome", "then", "compose", "handle", "chain", "settle_all",
    "try_set_result", "try_set_exception",
]


def resolved(value: Any) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future


def failed(error: BaseException) -> Future:
    future: Future = Future()
    future.set_exception(error)
    return future


def outcome(future: Future) -> Tuple[Any, Optional[BaseException]]:
    """Return ``(value, None)`` or ``(None, error)`` for a finished future."""
    try:
        return future.result(), None
    except (CancelledError, Exception) as exc:
        return None, exc


def try_set_result(dst: Future, value: Any) -> None:
    try:
        dst.set_result(value)
    except InvalidStateError:
        # dst was cancelled by whoever holds it
        _log.debug("Dropping result for cancelled future")


def try_set_exception(dst: Future, error: BaseException) -> None:
    try:
        dst.set_exception(error)
    except InvalidStateError:
        _log.debug("Dropping error for cancelled future: %s", error)


def _dispatch(executor: Optional[Executor], fn: Callable, *args) -> None:
    if executor is None:
        fn(*args)
        return
    try:
        executor.submit(fn, *args)
    except RuntimeError:
        # Executor already shut down; finish the chain on this thread.
        fn(*args)


def chain(src: Future, dst: Future) -> None:
    """Copy the outcome of ``src`` into ``dst`` once ``src`` finishes."""

    def _done(f: Future) -> None:
        value, exc = outcome(f)
        if exc is not None:
            try_set_exception(dst, exc)
        else:
            try_set_result(dst, value)

    src.add_done_callback(_done)


def then(future: Future, fn: Callable[[Any], Any], executor: Optional[Executor] = None) -> Future:
    """Future of ``fn(value)``; errors from ``future`` skip ``fn`` and propagate."""
    dst: Future = Future()

    def _run(value: Any) -> None:
        try:
            result = fn(value)
        except Exception as exc:
            try_set_exception(dst, exc)
        else:
            try_set_result(dst, result)

    def _done(f: Future) -> None:
        value, exc = outcome(f)
        if exc is not None:
            try_set_exception(dst, exc)
        else:
            _dispatch(executor, _run, value)

    future.add_done_callback(_done)
    return dst


def compose(
    future: Future, fn: Callable[[Any], Future], executor: Optional[Executor] = None,
) -> Future:
    """Like :func:`then`, but ``fn`` returns a future that is flattened."""
    dst: Future = Future()

    def _run(value: Any) -> None:
        try:
            inner = fn(value)
        except Exception as exc:
            try_set_exception(dst, exc)
        else:
            chain(inner, dst)

    def _done(f: Future) -> None:
        value, exc = outcome(f)
        if exc is not None:
            try_set_exception(dst, exc)
        else:
            _dispatch(executor, _run, value)

    future.add_done_callback(_done)
    return dst


def handle(
    future: Future,
    fn: Callable[[Any, Optional[BaseException]], Any],
    executor: Optional[Executor] = None,
) -> Future:
    """Future of ``fn(value, error)``, called whether ``future`` succeeded or not."""
    dst: Future = Future()

    def _run(value: Any, exc: Optional[BaseException]) -> None:
        try:
            result = fn(value, exc)
        except Exception as err:
            try_set_exception(dst, err)
        else:
            try_set_result(dst, result)

    def _done(f: Future) -> None:
        value, exc = outcome(f)
        _dispatch(executor, _run, value, exc)

    future.add_done_callback(_done)
    return dst


def settle_all(futures: Iterable[Future]) -> Future:
    """Future that resolves to the input list once every future has finished.

    Individual failures do not fail the aggregate; inspect each with
    :func:`outcome`.
    """
    pending: List[Future] = list(futures)
    dst: Future = Future()
    if not pending:
        dst.set_result([])
        return dst

    remaining = len(pending)
    lock = threading.Lock()

    def _done(_: Future) -> None:
        nonlocal remaining
        with lock:
            remaining -= 1
            finished = remaining == 0
        if finished:
            try_set_result(dst, pending)

    for future in pending:
        future.add_done_callback(_done)
    return dst
