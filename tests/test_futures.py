"""Tests for the future composition helpers."""

import threading
from concurrent.futures import Future, ThreadPoolExecutor

import pytest

from agentcrew.crew.futures import compose, failed, handle, outcome, resolved, settle_all, then

from conftest import TIMEOUT


class TestThenCompose:
    def test_then_maps_value(self):
        assert then(resolved(2), lambda v: v * 10).result(timeout=TIMEOUT) == 20

    def test_then_skips_fn_on_error(self):
        calls = []
        out = then(failed(RuntimeError("x")), calls.append)
        with pytest.raises(RuntimeError):
            out.result(timeout=TIMEOUT)
        assert calls == []

    def test_then_captures_fn_error(self):
        out = then(resolved(1), lambda v: 1 / 0)
        with pytest.raises(ZeroDivisionError):
            out.result(timeout=TIMEOUT)

    def test_compose_flattens(self):
        out = compose(resolved("a"), lambda v: resolved(v + "b"))
        assert out.result(timeout=TIMEOUT) == "ab"

    def test_continuation_waits_for_source(self):
        src = Future()
        out = then(src, str.upper)
        assert not out.done()
        src.set_result("late")
        assert out.result(timeout=TIMEOUT) == "LATE"

    def test_runs_on_executor(self):
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="combo") as pool:
            out = then(resolved(None), lambda _: threading.current_thread().name, pool)
            assert out.result(timeout=TIMEOUT).startswith("combo")


class TestHandle:
    def test_sees_value(self):
        assert handle(resolved(3), lambda v, e: (v, e)).result(timeout=TIMEOUT) == (3, None)

    def test_recovers_error(self):
        out = handle(failed(ValueError("bad")), lambda v, e: f"recovered {e}")
        assert out.result(timeout=TIMEOUT) == "recovered bad"


class TestSettleAll:
    def test_waits_for_all_and_keeps_failures(self):
        a, b = Future(), Future()
        done = settle_all([a, b])
        a.set_exception(RuntimeError("a broke"))
        assert not done.done()
        b.set_result("b ok")
        settled = done.result(timeout=TIMEOUT)
        assert outcome(settled[1]) == ("b ok", None)
        value, exc = outcome(settled[0])
        assert value is None and isinstance(exc, RuntimeError)

    def test_empty(self):
        assert settle_all([]).result(timeout=TIMEOUT) == []
