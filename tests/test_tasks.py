"""Tests for Task, TaskResult and the status state machine."""

import logging

import pytest

from agentcrew.crew.tasks import HumanInputHandle, Task, TaskResult, TaskStatus
from agentcrew.errors import TaskStateError

from conftest import TIMEOUT


def _running(**kwargs):
    task = Task(description="do it", **kwargs)
    task.set_status(TaskStatus.IN_PROGRESS)
    return task


class TestTaskResult:
    """TaskResult invariants."""

    def test_success_and_failure_helpers(self):
        ok = TaskResult.success("done")
        bad = TaskResult.failure("broken")
        assert ok.status is TaskStatus.COMPLETED and ok.output == "done" and ok.error is None
        assert bad.status is TaskStatus.FAILED and bad.error == "broken" and bad.output is None
        assert ok.ok and not bad.ok

    def test_terminal_result_needs_exactly_one_field(self):
        with pytest.raises(ValueError):
            TaskResult(TaskStatus.COMPLETED)
        with pytest.raises(ValueError):
            TaskResult(TaskStatus.FAILED, output="x", error="y")

    def test_non_terminal_result_may_be_empty(self):
        assert TaskResult(TaskStatus.IN_PROGRESS).output is None

    def test_is_immutable(self):
        result = TaskResult.success("done")
        with pytest.raises(AttributeError):
            result.output = "changed"


class TestStatusMachine:
    """Legal and illegal transitions."""

    def test_new_task_is_pending_with_unique_id(self):
        a, b = Task("a"), Task("b")
        assert a.status is TaskStatus.PENDING
        assert a.id != b.id

    def test_happy_path(self):
        task = _running()
        task.complete_task(TaskResult.success("out"))
        assert task.status is TaskStatus.COMPLETED
        assert task.is_terminal

    def test_pending_can_fail_directly(self):
        task = Task("x")
        task.complete_task(TaskResult.failure("no agents"))
        assert task.status is TaskStatus.FAILED

    def test_pending_cannot_complete_directly(self):
        with pytest.raises(TaskStateError):
            Task("x").complete_task(TaskResult.success("out"))

    @pytest.mark.parametrize("terminal", [TaskStatus.COMPLETED, TaskStatus.FAILED])
    def test_terminal_states_have_no_exit(self, terminal):
        task = _running()
        task.set_status(terminal)
        for target in (TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.AWAITING_HUMAN_INPUT):
            with pytest.raises(TaskStateError):
                task.set_status(target)

    def test_error_names_both_states(self):
        task = _running()
        task.set_status(TaskStatus.COMPLETED)
        with pytest.raises(TaskStateError) as info:
            task.set_status(TaskStatus.IN_PROGRESS)
        assert "COMPLETED" in str(info.value) and "IN_PROGRESS" in str(info.value)
        assert info.value.task_id == task.id


class TestCallbacks:
    """complete_task and status listeners."""

    def test_callback_fires_once_per_terminal_transition(self, callback):
        task = _running(callback=callback)
        task.complete_task(TaskResult.success("out"))
        task.complete_task(TaskResult.success("out"))
        assert callback.count == 1
        assert callback.last.output == "out"

    def test_leaving_terminal_state_via_complete_raises(self, callback):
        task = _running(callback=callback)
        task.complete_task(TaskResult.success("out"))
        with pytest.raises(TaskStateError):
            task.complete_task(TaskResult.failure("late"))
        assert callback.count == 1

    def test_status_listener_sees_each_change(self):
        task = Task("x")
        seen = []
        task.add_status_listener(lambda t, old, new: seen.append((old, new)))
        task.set_status(TaskStatus.IN_PROGRESS)
        task.set_status(TaskStatus.IN_PROGRESS)
        task.complete_task(TaskResult.success("y"))
        assert seen == [
            (TaskStatus.PENDING, TaskStatus.IN_PROGRESS),
            (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED),
        ]

    def test_listener_error_does_not_break_transition(self):
        task = Task("x")

        def _boom(*_):
            raise RuntimeError("listener broke")

        task.add_status_listener(_boom)
        task.set_status(TaskStatus.IN_PROGRESS)
        assert task.status is TaskStatus.IN_PROGRESS


class TestHumanInput:
    """Awaiting and supplying human input."""

    def test_set_human_input_when_not_awaiting_is_noop(self, caplog):
        task = _running(requires_human_input=True)
        with caplog.at_level(logging.WARNING, logger="agentcrew.crew.tasks"):
            assert task.set_human_input("early") is False
        assert task.human_input is None
        assert task.status is TaskStatus.IN_PROGRESS
        assert "not awaiting" in caplog.text

    def test_await_requires_in_progress(self):
        task = Task("x", requires_human_input=True)
        with pytest.raises(TaskStateError):
            task.await_human_input()
        assert task.status is TaskStatus.PENDING

    def test_await_requires_flag_and_missing_input(self):
        with pytest.raises(TaskStateError):
            _running().await_human_input()
        with pytest.raises(TaskStateError):
            _running(requires_human_input=True, human_input="given").await_human_input()

    def test_round_trip_resolves_handle_once(self):
        task = _running(requires_human_input=True)
        handle = task.await_human_input()
        assert task.awaiting_human_input
        assert not handle.done

        assert task.set_human_input("yes") is True
        assert task.status is TaskStatus.IN_PROGRESS
        assert task.human_input == "yes"
        assert handle.future.result(timeout=TIMEOUT) == "yes"

        assert task.set_human_input("again") is False
        assert task.human_input == "yes"

    def test_cancel_rejects_pending_handle(self):
        task = _running(requires_human_input=True)
        handle = task.await_human_input()
        assert task.cancel_human_input(TimeoutError("too slow")) is True
        with pytest.raises(TimeoutError):
            handle.future.result(timeout=TIMEOUT)
        assert task.cancel_human_input() is False

    def test_answer_after_cancel_is_refused(self):
        task = _running(requires_human_input=True)
        handle = task.await_human_input()
        task.cancel_human_input(TimeoutError("too slow"))

        assert task.awaiting_human_input
        assert task.set_human_input("late") is False
        assert task.human_input is None
        assert task.awaiting_human_input
        with pytest.raises(TimeoutError):
            handle.future.result(timeout=TIMEOUT)


class TestHumanInputHandle:
    def test_second_resolution_is_ignored(self):
        handle = HumanInputHandle()
        assert handle.resolve("first") is True
        assert handle.resolve("second") is False
        assert handle.cancel(RuntimeError("late")) is False
        assert handle.future.result() == "first"

    def test_cancel_without_error_cancels_future(self):
        handle = HumanInputHandle()
        assert handle.cancel() is True
        assert handle.future.cancelled()


class TestDerive:
    """Derived tasks and human-input delegation."""

    def test_derive_copies_content_not_identity(self, callback):
        parent = Task("root", input={"k": 1}, expected_output="text", callback=callback)
        child = parent.derive(description="child")
        assert child.id != parent.id
        assert child.description == "child"
        assert child.input == {"k": 1} and child.input is not parent.input
        assert child.expected_output == "text"
        assert child.callback is None
        assert child.status is TaskStatus.PENDING
        assert child.requires_human_input is False

    def test_inherit_copies_existing_answer(self):
        parent = Task("root", requires_human_input=True, human_input="already")
        child = parent.derive(inherit_human_input=True)
        assert child.requires_human_input and child.human_input == "already"

    def test_parent_input_reaches_waiting_delegates(self):
        parent = _running(requires_human_input=True)
        first = parent.derive(inherit_human_input=True)
        second = parent.derive(inherit_human_input=True)
        handles = []
        for child in (first, second):
            child.set_status(TaskStatus.IN_PROGRESS)
            handles.append(child.await_human_input())
        assert parent.awaiting_human_input

        assert parent.set_human_input("go") is True
        assert [h.future.result(timeout=TIMEOUT) for h in handles] == ["go", "go"]
        assert first.status is TaskStatus.IN_PROGRESS
        assert parent.status is TaskStatus.IN_PROGRESS

    def test_parent_cancel_reaches_waiting_delegates(self):
        parent = _running(requires_human_input=True)
        children = [parent.derive(inherit_human_input=True) for _ in range(2)]
        handles = []
        for child in children:
            child.set_status(TaskStatus.IN_PROGRESS)
            handles.append(child.await_human_input())

        assert parent.cancel_human_input(TimeoutError("gone")) is True
        for handle in handles:
            with pytest.raises(TimeoutError):
                handle.future.result(timeout=TIMEOUT)
        assert parent.set_human_input("late") is False
        assert parent.cancel_human_input() is False

    def test_to_dict(self):
        task = Task("x", input={"a": "b"})
        data = task.to_dict()
        assert data["id"] == task.id
        assert data["status"] == "pending"
        assert data["input"] == {"a": "b"}
        assert data["assigned_agent"] is None
