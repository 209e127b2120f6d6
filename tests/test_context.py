from __future__ import annotations

import threading
import time

import pytest

from safe_local_exec.execution.context import (
    CANCELLED,
    DEADLINE_EXCEEDED,
    CompletionEvent,
    ExecutionContext,
    race,
)


def test_completion_event_runs_callbacks_once() -> None:
    event = CompletionEvent()
    calls: list[str] = []

    event.add_callback(lambda: calls.append("early"))

    assert event.set() is True
    assert event.set() is False
    event.add_callback(lambda: calls.append("late"))

    assert calls == ["early", "late"]
    assert event.wait(0) is True


def test_completion_event_removed_callback_does_not_run() -> None:
    event = CompletionEvent()
    calls: list[str] = []

    def callback() -> None:
        calls.append("ran")

    event.add_callback(callback)
    event.remove_callback(callback)
    event.remove_callback(callback)
    event.set()

    assert calls == []


def test_race_prefers_earlier_events_when_several_are_set() -> None:
    first, second = CompletionEvent(), CompletionEvent()
    second.set()
    first.set()

    assert race({"first": first, "second": second}) == "first"


def test_race_waits_for_event_set_from_another_thread() -> None:
    slow, fast = CompletionEvent(), CompletionEvent()
    timer = threading.Timer(0.05, fast.set)
    timer.start()

    try:
        assert race({"slow": slow, "fast": fast}) == "fast"
    finally:
        timer.cancel()
    assert not slow.is_set()


def test_race_requires_events() -> None:
    with pytest.raises(ValueError):
        race({})


def test_context_deadline_fires() -> None:
    context = ExecutionContext(timeout_s=0.05)

    assert context.done.wait(2)
    assert context.err == DEADLINE_EXCEEDED
    assert context.deadline_exceeded


def test_context_without_timeout_never_fires() -> None:
    context = ExecutionContext(timeout_s=0)

    assert not context.done.wait(0.1)
    assert context.err is None
    assert context.timeout_s is None


def test_close_releases_timer_without_cancelling() -> None:
    with ExecutionContext(timeout_s=0.05) as context:
        pass

    assert not context.done.wait(0.2)
    assert context.err is None


def test_cancel_is_idempotent_and_keeps_first_reason() -> None:
    context = ExecutionContext()

    context.cancel()
    context.cancel("later")

    assert context.err == CANCELLED


def test_parent_cancellation_propagates_to_child() -> None:
    parent = ExecutionContext()
    child = ExecutionContext(parent=parent, timeout_s=30)

    parent.cancel("interrupted")

    assert child.done.wait(1)
    assert child.err == "interrupted"
    assert not child.deadline_exceeded


def test_child_cancellation_does_not_reach_parent() -> None:
    parent = ExecutionContext()
    child = ExecutionContext(parent=parent)

    child.cancel()

    assert not parent.done.is_set()


def test_child_of_done_parent_is_done_immediately() -> None:
    parent = ExecutionContext()
    parent.cancel()

    child = ExecutionContext(parent=parent, timeout_s=10)

    assert child.done.is_set()
    assert child.err == CANCELLED


def test_closed_child_detaches_from_parent() -> None:
    parent = ExecutionContext()
    child = ExecutionContext(parent=parent)
    child.close()

    parent.cancel()
    time.sleep(0.01)

    assert not child.done.is_set()
