"""Tests for workflow routing conditions and run callbacks."""

import pytest


class TestRouteAfterInit:
    def test_error_routes_to_handle_error(self):
        from workflow.conditions import route_after_init
        assert route_after_init({"mode": "plan", "error": "boom"}) == "handle_error"

    def test_plan_mode_routes_to_plan_batch(self):
        from workflow.conditions import route_after_init
        assert route_after_init({"mode": "plan", "chapters": [], "target_count": 5, "error": ""}) == "plan_batch"

    def test_plan_mode_target_met_routes_to_finish(self):
        from workflow.conditions import route_after_init
        assert route_after_init({"mode": "plan", "chapters": [1, 2], "target_count": 2}) == "finish"

    def test_streak_mode_routes_to_write(self):
        from workflow.conditions import route_after_init
        assert route_after_init({"mode": "streak"}) == "write_chapter"

    def test_exhausted_routes_to_finish(self):
        from workflow.conditions import route_after_init
        assert route_after_init({"mode": "streak", "exhausted": True}) == "finish"


class TestRouteAfterBatch:
    def test_loops_until_target(self):
        from workflow.conditions import route_after_batch
        assert route_after_batch({"chapters": [0] * 20, "target_count": 25}) == "plan_batch"
        assert route_after_batch({"chapters": [0] * 25, "target_count": 25}) == "finish"

    def test_cancelled_finishes(self):
        from workflow.conditions import route_after_batch
        assert route_after_batch({"chapters": [], "target_count": 25, "cancelled": True}) == "finish"

    def test_error_takes_priority(self):
        from workflow.conditions import route_after_batch
        state = {"chapters": [], "target_count": 25, "cancelled": True, "error": "x"}
        assert route_after_batch(state) == "handle_error"


class TestRouteAfterWrite:
    def _state(self, **kwargs):
        state = {"chapters": [0] * 5, "start_index": 0, "position": 1, "run_length": 3}
        state.update(kwargs)
        return state

    def test_continues_within_run(self):
        from workflow.conditions import route_after_write
        assert route_after_write(self._state()) == "write_chapter"

    def test_run_length_reached(self):
        from workflow.conditions import route_after_write
        assert route_after_write(self._state(position=3)) == "finish"

    def test_end_of_list_reached(self):
        from workflow.conditions import route_after_write
        assert route_after_write(self._state(start_index=3, position=2, run_length=10)) == "finish"

    def test_cancelled(self):
        from workflow.conditions import route_after_write
        assert route_after_write(self._state(cancelled=True)) == "finish"

    def test_error(self):
        from workflow.conditions import route_after_write
        assert route_after_write(self._state(error="boom")) == "handle_error"


class TestCallbacks:
    def test_recording_callback_keeps_recent_logs(self):
        from workflow.callbacks import RecordingCallback
        cb = RecordingCallback(max_log_lines=2)
        for line in ("a", "b", "c"):
            cb.on_log(line)
        assert cb.recent_logs == ["b", "c"]
        assert cb.in_progress

    def test_recording_callback_result(self):
        from models.enums import RunOutcome
        from workflow.callbacks import RecordingCallback
        from workflow.state import RunResult
        cb = RecordingCallback()
        result = RunResult(outcome=RunOutcome.CANCELLED, completed=2, total=10)
        cb.on_run_complete(result)
        assert not cb.in_progress
        assert not cb.result.succeeded

    def test_callbacks_satisfy_protocol(self):
        from workflow.callbacks import (
            GenerationCallback, LoggingCallback, RecordingCallback, RichProgressCallback,
        )
        for cb in (LoggingCallback(), RecordingCallback(), RichProgressCallback()):
            assert isinstance(cb, GenerationCallback)

    def test_rich_callback_without_start_is_silent(self):
        from models.enums import RunOutcome
        from workflow.callbacks import RichProgressCallback
        from workflow.state import RunResult
        cb = RichProgressCallback()
        cb.on_progress(1, 2)
        cb.on_log("hello")
        cb.on_run_complete(RunResult(outcome=RunOutcome.COMPLETED, completed=2, total=2))

    def test_rich_callback_renders(self):
        from io import StringIO
        from rich.console import Console
        from models.enums import RunOutcome
        from workflow.callbacks import RichProgressCallback
        from workflow.state import RunResult

        console = Console(file=StringIO(), force_terminal=False)
        cb = RichProgressCallback(console=console, total=2)
        cb.start()
        cb.on_progress(1, 2)
        cb.on_log("第一章完成")
        cb.on_run_complete(RunResult(outcome=RunOutcome.COMPLETED, completed=2, total=2))
        cb.stop()
        assert "第一章完成" in console.file.getvalue()
