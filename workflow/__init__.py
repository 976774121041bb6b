"""Workflow package: LangGraph graph, state, conditions, and run utilities."""

from workflow.graph import (
    build_graph,
    run_planning,
    run_streak,
    write_single_chapter,
    find_streak_start,
)
from workflow.state import GenerationState, RunResult
from workflow.conditions import route_after_init, route_after_batch, route_after_write
from workflow.callbacks import (
    GenerationCallback,
    LoggingCallback,
    RecordingCallback,
    RichProgressCallback,
)
from workflow.cancellation import CancellationToken
from workflow.session import NovelSession, validate_config

__all__ = [
    "build_graph",
    "run_planning",
    "run_streak",
    "write_single_chapter",
    "find_streak_start",
    "GenerationState",
    "RunResult",
    "route_after_init",
    "route_after_batch",
    "route_after_write",
    "GenerationCallback",
    "LoggingCallback",
    "RecordingCallback",
    "RichProgressCallback",
    "CancellationToken",
    "NovelSession",
    "validate_config",
]
