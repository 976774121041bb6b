"""Conditional routing functions for the generation graph."""

from models.enums import RunMode
from workflow.state import GenerationState


def route_after_init(state: GenerationState) -> str:
    """Route after initialization: planning loop, streak loop, or straight out."""
    if state.get("error"):
        return "handle_error"
    if state.get("exhausted"):
        return "finish"
    if state.get("mode") == RunMode.PLAN.value:
        if len(state.get("chapters", [])) >= state.get("target_count", 0):
            return "finish"
        return "plan_batch"
    return "write_chapter"


def route_after_batch(state: GenerationState) -> str:
    """Route after a planning batch: keep going until the target count is reached."""
    if state.get("error"):
        return "handle_error"
    if state.get("cancelled"):
        return "finish"
    if len(state.get("chapters", [])) >= state.get("target_count", 0):
        return "finish"
    return "plan_batch"


def route_after_write(state: GenerationState) -> str:
    """Route after a streak chapter: stop on error, cancel, run length or end of list."""
    if state.get("error"):
        return "handle_error"
    if state.get("cancelled"):
        return "finish"

    position = state.get("position", 0)
    if position >= state.get("run_length", 0):
        return "finish"
    if state.get("start_index", 0) + position >= len(state.get("chapters", [])):
        return "finish"
    return "write_chapter"
