"""LangGraph StateGraph driving planning batches and streak writing."""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Sequence

from langchain_core.runnables import RunnableConfig
from langgraph.graph import StateGraph, END

from agents.planner_agent import PlannerAgent
from agents.writer_agent import WriterAgent, is_empty_generation
from config.exceptions import InvalidConfigError, WorkflowStateError
from config.settings import Settings, get_settings
from memory.context_window import build_chapter_context
from models.enums import NovelStage, RunMode, RunOutcome, RunPhase
from models.library import NovelLibrary
from models.novel import Chapter
from storage.persistence import NovelPersistence, NullPersistence, save_quietly
from workflow.callbacks import GenerationCallback, LoggingCallback
from workflow.cancellation import CancellationToken
from workflow.conditions import route_after_init, route_after_batch, route_after_write
from workflow.state import GenerationState, RunResult

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """Collaborators for one run, passed to nodes through the run config."""
    library: NovelLibrary
    settings: Settings
    planner: Optional[PlannerAgent] = None
    writer: Optional[WriterAgent] = None
    persistence: NovelPersistence = field(default_factory=NullPersistence)
    callback: GenerationCallback = field(default_factory=LoggingCallback)
    token: CancellationToken = field(default_factory=CancellationToken)
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep


def _ctx(config: RunnableConfig) -> RunContext:
    return config["configurable"]["run_context"]


async def _persist(ctx: RunContext, method: str, *args) -> None:
    """Call a persistence hook; failures are logged and never abort the run."""
    await save_quietly(ctx.persistence, method, *args)


def _error_text(error: BaseException) -> str:
    return str(error) or type(error).__name__


def find_streak_start(
    chapters: Sequence[Chapter],
    current_chapter_id: Optional[str],
    written_threshold: int = 500,
) -> int:
    """First position at or after the selected chapter that is not yet substantially written."""
    index = 0
    for i, chapter in enumerate(chapters):
        if chapter.id == current_chapter_id:
            index = i
            break
    while index < len(chapters) and len(chapters[index].content or "") > written_threshold:
        index += 1
    return index


# ---------------------------------------------------------------------------
# Node functions
# ---------------------------------------------------------------------------

async def initialize(state: GenerationState, config: RunnableConfig) -> dict:
    """Validate run inputs and enter the running phase."""
    logger.info("Entering node: initialize")
    ctx = _ctx(config)
    mode = state.get("mode")
    chapters = state.get("chapters", [])

    updates = {
        "phase": RunPhase.RUNNING.value,
        "completed": 0,
        "position": 0,
        "empty_batches": 0,
        "cancelled": False,
        "exhausted": False,
        "error": "",
        "last_node": "initialize",
    }

    if mode == RunMode.PLAN.value:
        if ctx.planner is None:
            return {**updates, "error": "No planner configured", "phase": RunPhase.ERRORING.value}
        ctx.callback.on_log(f"🚀 开始生成分章目录：共 {state.get('target_count', 0)} 章")
        return updates

    if ctx.writer is None:
        return {**updates, "error": "No writer configured", "phase": RunPhase.ERRORING.value}

    start = state.get("start_index", 0)
    if start >= len(chapters):
        ctx.callback.on_log("所有已规划的章节都已完成！请先生成更多分章目录。")
        return {**updates, "exhausted": True, "phase": RunPhase.EXHAUSTED.value}

    ctx.callback.on_log(f"🚀 启动连更模式：从第 {start + 1} 章开始...")
    return updates


async def plan_batch(state: GenerationState, config: RunnableConfig) -> dict:
    """Plan the next batch of chapter titles and publish the accumulated list."""
    ctx = _ctx(config)
    if ctx.token.cancelled:
        ctx.callback.on_log("⛔ 用户已停止生成")
        return {"cancelled": True, "phase": RunPhase.CANCELLING.value, "last_node": "plan_batch"}

    accumulated = state.get("chapters", [])
    target = state["target_count"]
    start = len(accumulated)
    size = min(state["batch_size"], target - start)

    try:
        batch = await ctx.planner.generate_chapter_batch(
            state["novel_config"], state.get("outline", ""), start, size, accumulated,
        )
    except Exception as e:
        logger.error("Chapter batch at %d failed: %s", start + 1, e)
        return {"error": _error_text(e), "phase": RunPhase.ERRORING.value, "last_node": "plan_batch"}

    if not batch:
        empty = state.get("empty_batches", 0) + 1
        logger.warning("Empty chapter batch at %d (%d/%d)", start + 1, empty, ctx.settings.max_empty_batches)
        if empty >= ctx.settings.max_empty_batches:
            return {
                "error": f"No progress: batch from chapter {start + 1} came back empty {empty} times",
                "empty_batches": empty,
                "phase": RunPhase.ERRORING.value,
                "last_node": "plan_batch",
            }
        await ctx.sleep(ctx.settings.step_pause)
        return {"empty_batches": empty, "last_node": "plan_batch"}

    accumulated = accumulated + batch
    try:
        novel = ctx.library.update_novel(state["novel_id"], chapters=accumulated)
    except WorkflowStateError as e:
        return {"error": _error_text(e), "phase": RunPhase.ERRORING.value, "last_node": "plan_batch"}

    await _persist(ctx, "save_all_chapters", novel)
    ctx.callback.on_progress(len(accumulated), target)
    logger.info("Planned %d/%d chapters", len(accumulated), target)

    await ctx.sleep(ctx.settings.step_pause)
    return {
        "chapters": accumulated,
        "completed": len(accumulated),
        "empty_batches": 0,
        "last_node": "plan_batch",
    }


async def write_chapter(state: GenerationState, config: RunnableConfig) -> dict:
    """Write the next chapter of the streak from the local working copy."""
    ctx = _ctx(config)
    if ctx.token.cancelled:
        ctx.callback.on_log("⛔ 用户已停止批量生成")
        return {"cancelled": True, "phase": RunPhase.CANCELLING.value, "last_node": "write_chapter"}

    chapters = state["chapters"]
    position = state.get("position", 0)
    run_length = state["run_length"]
    index = state["start_index"] + position
    target = chapters[index]

    ctx.callback.on_log(f"📝 [{position + 1}/{run_length}] 正在撰写: {target.title}...")

    # Context comes from the local copy so the chapter written a moment ago is visible
    context = build_chapter_context(
        chapters, index, ctx.settings.context_min_chars, ctx.settings.context_max_chars,
    )

    try:
        content = await ctx.writer.generate_chapter_content(
            state["novel_config"], target, context, state.get("outline", ""),
        )
    except Exception as e:
        logger.error("Chapter %d failed: %s", index + 1, e)
        return {"error": _error_text(e), "phase": RunPhase.ERRORING.value, "last_node": "write_chapter"}

    written = dataclasses.replace(target, content=content, is_generated=True)
    chapters = list(chapters)
    chapters[index] = written

    try:
        novel = ctx.library.update_chapter(state["novel_id"], written, current_chapter_id=written.id)
    except WorkflowStateError as e:
        return {"error": _error_text(e), "phase": RunPhase.ERRORING.value, "last_node": "write_chapter"}

    await _persist(ctx, "save_chapter", novel, written, index)

    if is_empty_generation(content):
        ctx.callback.on_log(f"⚠️ 第 {index + 1} 章生成内容为空，可单独重试")
    else:
        ctx.callback.on_log("✅ 本章完成，已保存到本地")
    ctx.callback.on_progress(position + 1, run_length)

    await ctx.sleep(ctx.settings.step_pause)
    return {
        "chapters": chapters,
        "position": position + 1,
        "completed": state.get("completed", 0) + 1,
        "last_node": "write_chapter",
    }


async def handle_error(state: GenerationState, config: RunnableConfig) -> dict:
    """Stop the run; everything already written stays in place."""
    logger.info("Entering node: handle_error")
    ctx = _ctx(config)
    error = state.get("error", "Unknown error")
    logger.error("Run stopped after %d completed: %s", state.get("completed", 0), error)
    ctx.callback.on_log(f"❌ 生成中断，已保存当前进度: {error}")
    return {"phase": RunPhase.STOPPED.value, "last_node": "handle_error"}


async def finish(state: GenerationState, config: RunnableConfig) -> dict:
    """Terminal node for cancelled, exhausted and completed runs."""
    logger.info("Entering node: finish")
    ctx = _ctx(config)
    exhausted = state.get("exhausted", False)
    if state.get("cancelled"):
        return {"phase": RunPhase.STOPPED.value, "exhausted": False, "last_node": "finish"}

    if state.get("mode") == RunMode.STREAK.value and not exhausted:
        exhausted = state.get("position", 0) < state.get("run_length", 0)
        if exhausted:
            ctx.callback.on_log("🏁 已到达最后一章，停止生成。")
        else:
            ctx.callback.on_log("🎉 批量连更完成！")
    elif not exhausted:
        ctx.callback.on_log("🎉 分章目录生成完成！")

    return {"phase": RunPhase.STOPPED.value, "exhausted": exhausted, "last_node": "finish"}


# ---------------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------------

def build_graph():
    """Compile the generation graph.

    initialize ─┬─> plan_batch ⟲ ──> finish | handle_error
                └─> write_chapter ⟲ ──> finish | handle_error
    """
    graph = StateGraph(GenerationState)

    graph.add_node("initialize", initialize)
    graph.add_node("plan_batch", plan_batch)
    graph.add_node("write_chapter", write_chapter)
    graph.add_node("handle_error", handle_error)
    graph.add_node("finish", finish)

    graph.set_entry_point("initialize")

    graph.add_conditional_edges("initialize", route_after_init, {
        "plan_batch": "plan_batch",
        "write_chapter": "write_chapter",
        "finish": "finish",
        "handle_error": "handle_error",
    })
    graph.add_conditional_edges("plan_batch", route_after_batch, {
        "plan_batch": "plan_batch",
        "finish": "finish",
        "handle_error": "handle_error",
    })
    graph.add_conditional_edges("write_chapter", route_after_write, {
        "write_chapter": "write_chapter",
        "finish": "finish",
        "handle_error": "handle_error",
    })
    graph.add_edge("handle_error", END)
    graph.add_edge("finish", END)

    return graph.compile()


def _to_result(final_state: dict, total: int) -> RunResult:
    if final_state.get("error"):
        outcome = RunOutcome.FAILED
    elif final_state.get("cancelled"):
        outcome = RunOutcome.CANCELLED
    else:
        outcome = RunOutcome.COMPLETED
    return RunResult(
        outcome=outcome,
        completed=final_state.get("completed", 0),
        total=total,
        error=final_state.get("error", ""),
        exhausted=bool(final_state.get("exhausted")) and outcome == RunOutcome.COMPLETED,
    )


async def _run(ctx: RunContext, initial_state: GenerationState, recursion_limit: int) -> dict:
    app = build_graph()
    config = {
        "recursion_limit": recursion_limit,
        "configurable": {"run_context": ctx},
    }
    return await app.ainvoke(initial_state, config=config)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

async def run_planning(
    library: NovelLibrary,
    novel_id: str,
    planner: PlannerAgent,
    persistence: Optional[NovelPersistence] = None,
    callback: Optional[GenerationCallback] = None,
    token: Optional[CancellationToken] = None,
    settings: Optional[Settings] = None,
    batch_size: Optional[int] = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> RunResult:
    """Plan the full chapter list in batches until the target count is reached.

    Each successful batch is published to the library immediately, so a
    failure part-way keeps every chapter planned so far.

    Raises:
        WorkflowStateError: Novel missing or its outline stage not reached.
        InvalidConfigError: Target chapter count is not positive.
    """
    settings = settings or get_settings()
    novel = library.get(novel_id)
    if novel is None:
        raise WorkflowStateError(f"Novel {novel_id} not found")
    if novel.step.order < NovelStage.OUTLINE.order:
        raise WorkflowStateError("Generate an outline before planning chapters")

    target = int(novel.config.target_chapter_count or 0)
    if target < 1:
        raise InvalidConfigError("target_chapter_count must be >= 1", {"value": target})

    ctx = RunContext(
        library=library,
        settings=settings,
        planner=planner,
        persistence=persistence or NullPersistence(),
        callback=callback or LoggingCallback(),
        token=token or CancellationToken(),
        sleep=sleep,
    )
    batch_size = batch_size or settings.chapter_batch_size

    initial_state: GenerationState = {
        "mode": RunMode.PLAN.value,
        "novel_id": novel_id,
        "novel_config": novel.config,
        "outline": novel.outline,
        "chapters": [],
        "target_count": target,
        "batch_size": batch_size,
    }

    logger.info("Starting planning run: novel=%s, target=%d, batch=%d", novel_id, target, batch_size)
    ctx.callback.on_progress(0, target)

    recursion_limit = target * settings.max_empty_batches + 10
    final_state = await _run(ctx, initial_state, recursion_limit)

    result = _to_result(final_state, total=target)
    if final_state.get("chapters"):
        library.advance_stage(novel_id, NovelStage.CHAPTERS)

    logger.info("Planning run %s: %d/%d chapters", result.outcome.value, result.completed, target)
    ctx.callback.on_run_complete(result)
    return result


async def run_streak(
    library: NovelLibrary,
    novel_id: str,
    writer: WriterAgent,
    persistence: Optional[NovelPersistence] = None,
    callback: Optional[GenerationCallback] = None,
    token: Optional[CancellationToken] = None,
    settings: Optional[Settings] = None,
    run_length: Optional[int] = None,
    from_chapter_id: Optional[str] = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> RunResult:
    """Write up to ``run_length`` consecutive chapters in one pass.

    Starts at the selected chapter (or ``from_chapter_id``), skipping
    forward past chapters that are already substantially written.

    Raises:
        WorkflowStateError: Novel missing or it has no planned chapters.
    """
    settings = settings or get_settings()
    novel = library.get(novel_id)
    if novel is None:
        raise WorkflowStateError(f"Novel {novel_id} not found")
    if not novel.chapters:
        raise WorkflowStateError("Plan the chapter list before streak writing")

    run_length = run_length or settings.streak_length
    start = find_streak_start(
        novel.chapters, from_chapter_id or novel.current_chapter_id, settings.written_threshold,
    )
    library.advance_stage(novel_id, NovelStage.WRITING)

    ctx = RunContext(
        library=library,
        settings=settings,
        writer=writer,
        persistence=persistence or NullPersistence(),
        callback=callback or LoggingCallback(),
        token=token or CancellationToken(),
        sleep=sleep,
    )

    initial_state: GenerationState = {
        "mode": RunMode.STREAK.value,
        "novel_id": novel_id,
        "novel_config": novel.config,
        "outline": novel.outline,
        "chapters": list(novel.chapters),
        "start_index": start,
        "run_length": run_length,
    }

    logger.info("Starting streak run: novel=%s, start=%d, length=%d", novel_id, start, run_length)
    ctx.callback.on_progress(0, run_length)

    final_state = await _run(ctx, initial_state, recursion_limit=run_length + 10)

    result = _to_result(final_state, total=run_length)
    logger.info("Streak run %s: %d/%d chapters", result.outcome.value, result.completed, run_length)
    ctx.callback.on_run_complete(result)
    return result


async def write_single_chapter(
    library: NovelLibrary,
    novel_id: str,
    chapter_id: str,
    writer: WriterAgent,
    persistence: Optional[NovelPersistence] = None,
    settings: Optional[Settings] = None,
) -> Chapter:
    """Generate one chapter body outside a run and publish it.

    Provider failures propagate to the caller; nothing is changed in that case.
    An empty generation is returned as-is (see ``is_empty_generation``).
    """
    settings = settings or get_settings()
    novel = library.get(novel_id)
    if novel is None:
        raise WorkflowStateError(f"Novel {novel_id} not found")
    index = novel.chapter_index(chapter_id)
    if index < 0:
        raise WorkflowStateError(f"Chapter {chapter_id} not found")

    chapter = novel.chapters[index]
    context = build_chapter_context(
        novel.chapters, index, settings.context_min_chars, settings.context_max_chars,
    )
    content = await writer.generate_chapter_content(novel.config, chapter, context, novel.outline)

    written = dataclasses.replace(chapter, content=content, is_generated=True)
    novel = library.update_chapter(novel_id, written)
    library.advance_stage(novel_id, NovelStage.WRITING)

    ctx = RunContext(library=library, settings=settings, persistence=persistence or NullPersistence())
    await _persist(ctx, "save_chapter", novel, written, index)
    return written
