"""User-facing actions over one novel library.

``NovelSession`` is what the CLI drives: it owns the agents, the connected
save target and the single in-flight run, and gates each action on the
novel's lifecycle stage.
"""

import dataclasses
import logging
from pathlib import Path
from typing import Optional

from agents.planner_agent import PlannerAgent
from agents.writer_agent import WriterAgent
from config.exceptions import InvalidConfigError, WorkflowStateError
from config.settings import Settings, get_settings
from models.enums import NovelStage
from models.library import NovelLibrary
from models.novel import Chapter, Novel, NovelConfig
from storage.debounce import DebouncedWriter
from storage.directory_store import DirectoryStore
from storage.export import write_backup
from storage.persistence import NovelPersistence, NullPersistence, save_quietly
from tools.agent_sdk_client import AgentSDKClient
from workflow.callbacks import GenerationCallback
from workflow.cancellation import CancellationToken
from workflow.graph import run_planning, run_streak, write_single_chapter
from workflow.state import RunResult

logger = logging.getLogger(__name__)


def validate_config(config: NovelConfig) -> None:
    """Raise ``InvalidConfigError`` if the setup form can't drive generation."""
    missing = [name for name in ("title", "genre") if not str(getattr(config, name) or "").strip()]
    if missing:
        raise InvalidConfigError("Required setup fields are empty", {"fields": ",".join(missing)})
    for name in ("target_chapter_count", "target_word_count"):
        value = getattr(config, name)
        if not isinstance(value, int) or value < 1:
            raise InvalidConfigError(f"{name} must be a positive integer", {"value": value})


class NovelSession:
    """Single-user session: at most one generation run at a time."""

    def __init__(
        self,
        library: NovelLibrary,
        settings: Optional[Settings] = None,
        llm_client: Optional[AgentSDKClient] = None,
        planner: Optional[PlannerAgent] = None,
        writer: Optional[WriterAgent] = None,
        persistence: Optional[NovelPersistence] = None,
    ):
        self.settings = settings or get_settings()
        self.library = library
        self.llm = llm_client or AgentSDKClient(self.settings)
        self.planner = planner or PlannerAgent(self.llm, self.settings)
        self.writer = writer or WriterAgent(self.llm, self.settings)
        self.persistence: NovelPersistence = persistence or NullPersistence()
        self._edits = DebouncedWriter(self.settings.save_debounce_seconds)
        self._token: Optional[CancellationToken] = None

    # ---- Run guard ----

    @property
    def is_generating(self) -> bool:
        return self._token is not None

    def _begin(self) -> CancellationToken:
        if self._token is not None:
            raise WorkflowStateError("A generation run is already in progress")
        self._token = CancellationToken()
        return self._token

    def _end(self) -> None:
        self._token = None

    def cancel(self) -> bool:
        """Request the current run to stop after its in-flight unit."""
        if self._token is None:
            return False
        self._token.cancel()
        logger.info("Cancellation requested")
        return True

    # ---- Save target ----

    async def connect_directory(self, root: str | Path) -> DirectoryStore:
        """Use a local directory as the save target and sync the active novel into it."""
        store = DirectoryStore(root)
        self.persistence = store
        novel = self.library.active_novel
        if novel is not None:
            await store.connect(novel)
        return store

    # ---- Setup stage ----

    async def autofill_config(self) -> NovelConfig:
        """Replace the setup form with a provider recommendation."""
        novel = self.library.require_active()
        self._begin()
        try:
            recommendation = await self.planner.recommend_config()
        finally:
            self._end()
        config = recommendation.merge_into(novel.config)
        novel = self.library.update_novel(novel.id, config=config)
        await save_quietly(self.persistence, "save_config", novel)
        return config

    async def save_config(self, config: NovelConfig) -> Novel:
        novel = self.library.update_active_novel(config=config)
        await save_quietly(self.persistence, "save_config", novel)
        return novel

    # ---- Outline stage ----

    async def generate_outline(self) -> str:
        novel = self.library.require_active()
        validate_config(novel.config)
        self._begin()
        try:
            outline = await self.planner.generate_outline(novel.config)
        finally:
            self._end()
        novel = self.library.update_novel(novel.id, outline=outline)
        novel = self.library.advance_stage(novel.id, NovelStage.OUTLINE)
        await save_quietly(self.persistence, "save_config", novel)
        await save_quietly(self.persistence, "save_outline", novel)
        return outline

    async def update_outline(self, outline: str) -> Novel:
        novel = self.library.update_active_novel(outline=outline)
        await save_quietly(self.persistence, "save_outline", novel)
        return novel

    # ---- Chapter list and writing ----

    async def plan_chapters(self, callback: Optional[GenerationCallback] = None) -> RunResult:
        novel = self.library.require_active()
        validate_config(novel.config)
        if not novel.outline.strip():
            raise WorkflowStateError("Generate an outline before planning chapters")
        token = self._begin()
        try:
            return await run_planning(
                self.library, novel.id, self.planner,
                persistence=self.persistence, callback=callback,
                token=token, settings=self.settings,
            )
        finally:
            self._end()

    async def write_chapter(self, chapter_id: str) -> Chapter:
        novel = self.library.require_active()
        self._begin()
        try:
            return await write_single_chapter(
                self.library, novel.id, chapter_id, self.writer,
                persistence=self.persistence, settings=self.settings,
            )
        finally:
            self._end()

    async def streak_write(
        self,
        callback: Optional[GenerationCallback] = None,
        run_length: Optional[int] = None,
        from_chapter_id: Optional[str] = None,
    ) -> RunResult:
        novel = self.library.require_active()
        token = self._begin()
        try:
            return await run_streak(
                self.library, novel.id, self.writer,
                persistence=self.persistence, callback=callback, token=token,
                settings=self.settings, run_length=run_length,
                from_chapter_id=from_chapter_id,
            )
        finally:
            self._end()

    def select_chapter(self, chapter_id: str) -> Novel:
        if self.is_generating:
            raise WorkflowStateError("Chapter selection is disabled while generating")
        novel = self.library.require_active()
        if novel.chapter_index(chapter_id) < 0:
            raise WorkflowStateError(f"Chapter {chapter_id} not found")
        return self.library.update_novel(novel.id, current_chapter_id=chapter_id)

    def edit_chapter_content(self, chapter_id: str, content: str) -> Chapter:
        """Apply a user edit now; the file write follows after a quiet period.

        Must be called from inside a running event loop.
        """
        if self.is_generating:
            raise WorkflowStateError("Editing is disabled while generating")
        novel = self.library.require_active()
        index = novel.chapter_index(chapter_id)
        if index < 0:
            raise WorkflowStateError(f"Chapter {chapter_id} not found")

        edited = dataclasses.replace(novel.chapters[index], content=content)
        novel = self.library.update_chapter(novel.id, edited)
        persistence = self.persistence

        async def _write() -> None:
            await save_quietly(persistence, "save_chapter", novel, edited, index)

        self._edits.schedule(chapter_id, _write)
        return edited

    async def flush_edits(self) -> None:
        await self._edits.flush()

    # ---- Lifecycle ----

    def go_back(self, stage: NovelStage) -> Novel:
        if self.is_generating:
            raise WorkflowStateError("Cannot change stage while generating")
        return self.library.go_back(self.library.require_active().id, stage)

    def export(self, directory: Optional[str | Path] = None) -> Path:
        novel = self.library.require_active()
        return write_backup(novel, directory or self.settings.export_dir)
