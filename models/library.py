"""In-memory working document state for the novel library."""

import dataclasses
import logging
import time
from typing import Optional

from config.exceptions import PersistenceError, WorkflowStateError
from models.database import Database
from models.enums import NovelStage
from models.novel import Chapter, Novel, NovelConfig

logger = logging.getLogger(__name__)


class NovelLibrary:
    """Collection of novels with one active selection.

    Every mutation replaces the affected ``Novel`` with an updated copy
    (matched by id, never by position) and refreshes ``last_modified``,
    so readers holding an older snapshot never see a half-applied change.
    Calls are expected to be sequenced by a single-threaded caller.

    If a ``Database`` is supplied, each mutation is written through to it.
    Store failures are logged and leave the in-memory state untouched.
    """

    def __init__(self, store: Optional[Database] = None, novels: Optional[list[Novel]] = None):
        self.store = store
        if novels is None and store is not None:
            novels = store.list_novels()
        self._novels: list[Novel] = list(novels or [])
        self.active_novel_id: Optional[str] = None

    @property
    def novels(self) -> list[Novel]:
        return list(self._novels)

    @property
    def active_novel(self) -> Optional[Novel]:
        return self.get(self.active_novel_id)

    def get(self, novel_id: Optional[str]) -> Optional[Novel]:
        for novel in self._novels:
            if novel.id == novel_id:
                return novel
        return None

    def find_chapter_index(self, novel_id: str, chapter_id: Optional[str]) -> int:
        """Position of a chapter inside a novel, or -1."""
        novel = self.get(novel_id)
        return novel.chapter_index(chapter_id) if novel is not None else -1

    def require_active(self) -> Novel:
        novel = self.active_novel
        if novel is None:
            raise WorkflowStateError("No active novel selected")
        return novel

    # ---- Lifecycle ----

    def create_novel(self, config: Optional[NovelConfig] = None) -> Novel:
        """Create an empty novel with the default setup form and make it active."""
        novel = Novel(config=config or NovelConfig())
        self._novels.insert(0, novel)
        self.active_novel_id = novel.id
        self._write_through(novel)
        logger.info("Created novel %s", novel.id)
        return novel

    def import_novel(self, novel: Novel) -> Novel:
        """Add a restored novel (e.g. from a JSON backup) and make it active.

        A novel with the same id is replaced in place.
        """
        if self.get(novel.id) is not None:
            self._novels = [novel if n.id == novel.id else n for n in self._novels]
        else:
            self._novels.insert(0, novel)
        self.active_novel_id = novel.id
        self._write_through(novel)
        logger.info("Imported novel %s (%d chapters)", novel.id, len(novel.chapters))
        return novel

    def select_novel(self, novel_id: Optional[str]) -> Optional[Novel]:
        if novel_id is not None and self.get(novel_id) is None:
            raise WorkflowStateError(f"Novel {novel_id} not found")
        self.active_novel_id = novel_id
        return self.active_novel

    def delete_novel(self, novel_id: str) -> None:
        self._novels = [n for n in self._novels if n.id != novel_id]
        if self.active_novel_id == novel_id:
            self.active_novel_id = None
        if self.store is not None:
            try:
                self.store.delete_novel(novel_id)
            except Exception as e:
                logger.error("Failed to delete novel %s from store: %s", novel_id, e)

    # ---- Updates ----

    def update_novel(self, novel_id: str, **updates) -> Novel:
        """Merge a partial change into one novel and refresh its timestamp."""
        current = self.get(novel_id)
        if current is None:
            raise WorkflowStateError(f"Novel {novel_id} not found")
        if "chapters" in updates:
            updates["chapters"] = list(updates["chapters"])
        updated = dataclasses.replace(current, **updates, last_modified=time.time())
        self._novels = [updated if n.id == novel_id else n for n in self._novels]
        self._write_through(updated)
        return updated

    def update_active_novel(self, **updates) -> Novel:
        return self.update_novel(self.require_active().id, **updates)

    def update_chapter(self, novel_id: str, chapter: Chapter, **updates) -> Novel:
        """Replace one chapter of a novel, matched by chapter id.

        Extra keyword updates (e.g. ``current_chapter_id``) land in the same write.
        """
        novel = self.get(novel_id)
        if novel is None:
            raise WorkflowStateError(f"Novel {novel_id} not found")
        if novel.chapter_index(chapter.id) < 0:
            raise WorkflowStateError(f"Chapter {chapter.id} not found in novel {novel_id}")
        chapters = [chapter if c.id == chapter.id else c for c in novel.chapters]
        return self.update_novel(novel_id, chapters=chapters, **updates)

    # ---- Stages ----

    def advance_stage(self, novel_id: str, stage: NovelStage) -> Novel:
        """Move forward to ``stage``; never moves backwards."""
        novel = self.get(novel_id)
        if novel is None:
            raise WorkflowStateError(f"Novel {novel_id} not found")
        if stage.order <= novel.step.order:
            return novel
        return self.update_novel(novel_id, step=stage)

    def go_back(self, novel_id: str, stage: NovelStage) -> Novel:
        """Explicit user-initiated return to an earlier stage."""
        novel = self.get(novel_id)
        if novel is None:
            raise WorkflowStateError(f"Novel {novel_id} not found")
        if stage.order > novel.step.order:
            raise WorkflowStateError(f"Cannot go back from {novel.step.value} to {stage.value}")
        return self.update_novel(novel_id, step=stage)

    def _write_through(self, novel: Novel) -> None:
        if self.store is None:
            return
        try:
            self.store.save_novel(novel)
        except PersistenceError as e:
            logger.warning("Library write-through failed (in-memory state kept): %s", e)
