"""Persistence collaborator protocol used by the orchestrator."""

import logging
from typing import Protocol, runtime_checkable

from models.novel import Chapter, Novel

logger = logging.getLogger(__name__)


@runtime_checkable
class NovelPersistence(Protocol):
    """Save hooks the generation engine calls after each mutation.

    Implementations own their error handling: a failed write is logged
    and swallowed, never raised into the generation control flow.
    """

    async def save_config(self, novel: Novel) -> None:
        ...

    async def save_outline(self, novel: Novel) -> None:
        ...

    async def save_chapter(self, novel: Novel, chapter: Chapter, index: int) -> None:
        ...

    async def save_all_chapters(self, novel: Novel) -> None:
        ...


class NullPersistence:
    """Used when no save target has been connected."""

    async def save_config(self, novel: Novel) -> None:
        return None

    async def save_outline(self, novel: Novel) -> None:
        return None

    async def save_chapter(self, novel: Novel, chapter: Chapter, index: int) -> None:
        return None

    async def save_all_chapters(self, novel: Novel) -> None:
        return None


async def save_quietly(persistence: NovelPersistence, method: str, *args) -> None:
    """Call one save hook; a failure is logged and never reaches the caller."""
    try:
        await getattr(persistence, method)(*args)
    except Exception as e:
        logger.warning("Persistence %s failed (non-fatal): %s", method, e)
