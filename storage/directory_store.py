"""Plain-file mirror of a novel inside a user-chosen directory.

Layout under the root::

    <title>/setting.json
    <title>/outline.txt
    <title>/chapters/0001_<chapter title>.txt
"""

import asyncio
import json
import logging
from dataclasses import asdict
from pathlib import Path

from models.novel import Chapter, Novel
from tools.text_utils import safe_dirname, safe_filename

logger = logging.getLogger(__name__)


def chapter_filename(chapter: Chapter, index: int) -> str:
    """File name for the chapter at zero-based ``index``; numbering follows position."""
    return f"{index + 1:04d}_{safe_filename(chapter.title)}.txt"


def chapter_file_body(chapter: Chapter, index: int) -> str:
    return f"第{index + 1}章：{chapter.title}\n\n{chapter.content or ''}"


class DirectoryStore:
    """Writes config, outline and chapters as files under ``root``.

    File I/O runs in a worker thread so the event loop only suspends on it.
    Every write failure is logged and swallowed so a storage hiccup never
    interrupts generation.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _novel_dir(self, novel: Novel) -> Path:
        return self.root / safe_dirname(novel.config.title)

    @staticmethod
    def _write_file(path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")

    async def _write(self, path: Path, text: str, what: str) -> None:
        try:
            await asyncio.to_thread(self._write_file, path, text)
        except OSError as e:
            logger.error("Error saving %s to %s: %s", what, path, e)

    async def save_config(self, novel: Novel) -> None:
        text = json.dumps(asdict(novel.config), ensure_ascii=False, indent=2)
        await self._write(self._novel_dir(novel) / "setting.json", text, "config")

    async def save_outline(self, novel: Novel) -> None:
        await self._write(self._novel_dir(novel) / "outline.txt", novel.outline, "outline")

    async def save_chapter(self, novel: Novel, chapter: Chapter, index: int) -> None:
        path = self._novel_dir(novel) / "chapters" / chapter_filename(chapter, index)
        await self._write(path, chapter_file_body(chapter, index), f"chapter {index + 1}")

    async def save_all_chapters(self, novel: Novel) -> None:
        """Write every chapter that already has a body."""
        for i, chapter in enumerate(novel.chapters):
            if chapter.content and chapter.content.strip():
                await self.save_chapter(novel, chapter, i)

    async def connect(self, novel: Novel) -> None:
        """Sync everything for a freshly connected directory."""
        await self.save_config(novel)
        await self.save_outline(novel)
        await self.save_all_chapters(novel)
        logger.info("Directory %s connected for '%s'", self.root, novel.config.title)
