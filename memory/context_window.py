"""Continuity context for chapter writing, built from the preceding chapter."""

from typing import Sequence

from models.novel import Chapter
from tools.text_utils import get_chapter_ending

NO_PRIOR_CONTEXT = "这是第一章，暂无前情提要。"
SUMMARY_MARKER = "【上章梗概】："
ENDING_MARKER = "【上章正文结尾】：\n..."

DEFAULT_MIN_CHARS = 50
DEFAULT_MAX_CHARS = 3000


def build_chapter_context(
    chapters: Sequence[Chapter],
    index: int,
    min_chars: int = DEFAULT_MIN_CHARS,
    max_chars: int = DEFAULT_MAX_CHARS,
) -> str:
    """Assemble the prior-context string for the chapter at ``index``.

    The first chapter gets a fixed marker. Otherwise the previous chapter
    is inspected: if its body is shorter than ``min_chars`` it has not
    been written yet and its summary stands in; if it is written, the
    last ``max_chars`` characters of its body are used.
    """
    if index <= 0:
        return NO_PRIOR_CONTEXT

    previous = chapters[index - 1]
    body = previous.content or ""
    if len(body) < min_chars:
        return f"{SUMMARY_MARKER}{previous.summary}"
    return f"{ENDING_MARKER}{get_chapter_ending(body, max_chars)}"
