"""Text utilities: character counting, tail extraction, safe file names."""

import re

_UNSAFE_FILENAME_RE = re.compile(r'[\\/:*?"<>|]')
_UNSAFE_DIRNAME_RE = re.compile(r"[^a-zA-Z0-9\u4e00-\u9fa5\-_]")


def count_chinese_chars(text: str) -> int:
    """Count Chinese characters (CJK Unified Ideographs) in text.

    Only counts actual Chinese characters, excluding punctuation, spaces, and Latin characters.
    """
    return len(re.findall(r"[\u4e00-\u9fff\u3400-\u4dbf]", text))


def get_chapter_ending(content: str, char_limit: int = 3000) -> str:
    """Return the last ``char_limit`` characters of a chapter."""
    if not content:
        return ""
    if len(content) <= char_limit:
        return content
    return content[-char_limit:]


def safe_dirname(title: str, fallback: str = "Untitled_Novel") -> str:
    """Directory-safe version of a novel title (CJK letters are kept)."""
    return _UNSAFE_DIRNAME_RE.sub("_", title or "") or fallback


def safe_filename(title: str, max_len: int = 50, fallback: str = "Untitled") -> str:
    """File-safe version of a chapter title, cut to ``max_len`` characters."""
    return _UNSAFE_FILENAME_RE.sub("_", title or fallback)[:max_len]
