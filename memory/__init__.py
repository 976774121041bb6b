"""Memory package: continuity context assembly."""

from memory.context_window import build_chapter_context, NO_PRIOR_CONTEXT

__all__ = ["build_chapter_context", "NO_PRIOR_CONTEXT"]
