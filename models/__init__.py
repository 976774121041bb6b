"""Models package: novel data, library state, store, and enums."""

from models.database import Database
from models.library import NovelLibrary
from models.novel import Novel, NovelConfig, Chapter
from models.enums import NovelStage, RunMode, RunPhase, RunOutcome

__all__ = [
    "Database",
    "NovelLibrary",
    "Novel",
    "NovelConfig",
    "Chapter",
    "NovelStage",
    "RunMode",
    "RunPhase",
    "RunOutcome",
]
