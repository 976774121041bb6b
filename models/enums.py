"""Enumerations for document lifecycle and generation run tracking."""

from enum import Enum


class NovelStage(str, Enum):
    SETUP = "setup"
    OUTLINE = "outline"
    CHAPTERS = "chapters"
    WRITING = "writing"

    @property
    def order(self) -> int:
        return _STAGE_ORDER.index(self)


_STAGE_ORDER = [NovelStage.SETUP, NovelStage.OUTLINE, NovelStage.CHAPTERS, NovelStage.WRITING]


class RunMode(str, Enum):
    PLAN = "plan"
    STREAK = "streak"


class RunPhase(str, Enum):
    """Continuation-run state machine phases."""
    IDLE = "idle"
    RUNNING = "running"
    CANCELLING = "cancelling"
    ERRORING = "erroring"
    EXHAUSTED = "exhausted"
    STOPPED = "stopped"


class RunOutcome(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"
