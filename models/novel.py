"""Novel, chapter and configuration data models."""

import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Optional

from models.enums import NovelStage


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class NovelConfig:
    """User-facing setup form for a novel. Fed verbatim into generation prompts."""
    title: str = ""
    genre: str = "玄幻"
    tone: str = "热血"
    protagonist: str = ""
    world_setting: str = ""
    writing_style: str = "智商在线，剧情紧凑"
    target_chapter_count: int = 50
    target_word_count: int = 3000  # per chapter
    additional_notes: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "NovelConfig":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class Chapter:
    """A single planned or written chapter."""
    id: str = field(default_factory=new_id)
    title: str = ""
    summary: str = ""
    content: str = ""
    is_generated: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "Chapter":
        return cls(
            id=data.get("id") or new_id(),
            title=data.get("title", ""),
            summary=data.get("summary", ""),
            content=data.get("content") or "",
            is_generated=bool(data.get("is_generated", False)),
        )


@dataclass
class Novel:
    """A complete novel project: configuration, outline and ordered chapters.

    Instances are treated as snapshots; mutations go through
    ``NovelLibrary`` which swaps in a replaced copy.
    """
    id: str = field(default_factory=new_id)
    last_modified: float = field(default_factory=time.time)
    config: NovelConfig = field(default_factory=NovelConfig)
    outline: str = ""
    chapters: list[Chapter] = field(default_factory=list)
    current_chapter_id: Optional[str] = None
    step: NovelStage = NovelStage.SETUP

    def chapter_index(self, chapter_id: Optional[str]) -> int:
        """Position of a chapter by identity, or -1."""
        for i, chapter in enumerate(self.chapters):
            if chapter.id == chapter_id:
                return i
        return -1

    def to_dict(self) -> dict:
        data = asdict(self)
        data["step"] = self.step.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Novel":
        return cls(
            id=data.get("id") or new_id(),
            last_modified=float(data.get("last_modified") or time.time()),
            config=NovelConfig.from_dict(data.get("config") or {}),
            outline=data.get("outline") or "",
            chapters=[Chapter.from_dict(c) for c in data.get("chapters") or []],
            current_chapter_id=data.get("current_chapter_id"),
            step=NovelStage(data.get("step") or NovelStage.SETUP.value),
        )
