"""Planner Agent: recommends a setup, writes the outline and plans chapter lists."""

import logging
from typing import Any, Optional, Sequence

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from agents.base_agent import BaseAgent
from config.exceptions import LLMResponseParseError
from config.settings import Settings
from models.novel import Chapter, NovelConfig
from tools.agent_sdk_client import AgentSDKClient

logger = logging.getLogger(__name__)

OUTLINE_FAILED_TEXT = "生成失败，请重试。"
NO_PREVIOUS_CHAPTERS = "无（这是第一批章节）"

# Fallbacks used when a recommendation leaves the numeric targets out
DEFAULT_RECOMMENDED_CHAPTERS = 80
DEFAULT_RECOMMENDED_WORDS = 3000

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "genre": {"type": "string"},
        "tone": {"type": "string"},
        "protagonist": {"type": "string"},
        "world_setting": {"type": "string"},
        "writing_style": {"type": "string"},
        "target_chapter_count": {"type": "number"},
        "target_word_count": {"type": "number"},
        "additional_notes": {"type": "string"},
    },
    "required": ["title", "genre", "protagonist", "world_setting", "writing_style"],
}

CHAPTER_BATCH_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "title": {"type": "string"},
            "summary": {"type": "string"},
        },
        "required": ["title", "summary"],
    },
}


class ConfigRecommendation(BaseModel):
    """Validated provider answer for the auto-fill setup step."""

    title: str = Field(min_length=1)
    genre: str = Field(min_length=1)
    tone: str = ""
    protagonist: str = Field(min_length=1)
    world_setting: str = Field(
        min_length=1, validation_alias=AliasChoices("world_setting", "worldSetting"),
    )
    writing_style: str = Field(
        min_length=1, validation_alias=AliasChoices("writing_style", "writingStyle"),
    )
    target_chapter_count: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("target_chapter_count", "targetChapterCount"),
    )
    target_word_count: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("target_word_count", "targetWordCount"),
    )
    additional_notes: str = Field(
        default="", validation_alias=AliasChoices("additional_notes", "additionalNotes"),
    )

    @field_validator("target_chapter_count", "target_word_count", mode="before")
    @classmethod
    def coerce_count(cls, v: Any) -> Optional[int]:
        try:
            count = int(float(v))
        except (TypeError, ValueError):
            return None
        return count if count > 0 else None

    def merge_into(self, config: NovelConfig) -> NovelConfig:
        """Overlay this recommendation onto an existing setup form."""
        return NovelConfig(
            title=self.title,
            genre=self.genre,
            tone=self.tone or config.tone,
            protagonist=self.protagonist,
            world_setting=self.world_setting,
            writing_style=self.writing_style,
            target_chapter_count=self.target_chapter_count or DEFAULT_RECOMMENDED_CHAPTERS,
            target_word_count=self.target_word_count or DEFAULT_RECOMMENDED_WORDS,
            additional_notes=self.additional_notes or config.additional_notes,
        )


def _format_previous(previous: Sequence[Chapter], start_index: int) -> str:
    if not previous:
        return NO_PREVIOUS_CHAPTERS
    first_number = start_index - len(previous) + 1
    return "\n".join(
        f"第 {first_number + i} 章：{c.title} ({c.summary})" for i, c in enumerate(previous)
    )


def _parse_chapter_items(data: Any, batch_size: int) -> list[Chapter]:
    """Turn a parsed JSON array into fresh, unwritten chapters."""
    if not isinstance(data, list):
        return []
    chapters = []
    for item in data:
        if not isinstance(item, dict):
            continue
        title = item.get("title")
        summary = item.get("summary")
        if not isinstance(title, str) or not isinstance(summary, str) or not title.strip():
            continue
        chapters.append(Chapter(title=title.strip(), summary=summary.strip()))
    return chapters[:batch_size]


class PlannerAgent(BaseAgent):
    """Setup recommendation, outline generation and batched chapter planning."""

    def __init__(
        self,
        llm_client: Optional[AgentSDKClient] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(llm_client, settings)
        self._template = self._load_prompt("planner")
        self._system_prompt = self._extract_section(self._template, "System Prompt")

    async def recommend_config(self) -> ConfigRecommendation:
        """Ask the provider for a complete, trend-driven novel setup.

        Raises:
            LLMResponseParseError: Output is not JSON or misses required fields.
        """
        user_prompt = self._extract_section(self._template, "爆款设定指令")

        async def _call() -> ConfigRecommendation:
            data = await self.llm.chat_json(
                system_prompt=self._system_prompt,
                user_prompt=user_prompt,
                model=self.settings.llm_model_planning,
                schema=CONFIG_SCHEMA,
            )
            try:
                return ConfigRecommendation.model_validate(data)
            except PydanticValidationError as e:
                raise LLMResponseParseError(
                    f"AI生成格式错误，请重试: {e.error_count()} invalid field(s)",
                    raw_response=str(data),
                ) from e

        recommendation = await self._with_retry(_call)
        logger.info("Recommended setup: '%s' (%s)", recommendation.title, recommendation.genre)
        return recommendation

    async def generate_outline(self, config: NovelConfig) -> str:
        """Write the free-text story outline for a configuration."""
        user_prompt = self._extract_section(self._template, "大纲生成指令").format(
            title=config.title,
            genre=config.genre,
            tone=config.tone,
            protagonist=config.protagonist,
            world_setting=config.world_setting,
            writing_style=config.writing_style,
            target_chapter_count=config.target_chapter_count,
            additional_notes=config.additional_notes,
        )

        logger.info("Generating outline for '%s'...", config.title)
        text = await self._with_retry(lambda: self.llm.chat(
            system_prompt=self._system_prompt,
            user_prompt=user_prompt,
            model=self.settings.llm_model_planning,
            thinking_budget=self.settings.outline_thinking_budget,
        ))
        return text or OUTLINE_FAILED_TEXT

    async def generate_chapter_batch(
        self,
        config: NovelConfig,
        outline: str,
        start_index: int,
        batch_size: int,
        previous: Sequence[Chapter] = (),
    ) -> list[Chapter]:
        """Plan titles and summaries for chapters ``start_index+1 .. start_index+batch_size``.

        Args:
            config: Novel setup.
            outline: Full outline; only a bounded prefix goes into the prompt.
            start_index: Zero-based position of the first new chapter.
            batch_size: Number of chapters to plan.
            previous: Already planned chapters; the trailing few are shown
                to the model for continuity.

        Returns:
            Up to ``batch_size`` new chapters, or an empty list when the
            model's output cannot be parsed.
        """
        recent = list(previous)[-self.settings.batch_context_chapters:] if previous else []
        user_prompt = self._extract_section(self._template, "分章目录指令").format(
            title=config.title,
            first_number=start_index + 1,
            last_number=start_index + batch_size,
            outline=outline[:self.settings.outline_prefix_batch],
            previous_chapters=_format_previous(recent, start_index),
            batch_size=batch_size,
            genre=config.genre,
        )

        logger.info("Planning chapters %d-%d...", start_index + 1, start_index + batch_size)
        try:
            data = await self._with_retry(lambda: self.llm.chat_json(
                system_prompt=self._system_prompt,
                user_prompt=user_prompt,
                model=self.settings.llm_model_planning,
                schema=CHAPTER_BATCH_SCHEMA,
                allow_list=True,
            ))
        except LLMResponseParseError as e:
            logger.error("JSON batch parse error: %s", e)
            return []

        chapters = _parse_chapter_items(data, batch_size)
        if not chapters:
            logger.warning("Chapter batch at %d produced no usable entries", start_index + 1)
        return chapters
