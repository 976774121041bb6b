"""Writer Agent: full chapter bodies that continue seamlessly from prior context."""

import logging
from typing import Optional

from agents.base_agent import BaseAgent
from config.settings import Settings
from models.novel import Chapter, NovelConfig
from tools.agent_sdk_client import AgentSDKClient
from tools.text_utils import count_chinese_chars

logger = logging.getLogger(__name__)

EMPTY_CONTENT_TEXT = "生成内容为空。"


def is_empty_generation(text: Optional[str]) -> bool:
    """True if a body is the degenerate "generation produced nothing" result."""
    return not text or not text.strip() or text == EMPTY_CONTENT_TEXT


class WriterAgent(BaseAgent):
    """Generates chapter content with natural, human-like writing style."""

    def __init__(
        self,
        llm_client: Optional[AgentSDKClient] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(llm_client, settings)
        self._template = self._load_prompt("writer")

    async def generate_chapter_content(
        self,
        config: NovelConfig,
        chapter: Chapter,
        previous_context: str,
        outline: str,
    ) -> str:
        """Write the body of a single chapter.

        Args:
            config: Novel setup.
            chapter: Target chapter; its title and summary drive the scene.
            previous_context: Continuity context from the preceding chapter.
            outline: Full outline; only a bounded prefix goes into the prompt.

        Returns:
            Chapter body text, or ``EMPTY_CONTENT_TEXT`` when the provider
            answered with nothing.
        """
        system_prompt = self._extract_section(self._template, "System Prompt")
        user_prompt = self._extract_section(self._template, "正文创作指令").format(
            title=config.title,
            chapter_title=chapter.title,
            chapter_summary=chapter.summary,
            previous_context=previous_context,
            outline=outline[:self.settings.outline_prefix_content],
            target_word_count=config.target_word_count,
        )

        logger.info("Writing chapter '%s'...", chapter.title)

        text = await self._with_retry(lambda: self.llm.chat(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            model=self.settings.llm_model_writing,
            thinking_budget=self.settings.writing_thinking_budget,
        ))

        if not text or not text.strip():
            logger.warning("Chapter '%s' generation returned no content", chapter.title)
            return EMPTY_CONTENT_TEXT

        logger.info("Chapter '%s' written: %d chars", chapter.title, count_chinese_chars(text))
        return text
