"""Tests for the planner and writer agents and BaseAgent utilities."""

import pytest
from unittest.mock import AsyncMock

from config.exceptions import LLMError, LLMOverloadedError, LLMResponseParseError
from models.novel import Chapter, NovelConfig


_RECOMMENDATION = {
    "title": "逆天剑帝",
    "genre": "玄幻",
    "tone": "热血",
    "protagonist": "林渊",
    "world_setting": "九州大陆",
    "writing_style": "节奏明快",
    "target_chapter_count": 120,
    "target_word_count": 2500,
    "additional_notes": "前期扮猪吃虎",
}


class TestBaseAgent:
    def test_extract_section(self, mock_llm, settings):
        from agents.base_agent import BaseAgent
        agent = BaseAgent(mock_llm, settings)
        template = "## System Prompt\n系统\n\n## 正文创作指令\n写{chapter_title}\n"
        assert agent._extract_section(template, "System Prompt") == "系统"
        assert agent._extract_section(template, "正文创作指令") == "写{chapter_title}"

    def test_missing_template_raises(self, mock_llm, settings):
        from agents.base_agent import BaseAgent
        with pytest.raises(FileNotFoundError):
            BaseAgent(mock_llm, settings)._load_prompt("does_not_exist")

    @pytest.mark.asyncio
    async def test_with_retry_recovers_from_overload(self, mock_llm, settings):
        from agents.base_agent import BaseAgent
        agent = BaseAgent(mock_llm, settings)
        operation = AsyncMock(side_effect=[LLMOverloadedError(status_code=503), "ok"])
        assert await agent._with_retry(operation) == "ok"
        assert operation.await_count == 2


class TestConfigRecommendation:
    def test_camel_case_aliases(self):
        from agents.planner_agent import ConfigRecommendation
        rec = ConfigRecommendation.model_validate({
            "title": "书", "genre": "都市", "protagonist": "他",
            "worldSetting": "现代", "writingStyle": "幽默", "targetChapterCount": "60",
        })
        assert rec.world_setting == "现代"
        assert rec.target_chapter_count == 60

    def test_bad_counts_fall_back_on_merge(self):
        from agents.planner_agent import ConfigRecommendation
        rec = ConfigRecommendation.model_validate({**_RECOMMENDATION, "target_chapter_count": "很多", "target_word_count": -5})
        config = rec.merge_into(NovelConfig())
        assert config.target_chapter_count == 80
        assert config.target_word_count == 3000

    def test_merge_keeps_existing_tone_when_missing(self):
        from agents.planner_agent import ConfigRecommendation
        rec = ConfigRecommendation.model_validate({**_RECOMMENDATION, "tone": ""})
        assert rec.merge_into(NovelConfig(tone="虐心")).tone == "虐心"


class TestPlannerAgent:
    @pytest.mark.asyncio
    async def test_recommend_config(self, mock_llm, settings):
        from agents.planner_agent import PlannerAgent
        mock_llm.chat_json = AsyncMock(return_value=_RECOMMENDATION)

        rec = await PlannerAgent(mock_llm, settings).recommend_config()

        assert rec.title == "逆天剑帝"
        assert rec.target_chapter_count == 120
        assert mock_llm.chat_json.call_args.kwargs["model"] == settings.llm_model_planning

    @pytest.mark.asyncio
    async def test_recommend_config_missing_required_field_raises(self, mock_llm, settings):
        from agents.planner_agent import PlannerAgent
        partial = {k: v for k, v in _RECOMMENDATION.items() if k != "protagonist"}
        mock_llm.chat_json = AsyncMock(return_value=partial)

        with pytest.raises(LLMResponseParseError):
            await PlannerAgent(mock_llm, settings).recommend_config()

    @pytest.mark.asyncio
    async def test_recommend_config_unparseable_raises(self, mock_llm, settings):
        from agents.planner_agent import PlannerAgent
        mock_llm.chat_json = AsyncMock(side_effect=LLMResponseParseError("bad", raw_response="???"))

        with pytest.raises(LLMResponseParseError):
            await PlannerAgent(mock_llm, settings).recommend_config()

    @pytest.mark.asyncio
    async def test_generate_outline_uses_thinking_budget(self, mock_llm, settings, sample_config):
        from agents.planner_agent import PlannerAgent
        mock_llm.chat = AsyncMock(return_value="第一卷：崛起")

        outline = await PlannerAgent(mock_llm, settings).generate_outline(sample_config)

        assert outline == "第一卷：崛起"
        kwargs = mock_llm.chat.call_args.kwargs
        assert kwargs["thinking_budget"] == settings.outline_thinking_budget
        assert sample_config.title in kwargs["user_prompt"]

    @pytest.mark.asyncio
    async def test_generate_outline_empty_returns_marker(self, mock_llm, settings, sample_config):
        from agents.planner_agent import PlannerAgent, OUTLINE_FAILED_TEXT
        mock_llm.chat = AsyncMock(return_value="")
        assert await PlannerAgent(mock_llm, settings).generate_outline(sample_config) == OUTLINE_FAILED_TEXT

    @pytest.mark.asyncio
    async def test_generate_outline_propagates_fatal_error(self, mock_llm, settings, sample_config):
        from agents.planner_agent import PlannerAgent
        mock_llm.chat = AsyncMock(side_effect=LLMError("auth failed", status_code=401))
        with pytest.raises(LLMError):
            await PlannerAgent(mock_llm, settings).generate_outline(sample_config)

    @pytest.mark.asyncio
    async def test_chapter_batch_fresh_unwritten_chapters(self, mock_llm, settings, sample_config):
        from agents.planner_agent import PlannerAgent
        mock_llm.chat_json = AsyncMock(return_value=[
            {"title": f"第{i}章", "summary": f"梗概{i}"} for i in range(1, 4)
        ])

        chapters = await PlannerAgent(mock_llm, settings).generate_chapter_batch(sample_config, "大纲", 0, 3)

        assert [c.title for c in chapters] == ["第1章", "第2章", "第3章"]
        assert all(c.content == "" and not c.is_generated for c in chapters)
        assert len({c.id for c in chapters}) == 3
        assert mock_llm.chat_json.call_args.kwargs["allow_list"] is True

    @pytest.mark.asyncio
    async def test_chapter_batch_truncates_and_skips_malformed(self, mock_llm, settings, sample_config):
        from agents.planner_agent import PlannerAgent
        mock_llm.chat_json = AsyncMock(return_value=[
            {"title": "A", "summary": "a"},
            "not a dict",
            {"summary": "no title"},
            {"title": "B", "summary": "b"},
            {"title": "C", "summary": "c"},
        ])

        chapters = await PlannerAgent(mock_llm, settings).generate_chapter_batch(sample_config, "大纲", 0, 2)

        assert [c.title for c in chapters] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_chapter_batch_degrades_to_empty(self, mock_llm, settings, sample_config):
        from agents.planner_agent import PlannerAgent
        planner = PlannerAgent(mock_llm, settings)

        mock_llm.chat_json = AsyncMock(return_value={"title": "不是列表"})
        assert await planner.generate_chapter_batch(sample_config, "大纲", 0, 5) == []

        mock_llm.chat_json = AsyncMock(side_effect=LLMResponseParseError("bad"))
        assert await planner.generate_chapter_batch(sample_config, "大纲", 0, 5) == []

    @pytest.mark.asyncio
    async def test_chapter_batch_prompt_numbers_and_context(self, mock_llm, settings, sample_config, chapter_factory):
        from agents.planner_agent import PlannerAgent
        mock_llm.chat_json = AsyncMock(return_value=[])
        previous = chapter_factory(20)

        await PlannerAgent(mock_llm, settings).generate_chapter_batch(
            sample_config, "大" * 5000, 20, 5, previous,
        )

        prompt = mock_llm.chat_json.call_args.kwargs["user_prompt"]
        assert "从第 21 章 到 第 25 章" in prompt
        assert "第20章标题" in prompt
        assert "第15章标题" not in prompt
        assert "大" * (settings.outline_prefix_batch + 1) not in prompt


class TestWriterAgent:
    @pytest.mark.asyncio
    async def test_generate_chapter_content(self, mock_llm, settings, sample_config):
        from agents.writer_agent import WriterAgent
        mock_llm.chat = AsyncMock(return_value="林渊睁开了眼睛。")
        chapter = Chapter(title="觉醒", summary="主角觉醒血脉")

        text = await WriterAgent(mock_llm, settings).generate_chapter_content(
            sample_config, chapter, "这是第一章，暂无前情提要。", "大纲",
        )

        assert text == "林渊睁开了眼睛。"
        kwargs = mock_llm.chat.call_args.kwargs
        assert kwargs["thinking_budget"] == settings.writing_thinking_budget
        assert kwargs["model"] == settings.llm_model_writing
        assert "觉醒" in kwargs["user_prompt"]
        assert "主角觉醒血脉" in kwargs["user_prompt"]

    @pytest.mark.asyncio
    async def test_empty_output_is_marked(self, mock_llm, settings, sample_config):
        from agents.writer_agent import WriterAgent, EMPTY_CONTENT_TEXT, is_empty_generation
        mock_llm.chat = AsyncMock(return_value="   ")

        text = await WriterAgent(mock_llm, settings).generate_chapter_content(
            sample_config, Chapter(title="t", summary="s"), "ctx", "大纲",
        )

        assert text == EMPTY_CONTENT_TEXT
        assert is_empty_generation(text)

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self, mock_llm, settings, sample_config):
        from agents.writer_agent import WriterAgent
        mock_llm.chat = AsyncMock(side_effect=[LLMOverloadedError(status_code=529), "正文"])

        text = await WriterAgent(mock_llm, settings).generate_chapter_content(
            sample_config, Chapter(title="t", summary="s"), "ctx", "大纲",
        )

        assert text == "正文"
        assert mock_llm.chat.await_count == 2

    def test_is_empty_generation(self):
        from agents.writer_agent import is_empty_generation
        assert is_empty_generation(None)
        assert is_empty_generation("")
        assert not is_empty_generation("有内容")
