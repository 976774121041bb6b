"""Shared pytest fixtures for the novel-architect test suite."""

import pytest
from unittest.mock import MagicMock, AsyncMock


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite database path."""
    return tmp_path / "test_library.db"


@pytest.fixture
def db(tmp_db_path):
    """Return an initialized Database instance backed by a temp file."""
    from models.database import Database
    return Database(tmp_db_path)


# ---------------------------------------------------------------------------
# Settings fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path):
    """Return a Settings instance with temp paths and no pauses or backoff."""
    from config.settings import Settings
    return Settings(
        sqlite_db_path=tmp_path / "library.db",
        export_dir=tmp_path / "exports",
        log_dir=tmp_path / "logs",
        step_pause=0.0,
        retry_base_delay=0.0,
        save_debounce_seconds=0.01,
    )


# ---------------------------------------------------------------------------
# LLM Client mocks
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_llm(settings):
    """Return a MagicMock replacing AgentSDKClient."""
    llm = MagicMock()
    llm.chat = AsyncMock(return_value="这是一段测试内容。" * 20)
    llm.chat_json = AsyncMock(return_value=[])
    llm.get_usage_summary.return_value = {"total_calls": 1, "total_cost_usd": 0.0}
    llm.settings = settings
    return llm


# ---------------------------------------------------------------------------
# Sample data fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_config():
    from models.novel import NovelConfig
    return NovelConfig(
        title="逆天剑帝",
        genre="玄幻",
        tone="热血",
        protagonist="林渊，被逐出宗门的少年",
        world_setting="九州大陆，宗门林立",
        target_chapter_count=25,
        target_word_count=3000,
    )


def make_chapters(count: int, written: int = 0, body: str = "正文" * 300) -> list:
    """Build ``count`` chapters; the first ``written`` carry a long body."""
    from models.novel import Chapter
    return [
        Chapter(
            title=f"第{i + 1}章标题",
            summary=f"第{i + 1}章梗概",
            content=body if i < written else "",
            is_generated=i < written,
        )
        for i in range(count)
    ]


@pytest.fixture
def chapter_factory():
    return make_chapters


@pytest.fixture
def library():
    """In-memory library with no backing store."""
    from models.library import NovelLibrary
    return NovelLibrary(novels=[])


@pytest.fixture
def outlined_novel(library, sample_config):
    """Active novel with an outline and no chapters yet."""
    from models.enums import NovelStage
    novel = library.create_novel(sample_config)
    library.update_novel(novel.id, outline="大纲：少年崛起，一路逆袭。")
    return library.advance_stage(novel.id, NovelStage.OUTLINE)


@pytest.fixture
def planned_novel(library, sample_config):
    """Active novel with five planned chapters, the first three already written."""
    from models.enums import NovelStage
    novel = library.create_novel(sample_config)
    chapters = make_chapters(5, written=3)
    library.update_novel(
        novel.id,
        outline="大纲",
        chapters=chapters,
        current_chapter_id=chapters[0].id,
    )
    return library.advance_stage(novel.id, NovelStage.CHAPTERS)
