"""Configuration settings loaded from .env file."""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings, loaded from .env file.

    Authentication for the provider is handled by the Claude Agent SDK
    itself, so no API key lives here. Time values are in seconds.
    """

    # LLM Models
    llm_model_writing: str = "claude-opus-4-6"    # chapter bodies
    llm_model_planning: str = "claude-opus-4-6"   # config, outline, chapter lists

    # Thinking budgets (JSON calls run without one)
    outline_thinking_budget: int = 4096
    writing_thinking_budget: int = 8192

    # Retry policy
    retry_attempts: int = 3
    retry_base_delay: float = 2.0

    # Orchestration
    step_pause: float = 0.5
    chapter_batch_size: int = 20
    batch_context_chapters: int = 5
    max_empty_batches: int = 2
    streak_length: int = 10
    written_threshold: int = 500

    # Context window
    context_max_chars: int = 3000
    context_min_chars: int = 50
    outline_prefix_batch: int = 1500
    outline_prefix_content: int = 800

    # Persistence
    save_debounce_seconds: float = 2.0
    sqlite_db_path: Path = Path("./data/library.db")
    export_dir: Path = Path("./data/novels")

    # Logging
    log_dir: Path = Path("./data/logs")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        if v < 0:
            raise ValueError("retry_attempts must be >= 0")
        return v

    @field_validator("chapter_batch_size", "streak_length", "max_empty_batches", "batch_context_chapters")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Batch sizes and run lengths must be >= 1")
        return v

    @field_validator("retry_base_delay", "step_pause", "save_debounce_seconds")
    @classmethod
    def validate_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Delay must be non-negative")
        return v

    @field_validator("context_max_chars", "context_min_chars", "written_threshold")
    @classmethod
    def validate_char_counts(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Character count must be non-negative")
        return v

    @field_validator("sqlite_db_path", "log_dir")
    @classmethod
    def ensure_parent_dirs(cls, v: Path) -> Path:
        v.parent.mkdir(parents=True, exist_ok=True)
        return v


_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
