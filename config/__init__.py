"""Configuration package: settings, logging, and exceptions."""

from config.exceptions import (
    NovelArchitectError,
    LLMError,
    LLMOverloadedError,
    LLMTimeoutError,
    LLMResponseParseError,
    EmptyGenerationError,
    PersistenceError,
    WorkflowError,
    WorkflowStateError,
    ValidationError,
    InvalidConfigError,
)
from config.logging_config import setup_logging
from config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "setup_logging",
    "NovelArchitectError",
    "LLMError",
    "LLMOverloadedError",
    "LLMTimeoutError",
    "LLMResponseParseError",
    "EmptyGenerationError",
    "PersistenceError",
    "WorkflowError",
    "WorkflowStateError",
    "ValidationError",
    "InvalidConfigError",
]
