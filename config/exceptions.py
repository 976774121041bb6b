"""Custom exception hierarchy for the novel generation engine."""

from typing import Optional


class NovelArchitectError(Exception):
    """Base exception for all novel architect errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# ---- LLM Errors ----

class LLMError(NovelArchitectError):
    """Base exception for LLM provider errors.

    ``status_code`` carries the provider's HTTP-like status when one could be
    recovered from the failure; the retry policy inspects it.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[dict] = None):
        details = dict(details or {})
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.status_code = status_code


class LLMOverloadedError(LLMError):
    """Provider is temporarily overloaded or unavailable."""

    def __init__(self, message: str = "LLM provider overloaded", status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code)


class LLMTimeoutError(LLMError):
    """LLM request timed out."""


class LLMResponseParseError(LLMError):
    """Provider output could not be parsed into the expected structure."""

    def __init__(self, message: str = "Failed to parse LLM response", raw_response: str = ""):
        details = {"raw_response": raw_response[:200]} if raw_response else {}
        super().__init__(message, details=details)
        self.raw_response = raw_response


class EmptyGenerationError(LLMError):
    """Provider succeeded but produced no usable text."""

    def __init__(self, message: str = "Generation produced no content"):
        super().__init__(message)


# ---- Persistence Errors ----

class PersistenceError(NovelArchitectError):
    """A storage write or read failed."""


# ---- Workflow Errors ----

class WorkflowError(NovelArchitectError):
    """Base exception for orchestration errors."""


class WorkflowStateError(WorkflowError):
    """Operation is not valid for the document's current state."""


# ---- Validation Errors ----

class ValidationError(NovelArchitectError):
    """Input validation failed."""


class InvalidConfigError(ValidationError):
    """Novel configuration is missing required fields or holds invalid values."""
