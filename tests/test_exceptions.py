"""Tests for the custom exception hierarchy."""

import pytest
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


class TestExceptionHierarchy:
    def test_all_inherit_from_base(self):
        leaf_classes = [
            LLMError, LLMOverloadedError, LLMTimeoutError, LLMResponseParseError, EmptyGenerationError,
            PersistenceError,
            WorkflowError, WorkflowStateError,
            ValidationError, InvalidConfigError,
        ]
        for cls in leaf_classes:
            assert issubclass(cls, NovelArchitectError), f"{cls.__name__} must inherit NovelArchitectError"

    def test_llm_subclasses(self):
        for cls in (LLMOverloadedError, LLMTimeoutError, LLMResponseParseError, EmptyGenerationError):
            assert issubclass(cls, LLMError)

    def test_workflow_and_validation_subclasses(self):
        assert issubclass(WorkflowStateError, WorkflowError)
        assert issubclass(InvalidConfigError, ValidationError)


class TestExceptionMessages:
    def test_plain_message(self):
        assert str(NovelArchitectError("出错了")) == "出错了"

    def test_details_rendered(self):
        err = InvalidConfigError("bad value", {"field": "title"})
        assert str(err) == "bad value (field=title)"
        assert err.details == {"field": "title"}

    def test_llm_error_status_code(self):
        err = LLMError("busy", status_code=529)
        assert err.status_code == 529
        assert "status_code=529" in str(err)

    def test_overloaded_defaults(self):
        err = LLMOverloadedError()
        assert err.status_code is None
        assert "overloaded" in str(err)

    def test_parse_error_keeps_raw_response(self):
        err = LLMResponseParseError("bad json", raw_response="x" * 500)
        assert err.raw_response == "x" * 500
        assert len(err.details["raw_response"]) == 200

    def test_catch_by_base(self):
        with pytest.raises(NovelArchitectError):
            raise WorkflowStateError("no active novel")
