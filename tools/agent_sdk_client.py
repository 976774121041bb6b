"""Claude Agent SDK wrapper used for every provider call."""

import json
import logging
import os
import re
from typing import Any, Optional

from claude_agent_sdk import (
    query,
    ClaudeAgentOptions,
    ResultMessage,
    AssistantMessage,
)

from config.settings import Settings
from config.exceptions import LLMError, LLMOverloadedError, LLMResponseParseError
from tools.llm_client import parse_json_response
from tools.retry import TRANSIENT_STATUS_CODES

logger = logging.getLogger(__name__)

# Allow launching Agent SDK even when running inside a Claude Code session.
# The SDK checks for this env var and refuses to start if set.
os.environ.pop("CLAUDECODE", None)

# Only numbers labelled as a status count; "exceeds 500 token limit" is not one
_STATUS_RE = re.compile(r"(?:status(?:[ _]code)?|HTTP(?:/\d(?:\.\d)?)?|error)\W{0,3}([45]\d\d)\b", re.IGNORECASE)


def _detect_status(error: Any, text: str) -> Optional[int]:
    status = getattr(error, "status_code", None) or getattr(error, "status", None)
    if isinstance(status, int):
        return status
    match = _STATUS_RE.search(text)
    return int(match.group(1)) if match else None


def _wrap_error(prefix: str, error: Any, text: str) -> LLMError:
    """Build the LLMError subclass matching the failure signature."""
    status = _detect_status(error, text)
    message = f"{prefix}: {text}"
    if status in TRANSIENT_STATUS_CODES or "overloaded" in text.lower():
        return LLMOverloadedError(message, status_code=status)
    return LLMError(message, status_code=status)


class AgentSDKClient:
    """Claude Agent SDK wrapper.

    Uses claude_agent_sdk.query() for all LLM interactions.
    Authentication is handled automatically by Claude Code CLI.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.total_calls = 0
        self.total_cost_usd = 0.0

    async def chat(
        self,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
        thinking_budget: Optional[int] = None,
    ) -> str:
        """Send a request and return the text result.

        Args:
            system_prompt: System message guiding the model's behavior.
            user_prompt: User message content.
            model: Model name override. Defaults to writing model.
            thinking_budget: Optional cap on extended-thinking tokens.

        Returns:
            The model's text response; empty string if it produced none.

        Raises:
            LLMOverloadedError: Provider reported overload / server-busy.
            LLMError: Any other provider failure.
        """
        model = model or self.settings.llm_model_writing
        self.total_calls += 1

        logger.debug("AgentSDK call: model=%s, thinking_budget=%s", model, thinking_budget)

        options_kwargs = {
            "system_prompt": system_prompt,
            "model": model,
            "max_turns": 1,
        }
        if thinking_budget:
            options_kwargs["max_thinking_tokens"] = thinking_budget

        result_text = ""
        error_result = None
        try:
            # IMPORTANT: Do NOT return/break early from inside the async for loop.
            # The query() generator uses anyio cancel scopes internally; exiting
            # the loop prematurely causes "Attempted to exit cancel scope in a
            # different task" errors. We must exhaust the generator fully.
            async for message in query(
                prompt=user_prompt,
                options=ClaudeAgentOptions(**options_kwargs),
            ):
                if isinstance(message, ResultMessage):
                    if message.is_error:
                        error_result = message.result or "unknown error"
                    else:
                        result_text = message.result or result_text
                    self.total_cost_usd += message.total_cost_usd or 0.0
                    logger.debug(
                        "AgentSDK result: %d chars, cost=$%s",
                        len(message.result or ""),
                        message.total_cost_usd,
                    )
                elif isinstance(message, AssistantMessage) and not result_text:
                    for block in message.content:
                        text = getattr(block, "text", None)
                        if text:
                            result_text = text
                            break
        except Exception as e:
            raise _wrap_error("Agent SDK query failed", e, str(e)) from e

        if error_result is not None:
            raise _wrap_error("Agent SDK returned an error", None, error_result)

        if not result_text:
            logger.warning("AgentSDK returned no content")

        return result_text

    async def chat_json(
        self,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
        schema: Optional[dict] = None,
        allow_list: bool = False,
    ) -> Any:
        """Send a request and parse the response as JSON.

        Args:
            system_prompt: System message guiding the model's behavior.
            user_prompt: User message content.
            model: Model name override.
            schema: Optional JSON schema appended to the prompt.
            allow_list: Accept a top-level JSON array.

        Raises:
            LLMResponseParseError: If response cannot be parsed as JSON.
        """
        if schema is not None:
            user_prompt = (
                f"{user_prompt}\n\n只输出符合以下 JSON Schema 的 JSON，不要输出任何其他内容：\n"
                f"{json.dumps(schema, ensure_ascii=False)}"
            )
        text = await self.chat(system_prompt, user_prompt, model)
        try:
            return parse_json_response(text, allow_list=allow_list)
        except ValueError as e:
            raise LLMResponseParseError(str(e), raw_response=text) from e

    def get_usage_summary(self) -> dict:
        """Return call count and cost statistics."""
        return {"total_calls": self.total_calls, "total_cost_usd": self.total_cost_usd}
