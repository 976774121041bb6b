"""Tools package: Agent SDK client, retry policy, JSON parsing, and text utilities."""

from tools.agent_sdk_client import AgentSDKClient
from tools.llm_client import parse_json_response
from tools.retry import call_with_retry, is_transient_error
from tools.text_utils import (
    count_chinese_chars,
    get_chapter_ending,
    safe_dirname,
    safe_filename,
)

__all__ = [
    "AgentSDKClient",
    "parse_json_response",
    "call_with_retry",
    "is_transient_error",
    "count_chinese_chars",
    "get_chapter_ending",
    "safe_dirname",
    "safe_filename",
]
