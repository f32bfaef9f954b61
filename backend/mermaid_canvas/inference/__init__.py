from mermaid_canvas.inference.base import LLMClient
from mermaid_canvas.inference.chat_completions_client import (
    ChatCompletionsClient,
    build_completions_url,
    parse_stream_line,
)
from mermaid_canvas.inference.config import AIConfig, resolve_ai_config, get_llm_client

__all__ = [
    "LLMClient",
    "ChatCompletionsClient",
    "build_completions_url",
    "parse_stream_line",
    "AIConfig",
    "resolve_ai_config",
    "get_llm_client",
]
