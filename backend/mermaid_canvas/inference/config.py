import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from mermaid_canvas import config
from mermaid_canvas.errors import ConfigError
from mermaid_canvas.inference.chat_completions_client import ChatCompletionsClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AIConfig:
    api_url: str
    api_key: str
    model_name: str

    @property
    def is_complete(self) -> bool:
        return bool(self.api_url and self.api_key and self.model_name)

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "AIConfig":
        payload = payload or {}
        return cls(
            api_url=str(payload.get("apiUrl") or ""),
            api_key=str(payload.get("apiKey") or ""),
            model_name=str(payload.get("modelName") or ""),
        )


def resolve_ai_config(
    ai_config: Optional[Mapping[str, Any]] = None,
    access_password: Optional[str] = None,
    selected_model: Optional[str] = None,
) -> AIConfig:
    """
    1. A complete client config is used as-is.
    2. Otherwise a supplied access password must match ACCESS_PASSWORD.
    3. Otherwise the server environment is used (selected_model overrides the model).
    """
    requested = AIConfig.from_payload(ai_config)
    if requested.is_complete:
        return requested

    if access_password:
        if not config.ACCESS_PASSWORD or access_password != config.ACCESS_PASSWORD:
            raise ConfigError("Invalid access password", status_code=401)

    resolved = AIConfig(
        api_url=config.AI_API_URL,
        api_key=config.AI_API_KEY,
        model_name=selected_model or config.AI_MODEL_NAME,
    )
    if not resolved.is_complete:
        raise ConfigError(
            "AI configuration is incomplete: set the API URL, API key and model name",
            status_code=400,
        )

    logger.debug("Using server AI config (model=%s)", resolved.model_name)
    return resolved


def get_llm_client(ai_config: AIConfig, temperature: float = 0.2) -> ChatCompletionsClient:
    return ChatCompletionsClient(
        base_url=ai_config.api_url,
        model=ai_config.model_name,
        api_key=ai_config.api_key,
        temperature=temperature,
    )
