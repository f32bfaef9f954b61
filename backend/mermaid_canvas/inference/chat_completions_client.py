import json
import logging
from typing import Dict, Iterator, List, Optional

import requests

from mermaid_canvas.config import REQUEST_TIMEOUT
from mermaid_canvas.errors import UpstreamError
from mermaid_canvas.inference.base import LLMClient

logger = logging.getLogger(__name__)


def build_completions_url(api_url: str) -> str:
    api_url = api_url.rstrip("/")
    if "v1" in api_url or "v3" in api_url:
        return f"{api_url}/chat/completions"
    return f"{api_url}/v1/chat/completions"


def parse_stream_line(line: str) -> str:
    """Content delta carried by one upstream SSE line ('' when there is none)."""
    if not line.startswith("data:"):
        return ""
    data = line[len("data:"):].strip()
    if not data or data == "[DONE]":
        return ""

    try:
        parsed = json.loads(data)
        return parsed["choices"][0].get("delta", {}).get("content") or ""
    except (ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
        logger.warning("Error parsing upstream chunk: %s | %r", exc, data[:200])
        return ""


class ChatCompletionsClient(LLMClient):
    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str = "",
        temperature: float = 0.2,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.url = build_completions_url(base_url)
        self.model = model
        self.api_key = api_key
        self.temperature = temperature
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _post(self, messages: List[Dict], stream: bool) -> requests.Response:
        response = self.session.post(
            self.url,
            headers=self._headers(),
            json={
                "model": self.model,
                "messages": messages,
                "temperature": self.temperature,
                "stream": stream,
            },
            timeout=self.timeout,
            stream=stream,
        )
        if not response.ok:
            body = response.text
            logger.error("AI API Error: %s %s", response.status_code, body[:500])
            response.close()
            raise UpstreamError(response.status_code, body)
        return response

    def generate(self, messages: List[Dict]) -> str:
        response = self._post(messages, stream=False)
        return response.json()["choices"][0]["message"]["content"]

    def stream(self, messages: List[Dict]) -> Iterator[str]:
        logger.info("Streaming completion from %s (model=%s)", self.url, self.model)
        response = self._post(messages, stream=True)
        # text/event-stream without a charset would otherwise decode as latin-1
        response.encoding = "utf-8"
        with response:
            for line in response.iter_lines(decode_unicode=True):
                if not line:
                    continue
                content = parse_stream_line(line)
                if content:
                    yield content
