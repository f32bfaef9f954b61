import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import requests

from mermaid_canvas import config
from mermaid_canvas.dsl.mermaid import extract_code_block
from mermaid_canvas.errors import describe
from mermaid_canvas.streaming.consumer import DeltaSink, StreamConsumer
from mermaid_canvas.streaming.scanner import WireFormat
from mermaid_canvas.utils.text import clean_text

logger = logging.getLogger(__name__)

COMMUNICATION_ERROR = "Error communicating with the AI service"


@dataclass
class GenerationResult:
    mermaid_code: str = ""
    error: Optional[str] = None


@dataclass
class OptimizationResult:
    optimized_code: str = ""
    error: Optional[str] = None


@dataclass
class SuggestionsResult:
    suggestions: List[str] = field(default_factory=list)
    error: Optional[str] = None


class AIServiceClient:
    """
    Caller side of the generation and optimization endpoints.

    Failures never raise: every call returns a result with ``error`` set
    to a short message instead.
    """

    def __init__(
        self,
        base_url: str = config.API_BASE_URL,
        ai_config: Optional[Dict[str, str]] = None,
        access_password: Optional[str] = None,
        selected_model: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = config.REQUEST_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.ai_config = ai_config
        self.access_password = access_password
        self.selected_model = selected_model
        self.session = session or requests.Session()
        self.timeout = timeout

    def _payload(self, **fields: Any) -> Dict[str, Any]:
        payload = dict(fields)
        payload.update(
            aiConfig=self.ai_config,
            accessPassword=self.access_password,
            selectedModel=self.selected_model,
        )
        return payload

    def _post(self, path: str, payload: Dict[str, Any], stream: bool = False, accept: str = "") -> requests.Response:
        headers = {"Content-Type": "application/json"}
        if accept:
            headers["Accept"] = accept
        return self.session.post(
            f"{self.base_url}{path}",
            json=payload,
            headers=headers,
            stream=stream,
            timeout=self.timeout,
        )

    @staticmethod
    def _error_message(response: requests.Response, default: str) -> str:
        try:
            data = response.json()
        except ValueError:
            return default
        if isinstance(data, dict) and data.get("error"):
            return str(data["error"])
        return default

    # ------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------

    def generate_mermaid_from_text(
        self,
        text: str,
        diagram_type: str = "flowchart",
        on_chunk: Optional[DeltaSink] = None,
    ) -> GenerationResult:
        if not text:
            return GenerationResult(error="Please provide text content")

        cleaned = clean_text(text)
        if len(cleaned) > config.MAX_CHARS:
            return GenerationResult(error=f"Text exceeds the {config.MAX_CHARS} character limit")

        if on_chunk is None:
            return self._generate_traditional(cleaned, diagram_type)

        payload = self._payload(text=cleaned, diagramType=diagram_type, stream=True)
        try:
            response = self._post("/api/generate-mermaid", payload, stream=True)
            with response:
                if not response.ok:
                    return GenerationResult(
                        error=self._error_message(response, "Error while generating the diagram")
                    )
                result = StreamConsumer(WireFormat.JSON, on_chunk).consume(
                    response.iter_content(chunk_size=None)
                )
        except requests.RequestException as e:
            logger.error("AI API Error: %s", e)
            return GenerationResult(error=describe(e, COMMUNICATION_ERROR))

        if result.error:
            return GenerationResult(error=result.error)
        return GenerationResult(mermaid_code=result.content)

    def _generate_traditional(self, cleaned: str, diagram_type: str) -> GenerationResult:
        """Non-streaming call; same final-message contract as the stream."""
        payload = self._payload(text=cleaned, diagramType=diagram_type, stream=False)
        try:
            response = self._post("/api/generate-mermaid", payload)
            if not response.ok:
                return GenerationResult(error=self._error_message(response, "Error while generating the diagram"))
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("AI API Error: %s", e)
            return GenerationResult(error=describe(e, COMMUNICATION_ERROR))

        if isinstance(data, dict) and data.get("error"):
            return GenerationResult(error=str(data["error"]))
        code = data.get("mermaidCode") if isinstance(data, dict) else ""
        return GenerationResult(mermaid_code=extract_code_block(code or ""))

    # ------------------------------------------------------------
    # Optimization
    # ------------------------------------------------------------

    def optimize_mermaid_code(
        self,
        mermaid_code: str,
        instruction: str = "",
        on_chunk: Optional[DeltaSink] = None,
        group_list: Optional[Sequence[str]] = None,
    ) -> OptimizationResult:
        if not mermaid_code:
            return OptimizationResult(error="Please provide the Mermaid code to optimize")

        fields: Dict[str, Any] = {"mermaidCode": mermaid_code, "instruction": instruction}
        if group_list is not None:
            fields["groupList"] = list(group_list)

        try:
            response = self._post(
                "/api/optimize-mermaid",
                self._payload(**fields),
                stream=True,
                accept="text/event-stream",
            )
            with response:
                if not response.ok:
                    return OptimizationResult(
                        error=self._error_message(response, "Error while optimizing the code")
                    )
                result = StreamConsumer(WireFormat.SSE, on_chunk).consume(
                    response.iter_content(chunk_size=None)
                )
        except requests.RequestException as e:
            logger.error("Optimize API Error: %s", e)
            return OptimizationResult(error=describe(e, COMMUNICATION_ERROR))

        if result.error:
            return OptimizationResult(error=result.error)
        return OptimizationResult(optimized_code=result.content)

    def fetch_optimization_suggestions(self, mermaid_code: str) -> SuggestionsResult:
        if not mermaid_code:
            return SuggestionsResult(error="Please provide Mermaid code")

        try:
            response = self._post("/api/optimize-mermaid/suggestions", self._payload(mermaidCode=mermaid_code))
            if not response.ok:
                return SuggestionsResult(error=self._error_message(response, "Failed to fetch suggestions"))
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Suggestions API Error: %s", e)
            return SuggestionsResult(error=describe(e, COMMUNICATION_ERROR))

        suggestions = data.get("suggestions") if isinstance(data, dict) else None
        if not isinstance(suggestions, list):
            suggestions = []
        return SuggestionsResult(suggestions=[str(s) for s in suggestions])
