import json
import logging
from typing import Any, Dict, Iterator, List

from fastapi import APIRouter
from fastapi.responses import JSONResponse, StreamingResponse

from mermaid_canvas import config
from mermaid_canvas.dsl.emitter import excalidraw_to_mermaid
from mermaid_canvas.dsl.mermaid import extract_code_block
from mermaid_canvas.errors import ConfigError, UpstreamError
from mermaid_canvas.inference.base import LLMClient
from mermaid_canvas.inference.config import get_llm_client, resolve_ai_config
from mermaid_canvas.inference.prompt import (
    build_generation_messages,
    build_optimize_messages,
    build_suggestion_messages,
)
from mermaid_canvas.schemas import (
    AIRequest,
    ConvertRequest,
    GenerateMermaidRequest,
    OptimizeRequest,
    SuggestionsRequest,
)
from mermaid_canvas.utils.json_extract import extract_json
from mermaid_canvas.utils.text import clean_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["mermaid"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _client_for(request: AIRequest, temperature: float = 0.2) -> LLMClient:
    ai_config = resolve_ai_config(request.ai_config, request.access_password, request.selected_model)
    return get_llm_client(ai_config, temperature=temperature)


def _json_line(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False) + "\n"


def _sse(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


# ============================================================
# GENERATION - Protocol A (one JSON object per line)
# ============================================================

def generation_events(client: LLMClient, messages: List[Dict]) -> Iterator[str]:
    collected = []
    try:
        for delta in client.stream(messages):
            collected.append(delta)
            yield _json_line({"chunk": delta, "done": False})

        yield _json_line({"mermaidCode": extract_code_block("".join(collected)), "done": True})

    except UpstreamError as e:
        yield _json_line({"error": str(e), "done": True})
    except Exception as e:
        logger.exception("Streaming Error")
        yield _json_line({"error": f"Error while processing the request: {e}", "done": True})


@router.post("/generate-mermaid")
def generate_mermaid(request: GenerateMermaidRequest):
    if not request.text:
        return _error("Please provide text content", 400)

    text = clean_text(request.text)
    if len(text) > config.MAX_CHARS:
        return _error(f"Text exceeds the {config.MAX_CHARS} character limit", 400)

    try:
        client = _client_for(request)
    except ConfigError as e:
        return _error(e.message, e.status_code)

    messages = build_generation_messages(text, request.diagram_type, request.language)

    if not request.stream:
        try:
            content = client.generate(messages)
        except UpstreamError as e:
            return _error(str(e), 502)
        except Exception as e:
            logger.exception("API Route Error")
            return _error(f"Error while processing the request: {e}", 500)
        return {"mermaidCode": extract_code_block(content)}

    return StreamingResponse(
        generation_events(client, messages),
        media_type="application/json",
        headers=STREAM_HEADERS,
    )


# ============================================================
# OPTIMIZATION - Protocol B (SSE)
# ============================================================

def optimization_events(client: LLMClient, messages: List[Dict]) -> Iterator[str]:
    collected = []
    try:
        for delta in client.stream(messages):
            collected.append(delta)
            yield _sse({"type": "chunk", "data": delta})

        yield _sse({"type": "final", "ok": True, "data": extract_code_block("".join(collected))})

    except UpstreamError as e:
        yield _sse({"type": "error", "message": str(e)})
    except Exception as e:
        logger.exception("Optimization stream error")
        yield _sse({"type": "error", "message": f"Error while optimizing the code: {e}"})


@router.post("/optimize-mermaid")
def optimize_mermaid(request: OptimizeRequest):
    if not request.mermaid_code:
        return _error("Please provide the Mermaid code to optimize", 400)

    try:
        client = _client_for(request)
    except ConfigError as e:
        return _error(e.message, e.status_code)

    messages = build_optimize_messages(request.mermaid_code, request.instruction, request.group_list)
    return StreamingResponse(
        optimization_events(client, messages),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


@router.post("/optimize-mermaid/suggestions")
def optimization_suggestions(request: SuggestionsRequest):
    if not request.mermaid_code:
        return _error("Please provide Mermaid code", 400)

    try:
        client = _client_for(request, temperature=0.3)
        content = client.generate(build_suggestion_messages(request.mermaid_code))
    except ConfigError as e:
        return _error(e.message, e.status_code)
    except UpstreamError as e:
        return _error(str(e), 502)
    except Exception as e:
        logger.exception("Suggestions Error")
        return _error(f"Failed to fetch suggestions: {e}", 500)

    data = extract_json(content)
    if isinstance(data, dict):
        data = data.get("suggestions", [])
    if not isinstance(data, list):
        data = []

    return {"suggestions": [str(s).strip() for s in data if str(s).strip()]}


# ============================================================
# CONVERSION - Excalidraw scene -> Mermaid
# ============================================================

@router.post("/excalidraw-to-mermaid")
def convert_scene(request: ConvertRequest):
    try:
        code = excalidraw_to_mermaid(
            request.elements,
            diagram_type=request.diagram_type,
            direction=request.direction,
            include_colors=request.include_colors,
            include_groups=request.include_groups,
            group_labels=request.group_labels,
        )
    except ValueError as e:
        return _error(str(e), 400)

    return {"mermaidCode": code}
