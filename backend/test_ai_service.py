"""Tests for the caller-side AI service client (HTTP session faked)."""

import json

import pytest
import requests

from mermaid_canvas import config
from mermaid_canvas.client import AIServiceClient, GenerationResult, OptimizationResult


class FakeResponse:
    def __init__(self, status_code=200, payload=None, chunks=()):
        self.status_code = status_code
        self._payload = payload
        self._chunks = list(chunks)
        self.closed = False

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload

    def iter_content(self, chunk_size=None):
        return iter(self._chunks)

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def _protocol_a(*payloads) -> bytes:
    return "".join(json.dumps(p, ensure_ascii=False) + "\n" for p in payloads).encode("utf-8")


def _protocol_b(*payloads) -> bytes:
    return "".join(f"data: {json.dumps(p, ensure_ascii=False)}\n\n" for p in payloads).encode("utf-8")


def _client(session, **kwargs):
    return AIServiceClient(base_url="http://backend.test/", session=session, **kwargs)


class TestGenerate:
    def test_streaming(self):
        wire = _protocol_a(
            {"chunk": "flowchart TD\n", "done": False},
            {"chunk": "    A[登录] --> B", "done": False},
            {"mermaidCode": "flowchart TD\n    A[登录] --> B", "done": True},
        )
        response = FakeResponse(chunks=[wire[:10], wire[10:41], wire[41:]])
        session = FakeSession(response)
        seen = []

        result = _client(session, selected_model="m2").generate_mermaid_from_text(
            "Login", "flowchart", on_chunk=seen.append
        )

        assert result == GenerationResult(mermaid_code="flowchart TD\n    A[登录] --> B")
        assert seen == ["flowchart TD\n", "    A[登录] --> B"]
        assert response.closed

        url, kwargs = session.requests[0]
        assert url == "http://backend.test/api/generate-mermaid"
        assert kwargs["stream"] is True
        assert kwargs["json"]["stream"] is True
        assert kwargs["json"]["diagramType"] == "flowchart"
        assert kwargs["json"]["selectedModel"] == "m2"

    def test_streaming_error_event(self):
        wire = _protocol_a({"chunk": "flow", "done": False}, {"error": "quota exceeded", "done": True})
        session = FakeSession(FakeResponse(chunks=[wire]))

        result = _client(session).generate_mermaid_from_text("x", on_chunk=lambda _: None)
        assert result == GenerationResult(error="quota exceeded")

    def test_traditional_path(self):
        session = FakeSession(FakeResponse(payload={"mermaidCode": "```mermaid\nflowchart TD\n```"}))

        result = _client(session).generate_mermaid_from_text("x")

        assert result.mermaid_code == "flowchart TD"
        assert result.error is None
        assert session.requests[0][1]["json"]["stream"] is False

    def test_non_ok_uses_server_error(self):
        session = FakeSession(FakeResponse(status_code=401, payload={"error": "Invalid access password"}))
        result = _client(session).generate_mermaid_from_text("x", on_chunk=lambda _: None)
        assert result.error == "Invalid access password"

    def test_non_ok_without_json(self):
        session = FakeSession(FakeResponse(status_code=500))
        result = _client(session).generate_mermaid_from_text("x")
        assert result.error == "Error while generating the diagram"

    def test_network_error(self):
        session = FakeSession(error=requests.ConnectionError("connection refused"))
        result = _client(session).generate_mermaid_from_text("x", on_chunk=lambda _: None)
        assert result.error == "connection refused"

    def test_local_validation(self, monkeypatch):
        monkeypatch.setattr(config, "MAX_CHARS", 5)
        session = FakeSession()

        assert _client(session).generate_mermaid_from_text("").error
        assert "5" in _client(session).generate_mermaid_from_text("abcdef").error
        assert session.requests == []

    def test_text_is_cleaned_before_sending(self):
        session = FakeSession(FakeResponse(payload={"mermaidCode": "flowchart TD"}))
        _client(session).generate_mermaid_from_text("a  \r\nb\u200b")
        assert session.requests[0][1]["json"]["text"] == "a\nb"


class TestOptimize:
    def test_streaming(self):
        wire = _protocol_b(
            {"type": "chunk", "data": "flowchart LR\n"},
            {"type": "chunk", "data": "    A --> B"},
            {"type": "final", "ok": True, "data": "flowchart LR\n    A --> B"},
        )
        session = FakeSession(FakeResponse(chunks=[wire[:25], wire[25:]]))
        seen = []

        result = _client(session).optimize_mermaid_code(
            "flowchart TD\n    A --> B", "horizontal", on_chunk=seen.append, group_list=["Core"]
        )

        assert result == OptimizationResult(optimized_code="flowchart LR\n    A --> B")
        assert seen == ["flowchart LR\n", "    A --> B"]

        _, kwargs = session.requests[0]
        assert kwargs["headers"]["Accept"] == "text/event-stream"
        assert kwargs["json"]["groupList"] == ["Core"]
        assert kwargs["json"]["instruction"] == "horizontal"

    def test_without_callback(self):
        wire = _protocol_b({"type": "final", "ok": True, "data": "flowchart LR"})
        session = FakeSession(FakeResponse(chunks=[wire]))
        assert _client(session).optimize_mermaid_code("flowchart TD").optimized_code == "flowchart LR"

    def test_error_event(self):
        wire = _protocol_b({"type": "chunk", "data": "x"}, {"type": "error", "message": "model overloaded"})
        session = FakeSession(FakeResponse(chunks=[wire]))
        assert _client(session).optimize_mermaid_code("flowchart TD").error == "model overloaded"

    def test_empty_code(self):
        session = FakeSession()
        assert _client(session).optimize_mermaid_code("").error
        assert session.requests == []

    def test_timeout(self):
        session = FakeSession(error=requests.Timeout("read timed out"))
        assert _client(session).optimize_mermaid_code("flowchart TD").error == "read timed out"


class TestSuggestions:
    def test_suggestions(self):
        session = FakeSession(FakeResponse(payload={"suggestions": ["Group services", "Label arrows"]}))
        result = _client(session).fetch_optimization_suggestions("flowchart TD")

        assert result.suggestions == ["Group services", "Label arrows"]
        assert result.error is None
        assert session.requests[0][0] == "http://backend.test/api/optimize-mermaid/suggestions"

    def test_server_error(self):
        session = FakeSession(FakeResponse(status_code=502, payload={"error": "AI service returned an error (503): Unknown error"}))
        result = _client(session).fetch_optimization_suggestions("flowchart TD")

        assert result.suggestions == []
        assert result.error.startswith("AI service returned an error")

    def test_malformed_payload(self):
        session = FakeSession(FakeResponse(payload={"suggestions": "not a list"}))
        assert _client(session).fetch_optimization_suggestions("flowchart TD").suggestions == []

    @pytest.mark.parametrize("code", ["", None])
    def test_empty_code(self, code):
        assert _client(FakeSession()).fetch_optimization_suggestions(code).error
