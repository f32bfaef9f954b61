"""Shared fixtures: hand-built Excalidraw scenes and fake upstream clients."""

from typing import Dict, Iterator, List, Optional

import pytest

from mermaid_canvas.inference.base import LLMClient


class SceneBuilder:
    """Builds Excalidraw element dicts the way the editor stores them."""

    def __init__(self):
        self.elements: List[Dict] = []

    def shape(
        self,
        element_id: str,
        label: Optional[str] = None,
        kind: str = "rectangle",
        fill: Optional[str] = None,
        stroke: Optional[str] = None,
        groups=(),
    ) -> Dict:
        element = {
            "id": element_id,
            "type": kind,
            "backgroundColor": fill,
            "strokeColor": stroke,
            "groupIds": list(groups),
            "boundElements": [],
            "isDeleted": False,
        }
        self.elements.append(element)
        if label is not None:
            self._text(element, label)
        return element

    def arrow(self, element_id: str, start: Optional[str], end: Optional[str], label: Optional[str] = None) -> Dict:
        element = {
            "id": element_id,
            "type": "arrow",
            "startBinding": {"elementId": start} if start else None,
            "endBinding": {"elementId": end} if end else None,
            "boundElements": [],
            "isDeleted": False,
        }
        self.elements.append(element)
        if label is not None:
            self._text(element, label)
        return element

    def _text(self, container: Dict, label: str) -> Dict:
        text_id = f"{container['id']}-text"
        container["boundElements"].append({"id": text_id, "type": "text"})
        text = {
            "id": text_id,
            "type": "text",
            "text": label,
            "containerId": container["id"],
            "groupIds": list(container.get("groupIds") or []),
            "isDeleted": False,
        }
        self.elements.append(text)
        return text


@pytest.fixture
def scene():
    return SceneBuilder()


@pytest.fixture
def decision_scene(scene):
    """Three boxes and a diamond, all in the default colors."""
    scene.shape("el-a", "A")
    scene.shape("el-b", "B")
    scene.shape("el-c", "C")
    scene.shape("el-d", "D", kind="diamond")
    scene.arrow("ar-1", "el-a", "el-b")
    scene.arrow("ar-2", "el-b", "el-d", "ok")
    scene.arrow("ar-3", "el-d", "el-c", "retry")
    return scene.elements


class FakeLLMClient(LLMClient):
    def __init__(self, deltas=(), reply: str = "", error: Optional[Exception] = None):
        self.deltas = list(deltas)
        self.reply = reply
        self.error = error
        self.calls: List[List[Dict]] = []

    def generate(self, messages: List[Dict]) -> str:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return self.reply

    def stream(self, messages: List[Dict]) -> Iterator[str]:
        self.calls.append(messages)
        for delta in self.deltas:
            yield delta
        if self.error is not None:
            raise self.error


@pytest.fixture
def fake_llm():
    return FakeLLMClient
