from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

from mermaid_canvas.graph.schema import SceneElement


@dataclass
class RenderResult:
    elements: List[SceneElement] = field(default_factory=list)
    files: Dict[str, Any] = field(default_factory=dict)
    group_labels: Dict[str, str] = field(default_factory=dict)   # group id -> subgraph title

    def element_dicts(self) -> List[Dict[str, Any]]:
        return [el.to_dict() for el in self.elements]


class DiagramRenderer(ABC):
    @abstractmethod
    def render(self, code: str) -> RenderResult:
        """Lay out Mermaid text as scene elements. Raises RenderError on bad input."""
        pass
