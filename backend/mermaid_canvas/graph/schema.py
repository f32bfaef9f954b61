from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

DEFAULT_FILL = "white"
DEFAULT_STROKE = "#1e1e1e"


class ShapeKind(str, Enum):
    BOX = "rectangle"
    ELLIPSE = "ellipse"
    DIAMOND = "diamond"


SHAPE_TYPES = {kind.value for kind in ShapeKind}


# ============================================================
# SCENE ELEMENTS (renderer side)
# ============================================================

@dataclass(frozen=True)
class BoundElement:
    id: str
    type: str


@dataclass
class SceneElement:
    id: str
    type: str                                   # rectangle, ellipse, diamond, text, arrow, ...
    text: str = ""
    background_color: Optional[str] = None
    stroke_color: Optional[str] = None
    group_ids: List[str] = field(default_factory=list)    # innermost group first
    bound_elements: List[BoundElement] = field(default_factory=list)
    container_id: Optional[str] = None
    start_binding: Optional[str] = None         # id of the element the arrow starts on
    end_binding: Optional[str] = None
    is_deleted: bool = False
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    points: List[List[float]] = field(default_factory=list)

    @property
    def is_shape(self) -> bool:
        return self.type in SHAPE_TYPES

    def bound_text_id(self) -> Optional[str]:
        for bound in self.bound_elements:
            if bound.type == "text":
                return bound.id
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SceneElement":
        bound = []
        for b in data.get("boundElements") or []:
            if isinstance(b, Mapping) and b.get("id"):
                bound.append(BoundElement(id=str(b["id"]), type=str(b.get("type", ""))))

        return cls(
            id=str(data.get("id", "")),
            type=str(data.get("type", "")),
            text=data.get("text") or "",
            background_color=data.get("backgroundColor"),
            stroke_color=data.get("strokeColor"),
            group_ids=[str(g) for g in data.get("groupIds") or []],
            bound_elements=bound,
            container_id=data.get("containerId"),
            start_binding=_binding_target(data.get("startBinding")),
            end_binding=_binding_target(data.get("endBinding")),
            is_deleted=bool(data.get("isDeleted", False)),
            x=float(data.get("x") or 0.0),
            y=float(data.get("y") or 0.0),
            width=float(data.get("width") or 0.0),
            height=float(data.get("height") or 0.0),
            points=[list(p) for p in data.get("points") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "strokeColor": self.stroke_color or DEFAULT_STROKE,
            "backgroundColor": self.background_color or "transparent",
            "groupIds": list(self.group_ids),
            "boundElements": [{"id": b.id, "type": b.type} for b in self.bound_elements] or None,
            "isDeleted": self.is_deleted,
        }
        if self.type == "text":
            data["text"] = self.text
            data["originalText"] = self.text
            data["containerId"] = self.container_id
        if self.type == "arrow":
            data["points"] = [list(p) for p in self.points]
            data["startBinding"] = {"elementId": self.start_binding} if self.start_binding else None
            data["endBinding"] = {"elementId": self.end_binding} if self.end_binding else None
        return data


def _binding_target(binding: Any) -> Optional[str]:
    if isinstance(binding, Mapping):
        target = binding.get("elementId")
        return str(target) if target else None
    return None


# ============================================================
# INTERMEDIATE GRAPH (DSL side)
# ============================================================

@dataclass(frozen=True)
class StyleClass:
    name: str
    fill: str
    stroke: str


@dataclass
class GraphNode:
    id: str                                     # canonical id (A, B, ... N27)
    source_id: str
    kind: ShapeKind
    label: str
    fill: str
    stroke: str
    style_class: str
    groups: Tuple[str, ...] = ()                # canonical group names, innermost first


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str
    label: str = ""


@dataclass
class GroupBlock:
    name: str                                   # canonical group name (G1, G2, ...)
    label: str
    node_ids: List[str] = field(default_factory=list)
    source_id: str = ""
    parent: Optional[str] = None


@dataclass
class GraphModel:
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
    groups: List[GroupBlock] = field(default_factory=list)
    styles: List[StyleClass] = field(default_factory=list)

    def node(self, node_id: str) -> Optional[GraphNode]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None
