# Scene elements and the canonical graph read from them

from mermaid_canvas.graph.schema import (
    BoundElement,
    SceneElement,
    ShapeKind,
    StyleClass,
    GraphNode,
    GraphEdge,
    GroupBlock,
    GraphModel,
)
from mermaid_canvas.graph.reader import read_graph

__all__ = [
    "BoundElement",
    "SceneElement",
    "ShapeKind",
    "StyleClass",
    "GraphNode",
    "GraphEdge",
    "GroupBlock",
    "GraphModel",
    "read_graph",
]
