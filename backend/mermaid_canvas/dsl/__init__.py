# Mermaid emission and text helpers

from mermaid_canvas.dsl.emitter import (
    DiagramType,
    DIRECTIONS,
    emit_mermaid,
    excalidraw_to_mermaid,
)
from mermaid_canvas.dsl.mermaid import (
    extract_code_block,
    preprocess_for_render,
    detect_diagram_type,
    toggle_direction,
)

__all__ = [
    "DiagramType",
    "DIRECTIONS",
    "emit_mermaid",
    "excalidraw_to_mermaid",
    "extract_code_block",
    "preprocess_for_render",
    "detect_diagram_type",
    "toggle_direction",
]
