from mermaid_canvas.renderer.base import DiagramRenderer, RenderResult
from mermaid_canvas.renderer.scene_renderer import MermaidSceneRenderer
from mermaid_canvas.renderer.canvas import DiagramCanvas

__all__ = [
    "DiagramRenderer",
    "RenderResult",
    "MermaidSceneRenderer",
    "DiagramCanvas",
]
