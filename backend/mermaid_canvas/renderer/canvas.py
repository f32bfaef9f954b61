import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from mermaid_canvas.dsl.emitter import DiagramType, excalidraw_to_mermaid
from mermaid_canvas.dsl.mermaid import preprocess_for_render
from mermaid_canvas.errors import RenderError, describe
from mermaid_canvas.graph.reader import ElementLike, as_element
from mermaid_canvas.graph.schema import SceneElement
from mermaid_canvas.renderer.base import DiagramRenderer, RenderResult
from mermaid_canvas.renderer.scene_renderer import MermaidSceneRenderer

logger = logging.getLogger(__name__)


class DiagramCanvas:
    """
    The editable scene behind one diagram.

    A new scene is committed only after the renderer accepts the text; on a
    RenderError the previous elements stay in place.
    """

    def __init__(self, renderer: Optional[DiagramRenderer] = None):
        self.renderer = renderer or MermaidSceneRenderer()
        self.code = ""
        self.elements: List[SceneElement] = []
        self.files: Dict[str, Any] = {}
        self.group_labels: Dict[str, str] = {}

    def load(self, code: str) -> RenderResult:
        prepared = preprocess_for_render(code)
        if not prepared:
            self.clear()
            return RenderResult()

        try:
            result = self.renderer.render(prepared)
        except RenderError as exc:
            logger.warning("Mermaid rendering failed: %s", exc.message)
            raise
        except Exception as exc:
            logger.warning("Renderer raised %s", exc.__class__.__name__, exc_info=True)
            raise RenderError(describe(exc, "Rendering failed"), code=prepared) from exc

        self.code = code
        self.elements = list(result.elements)
        self.files = dict(result.files)
        self.group_labels = dict(result.group_labels)
        return result

    def replace_elements(self, elements: Iterable[ElementLike]) -> None:
        """Record the scene after the user edited it."""
        self.elements = [as_element(e) for e in elements]

    def clear(self) -> None:
        self.code = ""
        self.elements = []
        self.files = {}
        self.group_labels = {}

    def to_mermaid(
        self,
        diagram_type: Union[str, DiagramType] = DiagramType.FLOWCHART,
        direction: str = "TD",
        include_colors: bool = True,
        include_groups: bool = False,
    ) -> str:
        return excalidraw_to_mermaid(
            self.elements,
            diagram_type=diagram_type,
            direction=direction,
            include_colors=include_colors,
            include_groups=include_groups,
            group_labels=self.group_labels,
        )
