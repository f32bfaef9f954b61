import logging
import re
import string
from typing import Dict, Iterable, List, Mapping, Optional, Union

from mermaid_canvas.graph.schema import (
    DEFAULT_FILL,
    DEFAULT_STROKE,
    GraphEdge,
    GraphModel,
    GraphNode,
    GroupBlock,
    SceneElement,
    ShapeKind,
    StyleClass,
)

logger = logging.getLogger(__name__)

ElementLike = Union[SceneElement, Mapping]


class _CanonicalIds:
    """Maps source element ids to A..Z, then N27, N28, ... in first-seen order."""

    def __init__(self):
        self._map: Dict[str, str] = {}

    def assign(self, source_id: str) -> str:
        if source_id not in self._map:
            index = len(self._map)
            if index < len(string.ascii_uppercase):
                self._map[source_id] = string.ascii_uppercase[index]
            else:
                self._map[source_id] = f"N{index + 1}"
        return self._map[source_id]

    def get(self, source_id: Optional[str]) -> Optional[str]:
        if not source_id:
            return None
        return self._map.get(source_id)


class _StyleTable:
    """One StyleClass per distinct (fill, stroke) pair, named C1, C2, ..."""

    def __init__(self):
        self._classes: Dict[tuple, StyleClass] = {}

    def resolve(self, fill: str, stroke: str) -> StyleClass:
        key = (fill, stroke)
        if key not in self._classes:
            self._classes[key] = StyleClass(
                name=f"C{len(self._classes) + 1}",
                fill=fill,
                stroke=stroke,
            )
        return self._classes[key]

    @property
    def classes(self) -> List[StyleClass]:
        return list(self._classes.values())


class _GroupTable:
    def __init__(self, labels: Optional[Mapping[str, str]] = None):
        self._labels = labels or {}
        self._blocks: Dict[str, GroupBlock] = {}

    def add_member(self, group_ids: List[str], node_id: str) -> List[str]:
        names = []
        for source_id in group_ids:
            block = self._block(source_id)
            if node_id not in block.node_ids:
                block.node_ids.append(node_id)
            names.append(block.name)

        # groupIds run innermost -> outermost
        for inner, outer in zip(group_ids, group_ids[1:]):
            block, enclosing = self._blocks[inner], self._blocks[outer]
            if block.parent is None and not self._is_ancestor(block, enclosing):
                block.parent = enclosing.name
        return names

    def _is_ancestor(self, candidate: GroupBlock, block: GroupBlock) -> bool:
        """Whether candidate is block itself or already encloses it."""
        by_name = {b.name: b for b in self._blocks.values()}
        seen = set()
        name: Optional[str] = block.name
        while name is not None and name not in seen:
            if name == candidate.name:
                return True
            seen.add(name)
            name = by_name[name].parent
        return False

    def _block(self, source_id: str) -> GroupBlock:
        if source_id not in self._blocks:
            name = f"G{len(self._blocks) + 1}"
            self._blocks[source_id] = GroupBlock(
                name=name,
                label=self._labels.get(source_id) or name,
                source_id=source_id,
            )
        return self._blocks[source_id]

    @property
    def blocks(self) -> List[GroupBlock]:
        return list(self._blocks.values())


def clean_label(text: Optional[str]) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def as_element(item: ElementLike) -> SceneElement:
    if isinstance(item, SceneElement):
        return item
    return SceneElement.from_dict(item)


def read_graph(
    elements: Iterable[ElementLike],
    group_labels: Optional[Mapping[str, str]] = None,
) -> GraphModel:
    """
    Builds the canonical node / edge / group / style tables for one scene.

    Pass 1: text content by element id.
    Pass 2: shapes in scene order -> canonical ids, labels, styles, groups.
    Pass 3: arrows -> edges between canonical ids; dangling arrows are dropped.

    Every table lives for this call only; ids are not stable across calls.
    """
    scene = [e for e in (as_element(item) for item in elements) if not e.is_deleted]

    # ------------------------------------------------------------
    # 1. Text
    # ------------------------------------------------------------
    texts: Dict[str, str] = {}
    text_by_container: Dict[str, str] = {}
    for el in scene:
        if el.type == "text":
            texts[el.id] = clean_label(el.text)
            if el.container_id and el.container_id not in text_by_container:
                text_by_container[el.container_id] = el.id

    def label_for(el: SceneElement) -> str:
        text_id = el.bound_text_id() or text_by_container.get(el.id)
        return texts.get(text_id, "") if text_id else ""

    # ------------------------------------------------------------
    # 2. Shapes
    # ------------------------------------------------------------
    ids = _CanonicalIds()
    styles = _StyleTable()
    groups = _GroupTable(group_labels)
    nodes: List[GraphNode] = []

    for el in scene:
        if not el.is_shape:
            continue

        node_id = ids.assign(el.id)
        fill = el.background_color or DEFAULT_FILL
        stroke = el.stroke_color or DEFAULT_STROKE
        style = styles.resolve(fill, stroke)

        nodes.append(
            GraphNode(
                id=node_id,
                source_id=el.id,
                kind=ShapeKind(el.type),
                label=label_for(el),
                fill=fill,
                stroke=stroke,
                style_class=style.name,
                groups=tuple(groups.add_member(el.group_ids, node_id)),
            )
        )

    # ------------------------------------------------------------
    # 3. Arrows
    # ------------------------------------------------------------
    edges: List[GraphEdge] = []
    for el in scene:
        if el.type != "arrow":
            continue

        source = ids.get(el.start_binding)
        target = ids.get(el.end_binding)
        if not source or not target:
            logger.debug("Dropping unbound arrow %s (%s -> %s)", el.id, el.start_binding, el.end_binding)
            continue

        edges.append(GraphEdge(source=source, target=target, label=label_for(el)))

    return GraphModel(nodes=nodes, edges=edges, groups=groups.blocks, styles=styles.classes)
