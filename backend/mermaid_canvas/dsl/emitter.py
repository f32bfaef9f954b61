import re
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from mermaid_canvas.graph.reader import ElementLike, read_graph
from mermaid_canvas.graph.schema import GraphModel, GraphNode, GroupBlock, ShapeKind


class DiagramType(str, Enum):
    FLOWCHART = "flowchart"
    CLASS = "classDiagram"
    SEQUENCE = "sequenceDiagram"


DIRECTIONS = ("TD", "TB", "LR", "RL", "BT")
INDENT = "    "

_SHAPE_BRACKETS = {
    ShapeKind.BOX: ("[", "]"),
    ShapeKind.ELLIPSE: ("((", "))"),
    ShapeKind.DIAMOND: ("{", "}"),
}

# Characters that end or change a node / edge label unless it is quoted
_SPECIAL_CHARS = re.compile(r'[\[\]{}()|"<>;#`]|--|==|-\.')
_CLASS_BRACKETS = re.compile(r"[\[\]{}()]")
_RGB = re.compile(r"^rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*([\d.]+%?)\s*)?\)$", re.IGNORECASE)


def _quote(label: str) -> str:
    if _SPECIAL_CHARS.search(label):
        return '"' + label.replace('"', "#quot;") + '"'
    return label


def _css_color(value: str) -> str:
    """Colour value safe inside a classDef, where commas separate properties."""
    match = _RGB.match(value.strip())
    if match:
        red, green, blue = (min(int(c), 255) for c in match.group(1, 2, 3))
        color = f"#{red:02x}{green:02x}{blue:02x}"
        alpha = match.group(4)
        if alpha is not None:
            opacity = float(alpha[:-1]) / 100 if alpha.endswith("%") else float(alpha)
            if opacity < 1:
                color += f"{round(max(opacity, 0) * 255):02x}"
        return color
    return value.replace(",", " ")


def _coerce_type(diagram_type: Union[str, DiagramType]) -> DiagramType:
    try:
        return DiagramType(diagram_type)
    except ValueError:
        raise ValueError(f"Unsupported diagram type: {diagram_type!r}") from None


def emit_mermaid(
    model: GraphModel,
    diagram_type: Union[str, DiagramType] = DiagramType.FLOWCHART,
    direction: str = "TD",
    include_colors: bool = True,
    groups: Optional[Sequence[GroupBlock]] = None,
) -> str:
    """
    Renders a GraphModel as Mermaid text.

    Output depends only on the order of ``model.nodes``, ``model.edges``,
    ``model.styles`` and ``groups``, so the same scene always produces the
    same text.
    """
    kind = _coerce_type(diagram_type)

    if kind is DiagramType.FLOWCHART:
        direction = direction.upper()
        if direction not in DIRECTIONS:
            raise ValueError(f"Unsupported flowchart direction: {direction!r}")
        return _render_flowchart(model, direction, include_colors, groups or [])
    if kind is DiagramType.CLASS:
        return _render_class_diagram(model)
    return _render_sequence_diagram(model)


# ============================================================
# FLOWCHART
# ============================================================

def _node_line(node: GraphNode, include_colors: bool) -> str:
    opening, closing = _SHAPE_BRACKETS[node.kind]
    label = _quote(node.label or node.id)
    line = f"{node.id}{opening}{label}{closing}"
    if include_colors:
        line += f":::{node.style_class}"
    return line


def _render_flowchart(
    model: GraphModel,
    direction: str,
    include_colors: bool,
    groups: Sequence[GroupBlock],
) -> str:
    lines = [f"flowchart {direction}"]

    placement = _place_nodes(model.nodes, groups)
    if placement:
        lines.extend(_render_groups(model, groups, placement, include_colors))

    lines.extend(
        INDENT + _node_line(node, include_colors)
        for node in model.nodes
        if node.id not in placement
    )

    for edge in model.edges:
        label = f"|{_quote(edge.label)}|" if edge.label else ""
        lines.append(f"{INDENT}{edge.source} -->{label} {edge.target}")

    if include_colors and model.styles:
        lines.append("")
        for style in model.styles:
            fill, stroke = _css_color(style.fill), _css_color(style.stroke)
            lines.append(f"{INDENT}classDef {style.name} fill:{fill},stroke:{stroke},stroke-width:2px;")

    return "\n".join(lines)


def _parents(groups: Sequence[GroupBlock]) -> Dict[str, Optional[str]]:
    """group name -> enclosing group name, None for roots and for groups on a parent cycle."""
    by_name = {g.name: g for g in groups}
    parents: Dict[str, Optional[str]] = {}
    for group in groups:
        seen = {group.name}
        parent = group.parent
        while parent in by_name and parent not in seen:
            seen.add(parent)
            parent = by_name[parent].parent
        parents[group.name] = group.parent if group.parent in by_name and parent != group.name else None
    return parents


def _depths(groups: Sequence[GroupBlock]) -> Dict[str, int]:
    parents = _parents(groups)
    depths: Dict[str, int] = {}
    for group in groups:
        depth = 0
        seen = {group.name}
        parent = parents[group.name]
        while parent is not None and parent not in seen:
            seen.add(parent)
            depth += 1
            parent = parents[parent]
        depths[group.name] = depth
    return depths


def _place_nodes(nodes: Iterable[GraphNode], groups: Sequence[GroupBlock]) -> Dict[str, str]:
    """node id -> the deepest block listing it (first block wins on a tie)."""
    if not groups:
        return {}

    depths = _depths(groups)
    known = {n.id for n in nodes}
    placement: Dict[str, str] = {}
    for group in groups:
        for node_id in group.node_ids:
            if node_id not in known:
                continue
            current = placement.get(node_id)
            if current is None or depths[group.name] > depths[current]:
                placement[node_id] = group.name
    return placement


def _render_groups(
    model: GraphModel,
    groups: Sequence[GroupBlock],
    placement: Mapping[str, str],
    include_colors: bool,
) -> List[str]:
    parents = _parents(groups)
    children: Dict[Optional[str], List[GroupBlock]] = {}
    for group in groups:
        children.setdefault(parents[group.name], []).append(group)

    members: Dict[str, List[GraphNode]] = {}
    for node in model.nodes:
        if node.id in placement:
            members.setdefault(placement[node.id], []).append(node)

    def occupied(group: GroupBlock, seen: frozenset) -> bool:
        if group.name in members:
            return True
        return any(
            occupied(child, seen | {child.name})
            for child in children.get(group.name, [])
            if child.name not in seen
        )

    lines: List[str] = []

    def render(group: GroupBlock, level: int, seen: frozenset):
        if not occupied(group, seen):
            return
        pad = INDENT * level
        title = "" if group.label == group.name else f"[{_quote(group.label)}]"
        lines.append(f"{pad}subgraph {group.name}{title}")
        for child in children.get(group.name, []):
            if child.name not in seen:
                render(child, level + 1, seen | {child.name})
        for node in members.get(group.name, []):
            lines.append(pad + INDENT + _node_line(node, include_colors))
        lines.append(f"{pad}end")

    for root in children.get(None, []):
        render(root, 1, frozenset({root.name}))
    return lines


# ============================================================
# CLASS DIAGRAM
# ============================================================

def _render_class_diagram(model: GraphModel) -> str:
    lines = ["classDiagram"]

    for node in model.nodes:
        label = _CLASS_BRACKETS.sub("", node.label).replace('"', "'").strip()
        if label:
            lines.append(f'{INDENT}class {node.id}["{label}"]')
        else:
            lines.append(f"{INDENT}class {node.id}")

    # Every arrow becomes inheritance; the visual arrow style is not recorded
    for edge in model.edges:
        lines.append(f"{INDENT}{edge.source} <|-- {edge.target}")

    return "\n".join(lines)


# ============================================================
# SEQUENCE DIAGRAM
# ============================================================

def _render_sequence_diagram(model: GraphModel) -> str:
    lines = ["sequenceDiagram"]
    for edge in model.edges:
        lines.append(f"{INDENT}{edge.source}->>{edge.target}: {edge.label}")
    return "\n".join(lines)


def excalidraw_to_mermaid(
    elements: Iterable[ElementLike],
    diagram_type: Union[str, DiagramType] = DiagramType.FLOWCHART,
    direction: str = "TD",
    include_colors: bool = True,
    include_groups: bool = False,
    group_labels: Optional[Mapping[str, str]] = None,
) -> str:
    model = read_graph(elements, group_labels=group_labels)
    return emit_mermaid(
        model,
        diagram_type=diagram_type,
        direction=direction,
        include_colors=include_colors,
        groups=model.groups if include_groups else None,
    )
