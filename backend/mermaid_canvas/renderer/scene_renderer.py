import itertools
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from mermaid_canvas.dsl.mermaid import preprocess_for_render
from mermaid_canvas.errors import RenderError
from mermaid_canvas.graph.schema import (
    DEFAULT_STROKE,
    BoundElement,
    SceneElement,
    ShapeKind,
)
from mermaid_canvas.renderer.base import DiagramRenderer, RenderResult

logger = logging.getLogger(__name__)

COLUMNS = 4
SHAPE_WIDTH = 180.0
SHAPE_HEIGHT = 80.0
H_GAP = 100.0
V_GAP = 120.0
TRANSPARENT = "transparent"

_ARROWS = r"-->|---|-\.->|==>"
_ARROW_AT = re.compile(rf'\s*({_ARROWS})\s*(?:\|("[^"]*"|[^|]*)\|)?\s*')

_NODE_RE = re.compile(
    r"""^(?P<id>[A-Za-z0-9_]+)
        (?P<shape>
            \(\((?:"[^"]*"|[^)]*)\)\)
          | \[(?:"[^"]*"|[^\]]*)\]
          | \{(?:"[^"]*"|[^}]*)\}
          | \((?:"[^"]*"|[^)]*)\)
        )?
        (?::::(?P<cls>[A-Za-z0-9_]+))?$""",
    re.VERBOSE,
)
_SUBGRAPH_RE = re.compile(r'^subgraph\s+(?P<id>[A-Za-z0-9_]+)\s*(?:\[(?P<title>"[^"]*"|[^\]]*)\])?$')
_SUBGRAPH_TITLE_RE = re.compile(r"^subgraph\s+(?P<title>.+)$")
_CLASSDEF_RE = re.compile(r"^classDef\s+(?P<name>[A-Za-z0-9_]+)\s+(?P<body>.+?);?$")
_CLASS_ASSIGN_RE = re.compile(r"^class\s+(?P<ids>[A-Za-z0-9_,\s]+?)\s+(?P<name>[A-Za-z0-9_]+);?$")

_CLASS_DECL_RE = re.compile(r'^class\s+(?P<id>[A-Za-z0-9_]+)\s*(?:\["(?P<label>[^"]*)"\])?\s*(?P<body>\{)?$')
_CLASS_REL_RE = re.compile(
    r"^(?P<src>[A-Za-z0-9_]+)\s*(?:\"[^\"]*\"\s*)?"
    r"(?P<arrow><\|--|--\|>|\*--|--\*|o--|--o|<\.\.|\.\.>|<\|\.\.|\.\.\|>|-->|<--|--|\.\.)"
    r"\s*(?:\"[^\"]*\"\s*)?(?P<dst>[A-Za-z0-9_]+)(?:\s*:\s*(?P<label>.*))?$"
)
_CLASS_MEMBER_RE = re.compile(r"^[A-Za-z0-9_]+\s*:\s*.+$")

_PARTICIPANT_RE = re.compile(r"^(?:participant|actor)\s+(?P<id>[^\s]+)(?:\s+as\s+(?P<label>.+))?$")
_MESSAGE_RE = re.compile(
    r"^(?P<src>[^\s:>-]+)\s*(?P<arrow>-->>|->>|-->|->|--x|-x|--\)|-\))\s*[+-]?(?P<dst>[^\s:]+)\s*:\s?(?P<label>.*)$"
)
_SEQUENCE_KEYWORDS = (
    "note", "loop", "alt", "else", "opt", "par", "and", "rect", "critical",
    "break", "end", "activate", "deactivate", "autonumber", "title", "box",
)


def _unquote(label: str) -> str:
    label = label.strip()
    if len(label) >= 2 and label[0] == '"' and label[-1] == '"':
        label = label[1:-1]
    return label.replace("#quot;", '"').strip()


def _parse_shape(token: str) -> Tuple[ShapeKind, str]:
    if token.startswith("((") and token.endswith("))"):
        return ShapeKind.ELLIPSE, _unquote(token[2:-2])
    if token.startswith("{"):
        return ShapeKind.DIAMOND, _unquote(token[1:-1])
    return ShapeKind.BOX, _unquote(token[1:-1])


def _split_chain(line: str) -> List[Optional[str]]:
    """
    Split an edge chain into [node, arrow, label, node, ...].

    Arrow tokens only count outside node shapes and quoted labels.
    """
    parts: List[Optional[str]] = []
    depth = 0
    quoted = False
    start = i = 0
    while i < len(line):
        char = line[i]
        if char == '"':
            quoted = not quoted
        elif not quoted:
            if char in "[{(":
                depth += 1
            elif char in "]})":
                depth = max(0, depth - 1)
            elif depth == 0:
                match = _ARROW_AT.match(line, i)
                if match:
                    parts.extend([line[start:i], match.group(1), match.group(2)])
                    start = i = match.end()
                    continue
        i += 1
    parts.append(line[start:])
    return parts


def _parse_style(body: str) -> Dict[str, str]:
    style = {}
    # commas inside rgb(...) belong to the value
    for part in re.split(r",(?![^()]*\))", body.rstrip(";")):
        if ":" in part:
            key, value = part.split(":", 1)
            style[key.strip()] = value.strip()
    return style


@dataclass
class _Node:
    id: str
    label: str
    kind: ShapeKind = ShapeKind.BOX
    style_class: Optional[str] = None
    groups: List[str] = field(default_factory=list)     # subgraph ids, outermost first


@dataclass
class _Edge:
    source: str
    target: str
    label: str = ""


@dataclass
class _ParsedDiagram:
    nodes: Dict[str, _Node] = field(default_factory=dict)   # insertion order = first seen
    edges: List[_Edge] = field(default_factory=list)
    class_defs: Dict[str, Dict[str, str]] = field(default_factory=dict)
    subgraph_titles: Dict[str, str] = field(default_factory=dict)

    def touch(self, node_id: str, groups: List[str]) -> _Node:
        node = self.nodes.get(node_id)
        if node is None:
            node = self.nodes[node_id] = _Node(id=node_id, label=node_id)
        if groups and not node.groups:
            node.groups = list(groups)
        return node


class MermaidSceneRenderer(DiagramRenderer):
    """
    Reference renderer for the Mermaid subset produced by the emitter:

    - flowchart: node declarations, --> edges (chains allowed), classDef,
      class assignments, subgraph / end
    - classDiagram: class declarations and relationships
    - sequenceDiagram: participants and messages

    Nodes are laid out on a fixed grid in first-seen order.
    """

    def render(self, code: str) -> RenderResult:
        code = preprocess_for_render(code)
        lines = [l.strip() for l in code.splitlines()]
        lines = [l for l in lines if l and not l.startswith("%%")]
        if not lines:
            raise RenderError("Diagram text is empty")

        header = lines[0].split()
        keyword = header[0]
        if keyword in ("flowchart", "graph"):
            parsed = self._parse_flowchart(lines[1:])
        elif keyword == "classDiagram":
            parsed = self._parse_class_diagram(lines[1:])
        elif keyword == "sequenceDiagram":
            parsed = self._parse_sequence_diagram(lines[1:])
        else:
            raise RenderError(f"Unsupported diagram type: {keyword}", code=lines[0])

        logger.debug("Parsed %s: %d nodes, %d edges", keyword, len(parsed.nodes), len(parsed.edges))
        return self._layout(parsed)

    # ------------------------------------------------------------
    # Flowchart
    # ------------------------------------------------------------

    def _parse_flowchart(self, lines: List[str]) -> _ParsedDiagram:
        parsed = _ParsedDiagram()
        stack: List[str] = []

        for number, line in enumerate(lines, start=2):
            line = line.rstrip(";").strip()

            if line == "end":
                if not stack:
                    raise RenderError(f"Parse error on line {number}: unexpected 'end'", code=line)
                stack.pop()
                continue

            if line.startswith("subgraph"):
                match = _SUBGRAPH_RE.match(line)
                if match:
                    sub_id = match.group("id")
                    title = _unquote(match.group("title")) if match.group("title") else sub_id
                else:
                    title_match = _SUBGRAPH_TITLE_RE.match(line)
                    title = _unquote(title_match.group("title")) if title_match else ""
                    sub_id = re.sub(r"[^A-Za-z0-9_]", "_", title) or f"subgraph{len(parsed.subgraph_titles) + 1}"
                parsed.subgraph_titles[sub_id] = title
                stack.append(sub_id)
                continue

            if line.startswith("direction "):
                continue

            match = _CLASSDEF_RE.match(line)
            if match:
                parsed.class_defs[match.group("name")] = _parse_style(match.group("body"))
                continue

            match = _CLASS_ASSIGN_RE.match(line)
            if match:
                for node_id in re.split(r"[,\s]+", match.group("ids").strip()):
                    if node_id:
                        parsed.touch(node_id, stack).style_class = match.group("name")
                continue

            parts = _split_chain(line)
            if len(parts) > 1:
                self._parse_chain(parsed, parts, stack, number, line)
                continue

            self._parse_node(parsed, line, stack, number)

        if stack:
            raise RenderError(f"Parse error: subgraph '{stack[-1]}' is missing 'end'")
        return parsed

    def _parse_node(self, parsed: _ParsedDiagram, token: str, stack: List[str], number: int) -> str:
        match = _NODE_RE.match(token.strip())
        if not match:
            raise RenderError(f"Parse error on line {number}: {token}", code=token)

        node = parsed.touch(match.group("id"), stack)
        if match.group("shape"):
            node.kind, label = _parse_shape(match.group("shape"))
            node.label = label
        if match.group("cls"):
            node.style_class = match.group("cls")
        return node.id

    def _parse_chain(self, parsed: _ParsedDiagram, parts: List[str], stack: List[str], number: int, line: str):
        # [node, arrow, label, node, arrow, label, node, ...]
        if (len(parts) - 1) % 3 != 0:
            raise RenderError(f"Parse error on line {number}: {line}", code=line)

        ids = [self._parse_node(parsed, parts[i], stack, number) for i in range(0, len(parts), 3)]
        labels = [_unquote(parts[i]) if parts[i] else "" for i in range(2, len(parts), 3)]
        for (source, target), label in zip(zip(ids, ids[1:]), labels):
            parsed.edges.append(_Edge(source=source, target=target, label=label))

    # ------------------------------------------------------------
    # Class diagram
    # ------------------------------------------------------------

    def _parse_class_diagram(self, lines: List[str]) -> _ParsedDiagram:
        parsed = _ParsedDiagram()
        in_body = False

        for number, line in enumerate(lines, start=2):
            if in_body:
                if line == "}":
                    in_body = False
                continue

            match = _CLASS_DECL_RE.match(line)
            if match:
                node = parsed.touch(match.group("id"), [])
                if match.group("label") is not None:
                    node.label = match.group("label").strip() or node.id
                in_body = match.group("body") is not None
                continue

            match = _CLASS_REL_RE.match(line)
            if match:
                source = parsed.touch(match.group("src"), []).id
                target = parsed.touch(match.group("dst"), []).id
                parsed.edges.append(_Edge(source, target, (match.group("label") or "").strip()))
                continue

            if _CLASS_MEMBER_RE.match(line) or line.startswith(("direction ", "note ")):
                continue

            raise RenderError(f"Parse error on line {number}: {line}", code=line)

        return parsed

    # ------------------------------------------------------------
    # Sequence diagram
    # ------------------------------------------------------------

    def _parse_sequence_diagram(self, lines: List[str]) -> _ParsedDiagram:
        parsed = _ParsedDiagram()

        for number, line in enumerate(lines, start=2):
            match = _PARTICIPANT_RE.match(line)
            if match:
                node = parsed.touch(match.group("id"), [])
                if match.group("label"):
                    node.label = match.group("label").strip()
                continue

            match = _MESSAGE_RE.match(line)
            if match:
                source = parsed.touch(match.group("src"), []).id
                target = parsed.touch(match.group("dst"), []).id
                parsed.edges.append(_Edge(source, target, match.group("label").strip()))
                continue

            if line.split()[0].lower() in _SEQUENCE_KEYWORDS:
                continue

            raise RenderError(f"Parse error on line {number}: {line}", code=line)

        return parsed

    # ------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------

    def _layout(self, parsed: _ParsedDiagram) -> RenderResult:
        counter = itertools.count(1)

        def new_id(prefix: str) -> str:
            return f"{prefix}-{next(counter)}"

        group_ids = {sub_id: new_id("group") for sub_id in parsed.subgraph_titles}
        elements: List[SceneElement] = []
        shapes: Dict[str, SceneElement] = {}

        for index, node in enumerate(parsed.nodes.values()):
            style = parsed.class_defs.get(node.style_class or "", {})
            groups = [group_ids[g] for g in reversed(node.groups) if g in group_ids]

            shape = SceneElement(
                id=new_id("shape"),
                type=node.kind.value,
                background_color=style.get("fill", TRANSPARENT),
                stroke_color=style.get("stroke", DEFAULT_STROKE),
                group_ids=groups,
                x=(index % COLUMNS) * (SHAPE_WIDTH + H_GAP),
                y=(index // COLUMNS) * (SHAPE_HEIGHT + V_GAP),
                width=SHAPE_WIDTH,
                height=SHAPE_HEIGHT,
            )
            elements.append(shape)
            shapes[node.id] = shape

            if node.label:
                elements.append(self._bind_text(shape, node.label, new_id("text"), groups))

        for edge in parsed.edges:
            start, end = shapes[edge.source], shapes[edge.target]
            x1, y1 = start.x + start.width / 2, start.y + start.height / 2
            x2, y2 = end.x + end.width / 2, end.y + end.height / 2

            arrow = SceneElement(
                id=new_id("arrow"),
                type="arrow",
                stroke_color=DEFAULT_STROKE,
                start_binding=start.id,
                end_binding=end.id,
                x=x1,
                y=y1,
                width=abs(x2 - x1),
                height=abs(y2 - y1),
                points=[[0.0, 0.0], [x2 - x1, y2 - y1]],
            )
            start.bound_elements.append(BoundElement(id=arrow.id, type="arrow"))
            end.bound_elements.append(BoundElement(id=arrow.id, type="arrow"))
            elements.append(arrow)

            if edge.label:
                elements.append(self._bind_text(arrow, edge.label, new_id("text"), []))

        group_labels = {group_ids[sub_id]: title for sub_id, title in parsed.subgraph_titles.items()}
        return RenderResult(elements=elements, files={}, group_labels=group_labels)

    @staticmethod
    def _bind_text(container: SceneElement, label: str, text_id: str, groups: List[str]) -> SceneElement:
        container.bound_elements.append(BoundElement(id=text_id, type="text"))
        return SceneElement(
            id=text_id,
            type="text",
            text=label,
            stroke_color=DEFAULT_STROKE,
            group_ids=list(groups),
            container_id=container.id,
            x=container.x,
            y=container.y,
            width=container.width,
            height=container.height,
        )
