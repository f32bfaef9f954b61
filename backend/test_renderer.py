"""Tests for the scene renderer and the canvas that commits its output."""

import pytest

from mermaid_canvas.dsl import excalidraw_to_mermaid
from mermaid_canvas.errors import RenderError
from mermaid_canvas.graph import read_graph
from mermaid_canvas.renderer import DiagramCanvas, DiagramRenderer, MermaidSceneRenderer, RenderResult

SUBGRAPH_FLOWCHART = "\n".join([
    "flowchart TD",
    "    subgraph G2[Backend]",
    "        subgraph G1",
    "            A[API]",
    "        end",
    "        B[DB]",
    "    end",
    "    C[Client]",
])


@pytest.fixture
def renderer():
    return MermaidSceneRenderer()


class TestMermaidSceneRenderer:
    def test_flowchart_elements(self, renderer):
        result = renderer.render("flowchart LR\n    A((Start)) -->|go| B{Ready?}\n    B --> C[Done]")
        shapes = [e for e in result.elements if e.is_shape]
        arrows = [e for e in result.elements if e.type == "arrow"]
        texts = {e.container_id: e.text for e in result.elements if e.type == "text"}

        assert [s.type for s in shapes] == ["ellipse", "diamond", "rectangle"]
        assert [texts[s.id] for s in shapes] == ["Start", "Ready?", "Done"]
        assert [(a.start_binding, a.end_binding) for a in arrows] == [
            (shapes[0].id, shapes[1].id),
            (shapes[1].id, shapes[2].id),
        ]
        assert texts[arrows[0].id] == "go"

    def test_class_def_colors(self, renderer):
        result = renderer.render(
            "flowchart TD\n    A[One]:::hot\n    classDef hot fill:#ffc9c9,stroke:#e03131"
        )
        shape = result.elements[0]
        assert (shape.background_color, shape.stroke_color) == ("#ffc9c9", "#e03131")

    def test_class_assignment_line(self, renderer):
        result = renderer.render(
            "flowchart TD\n    A --> B\n    class A,B cool\n    classDef cool fill:#a5d8ff,stroke:#1971c2;"
        )
        shapes = [e for e in result.elements if e.is_shape]
        assert {s.background_color for s in shapes} == {"#a5d8ff"}

    def test_subgraph_group_ids(self, renderer):
        result = renderer.render(SUBGRAPH_FLOWCHART)
        shapes = [e for e in result.elements if e.is_shape]

        assert [len(s.group_ids) for s in shapes] == [2, 1, 0]
        assert shapes[0].group_ids[1] == shapes[1].group_ids[0]
        assert sorted(result.group_labels.values()) == ["Backend", "G1"]

    def test_element_dicts_use_editor_keys(self, renderer):
        dicts = renderer.render("flowchart TD\n    A[Hi] --> B").element_dicts()
        text = next(d for d in dicts if d["type"] == "text")
        arrow = next(d for d in dicts if d["type"] == "arrow")

        assert text["containerId"] == dicts[0]["id"]
        assert arrow["startBinding"] == {"elementId": dicts[0]["id"]}
        assert dicts[0]["boundElements"][0] == {"id": text["id"], "type": "text"}

    def test_arrow_tokens_inside_shapes(self, renderer):
        result = renderer.render('flowchart TD\n    A["x --> y"] --> B[a --- b]\n    B -->|"p ==> q"| C(c -.-> d)')
        shapes = [e for e in result.elements if e.is_shape]
        arrows = [e for e in result.elements if e.type == "arrow"]
        texts = {e.container_id: e.text for e in result.elements if e.type == "text"}

        assert [texts[s.id] for s in shapes] == ["x --> y", "a --- b", "c -.-> d"]
        assert len(arrows) == 2
        assert texts[arrows[1].id] == "p ==> q"

    def test_class_def_rgb_color(self, renderer):
        result = renderer.render(
            "flowchart TD\n    A[One]:::c\n    classDef c fill:rgb(1, 2, 3),stroke:#000"
        )
        shape = result.elements[0]
        assert (shape.background_color, shape.stroke_color) == ("rgb(1, 2, 3)", "#000")

    @pytest.mark.parametrize("code", [
        "",
        "pie\n    \"a\" : 1",
        "flowchart TD\n    A[[[",
        "flowchart TD\n    subgraph S\n    A",
        "flowchart TD\n    end",
        "sequenceDiagram\n    this is not a message",
    ])
    def test_invalid_text_raises(self, renderer, code):
        with pytest.raises(RenderError):
            renderer.render(code)


class TestRoundTrip:
    def test_flowchart(self, renderer, decision_scene):
        code = excalidraw_to_mermaid(decision_scene)
        elements = renderer.render(code).elements

        assert excalidraw_to_mermaid(elements) == code

    def test_counts_and_labels_preserved(self, renderer, decision_scene):
        before = read_graph(decision_scene)
        after = read_graph(renderer.render(excalidraw_to_mermaid(decision_scene)).elements)

        assert len(after.nodes) == len(before.nodes)
        assert len(after.edges) == len(before.edges)
        assert [n.label for n in after.nodes] == [n.label for n in before.nodes]
        assert [e.label for e in after.edges] == [e.label for e in before.edges]

    def test_arrow_tokens_in_labels(self, renderer, scene):
        scene.shape("a", "load --- save")
        scene.shape("b", "B")
        scene.shape("c", "x ==> y", kind="diamond")
        scene.arrow("ab", "a", "b", "then --> next")
        scene.arrow("bc", "b", "c")
        before = read_graph(scene.elements)
        after = read_graph(renderer.render(excalidraw_to_mermaid(scene.elements)).elements)

        assert [n.label for n in after.nodes] == ["load --- save", "B", "x ==> y"]
        assert [(e.source, e.target, e.label) for e in after.edges] == [
            (e.source, e.target, e.label) for e in before.edges
        ]

    def test_subgraphs(self, renderer):
        result = renderer.render(SUBGRAPH_FLOWCHART)
        code = excalidraw_to_mermaid(
            result.elements,
            include_colors=False,
            include_groups=True,
            group_labels=result.group_labels,
        )
        assert code == SUBGRAPH_FLOWCHART

    def test_class_diagram(self, renderer):
        code = '\n'.join(["classDiagram", '    class A["Animal"]', '    class B["Dog"]', "    A <|-- B"])
        elements = renderer.render(code).elements
        assert excalidraw_to_mermaid(elements, diagram_type="classDiagram") == code

    def test_sequence_diagram(self, renderer):
        code = "sequenceDiagram\n    A->>B: hello\n    B->>A: ok"
        elements = renderer.render(code).elements
        assert excalidraw_to_mermaid(elements, diagram_type="sequenceDiagram") == code


class _ExplodingRenderer(DiagramRenderer):
    def render(self, code: str) -> RenderResult:
        raise KeyError("layout")


class TestDiagramCanvas:
    def test_load_commits_scene(self):
        canvas = DiagramCanvas()
        result = canvas.load("```mermaid\nflowchart TD\n    A[Hello<br>World] --> B\n```")

        assert canvas.elements == result.elements
        assert canvas.code.startswith("```mermaid")
        texts = [e.text for e in canvas.elements if e.type == "text"]
        assert texts == ["HelloWorld", "B"]

    def test_failed_render_keeps_previous_scene(self):
        canvas = DiagramCanvas()
        canvas.load("flowchart TD\n    A --> B")
        previous = list(canvas.elements)

        with pytest.raises(RenderError):
            canvas.load("flowchart TD\n    A[[[")

        assert canvas.elements == previous
        assert canvas.code == "flowchart TD\n    A --> B"

    def test_unexpected_renderer_failure_is_wrapped(self):
        canvas = DiagramCanvas(renderer=_ExplodingRenderer())
        with pytest.raises(RenderError) as excinfo:
            canvas.load("flowchart TD\n    A")
        assert excinfo.value.code == "flowchart TD\n    A"
        assert canvas.elements == []

    def test_empty_text_clears(self):
        canvas = DiagramCanvas()
        canvas.load("flowchart TD\n    A")
        canvas.load("   ")
        assert canvas.elements == []
        assert canvas.code == ""

    def test_edited_scene_back_to_mermaid(self, decision_scene):
        canvas = DiagramCanvas()
        canvas.replace_elements(decision_scene)
        assert canvas.to_mermaid(include_colors=False).splitlines()[4] == "    D{D}"

    def test_group_titles_survive_to_mermaid(self):
        canvas = DiagramCanvas()
        canvas.load(SUBGRAPH_FLOWCHART)
        code = canvas.to_mermaid(include_colors=False, include_groups=True)
        assert "subgraph G2[Backend]" in code
