from typing import Dict, List, Optional, Sequence

DIAGRAM_TYPE_HINTS = {
    "auto": "Pick the Mermaid diagram type that best fits the text.",
    "flowchart": "Produce a flowchart (flowchart TD).",
    "sequenceDiagram": "Produce a sequence diagram (sequenceDiagram).",
    "classDiagram": "Produce a class diagram (classDiagram).",
    "stateDiagram": "Produce a state diagram (stateDiagram-v2).",
    "erDiagram": "Produce an entity relationship diagram (erDiagram).",
    "gantt": "Produce a Gantt chart (gantt).",
    "mindmap": "Produce a mind map (mindmap).",
}

LANGUAGE_NAMES = {
    "zh": "Chinese",
    "en": "English",
}

MERMAID_SYSTEM_PROMPT = """
You convert the user's text into ONE Mermaid diagram.

Rules:
- {type_hint}
- Output ONLY Mermaid code inside a single ```mermaid fenced block
- No explanations before or after the block
- Node ids: short, ASCII letters and digits only
- Quote any label that contains brackets, parentheses, pipes or quotes
- Do not use <br> or HTML in labels
- Write labels in {language}
"""

OPTIMIZE_SYSTEM_PROMPT = """
You improve an existing Mermaid diagram.

Rules:
- Keep the diagram type and every piece of information in the original
- Fix syntax errors and simplify confusing structure
- Output ONLY the improved Mermaid code inside a single ```mermaid fenced block
"""

SUGGESTIONS_SYSTEM_PROMPT = """
You review Mermaid diagrams and propose improvements.

Return strict JSON only, no markdown:
{"suggestions": ["short actionable suggestion", "..."]}

Give at most 5 suggestions.
"""


def build_mermaid_system_prompt(diagram_type: str = "auto", language: str = "zh") -> str:
    type_hint = DIAGRAM_TYPE_HINTS.get(diagram_type or "auto", DIAGRAM_TYPE_HINTS["auto"])
    return MERMAID_SYSTEM_PROMPT.format(
        type_hint=type_hint,
        language=LANGUAGE_NAMES.get(language, language),
    ).strip()


def build_generation_messages(text: str, diagram_type: str = "auto", language: str = "zh") -> List[Dict]:
    return [
        {"role": "system", "content": build_mermaid_system_prompt(diagram_type, language)},
        {"role": "user", "content": text},
    ]


def build_optimize_messages(
    mermaid_code: str,
    instruction: str = "",
    group_list: Optional[Sequence[str]] = None,
) -> List[Dict]:
    request = [f"Mermaid code:\n```mermaid\n{mermaid_code}\n```"]
    if instruction:
        request.append(f"Instruction: {instruction}")
    if group_list:
        groups = "\n".join(f"- {g}" for g in group_list)
        request.append(f"Group the nodes into these subgraphs, in this order:\n{groups}")

    return [
        {"role": "system", "content": OPTIMIZE_SYSTEM_PROMPT.strip()},
        {"role": "user", "content": "\n\n".join(request)},
    ]


def build_suggestion_messages(mermaid_code: str) -> List[Dict]:
    return [
        {"role": "system", "content": SUGGESTIONS_SYSTEM_PROMPT.strip()},
        {"role": "user", "content": f"```mermaid\n{mermaid_code}\n```"},
    ]
