import re

# opening fence with any info string (mermaid, mmd, text, ...) on its own line
_CODE_BLOCK_RE = re.compile(r"^[ \t]*```[^\n`]*\n(.*?)```", re.DOTALL | re.MULTILINE)
_FENCE_RE = re.compile(r"```[A-Za-z0-9_-]*")
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_HEADER_RE = re.compile(r"^\s*(flowchart|graph|classDiagram|sequenceDiagram)\b", re.MULTILINE)


def extract_code_block(text: str) -> str:
    """
    Body of the first fenced code block, trimmed.
    Text without a complete fence is returned unchanged.
    """
    if not text:
        return ""
    match = _CODE_BLOCK_RE.search(text)
    if not match:
        return text
    return match.group(1).strip()


def preprocess_for_render(code: str) -> str:
    """Drop markdown fences and <br> tags, which the renderer cannot lay out."""
    if not code:
        return ""
    code = _FENCE_RE.sub("", code)
    code = _BR_RE.sub("", code)
    return code.strip()


def detect_diagram_type(code: str) -> str:
    match = _HEADER_RE.search(code or "")
    if not match:
        return ""
    keyword = match.group(1)
    return "flowchart" if keyword == "graph" else keyword


def toggle_direction(code: str) -> str:
    """Swap a flowchart header between vertical (TD/TB) and horizontal (LR)."""
    if not code:
        return code

    lines = code.splitlines()
    for i, line in enumerate(lines):
        stripped = line.strip()
        if not stripped:
            continue
        match = re.match(r"^(\s*)(flowchart|graph)\s+(TD|TB|LR|RL|BT)\b(.*)$", line, re.IGNORECASE)
        if not match:
            return code
        indent, keyword, direction, rest = match.groups()
        flipped = "LR" if direction.upper() in ("TD", "TB") else "TD"
        lines[i] = f"{indent}{keyword} {flipped}{rest}"
        return "\n".join(lines)
    return code
