import json
import re
from typing import Any

from mermaid_canvas.dsl.mermaid import extract_code_block


def extract_json(text: str) -> Any:
    """
    Extract first valid JSON value from LLM output.
    Returns {} if parsing fails.
    """
    if not text or not isinstance(text, str):
        return {}

    text = extract_code_block(text)
    try:
        return json.loads(text)
    except ValueError:
        pass

    # Try to extract JSON block
    match = re.search(r"\{.*\}|\[.*\]", text, re.DOTALL)
    if not match:
        return {}

    try:
        return json.loads(match.group(0))
    except ValueError:
        return {}
