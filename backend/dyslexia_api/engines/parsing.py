from __future__ import annotations

import json
import re
from typing import Any, Dict


def strip_code_fence(text: str) -> str:
    clean = (text or "").strip()
    for prefix in ("```json", "```JSON", "```"):
        if clean.startswith(prefix):
            clean = clean[len(prefix):]
            break
    if clean.endswith("```"):
        clean = clean[:-3]
    return clean.strip()


def extract_json_object(text: str) -> Dict[str, Any]:
    """Parse a JSON object out of model output.

    Handles raw JSON, JSON wrapped in a Markdown code fence, and JSON embedded in
    surrounding prose. Raises ValueError when no object can be recovered.
    """
    clean = strip_code_fence(text)
    try:
        data = json.loads(clean)
    except ValueError:
        data = None
    if data is None:
        code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text or "")
        if code_block:
            try:
                data = json.loads(code_block.group(1))
            except ValueError:
                data = None
    if data is None:
        first = clean.find("{")
        last = clean.rfind("}")
        if first != -1 and last > first:
            try:
                data = json.loads(clean[first : last + 1])
            except ValueError:
                data = None
    if not isinstance(data, dict):
        raise ValueError("model output is not a JSON object")
    return data
