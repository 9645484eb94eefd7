from __future__ import annotations

import json
from typing import Any, Dict

from ..core.errors import JsonParseError, NoJsonFoundError


def extract_json(raw_text: str) -> Dict[str, Any]:
    """Pull the JSON object out of a free-text model reply.

    Takes everything from the first ``{`` to the last ``}``. Braces inside string
    values are not balanced, so prose containing stray braces around the object
    can still produce a slice that fails to parse.
    """
    text = raw_text or ""
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last == -1 or last < first:
        raise NoJsonFoundError(text)

    try:
        return json.loads(text[first : last + 1])
    except json.JSONDecodeError as e:
        raise JsonParseError(text, str(e)) from e
