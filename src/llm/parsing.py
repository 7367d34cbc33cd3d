"""Pull a JSON payload out of free-form model output."""

import json
import re

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


def strip_fences(text: str) -> str:
    """Return the body of the first fenced block, or the text unchanged."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def parse_json_payload(text: str):
    """Decode the JSON value in a model response.

    Tries the fenced block (or whole text) first, then the widest
    ``[...]`` or ``{...}`` span. Raises ValueError when nothing decodes.
    """
    if not text or not text.strip():
        raise ValueError("empty response")

    body = strip_fences(text)
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        pass

    for opener, closer in (("[", "]"), ("{", "}")):
        start, end = body.find(opener), body.rfind(closer)
        if start != -1 and end > start:
            try:
                return json.loads(body[start : end + 1])
            except json.JSONDecodeError:
                continue
    raise ValueError(f"no JSON payload in response: {body[:200]!r}")
