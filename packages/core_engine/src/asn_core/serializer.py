import json
import math
from typing import Any, Dict

NOTE_PREFIX = "AppSheet:"
EMPTY_NOTE = NOTE_PREFIX + "{}"


def _quote(text: str) -> str:
    try:
        return json.dumps(text, ensure_ascii=False)
    except (TypeError, ValueError, UnicodeError):
        return f'"{text}"'


def serialize_note_value(value: Any) -> str:
    """Render a JSON-like value in the compact form AppSheet reads from notes.

    Keys keep insertion order and no whitespace is emitted between tokens.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return "null"
        return repr(value)
    if isinstance(value, str):
        return _quote(value)
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(serialize_note_value(item) for item in value) + "]"
    if isinstance(value, dict):
        pairs = [f"{_quote(str(key))}:{serialize_note_value(item)}" for key, item in value.items()]
        return "{" + ",".join(pairs) + "}"
    return _quote(str(value))


def render_note(data: Dict[str, Any]) -> str:
    return NOTE_PREFIX + serialize_note_value(data)
