from typing import Any


def json_value_to_string(value: Any) -> str:
    """Render a sample cell value as the text written into the workbook."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ", ".join(json_value_to_string(item) for item in value)
    if isinstance(value, dict):
        return "[Object]"
    return str(value)
