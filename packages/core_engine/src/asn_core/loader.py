from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from asn_core.note_params import note_param_output_settings

SETTINGS_KEY = "noteParamOutputSettings"


def _load_document(path: str, label: str) -> Dict[str, Any]:
    doc_path = Path(path)
    if not doc_path.exists():
        raise FileNotFoundError(f"{label} file not found: {path}")

    # JSON documents parse as YAML too.
    with doc_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ValueError(f"{label} must parse to an object/map at root.")

    return data


def load_export_request(path: str) -> Dict[str, Any]:
    return _load_document(path, "Export request")


def note_settings_from_request(request: Dict[str, Any]) -> Optional[Dict[str, bool]]:
    """``None`` when the request carries no settings map; an empty map still
    switches the engine to the explicit allow-list."""
    return note_param_output_settings(request.get(SETTINGS_KEY))


def load_note_param_settings(path: str) -> Optional[Dict[str, bool]]:
    """Load output settings from either a flat ``{key: bool}`` map or a
    settings document holding ``noteParamOutputSettings``."""
    data = _load_document(path, "Settings")
    if SETTINGS_KEY in data:
        return note_settings_from_request(data)
    return note_param_output_settings(data)
