"""Column note generation for AppSheet Note Parameters.

For each column the note is built in fixed stages:

  1. raw override      -- ``__AppSheetNoteOverride`` replaces everything
  2. defaults          -- derived from type, flags and constraints
  3. user overrides    -- ``appSheet`` entries merged on top
  4. formula relocation -- ``*_If`` expressions moved into ``TypeAuxData``
  5. rendering         -- ``AppSheet:{...}``

Label normalization runs per table before any column is rendered, so a table
never exports more than one ``IsLabel`` column.
"""

import json
import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from asn_core.note_params import (
    DEFAULT_VALUE_KEY,
    LEGACY_DEFAULT_VALUE_KEY,
    canonical_note_param_key,
    should_output_note_param,
)
from asn_core.serializer import EMPTY_NOTE, render_note, serialize_note_value

logger = logging.getLogger(__name__)

RAW_NOTE_OVERRIDE_KEY = "__AppSheetNoteOverride"
TYPE_AUX_DATA_KEY = "TypeAuxData"
FORMULA_NOTE_PARAMS = ("Show_If", "Required_If", "Editable_If", "Reset_If")
ENUM_TYPES = {"Enum", "EnumList"}
REF_TYPE = "Ref"
LONG_TEXT_ENUM_THRESHOLD = 20

Settings = Optional[Mapping[str, Any]]
NoteCell = Tuple[int, int, str]


def column_overrides(column: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    overrides = column.get("appSheet")
    if overrides is None:
        overrides = column.get("overrides")
    if isinstance(overrides, dict):
        return overrides
    return None


def _user_has(overrides: Optional[Dict[str, Any]], key: str) -> bool:
    if not overrides:
        return False
    if canonical_note_param_key(key) == DEFAULT_VALUE_KEY:
        return DEFAULT_VALUE_KEY in overrides or LEGACY_DEFAULT_VALUE_KEY in overrides
    return key in overrides


def _non_empty_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _order(column: Dict[str, Any]) -> float:
    value = column.get("order")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return 0


def coerce_number(value: Any) -> Any:
    """Return ``value`` as a finite int/float, falling back to ``0``."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else 0
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return 0
        return number if math.isfinite(number) else 0
    return 0


def _escape_expression_text(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def validation_expression(pattern: str) -> str:
    return f'MATCHES([_THIS], "{_escape_expression_text(pattern)}")'


def enum_base_type(values: Sequence[str]) -> str:
    longest = max((len(value) for value in values), default=0)
    return "LongText" if longest > LONG_TEXT_ENUM_THRESHOLD else "Text"


def resolve_reference(
    column: Dict[str, Any], tables: Sequence[Dict[str, Any]]
) -> Optional[Tuple[Dict[str, Any], Optional[Dict[str, Any]]]]:
    """Find the referenced table and its key column for a ``Ref`` column.

    Key column preference: explicit ``refColumnId``, then the table's key
    column, then its first column.
    """
    constraints = column.get("constraints") or {}
    ref_table_id = constraints.get("refTableId")
    if not ref_table_id:
        return None

    ref_table = next((t for t in tables if t.get("id") == ref_table_id), None)
    if ref_table is None:
        logger.debug("Column %s references unknown table %s", column.get("id"), ref_table_id)
        return None

    columns = ref_table.get("columns") or []
    ref_column_id = constraints.get("refColumnId")
    key_column = None
    if ref_column_id:
        key_column = next((c for c in columns if c.get("id") == ref_column_id), None)
    if key_column is None:
        key_column = next((c for c in columns if c.get("isKey") is True), None)
    if key_column is None and columns:
        key_column = columns[0]

    return ref_table, key_column


def synthesize_defaults(
    column: Dict[str, Any],
    tables: Sequence[Dict[str, Any]],
    user_settings: Settings = None,
) -> Dict[str, Any]:
    overrides = column_overrides(column)
    constraints = column.get("constraints") or {}
    column_type = column.get("type")
    data: Dict[str, Any] = {}

    def wanted(key: str) -> bool:
        return should_output_note_param(key, user_settings) and not _user_has(overrides, key)

    if column_type is not None and wanted("Type"):
        data["Type"] = column_type

    if column.get("isKey") is True and wanted("IsKey"):
        data["IsKey"] = True

    if column.get("isLabel") is True and wanted("IsLabel"):
        data["IsLabel"] = True

    if (
        constraints.get("required") is True
        and wanted("IsRequired")
        and not _non_empty_text((overrides or {}).get("Required_If"))
    ):
        data["IsRequired"] = True

    default_value = constraints.get("defaultValue")
    if isinstance(default_value, str) and default_value and wanted(DEFAULT_VALUE_KEY):
        data[DEFAULT_VALUE_KEY] = default_value

    description = column.get("description")
    if isinstance(description, str) and description and wanted("Description"):
        data["Description"] = description

    pattern = constraints.get("pattern")
    if isinstance(pattern, str) and pattern and wanted("Valid_If"):
        data["Valid_If"] = validation_expression(pattern)

    for source, key in (("minValue", "MinValue"), ("maxValue", "MaxValue")):
        if constraints.get(source) is not None and wanted(key):
            data[key] = coerce_number(constraints[source])

    enum_values = constraints.get("enumValues")
    if column_type in ENUM_TYPES and isinstance(enum_values, list) and enum_values:
        values = [str(value) for value in enum_values]
        if wanted("EnumValues"):
            data["EnumValues"] = values
            # BaseType describes the generated list only.
            if wanted("BaseType"):
                data["BaseType"] = enum_base_type(values)

    if column_type == REF_TYPE:
        resolved = resolve_reference(column, tables)
        if resolved is not None:
            ref_table, key_column = resolved
            if wanted("ReferencedTableName"):
                data["ReferencedTableName"] = ref_table.get("name", "")
            if key_column is not None:
                if wanted("ReferencedKeyColumn"):
                    data["ReferencedKeyColumn"] = key_column.get("name", "")
                if wanted("ReferencedType"):
                    data["ReferencedType"] = key_column.get("type", "")

    return data


def merge_overrides(
    data: Dict[str, Any],
    overrides: Optional[Dict[str, Any]],
    user_settings: Settings = None,
) -> Dict[str, Any]:
    merged = dict(data)
    if not overrides:
        return merged

    required_if_set = _non_empty_text(overrides.get("Required_If"))

    for raw_key, value in overrides.items():
        if raw_key == RAW_NOTE_OVERRIDE_KEY:
            continue
        key = canonical_note_param_key(raw_key)
        if key == "IsRequired" and required_if_set:
            continue
        if value is None:
            merged.pop(key, None)
            continue
        if key in FORMULA_NOTE_PARAMS or should_output_note_param(key, user_settings):
            merged[key] = value

    # Required_If always wins over the unconditional flag.
    if _non_empty_text(merged.get("Required_If")):
        merged.pop("IsRequired", None)

    return merged


def parse_type_aux_data(value: Any) -> Dict[str, Any]:
    """Read existing ``TypeAuxData`` given as an object or as (escaped) JSON text."""
    if isinstance(value, dict):
        return dict(value)
    if not isinstance(value, str) or not value.strip():
        return {}

    text = value.strip()
    try:
        parsed = json.loads(text)
        if isinstance(parsed, str):
            parsed = json.loads(parsed)
        if isinstance(parsed, dict):
            return parsed
    except ValueError:
        pass

    try:
        parsed = json.loads(json.loads(f'"{text}"'))
        if isinstance(parsed, dict):
            return parsed
    except ValueError:
        pass

    logger.debug("Ignoring unparseable TypeAuxData: %r", text)
    return {}


def _formula_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = value if isinstance(value, str) else serialize_note_value(value)
    if not text.strip():
        return None
    return text


def relocate_formulas(data: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(data)
    formulas: Dict[str, str] = {}
    for key in FORMULA_NOTE_PARAMS:
        if key not in result:
            continue
        text = _formula_text(result.pop(key))
        if text is not None:
            formulas[key] = text

    if not formulas:
        return result

    aux = parse_type_aux_data(result.get(TYPE_AUX_DATA_KEY))
    aux.update(formulas)
    result[TYPE_AUX_DATA_KEY] = serialize_note_value(aux)
    return result


def pick_effective_label_column_id(table: Dict[str, Any]) -> Optional[str]:
    best: Optional[Dict[str, Any]] = None
    for column in table.get("columns") or []:
        if column.get("isLabel") is not True:
            continue
        if best is None or _order(column) < _order(best):
            best = column
    return best.get("id") if best is not None else None


def normalize_label_columns(table: Dict[str, Any]) -> List[Dict[str, Any]]:
    label_id = pick_effective_label_column_id(table)
    return [
        {**column, "isLabel": label_id is not None and column.get("id") == label_id}
        for column in table.get("columns") or []
    ]


def raw_note_override(column: Dict[str, Any]) -> Optional[str]:
    raw = (column_overrides(column) or {}).get(RAW_NOTE_OVERRIDE_KEY)
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return None


def generate_column_note(
    column: Dict[str, Any],
    tables: Optional[Sequence[Dict[str, Any]]] = None,
    user_settings: Settings = None,
) -> str:
    """Build the note text for one column.

    ``column`` must already carry its effective ``isLabel`` (see
    ``normalize_label_columns``).
    """
    raw = raw_note_override(column)
    if raw is not None:
        return raw

    data = synthesize_defaults(column, tables or [], user_settings)
    data = merge_overrides(data, column_overrides(column), user_settings)
    data = relocate_formulas(data)
    return render_note(data)


def _attached_note(column: Dict[str, Any], tables: Sequence[Dict[str, Any]], user_settings: Settings) -> str:
    note = generate_column_note(column, tables, user_settings)
    if note == EMPTY_NOTE and raw_note_override(column) is None:
        return ""
    return note


def generate_table_notes(
    table: Dict[str, Any],
    tables: Optional[Sequence[Dict[str, Any]]] = None,
    user_settings: Settings = None,
) -> Dict[str, str]:
    all_tables = tables if tables is not None else [table]
    return {
        column.get("id", ""): generate_column_note(column, all_tables, user_settings)
        for column in normalize_label_columns(table)
    }


def preview_column_notes(
    tables: Sequence[Dict[str, Any]],
    user_settings: Settings = None,
) -> Dict[str, Dict[str, str]]:
    """Return ``{table_id: {column_id: note}}`` exactly as the workbook gets it.

    Columns that would not receive a note map to an empty string.
    """
    by_table: Dict[str, Dict[str, str]] = {}
    for table in tables:
        by_table[table.get("id", "")] = {
            column.get("id", ""): _attached_note(column, tables, user_settings)
            for column in normalize_label_columns(table)
        }
    return by_table


def column_note_cells(
    table: Dict[str, Any],
    tables: Sequence[Dict[str, Any]],
    user_settings: Settings = None,
) -> List[NoteCell]:
    cells: List[NoteCell] = []
    for col_idx, column in enumerate(normalize_label_columns(table)):
        text = _attached_note(column, tables, user_settings)
        if text:
            cells.append((0, col_idx, text))
    return cells
