from asn_core.issues import Issue, has_errors, severity_counts, to_lines
from asn_core.loader import load_export_request, load_note_param_settings, note_settings_from_request
from asn_core.note_params import (
    NOTE_PARAM_CATEGORIES,
    NOTE_PARAM_STATUS,
    NoteParamInfo,
    default_note_param_output_settings,
    get_note_param_status,
    is_export_whitelisted_note_param,
    note_param_output_settings,
    note_params_by_category,
    note_params_by_status,
    note_params_grouped_by_category,
    should_output_note_param,
)
from asn_core.notes import (
    column_note_cells,
    generate_column_note,
    generate_table_notes,
    normalize_label_columns,
    pick_effective_label_column_id,
    preview_column_notes,
)
from asn_core.project_store import ProjectStore, ProjectStoreError
from asn_core.sample_data import json_value_to_string
from asn_core.schema import load_schema, schema_issues
from asn_core.semantic import lint_issues
from asn_core.serializer import EMPTY_NOTE, NOTE_PREFIX, render_note, serialize_note_value
from asn_core.workbook import build_workbook, export_to_excel

__all__ = [
    "build_workbook",
    "column_note_cells",
    "default_note_param_output_settings",
    "EMPTY_NOTE",
    "export_to_excel",
    "generate_column_note",
    "generate_table_notes",
    "get_note_param_status",
    "has_errors",
    "is_export_whitelisted_note_param",
    "Issue",
    "json_value_to_string",
    "lint_issues",
    "load_export_request",
    "load_note_param_settings",
    "load_schema",
    "normalize_label_columns",
    "NOTE_PARAM_CATEGORIES",
    "NOTE_PARAM_STATUS",
    "note_param_output_settings",
    "note_params_by_category",
    "note_params_by_status",
    "note_params_grouped_by_category",
    "note_settings_from_request",
    "NOTE_PREFIX",
    "NoteParamInfo",
    "pick_effective_label_column_id",
    "preview_column_notes",
    "ProjectStore",
    "ProjectStoreError",
    "render_note",
    "schema_issues",
    "serialize_note_value",
    "severity_counts",
    "should_output_note_param",
    "to_lines",
]
