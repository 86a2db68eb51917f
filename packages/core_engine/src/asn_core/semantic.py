from typing import Any, Dict, List, Set

from asn_core.issues import Issue
from asn_core.notes import (
    REF_TYPE,
    RAW_NOTE_OVERRIDE_KEY,
    column_overrides,
    pick_effective_label_column_id,
)
from asn_core.serializer import NOTE_PREFIX


def _ref_issues(
    column: Dict[str, Any],
    tables_by_id: Dict[str, Dict[str, Any]],
    path: str,
) -> List[Issue]:
    constraints = column.get("constraints") or {}
    column_name = column.get("name", "")
    ref_table_id = constraints.get("refTableId")

    if not ref_table_id:
        return [
            Issue(
                severity="warning",
                code="REF_TABLE_MISSING",
                message=f"Ref column '{column_name}' does not name a referenced table.",
                path=path,
            )
        ]

    ref_table = tables_by_id.get(ref_table_id)
    if ref_table is None:
        return [
            Issue(
                severity="warning",
                code="REF_TABLE_UNKNOWN",
                message=f"Ref column '{column_name}' references unknown table '{ref_table_id}'.",
                path=path,
            )
        ]

    ref_column_id = constraints.get("refColumnId")
    ref_columns = ref_table.get("columns") or []
    if ref_column_id and not any(c.get("id") == ref_column_id for c in ref_columns):
        return [
            Issue(
                severity="warning",
                code="REF_COLUMN_UNKNOWN",
                message=(
                    f"Ref column '{column_name}' references unknown column '{ref_column_id}' "
                    f"in table '{ref_table.get('name', '')}'; the table's key column is used instead."
                ),
                path=path,
            )
        ]

    return []


def lint_issues(request: Dict[str, Any]) -> List[Issue]:
    """Semantic checks on an export request. Only duplicate ids are errors;
    everything else still exports."""
    issues: List[Issue] = []
    tables = request.get("tables") or []
    tables_by_id: Dict[str, Dict[str, Any]] = {}
    seen_tables: Set[str] = set()

    for table in tables:
        table_id = table.get("id", "")
        if table_id in seen_tables:
            issues.append(
                Issue(
                    severity="error",
                    code="DUPLICATE_TABLE_ID",
                    message=f"Duplicate table id '{table_id}'.",
                    path="/tables",
                )
            )
        else:
            seen_tables.add(table_id)
            tables_by_id[table_id] = table

    for t_idx, table in enumerate(tables):
        table_name = table.get("name", "")
        columns = table.get("columns") or []
        seen_columns: Set[str] = set()

        labels = [c for c in columns if c.get("isLabel") is True]
        if len(labels) > 1:
            label_id = pick_effective_label_column_id(table)
            label_name = next((c.get("name", "") for c in labels if c.get("id") == label_id), "")
            issues.append(
                Issue(
                    severity="info",
                    code="MULTIPLE_LABEL_COLUMNS",
                    message=(
                        f"Table '{table_name}' flags {len(labels)} label columns; "
                        f"only '{label_name}' is exported as IsLabel."
                    ),
                    path=f"/tables/{t_idx}/columns",
                )
            )

        for c_idx, column in enumerate(columns):
            path = f"/tables/{t_idx}/columns/{c_idx}"
            column_id = column.get("id", "")
            if column_id in seen_columns:
                issues.append(
                    Issue(
                        severity="error",
                        code="DUPLICATE_COLUMN_ID",
                        message=f"Duplicate column id '{column_id}' in table '{table_name}'.",
                        path=f"/tables/{t_idx}/columns",
                    )
                )
            else:
                seen_columns.add(column_id)

            if column.get("type") == REF_TYPE:
                issues.extend(_ref_issues(column, tables_by_id, path))

            raw = (column_overrides(column) or {}).get(RAW_NOTE_OVERRIDE_KEY)
            if isinstance(raw, str) and raw.strip() and not raw.strip().startswith(NOTE_PREFIX):
                issues.append(
                    Issue(
                        severity="warning",
                        code="RAW_NOTE_PREFIX_MISSING",
                        message=(
                            f"Raw note for '{table_name}.{column.get('name', '')}' "
                            f"does not start with '{NOTE_PREFIX}'; AppSheet will ignore it."
                        ),
                        path=f"{path}/appSheet",
                    )
                )

    return issues
