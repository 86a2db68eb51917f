import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from asn_core import (
    NOTE_PARAM_CATEGORIES,
    NOTE_PARAM_STATUS,
    ProjectStore,
    ProjectStoreError,
    export_to_excel,
    lint_issues,
    load_export_request,
    load_note_param_settings,
    load_schema,
    note_settings_from_request,
    preview_column_notes,
    schema_issues,
)
from asn_core.issues import Issue, has_errors, to_lines

SCHEMA_FILENAME = "export-request.schema.json"
DATA_DIR_ENV = "ASN_DATA_DIR"


def _default_schema_path() -> str:
    local = Path.cwd() / "schemas" / SCHEMA_FILENAME
    if local.exists():
        return str(local)
    return str(Path(__file__).resolve().parents[4] / "schemas" / SCHEMA_FILENAME)


def _default_data_dir() -> str:
    return os.environ.get(DATA_DIR_ENV) or str(Path.home() / ".asn")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _print_issues(issues: List[Issue]) -> None:
    if not issues:
        print("No issues found.")
        return
    for line in to_lines(issues):
        print(line)


def _load_request(path: str) -> Optional[Dict[str, Any]]:
    try:
        return load_export_request(path)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as exc:
        print(f"Failed to load export request: {exc}", file=sys.stderr)
        return None


def _validated_request(args: argparse.Namespace) -> Tuple[Optional[Dict[str, Any]], List[Issue]]:
    request = _load_request(args.request)
    if request is None:
        return None, []
    issues = schema_issues(request, load_schema(args.schema))
    issues.extend(lint_issues(request))
    return request, issues


def _resolve_settings(args: argparse.Namespace, request: Dict[str, Any]) -> Optional[Dict[str, bool]]:
    if getattr(args, "settings", None):
        return load_note_param_settings(args.settings)
    return note_settings_from_request(request)


def cmd_validate(args: argparse.Namespace) -> int:
    request, issues = _validated_request(args)
    if request is None:
        return 1
    _print_issues(issues)
    return 1 if has_errors(issues) else 0


def cmd_preview(args: argparse.Namespace) -> int:
    request, issues = _validated_request(args)
    if request is None:
        return 1
    if has_errors(issues):
        _print_issues(issues)
        return 1

    try:
        settings = _resolve_settings(args, request)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as exc:
        print(f"Failed to load settings: {exc}", file=sys.stderr)
        return 1

    preview = preview_column_notes(request.get("tables") or [], settings)
    if args.table:
        if args.table not in preview:
            print(f"Unknown table id: {args.table}", file=sys.stderr)
            return 1
        preview = {args.table: preview[args.table]}

    output = json.dumps(preview, indent=2, ensure_ascii=False)
    if args.out:
        Path(args.out).write_text(output + "\n", encoding="utf-8")
        print(f"Wrote note preview: {args.out}")
    else:
        print(output)
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    request, issues = _validated_request(args)
    if request is None:
        return 1
    if has_errors(issues):
        _print_issues(issues)
        return 1

    try:
        settings = _resolve_settings(args, request)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as exc:
        print(f"Failed to load settings: {exc}", file=sys.stderr)
        return 1

    if args.include_data is not None:
        request = {**request, "includeData": args.include_data}

    try:
        written = export_to_excel(request, args.out, user_settings=settings)
    except OSError as exc:
        print(f"Failed to write workbook: {exc}", file=sys.stderr)
        return 1
    print(f"Wrote workbook: {written}")
    return 0


def cmd_params(args: argparse.Namespace) -> int:
    params = [
        info
        for info in NOTE_PARAM_STATUS
        if (not args.status or info.status == args.status)
        and (not args.category or info.category == args.category)
    ]

    if args.format == "json":
        print(json.dumps([info.to_dict() for info in params], indent=2))
        return 0

    if not params:
        print("No note parameters matched.")
        return 0

    current = None
    for info in params:
        if info.category != current:
            current = info.category
            print(f"{NOTE_PARAM_CATEGORIES.get(current, current)}:")
        default = "on" if info.default_enabled else "off"
        print(f"  {info.key:26s} {info.status:12s} default:{default:4s} {info.label}")
    return 0


def cmd_store(args: argparse.Namespace) -> int:
    store = ProjectStore(args.base_dir)
    try:
        if args.store_command == "save":
            store.save_kv(args.project_id, args.key, args.value)
            print(f"Saved {args.key}.")
        elif args.store_command == "load":
            value = store.load_kv(args.project_id, args.key)
            if value is None:
                print(f"Key not found: {args.key}", file=sys.stderr)
                return 1
            print(value)
        elif args.store_command == "delete":
            if not store.delete_kv(args.project_id, args.key):
                print(f"Key not found: {args.key}", file=sys.stderr)
                return 1
            print(f"Deleted {args.key}.")
        elif args.store_command == "keys":
            for key in store.list_keys(args.project_id):
                print(key)
        elif args.store_command == "drop":
            if store.delete_project_db(args.project_id):
                print(f"Deleted project store: {args.project_id}")
            else:
                print(f"No project store for: {args.project_id}")
    except ProjectStoreError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    return 0


def _add_request_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("request", help="Path to export request (JSON or YAML)")
    p.add_argument("--schema", default=_default_schema_path(), help="Path to JSON schema")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="asn", description="AppSheet note export CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    validate_parser = sub.add_parser("validate", help="Validate an export request with schema + semantic rules")
    _add_request_args(validate_parser)
    validate_parser.set_defaults(func=cmd_validate)

    preview_parser = sub.add_parser("preview", help="Print the note each header cell would receive")
    _add_request_args(preview_parser)
    preview_parser.add_argument("--settings", help="Note parameter output settings (JSON or YAML)")
    preview_parser.add_argument("--table", help="Only show this table id")
    preview_parser.add_argument("--out", help="Output file for preview JSON")
    preview_parser.set_defaults(func=cmd_preview)

    export_parser = sub.add_parser("export", help="Write the Excel workbook with AppSheet notes")
    _add_request_args(export_parser)
    export_parser.add_argument("--out", required=True, help="Output .xlsx path")
    export_parser.add_argument("--settings", help="Note parameter output settings (JSON or YAML)")
    data_group = export_parser.add_mutually_exclusive_group()
    data_group.add_argument(
        "--include-data", dest="include_data", action="store_true", default=None,
        help="Write sample rows (overrides includeData in the request)",
    )
    data_group.add_argument(
        "--no-data", dest="include_data", action="store_false",
        help="Skip sample rows (overrides includeData in the request)",
    )
    export_parser.set_defaults(func=cmd_export)

    params_parser = sub.add_parser("params", help="List note parameters and their support status")
    params_parser.add_argument(
        "--status", choices=["verified", "unstable", "untested", "unsupported"], help="Filter by status"
    )
    params_parser.add_argument("--category", choices=sorted(NOTE_PARAM_CATEGORIES), help="Filter by category")
    params_parser.add_argument("--format", choices=["table", "json"], default="table", help="Output format")
    params_parser.set_defaults(func=cmd_params)

    store_parser = sub.add_parser("store", help="Per-project key/value store")
    store_parser.add_argument("--base-dir", default=_default_data_dir(), help=f"Data directory (env: {DATA_DIR_ENV})")
    store_sub = store_parser.add_subparsers(dest="store_command", required=True)

    save_parser = store_sub.add_parser("save", help="Save a value")
    save_parser.add_argument("project_id")
    save_parser.add_argument("key")
    save_parser.add_argument("value")

    load_parser = store_sub.add_parser("load", help="Print a stored value")
    load_parser.add_argument("project_id")
    load_parser.add_argument("key")

    delete_parser = store_sub.add_parser("delete", help="Delete a stored value")
    delete_parser.add_argument("project_id")
    delete_parser.add_argument("key")

    keys_parser = store_sub.add_parser("keys", help="List stored keys")
    keys_parser.add_argument("project_id")

    drop_parser = store_sub.add_parser("drop", help="Delete the project's database file")
    drop_parser.add_argument("project_id")

    store_parser.set_defaults(func=cmd_store)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
