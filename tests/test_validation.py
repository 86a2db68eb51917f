import copy
import json
import sys
import tempfile
import unittest
from pathlib import Path

import yaml

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "packages" / "core_engine" / "src"))

from asn_core import lint_issues, load_export_request, load_note_param_settings, load_schema, schema_issues
from asn_core.issues import Issue, has_errors, severity_counts, to_lines
from asn_core.loader import note_settings_from_request


class ValidationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.fixture = ROOT / "tests" / "fixtures" / "commerce.export.json"
        self.schema = load_schema(str(ROOT / "schemas" / "export-request.schema.json"))
        self.request = load_export_request(str(self.fixture))

    def test_fixture_passes_schema(self) -> None:
        self.assertEqual([], schema_issues(self.request, self.schema))

    def test_schema_reports_missing_fields(self) -> None:
        request = copy.deepcopy(self.request)
        del request["tables"][0]["columns"][0]["type"]
        request["includeData"] = "yes"
        issues = schema_issues(request, self.schema)
        self.assertTrue(has_errors(issues))
        self.assertEqual({"SCHEMA_VALIDATION_FAILED"}, {issue.code for issue in issues})
        paths = [issue.path for issue in issues]
        self.assertIn("/includeData", paths)
        self.assertIn("/tables/0/columns/0", paths)

    def test_schema_rejects_non_boolean_settings(self) -> None:
        request = copy.deepcopy(self.request)
        request["noteParamOutputSettings"] = {"Type": "on"}
        self.assertTrue(has_errors(schema_issues(request, self.schema)))

    def test_fixture_lint(self) -> None:
        issues = lint_issues(self.request)
        self.assertFalse(has_errors(issues))
        codes = {issue.code: issue for issue in issues}
        self.assertEqual("info", codes["MULTIPLE_LABEL_COLUMNS"].severity)
        self.assertIn("'Name'", codes["MULTIPLE_LABEL_COLUMNS"].message)
        self.assertEqual("/tables/1/columns/1", codes["REF_COLUMN_UNKNOWN"].path)

    def test_duplicate_ids_are_errors(self) -> None:
        request = copy.deepcopy(self.request)
        request["tables"][1]["id"] = "t_customers"
        request["tables"][0]["columns"][1]["id"] = "c_id"
        codes = [issue.code for issue in lint_issues(request) if issue.severity == "error"]
        self.assertEqual(["DUPLICATE_TABLE_ID", "DUPLICATE_COLUMN_ID"], codes)

    def test_ref_warnings(self) -> None:
        request = {
            "tables": [
                {
                    "id": "t",
                    "name": "T",
                    "columns": [
                        {"id": "a", "name": "A", "type": "Ref", "constraints": {}},
                        {"id": "b", "name": "B", "type": "Ref", "constraints": {"refTableId": "nope"}},
                    ],
                }
            ]
        }
        codes = [issue.code for issue in lint_issues(request)]
        self.assertEqual(["REF_TABLE_MISSING", "REF_TABLE_UNKNOWN"], codes)

    def test_raw_note_without_prefix(self) -> None:
        request = {
            "tables": [
                {
                    "id": "t",
                    "name": "T",
                    "columns": [
                        {"id": "a", "name": "A", "type": "Text", "appSheet": {"__AppSheetNoteOverride": '{"Type":"Text"}'}},
                    ],
                }
            ]
        }
        issues = lint_issues(request)
        self.assertEqual(["RAW_NOTE_PREFIX_MISSING"], [issue.code for issue in issues])
        self.assertEqual("/tables/0/columns/0/appSheet", issues[0].path)

    def test_issue_helpers(self) -> None:
        issues = [Issue("warning", "X", "first"), Issue("info", "Y", "second", "/tables")]
        self.assertEqual({"error": 0, "warning": 1, "info": 1}, severity_counts(issues))
        self.assertEqual(["[WARNING] X /: first", "[INFO] Y /tables: second"], to_lines(issues))
        self.assertEqual({"severity": "info", "code": "Y", "message": "second", "path": "/tables"}, issues[1].to_dict())


class LoaderTests(unittest.TestCase):
    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_export_request("/nonexistent/request.json")

    def test_yaml_request(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "request.yaml"
            path.write_text(yaml.safe_dump({"tables": [], "includeData": False}), encoding="utf-8")
            self.assertEqual({"tables": [], "includeData": False}, load_export_request(str(path)))

    def test_non_mapping_root(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "request.json"
            path.write_text("[1, 2]", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_export_request(str(path))

    def test_request_settings(self) -> None:
        self.assertIsNone(note_settings_from_request({"tables": []}))
        self.assertIsNone(note_settings_from_request({"noteParamOutputSettings": None}))
        self.assertEqual({"Default": True}, note_settings_from_request({"noteParamOutputSettings": {"DEFAULT": True}}))

    def test_empty_request_settings_stay_explicit(self) -> None:
        self.assertEqual({}, note_settings_from_request({"noteParamOutputSettings": {}}))
        self.assertIsNone(note_settings_from_request({"noteParamOutputSettings": ["Type"]}))

    def test_request_settings_keep_custom_keys(self) -> None:
        settings = note_settings_from_request({"noteParamOutputSettings": {"Custom": True, "Type": "on"}})
        self.assertEqual({"Custom": True}, settings)

    def test_request_settings_current_default_wins(self) -> None:
        raw = {"noteParamOutputSettings": {"Default": False, "DEFAULT": True}}
        self.assertEqual({"Default": False}, note_settings_from_request(raw))

    def test_settings_file_flat_and_nested(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            flat = Path(tmp) / "flat.json"
            flat.write_text(json.dumps({"Type": True, "IsLabel": True}), encoding="utf-8")
            nested = Path(tmp) / "nested.yaml"
            nested.write_text("noteParamOutputSettings:\n  Type: false\n  Bogus: true\n", encoding="utf-8")
            self.assertEqual({"Type": True, "IsLabel": True}, load_note_param_settings(str(flat)))
            self.assertEqual({"Type": False, "Bogus": True}, load_note_param_settings(str(nested)))


if __name__ == "__main__":
    unittest.main()
