import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "packages" / "core_engine" / "src"))

from asn_core.note_params import (
    EXPORT_WHITELISTED_NOTE_PARAMS,
    NOTE_PARAM_CATEGORIES,
    NOTE_PARAM_STATUS,
    STATUS_UNSTABLE,
    STATUS_UNSUPPORTED,
    STATUS_UNTESTED,
    STATUS_VERIFIED,
    canonical_note_param_key,
    default_note_param_output_settings,
    get_note_param_status,
    note_param_output_settings,
    note_params_by_category,
    note_params_by_status,
    note_params_grouped_by_category,
    should_output_note_param,
)


class RegistryTests(unittest.TestCase):
    def test_keys_are_unique(self) -> None:
        keys = [info.key for info in NOTE_PARAM_STATUS]
        self.assertEqual(len(keys), len(set(keys)))

    def test_every_category_is_known(self) -> None:
        for info in NOTE_PARAM_STATUS:
            self.assertIn(info.category, NOTE_PARAM_CATEGORIES)

    def test_verified_keys(self) -> None:
        self.assertEqual(["Type", "IsKey"], [info.key for info in note_params_by_status(STATUS_VERIFIED)])

    def test_statuses(self) -> None:
        self.assertEqual(STATUS_UNSTABLE, get_note_param_status("IsLabel"))
        self.assertEqual(STATUS_UNSUPPORTED, get_note_param_status("IsScannable"))
        self.assertEqual(STATUS_UNTESTED, get_note_param_status("Valid_If"))

    def test_unknown_key_is_untested(self) -> None:
        self.assertEqual(STATUS_UNTESTED, get_note_param_status("SomethingNew"))

    def test_legacy_default_alias(self) -> None:
        self.assertEqual("Default", canonical_note_param_key("DEFAULT"))
        self.assertEqual(get_note_param_status("Default"), get_note_param_status("DEFAULT"))

    def test_formula_and_aux_keys_registered(self) -> None:
        keys = {info.key for info in NOTE_PARAM_STATUS}
        for key in ("Show_If", "Required_If", "Editable_If", "Reset_If", "TypeAuxData"):
            self.assertIn(key, keys)

    def test_grouping_preserves_registry_order(self) -> None:
        grouped = note_params_grouped_by_category()
        self.assertEqual(sum(len(v) for v in grouped.values()), len(NOTE_PARAM_STATUS))
        self.assertEqual(grouped["ref"], note_params_by_category("ref"))
        self.assertEqual("ReferencedTableName", grouped["ref"][0].key)

    def test_default_output_settings(self) -> None:
        settings = default_note_param_output_settings()
        self.assertTrue(settings["Type"])
        self.assertTrue(settings["IsKey"])
        self.assertTrue(settings["IsLabel"])
        self.assertFalse(settings["Valid_If"])
        self.assertFalse(settings["IsScannable"])

    def test_to_dict(self) -> None:
        info = NOTE_PARAM_STATUS[0]
        payload = info.to_dict()
        self.assertEqual("Type", payload["key"])
        self.assertEqual("verified", payload["status"])
        self.assertTrue(payload["default_enabled"])


class OutputGateTests(unittest.TestCase):
    def test_no_settings_only_verified(self) -> None:
        self.assertTrue(should_output_note_param("Type", None))
        self.assertTrue(should_output_note_param("IsKey", None))
        self.assertFalse(should_output_note_param("IsLabel", None))
        self.assertFalse(should_output_note_param("Valid_If", None))
        self.assertFalse(should_output_note_param("IsScannable", None))
        self.assertFalse(should_output_note_param("Unknown", None))

    def test_allow_list_is_empty(self) -> None:
        self.assertEqual(frozenset(), EXPORT_WHITELISTED_NOTE_PARAMS)

    def test_settings_replace_status_policy(self) -> None:
        settings = {"IsLabel": True, "Type": False}
        self.assertTrue(should_output_note_param("IsLabel", settings))
        self.assertFalse(should_output_note_param("Type", settings))
        self.assertFalse(should_output_note_param("IsKey", settings))

    def test_only_strict_true_passes(self) -> None:
        self.assertFalse(should_output_note_param("Type", {"Type": "yes"}))
        self.assertFalse(should_output_note_param("Type", {"Type": 1}))

    def test_unsupported_key_can_be_forced(self) -> None:
        self.assertTrue(should_output_note_param("IsScannable", {"IsScannable": True}))

    def test_default_alias_either_spelling(self) -> None:
        self.assertTrue(should_output_note_param("Default", {"DEFAULT": True}))
        self.assertTrue(should_output_note_param("DEFAULT", {"Default": True}))
        self.assertFalse(should_output_note_param("Default", {}))

    def test_current_spelling_wins(self) -> None:
        self.assertFalse(should_output_note_param("Default", {"Default": False, "DEFAULT": True}))
        self.assertTrue(should_output_note_param("DEFAULT", {"Default": True, "DEFAULT": False}))


class OutputSettingsTests(unittest.TestCase):
    def test_non_mapping_is_none(self) -> None:
        self.assertIsNone(note_param_output_settings(None))
        self.assertIsNone(note_param_output_settings(["Type"]))

    def test_empty_map_stays_explicit(self) -> None:
        self.assertEqual({}, note_param_output_settings({}))
        self.assertEqual({}, note_param_output_settings({"Type": "on"}))

    def test_keeps_boolean_entries_including_unregistered(self) -> None:
        settings = note_param_output_settings({"Type": True, "IsLabel": False, "Custom": True, "Valid_If": 1})
        self.assertEqual({"Type": True, "IsLabel": False, "Custom": True}, settings)

    def test_migrates_legacy_default(self) -> None:
        self.assertEqual({"Default": True}, note_param_output_settings({"DEFAULT": True}))

    def test_current_default_not_overwritten(self) -> None:
        settings = note_param_output_settings({"DEFAULT": True, "Default": False})
        self.assertEqual({"Default": False}, settings)


if __name__ == "__main__":
    unittest.main()
