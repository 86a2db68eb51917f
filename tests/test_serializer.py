import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "packages" / "core_engine" / "src"))

from asn_core.sample_data import json_value_to_string
from asn_core.serializer import EMPTY_NOTE, render_note, serialize_note_value


class SerializerTests(unittest.TestCase):
    def test_scalars(self) -> None:
        self.assertEqual("null", serialize_note_value(None))
        self.assertEqual("true", serialize_note_value(True))
        self.assertEqual("false", serialize_note_value(False))
        self.assertEqual("42", serialize_note_value(42))
        self.assertEqual("12.5", serialize_note_value(12.5))
        self.assertEqual("null", serialize_note_value(float("nan")))

    def test_strings_are_escaped(self) -> None:
        self.assertEqual('"a\\"b"', serialize_note_value('a"b'))
        self.assertEqual('"line\\nbreak"', serialize_note_value("line\nbreak"))
        self.assertEqual('"顧客"', serialize_note_value("顧客"))

    def test_compact_insertion_order(self) -> None:
        value = {"Type": "Enum", "EnumValues": ["A", "B"], "IsKey": False}
        self.assertEqual('{"Type":"Enum","EnumValues":["A","B"],"IsKey":false}', serialize_note_value(value))

    def test_nested(self) -> None:
        self.assertEqual('{"a":{"b":[1,null]}}', serialize_note_value({"a": {"b": [1, None]}}))

    def test_render_note(self) -> None:
        self.assertEqual(EMPTY_NOTE, render_note({}))
        self.assertEqual('AppSheet:{"Type":"Text"}', render_note({"Type": "Text"}))


class SampleDataTests(unittest.TestCase):
    def test_values(self) -> None:
        self.assertEqual("", json_value_to_string(None))
        self.assertEqual("Yes", json_value_to_string(True))
        self.assertEqual("No", json_value_to_string(False))
        self.assertEqual("40", json_value_to_string(40))
        self.assertEqual("12.5", json_value_to_string(12.5))
        self.assertEqual("text", json_value_to_string("text"))
        self.assertEqual("[Object]", json_value_to_string({"a": 1}))

    def test_lists_are_joined(self) -> None:
        self.assertEqual("gift, rush", json_value_to_string(["gift", "rush"]))
        self.assertEqual("1, Yes, ", json_value_to_string([1, True, None]))


if __name__ == "__main__":
    unittest.main()
