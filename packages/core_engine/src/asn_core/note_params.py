"""AppSheet Note Parameter support registry and output gate.

Every key that can appear in an ``AppSheet:{...}`` header note is listed in
``NOTE_PARAM_STATUS`` together with how reliably AppSheet picks it up when a
workbook is imported:

  - verified:    emitted by default
  - unstable:    works in some imports, withheld by default
  - untested:    never checked against AppSheet, withheld by default
  - unsupported: AppSheet ignores or rejects it

When the user has saved output settings, those settings replace the status
policy entirely (see ``should_output_note_param``).
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

STATUS_VERIFIED = "verified"
STATUS_UNSTABLE = "unstable"
STATUS_UNTESTED = "untested"
STATUS_UNSUPPORTED = "unsupported"

NOTE_PARAM_STATUSES = (STATUS_VERIFIED, STATUS_UNSTABLE, STATUS_UNTESTED, STATUS_UNSUPPORTED)

DEFAULT_VALUE_KEY = "Default"
LEGACY_DEFAULT_VALUE_KEY = "DEFAULT"

# Keys emitted on export regardless of status when no user settings exist.
EXPORT_WHITELISTED_NOTE_PARAMS: frozenset = frozenset()

NOTE_PARAM_CATEGORIES: Dict[str, str] = {
    "basic": "Basic Settings",
    "identification": "Identification & Search",
    "validation": "Validation",
    "numeric": "Numeric Settings",
    "enum": "Enum Settings",
    "ref": "Ref Settings",
    "text": "Text Settings",
    "meta": "Meta Keys",
}


@dataclass(frozen=True)
class NoteParamInfo:
    key: str
    status: str
    category: str
    label: str
    related_field: Optional[str] = None

    @property
    def default_enabled(self) -> bool:
        return self.status in (STATUS_VERIFIED, STATUS_UNSTABLE)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "status": self.status,
            "category": self.category,
            "label": self.label,
            "related_field": self.related_field,
            "default_enabled": self.default_enabled,
        }


def _p(key: str, status: str, category: str, label: str, related_field: Optional[str] = None) -> NoteParamInfo:
    return NoteParamInfo(key=key, status=status, category=category, label=label, related_field=related_field)


NOTE_PARAM_STATUS: List[NoteParamInfo] = [
    _p("Type", STATUS_VERIFIED, "basic", "Column Type", "type"),
    _p("IsRequired", STATUS_UNTESTED, "basic", "Is Required", "required"),
    _p("Required_If", STATUS_UNTESTED, "basic", "Required If"),
    _p("IsHidden", STATUS_UNTESTED, "basic", "Is Hidden"),
    _p("Show_If", STATUS_UNTESTED, "basic", "Show If"),
    _p("DisplayName", STATUS_UNTESTED, "basic", "Display Name"),
    _p("Description", STATUS_UNTESTED, "basic", "Description", "description"),
    _p(DEFAULT_VALUE_KEY, STATUS_UNTESTED, "basic", "Default Value", "defaultValue"),
    _p("AppFormula", STATUS_UNTESTED, "basic", "App Formula"),
    _p("IsKey", STATUS_VERIFIED, "identification", "Is Key", "isKey"),
    _p("IsLabel", STATUS_UNSTABLE, "identification", "Is Label", "isLabel"),
    _p("IsScannable", STATUS_UNSUPPORTED, "identification", "Is Scannable"),
    _p("IsNfcScannable", STATUS_UNSUPPORTED, "identification", "Is NFC Scannable"),
    _p("Searchable", STATUS_UNSUPPORTED, "identification", "Searchable"),
    _p("IsSensitive", STATUS_UNSUPPORTED, "identification", "Is Sensitive"),
    _p("Valid_If", STATUS_UNTESTED, "validation", "Valid If", "pattern"),
    _p("Error_Message_If_Invalid", STATUS_UNTESTED, "validation", "Error Message If Invalid"),
    _p("Suggested_Values", STATUS_UNTESTED, "validation", "Suggested Values"),
    _p("Editable_If", STATUS_UNTESTED, "validation", "Editable If"),
    _p("Reset_If", STATUS_UNTESTED, "validation", "Reset If"),
    _p("MinValue", STATUS_UNTESTED, "numeric", "Min Value", "minValue"),
    _p("MaxValue", STATUS_UNTESTED, "numeric", "Max Value", "maxValue"),
    _p("DecimalDigits", STATUS_UNTESTED, "numeric", "Decimal Digits"),
    _p("NumericDigits", STATUS_UNTESTED, "numeric", "Numeric Digits"),
    _p("ShowThousandsSeparator", STATUS_UNTESTED, "numeric", "Show Thousands Separator"),
    _p("NumberDisplayMode", STATUS_UNTESTED, "numeric", "Number Display Mode"),
    _p("StepValue", STATUS_UNTESTED, "numeric", "Step Value"),
    _p("EnumValues", STATUS_UNTESTED, "enum", "Enum Values", "enumValues"),
    _p("BaseType", STATUS_UNTESTED, "enum", "Base Type"),
    _p("EnumInputMode", STATUS_UNTESTED, "enum", "Enum Input Mode"),
    _p("AllowOtherValues", STATUS_UNTESTED, "enum", "Allow Other Values"),
    _p("AutoCompleteOtherValues", STATUS_UNTESTED, "enum", "Auto Complete Other Values"),
    _p("ReferencedRootTableName", STATUS_UNTESTED, "enum", "Referenced Root Table Name"),
    _p("ReferencedTableName", STATUS_UNTESTED, "ref", "Referenced Table", "refTableId"),
    _p("ReferencedKeyColumn", STATUS_UNTESTED, "ref", "Referenced Key Column", "refColumnId"),
    _p("ReferencedType", STATUS_UNTESTED, "ref", "Referenced Type"),
    _p("IsAPartOf", STATUS_UNTESTED, "ref", "Is A Part Of"),
    _p("InputMode", STATUS_UNTESTED, "ref", "Input Mode"),
    _p("LongTextFormatting", STATUS_UNTESTED, "text", "Long Text Formatting"),
    _p("ItemSeparator", STATUS_UNTESTED, "text", "Item Separator"),
    _p("TypeAuxData", STATUS_UNTESTED, "meta", "Type Aux Data"),
    _p("BaseTypeQualifier", STATUS_UNTESTED, "meta", "Base Type Qualifier"),
]

_STATUS_BY_KEY: Dict[str, str] = {info.key: info.status for info in NOTE_PARAM_STATUS}


def canonical_note_param_key(key: str) -> str:
    if key == LEGACY_DEFAULT_VALUE_KEY:
        return DEFAULT_VALUE_KEY
    return key


def get_note_param_status(key: str) -> str:
    return _STATUS_BY_KEY.get(canonical_note_param_key(key), STATUS_UNTESTED)


def note_params_by_status(status: str) -> List[NoteParamInfo]:
    return [info for info in NOTE_PARAM_STATUS if info.status == status]


def note_params_by_category(category: str) -> List[NoteParamInfo]:
    return [info for info in NOTE_PARAM_STATUS if info.category == category]


def note_params_grouped_by_category() -> Dict[str, List[NoteParamInfo]]:
    grouped: Dict[str, List[NoteParamInfo]] = {}
    for info in NOTE_PARAM_STATUS:
        grouped.setdefault(info.category, []).append(info)
    return grouped


def default_note_param_output_settings() -> Dict[str, bool]:
    return {info.key: info.default_enabled for info in NOTE_PARAM_STATUS}


def is_export_whitelisted_note_param(key: str) -> bool:
    return key in EXPORT_WHITELISTED_NOTE_PARAMS


def should_output_note_param(key: str, user_settings: Optional[Mapping[str, Any]]) -> bool:
    """Decide whether ``key`` may be written into a note.

    Without saved settings only verified keys (and the export allow-list) pass.
    Saved settings are an explicit allow-list: unset keys are off whatever
    their status.
    """
    if user_settings is None:
        return get_note_param_status(key) == STATUS_VERIFIED or is_export_whitelisted_note_param(key)

    if canonical_note_param_key(key) == DEFAULT_VALUE_KEY:
        if DEFAULT_VALUE_KEY in user_settings:
            return user_settings[DEFAULT_VALUE_KEY] is True
        return user_settings.get(LEGACY_DEFAULT_VALUE_KEY) is True

    return user_settings.get(key) is True


def note_param_output_settings(raw: Any) -> Optional[Dict[str, bool]]:
    """Read output settings as an explicit allow-list.

    ``None`` only when ``raw`` is not a mapping. An empty mapping stays empty
    (nothing is emitted) and unregistered keys are kept so they can allow
    custom override keys. Non-boolean values are dropped and ``DEFAULT`` is
    folded into ``Default``.
    """
    if not isinstance(raw, Mapping):
        return None

    settings: Dict[str, bool] = {key: value for key, value in raw.items() if isinstance(value, bool)}
    legacy = settings.pop(LEGACY_DEFAULT_VALUE_KEY, None)
    if legacy is not None and DEFAULT_VALUE_KEY not in settings:
        settings[DEFAULT_VALUE_KEY] = legacy
    return settings

