"""
Per-table column visibility.

Each table's settings are kept in the preference storage under
`<table>ColumnsSettings` as a JSON list of `{"key", "visible"}` entries.
"""

import json
from collections import OrderedDict
from typing import Dict, List, Tuple

from schooladmin.exceptions import ValidationError
from schooladmin.logging_config import logger
from schooladmin.storage import MemoryStorage


# table -> ordered (column, title, visible by default)
DEFAULT_COLUMNS: Dict[str, List[Tuple[str, str, bool]]] = {
    "students": [
        ("full_name", "Full name", True),
        ("class_id", "Class", True),
        ("phone", "Phone", True),
        ("birth_date", "Birth date", True),
        ("gender", "Gender", True),
        ("address", "Address", True),
        ("note", "Note", True),
    ],
    "teachers": [
        ("full_name", "Full name", True),
        ("position", "Position", True),
        ("subject", "Subject", True),
        ("phone", "Phone", True),
        ("education", "Education", False),
        ("category", "Category", False),
        ("ped_experience", "Teaching exp.", False),
        ("total_experience", "Total exp.", False),
        ("work_start", "Work start", False),
        ("school_id", "School ID", False),
    ],
    "classes": [
        ("name", "Name", True),
        ("grade", "Grade", True),
    ],
}

# storage key prefix per table, as the settings were always named
_STORAGE_PREFIX = {"students": "student", "teachers": "teacher", "classes": "class"}


def column_titles(table: str) -> Dict[str, str]:
    return {key: title for key, title, _ in DEFAULT_COLUMNS.get(table, [])}


class ColumnPreferences:
    """Column visibility backed by a key/value storage"""

    def __init__(self, storage: MemoryStorage):
        self.storage = storage

    @staticmethod
    def _check_table(table: str) -> None:
        if table not in DEFAULT_COLUMNS:
            raise ValidationError(
                f"Unknown table '{table}'",
                fields={"table": f"expected one of {', '.join(DEFAULT_COLUMNS)}"},
            )

    @staticmethod
    def storage_key(table: str) -> str:
        return f"{_STORAGE_PREFIX[table]}ColumnsSettings"

    def settings(self, table: str) -> "OrderedDict[str, bool]":
        """Column -> visible, in display order"""
        self._check_table(table)
        current = OrderedDict((key, visible) for key, _, visible in DEFAULT_COLUMNS[table])

        raw = self.storage.get(self.storage_key(table))
        if not raw:
            return current
        try:
            saved = json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring unreadable column settings for {table}")
            return current

        if isinstance(saved, list):
            for entry in saved:
                if isinstance(entry, dict) and entry.get("key") in current:
                    current[entry["key"]] = bool(entry.get("visible", True))
        return current

    def _save(self, table: str, settings: "OrderedDict[str, bool]") -> None:
        payload = [{"key": key, "visible": visible} for key, visible in settings.items()]
        self.storage.set(self.storage_key(table), json.dumps(payload))

    def set_visible(self, table: str, column: str, visible: bool) -> None:
        settings = self.settings(table)
        if column not in settings:
            raise ValidationError(
                f"Unknown column '{column}' for {table}",
                fields={"column": f"expected one of {', '.join(settings)}"},
            )
        settings[column] = visible
        self._save(table, settings)

    def toggle(self, table: str, column: str) -> bool:
        """Flip a column and return its new visibility"""
        visible = not self.settings(table).get(column, False)
        self.set_visible(table, column, visible)
        return visible

    def reset(self, table: str) -> None:
        self._check_table(table)
        self.storage.remove(self.storage_key(table))

    def visible_columns(self, table: str) -> List[str]:
        return [key for key, visible in self.settings(table).items() if visible]
