"""
Durable key/value storage for the session and preferences.

FileStorage keeps string values in a JSON file next to the config, readable
only by the owner. MemoryStorage is the same contract without a disk.
"""

import json
import os
from pathlib import Path
from typing import Dict, Optional

from schooladmin.logging_config import logger


class MemoryStorage:
    """In-process key/value storage"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, *keys: str) -> None:
        changed = False
        for key in keys:
            if key in self._data:
                del self._data[key]
                changed = True
        if changed:
            self._flush()

    def keys(self):
        return list(self._data.keys())

    def to_dict(self) -> Dict[str, str]:
        return dict(self._data)

    def _flush(self) -> None:
        """Persist the current data; nothing to do in memory"""


class FileStorage(MemoryStorage):
    """
    Key/value storage backed by a JSON file.

    The file is rewritten on every change and chmod'ed to 0600.
    """

    def __init__(self, path: str):
        self.path = Path(path).expanduser()
        super().__init__(self._load())

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read {self.path}: {e}; starting empty")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {self.path}: expected a JSON object")
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self._data:
            if self.path.exists():
                self.path.unlink()
            return

        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(self._data, f, indent=2, ensure_ascii=False)
        # Secure the file (Unix only)
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            logger.debug(f"Could not chmod {self.path}")
