"""Per-document style preferences.

Preferences (font family, size, weight, alignment) are stored in one JSON
file in the user's config directory, keyed by the absolute path of the
document they belong to.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

from .constants import EditorConstants
from .state import validate_style_value

logger = logging.getLogger(__name__)

STYLE_KEYS = ("font_family", "font_size", "font_weight", "text_align")


class SettingsPersistence:
    """Per-document preference store backed by one JSON file.

    Args:
        config_dir: Directory holding the settings file. Defaults to the
            platform's user config directory for pagewright.
    """

    def __init__(self, config_dir: Optional[os.PathLike] = None):
        if config_dir is None:
            config_dir = platformdirs.user_config_dir(EditorConstants.SETTINGS_APP_NAME)
        self._settings_file = Path(config_dir) / EditorConstants.SETTINGS_FILENAME
        self._documents: Optional[Dict[str, Dict[str, Any]]] = None

    @property
    def settings_file(self) -> Path:
        return self._settings_file

    def _read_documents(self) -> Dict[str, Dict[str, Any]]:
        """Document path -> settings, read once and cached.

        A missing file means no preferences; an unreadable one is logged
        and treated the same way.
        """
        if self._documents is None:
            self._documents = {}
            if self._settings_file.exists():
                try:
                    with open(self._settings_file, 'r', encoding='utf-8') as f:
                        data = json.load(f)
                except (json.JSONDecodeError, OSError) as e:
                    logger.warning(f"Ignoring unreadable preferences {self._settings_file}: {e}")
                    data = {}
                if isinstance(data, dict):
                    self._documents = data
                else:
                    logger.warning(f"Ignoring preferences {self._settings_file}: not a JSON object")
        return self._documents

    def _write_documents(self, documents: Dict[str, Dict[str, Any]]) -> bool:
        temp_file = self._settings_file.with_suffix('.tmp')
        try:
            self._settings_file.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(documents, f, indent=2)
            temp_file.replace(self._settings_file)
        except OSError as e:
            logger.warning(f"Could not write preferences to {self._settings_file}: {e}")
            if temp_file.exists():
                temp_file.unlink()
            return False
        self._documents = documents
        return True

    def load_settings(self, document_path: Optional[str]) -> Dict[str, Any]:
        """Preferences stored for a document, or {} (also for unsaved documents)."""
        if document_path is None:
            return {}
        stored = self._read_documents().get(os.path.abspath(document_path), {})
        if not isinstance(stored, dict):
            logger.warning(f"Ignoring malformed preferences for {document_path}")
            return {}
        return dict(stored)

    def save_settings(self, document_path: Optional[str], settings: Dict[str, Any]) -> bool:
        """Store preferences for a document. Returns False for unsaved documents or on I/O errors."""
        if document_path is None:
            return False
        documents = dict(self._read_documents())
        documents[os.path.abspath(document_path)] = settings
        return self._write_documents(documents)

    def validate_setting(self, key: str, value: Any) -> bool:
        """None means "not set" and unknown keys pass through untouched."""
        if value is None:
            return True
        if key in STYLE_KEYS:
            return validate_style_value(key, value)
        if key == 'honor_manual_breaks':
            return isinstance(value, bool)
        return True

    def clear_cache(self) -> None:
        self._documents = None


# Global instance
_persistence: Optional[SettingsPersistence] = None


def get_persistence() -> SettingsPersistence:
    """Get the global settings persistence instance."""
    global _persistence
    if _persistence is None:
        _persistence = SettingsPersistence()
    return _persistence
