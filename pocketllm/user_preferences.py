"""
User Preferences Manager for PocketLLM

Persists small key-value state in config/user_preferences.json:
- per-model "installed" flags (set after a successful acquisition)
- the process-wide offline preference
- the last model the user loaded
"""

import json
import threading
from pathlib import Path
from typing import Any

from pocketllm.config import FORCE_OFFLINE_KEY, INSTALLED_KEY_PREFIX


class UserPreferencesManager:
    """
    JSON-backed key-value store.

    Reads are served from memory; every write is saved immediately. A
    missing or corrupted file behaves like an empty store.
    """

    def __init__(self, preferences_file: Path):
        """
        Initialize the preferences manager.

        Args:
            preferences_file: Path to user_preferences.json
        """
        self.preferences_file = Path(preferences_file)
        self._lock = threading.Lock()
        self._preferences = self._load_preferences()

    def _load_preferences(self) -> dict[str, Any]:
        try:
            if self.preferences_file.exists():
                with open(self.preferences_file, encoding='utf-8') as f:
                    prefs = json.load(f)
                if isinstance(prefs, dict):
                    return prefs
        except (OSError, json.JSONDecodeError):
            pass
        return {}

    def _save_preferences(self) -> None:
        try:
            self.preferences_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.preferences_file, 'w', encoding='utf-8') as f:
                json.dump(self._preferences, f, indent=2)
        except OSError as e:
            from pocketllm.logging_config import debug_log
            debug_log(f"[PREFS] Could not save user preferences: {e}")

    # =========================================================================
    # Key-value contract
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._preferences.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Store a value and persist immediately.

        Raises:
            ValueError: If value fails validation for a known key.
        """
        if key == "last_used_model" and value is not None and not isinstance(value, str):
            raise ValueError("last_used_model must be a model id string")

        with self._lock:
            self._preferences[key] = value
            self._save_preferences()

    def get_bool(self, key: str) -> bool:
        """Read a boolean flag; unknown keys read as False."""
        return bool(self.get(key, False))

    def set_bool(self, key: str, value: bool) -> None:
        self.set(key, bool(value))

    # =========================================================================
    # Model flags
    # =========================================================================

    def is_model_installed(self, model_id: str) -> bool:
        return self.get_bool(f"{INSTALLED_KEY_PREFIX}{model_id}")

    def mark_model_installed(self, model_id: str) -> None:
        self.set_bool(f"{INSTALLED_KEY_PREFIX}{model_id}", True)

    def installed_models(self) -> list[str]:
        """Ids of every model with a true installed flag."""
        with self._lock:
            return sorted(
                key[len(INSTALLED_KEY_PREFIX):]
                for key, value in self._preferences.items()
                if key.startswith(INSTALLED_KEY_PREFIX) and value
            )

    @property
    def force_offline_mode(self) -> bool:
        """Never attempt network acquisition when True."""
        return self.get_bool(FORCE_OFFLINE_KEY)

    @force_offline_mode.setter
    def force_offline_mode(self, value: bool) -> None:
        self.set_bool(FORCE_OFFLINE_KEY, value)

    def toggle_offline_mode(self) -> bool:
        """Flip the offline preference and return the new value."""
        self.force_offline_mode = not self.force_offline_mode
        return self.force_offline_mode

    def get_last_used_model(self) -> str | None:
        return self.get("last_used_model")

    def set_last_used_model(self, model_id: str) -> None:
        self.set("last_used_model", model_id)


# Global instance
_user_prefs = None


def get_user_preferences(preferences_file: Path = None) -> UserPreferencesManager:
    """
    Get the global UserPreferencesManager instance (singleton pattern).

    Args:
        preferences_file: Optional path to preferences file (only used on first call)
    """
    global _user_prefs

    if _user_prefs is None:
        if preferences_file is None:
            from pocketllm.config import PREFERENCES_FILE
            preferences_file = PREFERENCES_FILE

        _user_prefs = UserPreferencesManager(preferences_file)

    return _user_prefs
