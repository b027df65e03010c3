"""Configuration management for Cardwise application."""

import json
from pathlib import Path
from typing import Dict, Any, Optional


DEFAULTS: Dict[str, Any] = {
    "db_path": None,            # None -> <config_dir>/cardwise.sqlite
    "tag_cache_size": 50,
    "stats_days": 7,
    "rollover_hour": 0,         # hour of day when a new study day starts
    "audio_enabled": True,
    "window_geometry": None,
}


class ConfigManager:
    """Manages application configuration with persistent storage."""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else Path.home() / ".cardwise"
        self.config_file = self.config_dir / "config.json"
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file, falling back to defaults."""
        loaded: Dict[str, Any] = {}
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r') as f:
                    loaded = json.load(f)
            except (json.JSONDecodeError, IOError) as e:
                print(f"Warning: Could not read config, using defaults: {e}")
            if not isinstance(loaded, dict):
                loaded = {}

        merged = dict(DEFAULTS)
        merged.update(loaded)
        return merged

    def _save_config(self) -> None:
        """Save configuration to file."""
        try:
            with open(self.config_file, 'w') as f:
                json.dump(self._config, f, indent=2)
        except IOError as e:
            print(f"Warning: Could not save config: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value and save."""
        self._config[key] = value
        self._save_config()

    def get_db_path(self) -> str:
        """Database file path."""
        return self.get("db_path") or str(self.config_dir / "cardwise.sqlite")

    def get_tag_cache_size(self) -> int:
        """Tag cache capacity (at least 1)."""
        try:
            return max(1, int(self.get("tag_cache_size", DEFAULTS["tag_cache_size"])))
        except (TypeError, ValueError):
            return DEFAULTS["tag_cache_size"]

    def set_tag_cache_size(self, size: int) -> None:
        self.set("tag_cache_size", max(1, int(size)))

    def get_stats_days(self) -> int:
        """How many days the statistics screen shows."""
        try:
            return max(1, int(self.get("stats_days", DEFAULTS["stats_days"])))
        except (TypeError, ValueError):
            return DEFAULTS["stats_days"]

    def set_stats_days(self, days: int) -> None:
        self.set("stats_days", max(1, int(days)))

    def get_rollover_hour(self) -> int:
        """Hour (0-23) at which statistics start counting a new day."""
        try:
            return min(23, max(0, int(self.get("rollover_hour", DEFAULTS["rollover_hour"]))))
        except (TypeError, ValueError):
            return DEFAULTS["rollover_hour"]

    def set_rollover_hour(self, hour: int) -> None:
        self.set("rollover_hour", min(23, max(0, int(hour))))

    def is_audio_enabled(self) -> bool:
        return bool(self.get("audio_enabled", True))

    def set_audio_enabled(self, enabled: bool) -> None:
        self.set("audio_enabled", bool(enabled))

    @property
    def cache_dir(self) -> Path:
        """Directory for decoded attachment files."""
        return self.config_dir / "attachment_cache"


# Global config manager instance
config = ConfigManager()
