#!/usr/bin/env python3
"""Tests for the JSON configuration manager."""

import json
import sys
import tempfile
from pathlib import Path

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from cardwise.utils.config import ConfigManager


def test_defaults():
    with tempfile.TemporaryDirectory() as temp_dir:
        manager = ConfigManager(Path(temp_dir))

        assert manager.get_tag_cache_size() == 50
        assert manager.get_stats_days() == 7
        assert manager.get_rollover_hour() == 0
        assert manager.is_audio_enabled()
        assert manager.get_db_path() == str(Path(temp_dir) / "cardwise.sqlite")
        assert manager.cache_dir == Path(temp_dir) / "attachment_cache"


def test_settings_persist():
    with tempfile.TemporaryDirectory() as temp_dir:
        manager = ConfigManager(Path(temp_dir))
        manager.set_tag_cache_size(20)
        manager.set_stats_days(14)
        manager.set_rollover_hour(4)
        manager.set_audio_enabled(False)

        reloaded = ConfigManager(Path(temp_dir))
        assert reloaded.get_tag_cache_size() == 20
        assert reloaded.get_stats_days() == 14
        assert reloaded.get_rollover_hour() == 4
        assert not reloaded.is_audio_enabled()


def test_invalid_values_fall_back():
    with tempfile.TemporaryDirectory() as temp_dir:
        config_file = Path(temp_dir) / "config.json"
        config_file.write_text(json.dumps({"tag_cache_size": "lots", "stats_days": 0, "rollover_hour": 30}))

        manager = ConfigManager(Path(temp_dir))
        assert manager.get_tag_cache_size() == 50
        assert manager.get_stats_days() == 1
        assert manager.get_rollover_hour() == 23


def test_corrupt_file_uses_defaults():
    with tempfile.TemporaryDirectory() as temp_dir:
        (Path(temp_dir) / "config.json").write_text("{not json")

        manager = ConfigManager(Path(temp_dir))
        assert manager.get("stats_days") == 7


if __name__ == "__main__":
    import pytest
    sys.exit(pytest.main([__file__, "-v"]))
