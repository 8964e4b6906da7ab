"""Tests for configuration management."""

from pathlib import Path

import pytest

from household_hub.config import ConfigManager


@pytest.fixture
def config_file(tmp_path):
    """Create a temporary config file."""
    config_path = tmp_path / "config.toml"
    config_path.write_text("""
[backend]
type = "rest"

[data]
storage_dir = "/custom/data"

[remote]
url = "https://project.example.test"
api_key = "anon-key"
timeout = 10

[session]
user_id = "u1"
household_id = "h1"

[history]
frequent_min_count = 3
frequent_limit = 5

[logging]
level = "DEBUG"
""")
    return config_path


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_load_config_file(self, config_file):
        """Load configuration from file."""
        manager = ConfigManager(config_path=config_file, environ={})

        assert manager.backend.type == "rest"
        assert manager.data.storage_dir == Path("/custom/data")
        assert manager.remote.url == "https://project.example.test"
        assert manager.remote.api_key == "anon-key"
        assert manager.remote.timeout == 10

    def test_session_and_history(self, config_file):
        manager = ConfigManager(config_path=config_file, environ={})

        assert manager.session.user_id == "u1"
        assert manager.session.household_id == "h1"
        assert manager.history.frequent_min_count == 3
        assert manager.history.frequent_limit == 5
        assert manager.logging.level == "DEBUG"

    def test_default_config(self, tmp_path):
        """Use defaults when config file doesn't exist."""
        manager = ConfigManager(config_path=tmp_path / "missing.toml", environ={})

        assert manager.backend.type == "sqlite"
        assert manager.data.storage_dir == Path.home() / "household-hub" / "data"
        assert manager.remote.url is None
        assert manager.remote.timeout == 30
        assert manager.session.user_id is None
        assert manager.history.frequent_min_count == 2
        assert manager.history.frequent_limit == 8
        assert manager.logging.level == "WARNING"

    def test_environment_overrides(self, config_file):
        manager = ConfigManager(
            config_path=config_file,
            environ={
                "HOUSEHOLD_HUB_BACKEND": "memory",
                "HOUSEHOLD_HUB_URL": "https://other.example.test",
                "HOUSEHOLD_HUB_API_KEY": "other-key",
                "HOUSEHOLD_HUB_USER": "u2",
                "HOUSEHOLD_HUB_HOUSEHOLD": "h2",
                "LOG_LEVEL": "ERROR",
            },
        )

        assert manager.backend.type == "memory"
        assert manager.remote.url == "https://other.example.test"
        assert manager.remote.api_key == "other-key"
        assert manager.session.user_id == "u2"
        assert manager.session.household_id == "h2"
        assert manager.logging.level == "ERROR"

    def test_get_dot_notation(self, config_file):
        """Get config value with dot notation."""
        manager = ConfigManager(config_path=config_file, environ={})

        assert manager.get("remote.url") == "https://project.example.test"
        assert manager.get("history.frequent_limit") == 5

    def test_get_missing_returns_default(self, config_file):
        manager = ConfigManager(config_path=config_file, environ={})

        assert manager.get("remote.nope") is None
        assert manager.get("nope.nope", "fallback") == "fallback"

    def test_finds_config_in_cwd(self, tmp_path):
        (tmp_path / "config.toml").write_text('[backend]\ntype = "memory"\n')

        manager = ConfigManager(environ={})

        assert manager.config_path == tmp_path / "config.toml"
        assert manager.backend.type == "memory"
