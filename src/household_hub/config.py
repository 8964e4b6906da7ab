"""Configuration management for Household Hub."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .logging import set_level


@dataclass
class BackendConfig:
    """Which data gateway to use."""

    type: str = "sqlite"


@dataclass
class DataConfig:
    """Local storage configuration."""

    storage_dir: Path = field(default_factory=lambda: Path.home() / "household-hub" / "data")


@dataclass
class RemoteConfig:
    """Hosted service connection settings."""

    url: str | None = None
    api_key: str | None = None
    timeout: int = 30


@dataclass
class SessionConfig:
    """Who is acting, and in which household."""

    user_id: str | None = None
    household_id: str | None = None


@dataclass
class HistoryConfig:
    """Purchase history suggestion settings."""

    frequent_min_count: int = 2
    frequent_limit: int = 8


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "WARNING"


@dataclass
class Config:
    """Complete application configuration."""

    backend: BackendConfig
    data: DataConfig
    remote: RemoteConfig
    session: SessionConfig
    history: HistoryConfig
    logging: LoggingConfig


class ConfigManager:
    """Manages application configuration from TOML files and the environment."""

    def __init__(self, config_path: Path | None = None, environ: dict[str, str] | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional explicit path to config file.
                        If not provided, searches standard locations.
            environ: Environment mapping used for overrides. Defaults to os.environ.
        """
        self.config_path = config_path or self._find_config()
        self._environ = os.environ if environ is None else environ
        self._config = self._load_config()
        set_level(self._config.logging.level)

    @property
    def backend(self) -> BackendConfig:
        return self._config.backend

    @property
    def data(self) -> DataConfig:
        return self._config.data

    @property
    def remote(self) -> RemoteConfig:
        return self._config.remote

    @property
    def session(self) -> SessionConfig:
        return self._config.session

    @property
    def history(self) -> HistoryConfig:
        return self._config.history

    @property
    def logging(self) -> LoggingConfig:
        return self._config.logging

    def _find_config(self) -> Path:
        """Find config file in standard locations."""
        locations = [
            Path.cwd() / "config.toml",
            Path.home() / ".config" / "household-hub" / "config.toml",
            Path.home() / ".household-hub" / "config.toml",
        ]

        for loc in locations:
            if loc.exists():
                return loc

        return Path.home() / ".config" / "household-hub" / "config.toml"

    def _load_config(self) -> Config:
        """Load configuration from TOML file, then apply environment overrides."""
        data: dict[str, Any] = {}
        if self.config_path.exists():
            with open(self.config_path, "rb") as f:
                data = tomllib.load(f)

        backend = data.get("backend", {})
        storage = data.get("data", {})
        remote = data.get("remote", {})
        session = data.get("session", {})
        history = data.get("history", {})
        logging_cfg = data.get("logging", {})
        env = self._environ

        storage_dir = storage.get("storage_dir")
        return Config(
            backend=BackendConfig(
                type=env.get("HOUSEHOLD_HUB_BACKEND") or backend.get("type", "sqlite"),
            ),
            data=DataConfig(
                storage_dir=Path(storage_dir).expanduser()
                if storage_dir
                else Path.home() / "household-hub" / "data",
            ),
            remote=RemoteConfig(
                url=env.get("HOUSEHOLD_HUB_URL") or remote.get("url"),
                api_key=env.get("HOUSEHOLD_HUB_API_KEY") or remote.get("api_key"),
                timeout=int(remote.get("timeout", 30)),
            ),
            session=SessionConfig(
                user_id=env.get("HOUSEHOLD_HUB_USER") or session.get("user_id"),
                household_id=env.get("HOUSEHOLD_HUB_HOUSEHOLD") or session.get("household_id"),
            ),
            history=HistoryConfig(
                frequent_min_count=int(history.get("frequent_min_count", 2)),
                frequent_limit=int(history.get("frequent_limit", 8)),
            ),
            logging=LoggingConfig(
                level=env.get("LOG_LEVEL") or logging_cfg.get("level", "WARNING"),
            ),
        )

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get config value by dot-notation path.

        Args:
            key_path: Dot-separated path like 'remote.url'
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        value: Any = self._config
        for key in key_path.split("."):
            if hasattr(value, key):
                value = getattr(value, key)
            else:
                return default

        return value if value is not None else default
