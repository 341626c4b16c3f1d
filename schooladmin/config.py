"""
Console Configuration Management
"""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any

from dotenv import load_dotenv

from schooladmin.api import DEFAULT_BASE_URL
from schooladmin.dashboard import DEFAULT_SUMMARY_PATH


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ConsoleConfig:
    """Configuration for the school administration console"""

    # API settings
    api_base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0
    summary_path: str = DEFAULT_SUMMARY_PATH

    # Files (relative names live under config_dir)
    storage_file: str = "session.json"
    preferences_file: str = "preferences.json"
    history_file: str = ".schooladmin_history"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None
    json_logs: bool = False
    verbose: bool = False

    # Output
    page_size: int = 10

    config_dir: str = field(default_factory=lambda: str(Path.home() / ".schooladmin"))

    def __post_init__(self):
        Path(self.config_dir).expanduser().mkdir(parents=True, exist_ok=True)

    def _resolve(self, name: str) -> str:
        if os.path.isabs(name):
            return name
        return str(Path(self.config_dir).expanduser() / name)

    @property
    def storage_path(self) -> str:
        return self._resolve(self.storage_file)

    @property
    def preferences_path(self) -> str:
        return self._resolve(self.preferences_file)

    @property
    def history_path(self) -> str:
        return self._resolve(self.history_file)

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.verbose else self.log_level

    def load_from_file(self, config_path: str) -> None:
        """Load configuration from JSON file"""
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                data = json.load(f)
                for key, value in data.items():
                    if hasattr(self, key):
                        setattr(self, key, value)

    def save_to_file(self, config_path: Optional[str] = None) -> None:
        """Save configuration to JSON file"""
        path = Path(config_path or (Path(self.config_dir).expanduser() / "config.json"))
        with open(path, 'w') as f:
            json.dump(asdict(self), f, indent=2)

    @classmethod
    def load_default(cls, env_file: Optional[str] = None) -> "ConsoleConfig":
        """
        config.json, then .env, then SCHOOLADMIN_* environment variables.

        Variables already set in the environment win over the .env file.
        """
        load_dotenv(env_file)

        config_dir = os.environ.get("SCHOOLADMIN_CONFIG_DIR")
        config = cls(config_dir=config_dir) if config_dir else cls()

        default_config_path = Path(config.config_dir).expanduser() / "config.json"
        if default_config_path.exists():
            config.load_from_file(str(default_config_path))

        config._load_from_env()
        return config

    def _load_from_env(self) -> None:
        """Load configuration from environment variables"""
        env_mappings = {
            "SCHOOLADMIN_API_URL": "api_base_url",
            "SCHOOLADMIN_TIMEOUT": ("timeout", float),
            "SCHOOLADMIN_LOG_LEVEL": ("log_level", str.upper),
            "SCHOOLADMIN_LOG_FILE": "log_file",
            "SCHOOLADMIN_JSON_LOGS": ("json_logs", _as_bool),
            "SCHOOLADMIN_VERBOSE": ("verbose", _as_bool),
            "SCHOOLADMIN_CONFIG_DIR": "config_dir",
        }

        for env_var, mapping in env_mappings.items():
            value = os.environ.get(env_var)
            if value:
                if isinstance(mapping, tuple):
                    attr, converter = mapping
                    setattr(self, attr, converter(value))
                else:
                    setattr(self, mapping, value)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        return asdict(self)
