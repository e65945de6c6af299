"""
Configuration management with immutable snapshots.

Loads from: environment variables > settings.json > defaults
Provides immutable snapshots for session isolation.
"""

from pathlib import Path
from typing import List
import json
import os

from .types import ConfigSnapshot


# Defaults
DEFAULT_CONFIG = {
    # Transport
    "transport_command": [],
    "separator": " ",

    # Input
    "dictation_key": "f8",
    "command_key": "f9",
    "fix_key": "f10",

    # History (context for fix-last)
    "history_max_entries": 5,
    "history_max_age_seconds": 300.0,

    # LLM
    "llm_timeout": 15.0,
    "edit_prompt": "",
    "fix_prompt": "",

    # Diagnostics
    "debug": False,
    "metrics_enabled": True,
}

# Keys written back by save_settings()
USER_SETTINGS = (
    "transport_command",
    "dictation_key",
    "command_key",
    "fix_key",
    "edit_prompt",
    "fix_prompt",
)

API_KEY_VARS = {
    "GROQ_API_KEY": "groq_api_key",
    "GEMINI_API_KEY": "gemini_api_key",
    "OPENROUTER_API_KEY": "openrouter_api_key",
}


def _coerce(default, value):
    """Convert a settings.json value to the type of its default."""
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if isinstance(default, list):
        if isinstance(value, str):
            return value.split()
        return [str(v) for v in value]
    return type(default)(value)


class Config:
    """
    Single source of truth for all settings.

    Usage:
        config = Config.load()
        snapshot = config.snapshot()  # Immutable copy for session
    """

    def __init__(self, data_dir: Path = None):
        # Transport
        self.transport_command: List[str] = []
        self.separator: str = " "

        # Input
        self.dictation_key: str = "f8"
        self.command_key: str = "f9"
        self.fix_key: str = "f10"

        # History
        self.history_max_entries: int = 5
        self.history_max_age_seconds: float = 300.0

        # LLM
        self.llm_timeout: float = 15.0
        self.edit_prompt: str = ""
        self.fix_prompt: str = ""

        # API Keys
        self.groq_api_key: str = ""
        self.gemini_api_key: str = ""
        self.openrouter_api_key: str = ""

        # Diagnostics
        self.debug: bool = False
        self.metrics_enabled: bool = True

        # Paths
        self.data_dir: Path = data_dir or Path.home() / ".livescribe"
        self.metrics_file: Path = self.data_dir / "metrics.jsonl"
        self.settings_file: Path = self.data_dir / "settings.json"
        self.env_file: Path = self.data_dir / ".env"

    @classmethod
    def load(cls, data_dir: Path = None, project_dir: Path = None) -> "Config":
        """Load configuration from all sources."""
        config = cls(data_dir)
        project_dir = project_dir or Path(".")
        config._ensure_data_dir()
        config._load_env(project_dir)
        config._load_settings(project_dir)
        return config

    def _ensure_data_dir(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _load_env(self, project_dir: Path) -> None:
        """Load API keys from .env files, then the environment."""
        env_file = project_dir / ".env"
        if env_file.exists():
            self._parse_env_file(env_file)

        if self.env_file.exists():
            self._parse_env_file(self.env_file)

        # Environment variables override file values
        for var, attr in API_KEY_VARS.items():
            setattr(self, attr, os.getenv(var, getattr(self, attr)))

        debug = os.getenv("LIVESCRIBE_DEBUG")
        if debug is not None:
            self.debug = _coerce(False, debug)

    def _parse_env_file(self, env_file: Path) -> None:
        """Parse a .env file and extract API keys."""
        try:
            with open(env_file) as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith("#") or "=" not in line:
                        continue
                    key, value = line.split("=", 1)
                    key = key.strip()
                    value = value.strip().strip("'\"")

                    if key in API_KEY_VARS:
                        setattr(self, API_KEY_VARS[key], value)
        except OSError as e:
            print(f"[Config] Error loading {env_file}: {e}")

    def _load_settings(self, project_dir: Path) -> None:
        """Load settings.json from the project dir, then the data dir (overrides)."""
        project_settings = project_dir / "settings.json"
        if project_settings.exists():
            self._apply_settings_file(project_settings)

        if self.settings_file.exists():
            self._apply_settings_file(self.settings_file)

    def _apply_settings_file(self, settings_file: Path) -> None:
        """Apply settings from a JSON file, coercing to the default's type."""
        try:
            with open(settings_file) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            print(f"[Config] Error loading {settings_file}: {e}")
            return

        if not isinstance(data, dict):
            print(f"[Config] Ignoring {settings_file}: not a JSON object")
            return

        for key, default in DEFAULT_CONFIG.items():
            if key not in data:
                continue
            try:
                setattr(self, key, _coerce(default, data[key]))
            except (TypeError, ValueError) as e:
                print(f"[Config] Invalid value for {key}: {e}")

    def save_settings(self) -> None:
        """Save user-tunable settings to settings.json."""
        data = {key: getattr(self, key) for key in USER_SETTINGS}

        self._ensure_data_dir()
        with open(self.settings_file, "w") as f:
            json.dump(data, f, indent=2)

    def snapshot(self) -> ConfigSnapshot:
        """Return immutable copy for session isolation."""
        return ConfigSnapshot(
            transport_command=list(self.transport_command),
            separator=self.separator,
            dictation_key=self.dictation_key,
            command_key=self.command_key,
            fix_key=self.fix_key,
            history_max_entries=self.history_max_entries,
            history_max_age_seconds=self.history_max_age_seconds,
            llm_timeout=self.llm_timeout,
            groq_api_key=self.groq_api_key,
            gemini_api_key=self.gemini_api_key,
            openrouter_api_key=self.openrouter_api_key,
            edit_prompt=self.edit_prompt,
            fix_prompt=self.fix_prompt,
            debug=self.debug,
            metrics_enabled=self.metrics_enabled,
        )
