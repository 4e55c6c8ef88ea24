"""Configuration management for chatline.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a typed Config object. Property getters provide safe access with
sensible defaults for the input pipeline, aliases and logging.

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Singleton accessor for the global Config instance.
"""

import os
from pathlib import Path
from typing import List, Optional

import structlog
import yaml
from dotenv import load_dotenv

from .aliases import DEFAULT_ALIASES
from .exceptions import ConfigurationError

logger = structlog.get_logger("chatline.input")

DEFAULT_NICK = "ircuser"
DEFAULT_PORT = 6667
DEFAULT_MAX_LINE_DEPTH = 16


class Config:
    """Central configuration manager for chatline.

    Loads settings.yaml and .env from the config directory. Settings
    are read once in __init__; nothing mutates them afterwards.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``$CHATLINE_CONFIG_DIR`` or ``<repo_root>/config/``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            env_dir = os.environ.get("CHATLINE_CONFIG_DIR")
            config_dir = (
                Path(env_dir).expanduser() if env_dir
                else Path(__file__).parent.parent / "config"
            )
        self.config_dir = config_dir

        env_file = config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML configuration file."""
        filepath = self.config_dir / filename
        if filepath.exists():
            with open(filepath, "r") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                logger.error("settings_not_a_mapping", file=filename)
                return {}
            return data
        return {}

    def validate(self) -> List[ConfigurationError]:
        """Validate settings at startup.

        Logs each problem but does not raise -- the client starts with
        defaults for anything that is wrong.

        Returns:
            The problems found, one ConfigurationError per setting.
        """
        problems: List[ConfigurationError] = []

        aliases = self.settings.get("aliases")
        if aliases is not None and not isinstance(aliases, str):
            problems.append(ConfigurationError(
                "aliases must be a string",
                setting_name="aliases",
                type=type(aliases).__name__,
            ))

        depth = self.settings.get("max_line_depth")
        if depth is not None and (not isinstance(depth, int) or depth < 1):
            problems.append(ConfigurationError(
                "max_line_depth must be >= 1",
                setting_name="max_line_depth",
                value=depth,
            ))

        port = self.settings.get("default_port")
        if port is not None and (not isinstance(port, int) or not 0 < port < 65536):
            problems.append(ConfigurationError(
                "default_port must be 1-65535",
                setting_name="default_port",
                value=port,
            ))

        log_config = self.settings.get("logging")
        if log_config is not None and not isinstance(log_config, dict):
            problems.append(ConfigurationError(
                "logging must be a mapping",
                setting_name="logging",
                type=type(log_config).__name__,
            ))

        for problem in problems:
            logger.error(
                "config_invalid_value",
                key=problem.setting_name,
                error=problem.message,
                **problem.context,
            )
        return problems

    @property
    def aliases(self) -> str:
        """Alias definition source. Falls back to the built-in set."""
        source = self.settings.get("aliases")
        if isinstance(source, str):
            return source
        return DEFAULT_ALIASES

    @property
    def default_nick(self) -> str:
        """Nick used by /server when none is given. Env CHATLINE_NICK wins."""
        return os.environ.get("CHATLINE_NICK") or self.settings.get("default_nick", DEFAULT_NICK)

    @property
    def default_port(self) -> int:
        """Port used by /server when none is given (default 6667)."""
        port = self.settings.get("default_port", DEFAULT_PORT)
        if not isinstance(port, int) or not 0 < port < 65536:
            return DEFAULT_PORT
        return port

    @property
    def max_line_depth(self) -> int:
        """How deep /lines may nest before expansion stops (default 16)."""
        depth = self.settings.get("max_line_depth", DEFAULT_MAX_LINE_DEPTH)
        if not isinstance(depth, int) or depth < 1:
            return DEFAULT_MAX_LINE_DEPTH
        return depth

    @property
    def autoconnect(self) -> Optional[str]:
        """Optional ``/server`` parameter string run at startup."""
        return self.settings.get("autoconnect")

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(configured).expanduser()
        return Path(__file__).parent.parent / "logs"

    def _logging_settings(self) -> dict:
        log_config = self.settings.get("logging")
        return log_config if isinstance(log_config, dict) else {}

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Controls console and combined file."""
        log_config = self._logging_settings()
        return log_config.get("level") or "INFO"

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"commands": "DEBUG"}."""
        log_config = self._logging_settings()
        return log_config.get("subsystem_levels") or {}

    @property
    def logging_max_file_size_mb(self) -> int:
        """Max size per log file in MB before rotation (default 10)."""
        log_config = self._logging_settings()
        return log_config.get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Number of rotated log files to keep (default 5)."""
        log_config = self._logging_settings()
        return log_config.get("backup_count", 5)


_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
