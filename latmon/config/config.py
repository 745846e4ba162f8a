"""Configuration management for latmon.

Provides centralized configuration with TOML support and validation, loaded
hierarchically from defaults → config file → environment → CLI overrides.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import toml

from latmon.models import Config
from latmon.utils.exceptions import ConfigurationError
from latmon.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

# Global configuration instance
_config_manager: ConfigManager | None = None

# Mapping of environment variables to config paths
ENV_MAPPINGS: dict[str, str] = {
    # API
    "LATMON_CHAIN_ID": "api.chain_id",
    "LATMON_ROOT_URL": "api.root_url",
    "LATMON_REQUEST_TIMEOUT": "api.request_timeout",
    # Poller
    "LATMON_MAX_ITERATIONS": "poller.max_iterations",
    "LATMON_RETRY_BASE_DELAY": "poller.retry.base_delay",
    "LATMON_RETRY_MULTIPLIER": "poller.retry.multiplier",
    "LATMON_RETRY_MAX_DELAY": "poller.retry.max_delay",
    "LATMON_RETRY_JITTER": "poller.retry.jitter",
    "LATMON_RETRY_MAX_ATTEMPTS": "poller.retry.max_attempts",
    # Series
    "LATMON_SERIES_MAX_LENGTH": "series.max_length",
    # Dashboard
    "LATMON_DEFAULT_MODE": "dashboard.default_mode",
    "LATMON_UNHEALTHY_LATENCY": "dashboard.unhealthy_latency",
    "LATMON_BAR_WIDTH": "dashboard.bar_width",
    # Observability
    "LATMON_LOG_LEVEL": "observability.log_level",
    "LATMON_LOG_FILE": "observability.log_file",
    "LATMON_STRUCTURED_LOGGING": "observability.structured_logging",
    "LATMON_LOG_CORRELATION_ID": "observability.log_correlation_id",
}

# String-valued options that must never be coerced to numbers or booleans
_STRING_PATHS = frozenset(
    {
        "api.chain_id",
        "api.root_url",
        "dashboard.default_mode",
        "observability.log_level",
        "observability.log_file",
    }
)


_BOOL_PATHS = frozenset(
    {
        "observability.structured_logging",
        "observability.log_correlation_id",
    }
)


def _parse_env_value(raw: str, path: str) -> bool | int | float | str:
    if path in _STRING_PATHS:
        return raw
    if path in _BOOL_PATHS:
        low = raw.lower()
        if low in {"true", "1", "yes", "on"}:
            return True
        if low in {"false", "0", "no", "off"}:
            return False
        return raw
    try:
        if "." in raw:
            return float(raw)
        return int(raw)
    except ValueError:
        return raw


def _set_nested(d: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    cur = d
    for p in parts[:-1]:
        cur = cur.setdefault(p, {})
    cur[parts[-1]] = value


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(
        self,
        config_file: str | Path | None = None,
        overrides: dict[str, Any] | None = None,
    ):
        """Initialize configuration manager.

        Args:
            config_file: Path to TOML config file. If None, searches for latmon.toml
            overrides: Dotted-path overrides applied last (CLI options)

        """
        self.overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
        self.config_file = self._find_config_file(config_file)
        self.config = self._load_config()

    def _find_config_file(
        self,
        config_file: str | Path | None,
    ) -> Path | None:
        """Find configuration file in standard locations."""
        if config_file:
            return Path(config_file)

        search_paths = [
            Path.cwd() / "latmon.toml",
            Path.home() / ".config" / "latmon" / "latmon.toml",
            Path.home() / ".latmon.toml",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def _load_config(self) -> Config:
        """Load configuration from file, environment and overrides."""
        config_data: dict[str, Any] = {}

        if self.config_file is not None:
            if not self.config_file.exists():
                msg = f"Configuration file not found: {self.config_file}"
                raise ConfigurationError(msg)
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    config_data.update(toml.load(f))
            except toml.TomlDecodeError as e:
                msg = f"Failed to parse config file {self.config_file}: {e}"
                raise ConfigurationError(msg) from e

        config_data = self._merge_config(config_data, self._get_env_config())

        cli_config: dict[str, Any] = {}
        for path, value in self.overrides.items():
            _set_nested(cli_config, path, value)
        config_data = self._merge_config(config_data, cli_config)

        try:
            return Config(**config_data)
        except Exception as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigurationError(msg) from e

    def _get_env_config(self) -> dict[str, Any]:
        """Get configuration from environment variables."""
        env_config: dict[str, Any] = {}
        for env_name, cfg_path in ENV_MAPPINGS.items():
            raw = os.getenv(env_name)
            if raw is None:
                continue
            _set_nested(env_config, cfg_path, _parse_env_value(raw, cfg_path))
        return env_config

    def _merge_config(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        """Merge configuration dictionaries recursively."""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value

        return result

    def setup_logging(self, console: bool = True) -> None:
        """Set up logging from the observability section."""
        setup_logging(self.config.observability, console=console)

    def export(self, fmt: str = "toml") -> str:
        """Export current configuration as a string in the given format.

        Args:
            fmt: one of "toml" or "json"

        """
        data = self.config.model_dump(mode="json", exclude_none=True)
        fmt = (fmt or "toml").lower()
        if fmt == "toml":
            return toml.dumps(data)
        if fmt == "json":
            return json.dumps(data, indent=2)
        msg = f"Unsupported export format: {fmt}"
        raise ConfigurationError(msg)


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager.config


def init_config(
    config_file: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> ConfigManager:
    """Initialize the global configuration manager."""
    global _config_manager
    _config_manager = ConfigManager(config_file, overrides)
    return _config_manager


def reload_config() -> Config:
    """Reload configuration from file."""
    if _config_manager is None:
        msg = "Configuration not initialized"
        raise ConfigurationError(msg)

    _config_manager.config = _config_manager._load_config()  # noqa: SLF001
    logger.info("Configuration reloaded")
    return _config_manager.config


def set_config(new_config: Config) -> None:
    """Replace the global configuration at runtime."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager(None)
    _config_manager.config = new_config
