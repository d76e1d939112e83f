"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from work_timesheet.exceptions import ConfigurationError
from work_timesheet.models.config import AppConfig

log = logging.getLogger(__name__)


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path, default_data_dir: Path):
        self.config_file_path = config_file_path
        self.default_data_dir = default_data_dir
        self._parser = configparser.ConfigParser(interpolation=None)

    def _defaults(self) -> AppConfig:
        return AppConfig(data_dir=str(self.default_data_dir))

    def load_config(self, cli_options: dict[str, Any] | None = None) -> AppConfig:
        """
        Loads configuration from the INI file, applies CLI overrides, and validates it.

        A missing file is not an error: the built-in defaults are used.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated AppConfig object.

        Raises:
            ConfigurationError: If the config file is invalid or validation fails.
        """
        config_values: dict[str, Any] = {}

        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(
                    f"Error parsing configuration file: {e}"
                ) from e

            if self._migrate_if_needed():
                log.info(
                    "[yellow]Configuration file was updated with new default values."
                    "[/yellow]"
                )
            config_values = self._get_config_as_dict()
        else:
            log.debug(
                f"No configuration file at '{self.config_file_path}', using defaults."
            )
            config_values = {"data_dir": str(self.default_data_dir)}

        if cli_options:
            config_values.update(cli_options)

        try:
            return AppConfig(
                **config_values, config_path=str(self.config_file_path.parent)
            )
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any] | None = None) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings that override the defaults.
        """
        settings = settings or {}
        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {}

        defaults = self._defaults()
        for key in sorted(AppConfig.get_ini_keys()):
            value = settings.get(key, getattr(defaults, key, None))
            serialized = self._serialize(value)
            if serialized is not None:
                config["DEFAULT"][key] = serialized

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    @staticmethod
    def _serialize(value: Any) -> str | None:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, list):
            return ",".join(map(str, value))
        if value is None:
            return None
        return str(value)

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        defaults = self._defaults()
        try:
            return {
                "data_dir": section.get("data_dir", defaults.data_dir),
                "key_prefix": section.get("key_prefix", defaults.key_prefix),
                "quota_kb": section.getint("quota_kb", defaults.quota_kb),
                "max_retries": section.getint("max_retries", defaults.max_retries),
                "retry_base_delay": section.getfloat(
                    "retry_base_delay", defaults.retry_base_delay
                ),
                "save_debounce": section.getfloat(
                    "save_debounce", defaults.save_debounce
                ),
                "cleanup_threshold": section.getint(
                    "cleanup_threshold", defaults.cleanup_threshold
                ),
                "cleanup_batch": section.getint(
                    "cleanup_batch", defaults.cleanup_batch
                ),
                "cache_name": section.get("cache_name", defaults.cache_name),
                "static_cache_name": section.get(
                    "static_cache_name", defaults.static_cache_name
                ),
                "upstream_url": section.get("upstream_url", defaults.upstream_url),
                "gateway_host": section.get("gateway_host", defaults.gateway_host),
                "gateway_port": section.getint(
                    "gateway_port", defaults.gateway_port
                ),
                "precache": [
                    p.strip()
                    for p in section.get(
                        "precache", ",".join(defaults.precache)
                    ).split(",")
                    if p.strip()
                ],
                "fallback_document": section.get(
                    "fallback_document", defaults.fallback_document
                ),
                "json_logs": section.getboolean("json_logs", defaults.json_logs),
            }
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = self._defaults()
        needs_saving = False

        config_section = self._parser["DEFAULT"]

        for key in sorted(AppConfig.get_ini_keys()):
            if key not in config_section:
                serialized = self._serialize(getattr(defaults, key))
                if serialized is None:
                    continue
                config_section[key] = serialized
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{config_section[key]}'."
                )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
