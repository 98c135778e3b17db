"""Configuration manager implementation."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import ConfigError
from ..storage.bookmarks import DirectoryBookmark
from ..utils.helpers import real_user_home
from .defaults import get_default_shell_config
from .settings import ShellConfig

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

BOOKMARK_KEY = "downloadDirectoryBookmark"


def downloader_path_for(config: ShellConfig) -> Path:
    """
    Get the expected downloader executable path.

    Args:
        config: Shell configuration

    Returns:
        Configured path, or scdl under the real user's ~/.local/bin
    """
    if config.downloader_path is not None:
        return config.downloader_path
    return real_user_home() / ".local" / "bin" / "scdl"


class ValidationResult(Generic[T]):
    """Result of configuration validation."""

    def __init__(
        self, is_valid: bool, config: T | None = None, errors: list[str] | None = None
    ):
        self.is_valid = is_valid
        self.config = config
        self.errors = errors or []


class BookmarkStore:
    """Persists directory bookmarks in the per-user configuration directory."""

    def __init__(self, config_dir: Path, key: str = BOOKMARK_KEY):
        self.config_dir = config_dir
        self.bookmarks_file = config_dir / "bookmarks.json"
        self.key = key

    def _read_all(self) -> dict[str, Any]:
        if not self.bookmarks_file.exists():
            return {}

        try:
            with self.bookmarks_file.open(encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read bookmarks from {self.bookmarks_file}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.error(f"Ignoring malformed bookmarks file {self.bookmarks_file}")
            return {}
        return data

    def load(self) -> DirectoryBookmark | None:
        """Load the stored bookmark, or None if absent or unreadable."""
        raw = self._read_all().get(self.key)
        if raw is None:
            return None

        try:
            bookmark = DirectoryBookmark.model_validate(raw)
            logger.debug(f"Loaded bookmark for {bookmark.path}")
            return bookmark
        except ValidationError as e:
            logger.error(f"Failed to load bookmark: {e}")
            return None

    def save(self, bookmark: DirectoryBookmark) -> None:
        """Persist a bookmark, replacing any previous one."""
        data = self._read_all()
        data[self.key] = bookmark.model_dump(mode="json")

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with self.bookmarks_file.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            logger.debug(f"Stored bookmark for {bookmark.path}")
        except OSError as e:
            logger.error(f"Failed to store bookmark: {e}")
            raise ConfigError(f"Failed to store bookmark: {e}") from e

    def clear(self) -> None:
        """Remove the stored bookmark."""
        data = self._read_all()
        if data.pop(self.key, None) is None:
            return

        with self.bookmarks_file.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        logger.debug("Cleared stored bookmark")


class ConfigManager:
    """Manages application configuration with type safety and validation."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """
        Initialize configuration manager.

        Args:
            config_dir: Optional custom configuration directory
        """
        if config_dir is None:
            config_dir = Path.home() / ".config" / "scdesk"

        self.config_dir = config_dir
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.config_file = self.config_dir / "shell_config.json"
        self.log_file = self.config_dir / "logs" / "scdesk.log"

        self.bookmark_store = BookmarkStore(self.config_dir)

        self._config: ShellConfig | None = None

        logger.info(f"ConfigManager initialized with config dir: {config_dir}")

    def _apply_env_overrides(self, config_dict: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        env_prefix = "SCDESK_"

        env_mappings = {
            "HOME_URL": "home_url",
            "SITE_DOMAIN": "site_domain",
            "MAX_TABS": "max_tabs",
            "DOWNLOADER_PATH": "downloader_path",
            "DEFAULT_DOWNLOAD_DIRECTORY": "default_download_directory",
            "USE_LOSSLESS": "use_lossless",
            "LOGGING_LEVEL": "logging_level",
            "POLL_INTERVAL_MS": "poll_interval_ms",
            "CONSOLE_MAX_LINES": "console_max_lines",
        }

        for env_suffix, config_key in env_mappings.items():
            env_var = env_prefix + env_suffix
            env_value = os.getenv(env_var)

            if env_value is None:
                continue

            try:
                if env_suffix.endswith(("_TABS", "_MS", "_LINES")):
                    config_dict[config_key] = int(env_value)
                elif env_suffix == "USE_LOSSLESS":
                    config_dict[config_key] = env_value.lower() in (
                        "true",
                        "1",
                        "yes",
                        "on",
                    )
                elif env_suffix.endswith(("_PATH", "_DIRECTORY")):
                    config_dict[config_key] = Path(env_value)
                else:
                    config_dict[config_key] = env_value

                logger.debug(f"Applied environment override: {env_var}={env_value}")
            except (ValueError, TypeError) as e:
                logger.warning(f"Invalid environment variable {env_var}={env_value}: {e}")

        return config_dict

    def _load_config_file(self, file_path: Path, config_class: type[T]) -> T | None:
        """Load configuration from JSON file with validation."""
        if not file_path.exists():
            return None

        try:
            with file_path.open(encoding="utf-8") as f:
                config_dict = json.load(f)

            config_dict = self._apply_env_overrides(config_dict)

            config = config_class.model_validate(config_dict)
            logger.debug(f"Loaded configuration from {file_path}")
            return config

        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Failed to load configuration from {file_path}: {e}")
            return None
        except OSError as e:
            logger.error(f"Unexpected error loading configuration from {file_path}: {e}")
            return None

    def _save_config_file(self, file_path: Path, config: BaseModel) -> bool:
        """Save configuration to JSON file."""
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)

            config_dict = config.model_dump(mode="json")

            with file_path.open("w", encoding="utf-8") as f:
                json.dump(config_dict, f, indent=2, ensure_ascii=False)

            logger.debug(f"Saved configuration to {file_path}")
            return True

        except OSError as e:
            logger.error(f"Failed to save configuration to {file_path}: {e}")
            return False

    def get_config(self) -> ShellConfig:
        """
        Get shell configuration.

        Returns:
            Shell configuration object
        """
        if self._config is None:
            self._config = self._load_config_file(self.config_file, ShellConfig)

            if self._config is None:
                self._config = get_default_shell_config()

                config_dict = self._config.model_dump()
                config_dict = self._apply_env_overrides(config_dict)
                try:
                    self._config = ShellConfig.model_validate(config_dict)
                except ValidationError as e:
                    logger.error(f"Ignoring invalid environment overrides: {e}")
                    self._config = get_default_shell_config()

                self._save_config_file(self.config_file, self._config)
                logger.info("Created default shell configuration")
            else:
                logger.info("Loaded shell configuration from file")

        return self._config

    def downloader_path(self) -> Path:
        """Get the expected downloader executable path."""
        return downloader_path_for(self.get_config())

    def update_config(self, config: ShellConfig) -> None:
        """
        Update shell configuration.

        Args:
            config: New shell configuration

        Raises:
            ConfigError: If the configuration is invalid or cannot be saved
        """
        validation_result = self.validate_config(config)
        if not validation_result.is_valid:
            raise ConfigError(f"Invalid configuration: {validation_result.errors}")

        if self._save_config_file(self.config_file, config):
            self._config = config
            logger.info("Shell configuration updated")
        else:
            raise ConfigError("Failed to save shell configuration")

    def validate_config(self, config: T) -> ValidationResult[T]:
        """
        Validate configuration object.

        Args:
            config: Configuration object to validate

        Returns:
            ValidationResult with validation status and any errors
        """
        try:
            validated_config = config.model_validate(config.model_dump())
            return ValidationResult(is_valid=True, config=validated_config)
        except ValidationError as e:
            errors = [
                f"{'.'.join(map(str, error['loc']))}: {error['msg']}"
                for error in e.errors()
            ]
            return ValidationResult(is_valid=False, errors=errors)

    def reset_to_defaults(self) -> None:
        """Reset configuration to defaults and forget the download bookmark."""
        self._config = get_default_shell_config()
        if not self._save_config_file(self.config_file, self._config):
            raise ConfigError("Failed to reset configuration")

        self.bookmark_store.clear()
        logger.info("Reset all configuration to defaults")
