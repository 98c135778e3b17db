"""Configuration management module."""

from .defaults import get_default_shell_config
from .manager import BookmarkStore, ConfigManager, ValidationResult, downloader_path_for
from .settings import ShellConfig

__all__ = [
    "BookmarkStore",
    "ConfigManager",
    "ShellConfig",
    "ValidationResult",
    "downloader_path_for",
    "get_default_shell_config",
]
