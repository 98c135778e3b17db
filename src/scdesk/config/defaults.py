"""Default configuration values."""

from pathlib import Path

from ..storage.models import DEFAULT_SEARCH_PATH_PREFIXES
from .settings import ShellConfig


def get_default_shell_config() -> ShellConfig:
    """
    Get default shell configuration.

    Returns:
        Default shell configuration
    """
    return ShellConfig(
        home_url="https://soundcloud.com",
        site_domain="soundcloud.com",
        max_tabs=10,
        downloader_path=None,  # Resolved against the real user home
        search_path_prefixes=list(DEFAULT_SEARCH_PATH_PREFIXES),
        default_download_directory=Path.home() / "Music" / "downloaded",
        use_lossless=False,
        poll_interval_ms=500,
        console_max_lines=None,  # No cap
        logging_level="INFO",
    )
