"""Data models and persisted state."""

from .bookmarks import DirectoryBookmark, restore_download_directory
from .models import (
    DEFAULT_SEARCH_PATH_PREFIXES,
    DownloadItem,
    DownloadStatus,
    ShellConfig,
)

__all__ = [
    "DEFAULT_SEARCH_PATH_PREFIXES",
    "DirectoryBookmark",
    "DownloadItem",
    "DownloadStatus",
    "ShellConfig",
    "restore_download_directory",
]
