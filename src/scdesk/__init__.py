"""
scdesk - SoundCloud Desktop Shell

A single-site tabbed browser shell built on PySide6 and QtWebEngine, with a
download manager that supervises the external scdl command-line downloader.
"""

__version__ = "0.1.0"
__author__ = "scdesk contributors"

from .core.console import DebugConsole
from .core.supervisor import DownloadSupervisor
from .core.tabs import Tab, TabStore
from .storage.models import DownloadItem, DownloadStatus

__all__ = [
    "DebugConsole",
    "DownloadItem",
    "DownloadStatus",
    "DownloadSupervisor",
    "Tab",
    "TabStore",
]
