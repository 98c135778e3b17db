"""Core shell components: tabs, containers, downloads and the console."""

from .app import Application, ShellState
from .console import DebugConsole
from .container import WebContainer
from .events import EventChannel
from .supervisor import DownloadSupervisor
from .tabs import Tab, TabStore

__all__ = [
    "Application",
    "DebugConsole",
    "DownloadSupervisor",
    "EventChannel",
    "ShellState",
    "Tab",
    "TabStore",
    "WebContainer",
]
