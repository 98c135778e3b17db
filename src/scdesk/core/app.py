"""Main application controller."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
import sys
from typing import TYPE_CHECKING

from ..config.manager import downloader_path_for
from ..errors import BookmarkError, ConfigError, ShellError
from ..storage.bookmarks import DirectoryBookmark, restore_download_directory
from ..utils.helpers import augmented_search_path
from .console import DebugConsole
from .dependencies import probe_dependencies, start_dependency_probe
from .events import EventChannel
from .supervisor import DownloadSupervisor

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..config.manager import ConfigManager
    from ..storage.models import DownloadItem, ShellConfig
    from .dependencies import DependencyResult
    from .tabs import TabStore

logger = logging.getLogger(__name__)


class ApplicationError(ShellError):
    """Base exception for application errors."""

    pass


@dataclass
class ShellState:
    """
    Everything the shell mutates, owned by the application controller.

    All fields are read and written on the UI thread only; background
    producers reach them through ``channel``.
    """

    config: ShellConfig
    channel: EventChannel
    console: DebugConsole
    supervisor: DownloadSupervisor
    download_directory: Path
    bookmark: DirectoryBookmark | None = None
    tabs: TabStore | None = None
    use_lossless: bool = False
    standalone_windows: list[object] = field(default_factory=list)

    def choose_download_directory(self, config_manager: ConfigManager, directory: Path) -> None:
        """
        Switch the download directory and persist a bookmark for it.

        Args:
            config_manager: Owner of the bookmark store
            directory: Newly chosen directory

        Raises:
            BookmarkError: If the directory cannot be bookmarked or accessed
            ConfigError: If the bookmark cannot be persisted
        """
        bookmark = DirectoryBookmark.create(directory)
        if not bookmark.start_access():
            raise BookmarkError(f"Directory {directory} is not writable")

        try:
            config_manager.bookmark_store.save(bookmark)
        except ConfigError:
            bookmark.stop_access()
            raise

        if self.bookmark is not None:
            self.bookmark.stop_access()

        self.bookmark = bookmark
        self.download_directory = bookmark.path
        logger.info(f"Download directory set to {bookmark.path}")

    def release(self) -> None:
        """Stop all downloads and release the directory bookmark."""
        self.supervisor.shutdown()
        if self.bookmark is not None:
            self.bookmark.stop_access()


def build_state(config_manager: ConfigManager, console: DebugConsole | None = None) -> ShellState:
    """
    Assemble the shell state on the calling thread.

    The calling thread becomes the channel's owner and must be the one that
    drains it.

    Args:
        config_manager: Configuration manager instance
        console: Console to use instead of a fresh one sized by configuration

    Returns:
        Shell state with the download directory restored
    """
    config = config_manager.get_config()
    channel = EventChannel()

    if console is None:
        console = DebugConsole(max_lines=config.console_max_lines)
    console.attach(channel)

    supervisor = DownloadSupervisor(
        console=console,
        channel=channel,
        downloader_path=downloader_path_for(config),
        search_path_prefixes=config.search_path_prefixes,
    )

    directory, bookmark = restore_download_directory(
        config_manager.bookmark_store, config.default_download_directory
    )

    return ShellState(
        config=config,
        channel=channel,
        console=console,
        supervisor=supervisor,
        download_directory=directory,
        bookmark=bookmark,
        use_lossless=config.use_lossless,
    )


class Application:
    """Main application controller that coordinates all components."""

    def __init__(self, config_manager: ConfigManager) -> None:
        """
        Initialize the application with dependency injection.

        Args:
            config_manager: Configuration manager instance
        """
        self.config_manager = config_manager
        self.state: ShellState | None = None
        self._executor: ThreadPoolExecutor | None = None

    def search_path(self) -> str:
        config = self.config_manager.get_config()
        return augmented_search_path(config.search_path_prefixes, os.environ.get("PATH", ""))

    def check_dependencies(self) -> tuple[DependencyResult, ...]:
        """Probe for the downloader and transcoder synchronously."""
        config = self.config_manager.get_config()
        return probe_dependencies(downloader_path_for(config), self.search_path())

    def start_gui(self) -> None:
        """Start the browser shell."""
        logger.info("Starting GUI mode")

        try:
            from PySide6.QtCore import QTimer
            from PySide6.QtWidgets import QApplication

            from ..gui.main_window import MainWindow
            from ..gui.standalone_window import StandaloneWindow
            from ..gui.web_view import container_factory
            from .tabs import TabStore

            qt_app = QApplication(sys.argv)
            qt_app.setApplicationName("SoundCloud")
            qt_app.setApplicationVersion("0.1.0")

            state = build_state(self.config_manager)
            self.state = state
            config = state.config

            # Process and probe events are drained on the Qt thread
            timer = QTimer()
            timer.timeout.connect(state.channel.drain)
            timer.start(10)

            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="scdesk-probe")
            start_dependency_probe(
                self._executor,
                state.channel,
                state.console,
                downloader_path_for(config),
                self.search_path(),
            )

            def open_standalone(url: str) -> None:
                window = StandaloneWindow(config, url)
                state.standalone_windows.append(window)
                window.destroyed.connect(lambda: state.standalone_windows.remove(window))
                window.show()

            state.tabs = TabStore(
                container_factory(config),
                max_tabs=config.max_tabs,
                on_limit_reached=QApplication.beep,
                on_empty=qt_app.quit,
                window_opener=open_standalone,
            )

            main_window = MainWindow(state, self.config_manager)
            main_window.shutdown_requested.connect(qt_app.quit)
            state.tabs.add_tab(config.home_url)
            main_window.show()

            exit_code = qt_app.exec()

            timer.stop()
            self._shutdown()
            sys.exit(exit_code)

        except ImportError as e:
            logger.error(f"Failed to load the GUI toolkit: {e}")
            raise ApplicationError(f"GUI startup failed: {e}") from e

    def run_headless_download(
        self,
        url: str,
        output: Path | None = None,
        use_lossless: bool | None = None,
        echo: Callable[[str], None] | None = None,
        timeout: float | None = None,
    ) -> DownloadItem | None:
        """
        Run one supervised download without a GUI.

        Console lines are echoed as they arrive.

        Args:
            url: URL to download
            output: Destination directory (defaults to the restored directory)
            use_lossless: Prefer lossless output (defaults to configuration)
            echo: Receives each new console line
            timeout: Maximum seconds to wait for the downloader

        Returns:
            The download item, or None if nothing was started
        """
        console = DebugConsole()
        state = build_state(self.config_manager, console=console)
        self.state = state

        if echo is not None:
            echoed = 0

            def echo_new_lines() -> None:
                nonlocal echoed
                for line in console.messages[echoed:]:
                    echo(line)
                echoed = len(console)

            console.add_listener(echo_new_lines)

        lossless = state.use_lossless if use_lossless is None else use_lossless
        destination = output if output is not None else state.download_directory

        try:
            item = state.supervisor.start(url, destination, lossless)
            if item is not None and not state.supervisor.wait(item, timeout):
                logger.warning(f"Timed out waiting for {item.url}")
            return item
        finally:
            self._shutdown()

    def _shutdown(self) -> None:
        """Release every resource the running shell holds."""
        logger.info("Shutting down application components")

        if self.state is not None:
            self.state.release()

        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

        logger.info("Application shutdown complete")
