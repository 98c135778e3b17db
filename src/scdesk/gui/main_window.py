"""Main window for the PySide6 browser shell."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QDockWidget,
    QMainWindow,
    QSizePolicy,
    QStackedWidget,
    QTabBar,
    QVBoxLayout,
    QWidget,
)

from ..storage.models import DownloadStatus
from .debug_console import DebugConsoleView
from .downloads_panel import DownloadsPanel

if TYPE_CHECKING:
    from PySide6.QtGui import QCloseEvent

    from ..config.manager import ConfigManager
    from ..core.app import ShellState
    from ..core.tabs import TabStore

logger = logging.getLogger(__name__)

COMPLETED_COLOR = "#2e9e44"
FAILED_COLOR = "#ff5a1f"


class MainWindow(QMainWindow):
    """Tabbed browser window with downloads and debug panels."""

    # Signals
    shutdown_requested = Signal()

    def __init__(self, state: ShellState, config_manager: ConfigManager) -> None:
        """
        Initialize main window with dependency injection.

        Args:
            state: Shell state; its tab store must already exist
            config_manager: Configuration manager instance
        """
        super().__init__()

        if state.tabs is None:
            raise ValueError("MainWindow needs a tab store")

        self.state = state
        self.tabs: TabStore = state.tabs
        self.config_manager = config_manager
        self._syncing = False

        config = state.config
        self.setWindowTitle("SoundCloud")
        self.resize(config.window_width, config.window_height)
        self.setMinimumSize(config.min_window_width, config.min_window_height)

        self._setup_ui()
        self._setup_toolbar()
        self._setup_panels()
        self._setup_shortcuts()

        self.tabs.add_listener(self._sync_tabs)
        state.supervisor.add_listener(self._update_status_icons)
        self._sync_tabs()
        self._update_status_icons()

        logger.info("MainWindow initialized with dependency injection")

    def _setup_ui(self) -> None:
        """Setup the tab bar and the stacked surfaces."""
        central_widget = QWidget()
        self.setCentralWidget(central_widget)

        layout = QVBoxLayout(central_widget)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self.tab_bar = QTabBar()
        self.tab_bar.setTabsClosable(True)
        self.tab_bar.setExpanding(False)
        self.tab_bar.setElideMode(Qt.TextElideMode.ElideRight)
        self.tab_bar.currentChanged.connect(self._on_tab_bar_changed)
        self.tab_bar.tabCloseRequested.connect(self._on_tab_close_requested)
        layout.addWidget(self.tab_bar)

        self.stack = QStackedWidget()
        layout.addWidget(self.stack, 1)

    def _setup_toolbar(self) -> None:
        toolbar = self.addToolBar("Navigation")
        toolbar.setMovable(False)

        self.back_action = QAction("◀", self)
        self.back_action.setToolTip("Back")
        self.back_action.triggered.connect(lambda: self._with_selected(lambda c: c.go_back()))
        toolbar.addAction(self.back_action)

        self.forward_action = QAction("▶", self)
        self.forward_action.setToolTip("Forward")
        self.forward_action.triggered.connect(lambda: self._with_selected(lambda c: c.go_forward()))
        toolbar.addAction(self.forward_action)

        spacer = QWidget()
        spacer.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        toolbar.addWidget(spacer)

        self.download_action = QAction("⬇", self)
        self.download_action.setToolTip("Downloads")
        self.download_action.triggered.connect(self.toggle_downloads)
        toolbar.addAction(self.download_action)

        self.debug_action = QAction("🐞", self)
        self.debug_action.setToolTip("Debug console")
        self.debug_action.triggered.connect(self.toggle_debug_console)
        toolbar.addAction(self.debug_action)

        self.toolbar = toolbar

    def _setup_panels(self) -> None:
        self.downloads_panel = DownloadsPanel(self.state, self.config_manager)
        self.downloads_dock = QDockWidget("Downloads", self)
        self.downloads_dock.setWidget(self.downloads_panel)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, self.downloads_dock)
        self.downloads_dock.hide()

        self.console_view = DebugConsoleView(self.state.console)
        self.console_dock = QDockWidget("Debug Console", self)
        self.console_dock.setWidget(self.console_view)
        self.addDockWidget(Qt.DockWidgetArea.BottomDockWidgetArea, self.console_dock)
        self.console_dock.hide()

    def _setup_shortcuts(self) -> None:
        shortcuts = [
            ("New Tab", "Ctrl+T", lambda: self.tabs.add_tab(self.state.config.home_url)),
            ("Close Tab", "Ctrl+W", self.tabs.close_selected),
            ("Reload", "Ctrl+R", lambda: self._with_selected(lambda c: c.reload())),
            ("Toggle Debug Console", "Ctrl+L", self.toggle_debug_console),
            ("Toggle Downloads", "Ctrl+D", self.toggle_downloads),
            ("Open in New Tab", "Shift+Ctrl+N", self.tabs.open_current_in_new_tab),
        ]
        for title, sequence, slot in shortcuts:
            action = QAction(title, self)
            action.setShortcut(QKeySequence(sequence))
            action.setShortcutContext(Qt.ShortcutContext.ApplicationShortcut)
            action.triggered.connect(lambda checked=False, slot=slot: slot())
            self.addAction(action)

    # --- Tab synchronization -------------------------------------------------

    def _sync_tabs(self) -> None:
        """Mirror the tab store into the tab bar and the surface stack."""
        tabs = self.tabs.tabs
        selected = self.tabs.selected_tab

        for tab in tabs:
            view = tab.container.surface.view
            if self.stack.indexOf(view) < 0:
                self.stack.addWidget(view)

        self._syncing = True
        try:
            bar_ids = [self.tab_bar.tabData(i) for i in range(self.tab_bar.count())]
            if bar_ids != [tab.id for tab in tabs]:
                while self.tab_bar.count():
                    self.tab_bar.removeTab(0)
                for tab in tabs:
                    index = self.tab_bar.addTab(tab.title)
                    self.tab_bar.setTabData(index, tab.id)

            for index, tab in enumerate(tabs):
                self.tab_bar.setTabText(index, tab.title)
                self.tab_bar.setTabToolTip(index, tab.container.current_title or "")

            if selected is not None:
                self.tab_bar.setCurrentIndex(tabs.index(selected))
                self.stack.setCurrentWidget(selected.container.surface.view)
        finally:
            self._syncing = False

        self.tab_bar.setVisible(len(tabs) > 1)
        self._update_navigation()

    def _update_navigation(self) -> None:
        selected = self.tabs.selected_tab
        container = selected.container if selected is not None else None
        self.back_action.setEnabled(container is not None and container.can_go_back)
        self.forward_action.setEnabled(container is not None and container.can_go_forward)
        if container is not None and container.current_title:
            self.setWindowTitle(container.current_title)

    def _on_tab_bar_changed(self, index: int) -> None:
        if self._syncing or index < 0:
            return
        tab = self.tabs.find(self.tab_bar.tabData(index))
        if tab is not None:
            self.tabs.select_tab(tab)

    def _on_tab_close_requested(self, index: int) -> None:
        tab = self.tabs.find(self.tab_bar.tabData(index))
        if tab is not None:
            self.tabs.close_tab(tab)

    def _with_selected(self, action) -> None:
        selected = self.tabs.selected_tab
        if selected is not None:
            action(selected.container)

    # --- Panels --------------------------------------------------------------

    def toggle_downloads(self) -> None:
        """Show the downloads panel pre-filled with the current page's URL."""
        if self.downloads_dock.isVisible():
            self.downloads_dock.hide()
            return

        self.downloads_dock.show()
        selected = self.tabs.selected_tab
        if selected is None:
            self.downloads_panel.prefill(None)
            return
        selected.container.classify_current_page(self.downloads_panel.prefill)

    def toggle_debug_console(self) -> None:
        self.console_dock.setVisible(not self.console_dock.isVisible())

    def _update_status_icons(self) -> None:
        last_status = self.state.supervisor.last_status
        download_button = self.toolbar.widgetForAction(self.download_action)
        debug_button = self.toolbar.widgetForAction(self.debug_action)

        if download_button is not None:
            download_button.setStyleSheet(
                f"color: {COMPLETED_COLOR};" if last_status is DownloadStatus.COMPLETED else ""
            )
        if debug_button is not None:
            debug_button.setStyleSheet(
                f"color: {FAILED_COLOR};" if last_status is DownloadStatus.FAILED else ""
            )

    def closeEvent(self, event: QCloseEvent) -> None:
        """Handle window close event."""
        logger.info("Main window close requested")
        self.shutdown_requested.emit()
        event.accept()
