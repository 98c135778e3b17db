"""Independent top-level window hosting a single container."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import QMainWindow

from .web_view import container_factory

if TYPE_CHECKING:
    from PySide6.QtGui import QCloseEvent

    from ..core.container import WebContainer
    from ..storage.models import ShellConfig

logger = logging.getLogger(__name__)


class StandaloneWindow(QMainWindow):
    """
    Window opened by "Open Link in New Window".

    Its container is not registered with the tab store; new-tab requests
    from it are only logged.
    """

    def __init__(self, config: ShellConfig, url: str) -> None:
        super().__init__()
        self.setAttribute(Qt.WidgetAttribute.WA_DeleteOnClose)
        self.setWindowTitle("SoundCloud")
        self.resize(config.window_width, config.window_height)
        self.setMinimumSize(config.min_window_width, config.min_window_height)

        self.container: WebContainer = container_factory(config)(url)
        self.container.on_open_new_tab = self._log_new_tab_request
        self.container.add_listener(self._on_container_changed)
        self.setCentralWidget(self.container.surface.view)

        toolbar = self.addToolBar("Navigation")
        toolbar.setMovable(False)
        self.back_action = QAction("◀", self)
        self.back_action.setToolTip("Back")
        self.back_action.triggered.connect(self.container.go_back)
        self.forward_action = QAction("▶", self)
        self.forward_action.setToolTip("Forward")
        self.forward_action.triggered.connect(self.container.go_forward)
        reload_action = QAction("⟳", self)
        reload_action.setToolTip("Reload")
        reload_action.setShortcut(QKeySequence("Ctrl+R"))
        reload_action.triggered.connect(self.container.reload)
        for action in (self.back_action, self.forward_action, reload_action):
            toolbar.addAction(action)

        self._on_container_changed(self.container)
        logger.info(f"Opened standalone window for {url}")

    def _log_new_tab_request(self, url: str) -> None:
        logger.info(f"Ignoring new tab request from standalone window: {url}")

    def _on_container_changed(self, container: WebContainer) -> None:
        self.setWindowTitle(container.current_title or container.display_name)
        self.back_action.setEnabled(container.can_go_back)
        self.forward_action.setEnabled(container.can_go_forward)

    def closeEvent(self, event: QCloseEvent) -> None:
        self.takeCentralWidget()
        self.container.close()
        event.accept()
