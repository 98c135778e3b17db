"""Downloads panel: URL entry, destination and per-status item lists."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from PySide6.QtCore import Qt, QTimer, QUrl
from PySide6.QtGui import QDesktopServices, QFontDatabase
from PySide6.QtWidgets import (
    QCheckBox,
    QFileDialog,
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMessageBox,
    QPushButton,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from ..errors import ShellError
from ..storage.models import DownloadStatus

if TYPE_CHECKING:
    from ..config.manager import ConfigManager
    from ..core.app import ShellState
    from ..storage.models import DownloadItem

logger = logging.getLogger(__name__)

PROGRESS_FRAMES = [
    "🦑———✧———",
    "—🦑——✧———",
    "——🦑—✧———",
    "———🦑✧———",
    "———🦑—✧——",
    "———🦑——✧—",
    "———🦑———✧",
    "———🦑——✧—",
    "———🦑—✧——",
    "———🦑✧———",
    "——🦑—✧———",
    "—🦑——✧———",
]


class DownloadRow(QWidget):
    """One download item: file name, status marker and an optional stop button."""

    def __init__(self, item: DownloadItem, on_stop=None, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.item = item

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 2, 0, 2)

        name = QLabel(item.file_name)
        name.setToolTip(item.url)
        name.setFont(QFontDatabase.systemFont(QFontDatabase.SystemFont.FixedFont))
        layout.addWidget(name, 1)

        self.marker = QLabel()
        layout.addWidget(self.marker)

        if on_stop is not None:
            stop_button = QToolButton()
            stop_button.setText("✕")
            stop_button.setToolTip("Stop this download")
            stop_button.clicked.connect(lambda: on_stop(item))
            layout.addWidget(stop_button)

        self.set_frame(0)

    def set_frame(self, index: int) -> None:
        status = self.item.status
        if status is DownloadStatus.DOWNLOADING:
            self.marker.setText(PROGRESS_FRAMES[index % len(PROGRESS_FRAMES)])
        elif status is DownloadStatus.COMPLETED:
            self.marker.setText("<span style='color: green'>✓</span>")
        else:
            self.marker.setText("<span style='color: red'>✕</span>")


class DownloadsPanel(QWidget):
    """Start downloads and follow their progress."""

    def __init__(
        self,
        state: ShellState,
        config_manager: ConfigManager,
        parent: QWidget | None = None,
    ) -> None:
        """
        Initialize the panel.

        Args:
            state: Shell state holding the supervisor and download directory
            config_manager: Persists the chosen directory's bookmark
            parent: Parent widget
        """
        super().__init__(parent)
        self.state = state
        self.config_manager = config_manager

        self._rows: list[DownloadRow] = []
        self._frame = 0
        self._animation_timer = QTimer(self)
        self._animation_timer.timeout.connect(self._advance_animation)

        self._setup_ui()
        state.supervisor.add_listener(self.refresh)
        self.refresh()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)

        header = QLabel("Download from SoundCloud")
        header.setStyleSheet("font-size: 14px; font-weight: bold;")
        layout.addWidget(header)

        self.url_edit = QLineEdit()
        self.url_edit.setPlaceholderText("Paste or edit SoundCloud URL")
        self.url_edit.setFont(QFontDatabase.systemFont(QFontDatabase.SystemFont.FixedFont))
        self.url_edit.textChanged.connect(self._update_start_enabled)
        self.url_edit.returnPressed.connect(self._start_download)
        layout.addWidget(self.url_edit)

        self.flac_check = QCheckBox("Use FLAC if available")
        self.flac_check.setChecked(self.state.use_lossless)
        self.flac_check.toggled.connect(self._set_lossless)
        layout.addWidget(self.flac_check)

        directory_layout = QHBoxLayout()
        directory_layout.addWidget(QLabel("<b>Save to:</b>"))
        self.directory_label = QLabel()
        self.directory_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        directory_layout.addWidget(self.directory_label, 1)
        choose_button = QToolButton()
        choose_button.setText("📁")
        choose_button.setToolTip("Choose download folder")
        choose_button.clicked.connect(self._choose_directory)
        directory_layout.addWidget(choose_button)
        layout.addLayout(directory_layout)

        button_layout = QHBoxLayout()
        self.start_button = QPushButton("Start Download")
        self.start_button.clicked.connect(self._start_download)
        button_layout.addWidget(self.start_button)
        button_layout.addStretch()
        show_button = QPushButton("Show downloads")
        show_button.clicked.connect(self._show_downloads)
        button_layout.addWidget(show_button)
        layout.addLayout(button_layout)

        self.downloading_section = self._add_section(layout)
        self.completed_section = self._add_section(layout)

        self.failed_toggle = QToolButton()
        self.failed_toggle.setCheckable(True)
        self.failed_toggle.setToolButtonStyle(Qt.ToolButtonStyle.ToolButtonTextBesideIcon)
        self.failed_toggle.setArrowType(Qt.ArrowType.RightArrow)
        self.failed_toggle.toggled.connect(self._toggle_failed)
        layout.addWidget(self.failed_toggle)
        self.failed_section = self._add_section(layout)

        layout.addStretch()
        self._update_start_enabled()

    def _add_section(self, layout: QVBoxLayout) -> QFrame:
        section = QFrame()
        section.setFrameShape(QFrame.Shape.StyledPanel)
        QVBoxLayout(section).setContentsMargins(6, 4, 6, 4)
        layout.addWidget(section)
        return section

    # --- Public API ----------------------------------------------------------

    def prefill(self, url: str | None) -> None:
        """Show a classified URL in the entry field (empty when unknown)."""
        self.url_edit.setText(url or "")
        self.url_edit.setFocus()
        self.url_edit.selectAll()

    def refresh(self) -> None:
        """Rebuild the item sections from the supervisor."""
        supervisor = self.state.supervisor
        self.directory_label.setText(str(self.state.download_directory))
        self._rows = []

        downloading = supervisor.downloading()
        self._fill(
            self.downloading_section,
            downloading,
            on_stop=supervisor.stop,
            can_stop=supervisor.can_stop,
        )
        self._fill(self.completed_section, supervisor.completed())

        failed = supervisor.failed()
        self._fill(self.failed_section, failed)
        self.failed_toggle.setText(f"Failed Downloads ({len(failed)})")
        self.failed_toggle.setVisible(bool(failed))
        self.failed_section.setVisible(bool(failed) and self.failed_toggle.isChecked())

        if downloading and not self._animation_timer.isActive():
            self._animation_timer.start(100)
        elif not downloading:
            self._animation_timer.stop()

    def _fill(
        self,
        section: QFrame,
        items: list[DownloadItem],
        on_stop=None,
        can_stop=None,
    ) -> None:
        layout = section.layout()
        while layout.count():
            widget = layout.takeAt(0).widget()
            if widget is not None:
                widget.deleteLater()

        for item in items:
            # Only the current download can be stopped
            stoppable = can_stop is not None and can_stop(item)
            row = DownloadRow(item, on_stop=on_stop if stoppable else None)
            layout.addWidget(row)
            self._rows.append(row)

        if section is not self.failed_section:
            section.setVisible(bool(items))

    # --- Slots ---------------------------------------------------------------

    def _update_start_enabled(self) -> None:
        self.start_button.setEnabled(bool(self.url_edit.text().strip()))

    def _set_lossless(self, checked: bool) -> None:
        self.state.use_lossless = checked

    def _start_download(self) -> None:
        url = self.url_edit.text().strip()
        if not url:
            return
        self.state.supervisor.start(url, self.state.download_directory, self.state.use_lossless)

    def _choose_directory(self) -> None:
        selected = QFileDialog.getExistingDirectory(
            self, "Choose download folder", str(self.state.download_directory)
        )
        if not selected:
            return

        try:
            self.state.choose_download_directory(self.config_manager, Path(selected))
        except ShellError as e:
            logger.error(f"Failed to set download directory: {e}")
            QMessageBox.warning(self, "Download folder", str(e))
        self.refresh()

    def _show_downloads(self) -> None:
        QDesktopServices.openUrl(QUrl.fromLocalFile(str(self.state.download_directory)))

    def _toggle_failed(self, checked: bool) -> None:
        self.failed_toggle.setArrowType(
            Qt.ArrowType.DownArrow if checked else Qt.ArrowType.RightArrow
        )
        self.failed_section.setVisible(checked)

    def _advance_animation(self) -> None:
        self._frame += 1
        for row in self._rows:
            row.set_frame(self._frame)
