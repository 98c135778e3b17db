"""Read-only view over the debug console model."""

from __future__ import annotations

from typing import TYPE_CHECKING

from PySide6.QtGui import QFontDatabase, QTextCursor
from PySide6.QtWidgets import QPlainTextEdit

if TYPE_CHECKING:
    from PySide6.QtWidgets import QWidget

    from ..core.console import DebugConsole


class DebugConsoleView(QPlainTextEdit):
    """Monospace log view that follows the newest line."""

    def __init__(self, console: DebugConsole, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.console = console

        self.setReadOnly(True)
        self.setFont(QFontDatabase.systemFont(QFontDatabase.SystemFont.FixedFont))
        self.setLineWrapMode(QPlainTextEdit.LineWrapMode.WidgetWidth)
        self.setPlaceholderText("No messages")

        console.add_listener(self.refresh)
        self.refresh()

    def refresh(self) -> None:
        """Re-render the log and scroll to the bottom."""
        self.setPlainText(self.console.text())
        self.moveCursor(QTextCursor.MoveOperation.End)
        self.ensureCursorVisible()
