"""PySide6 user interface: main window, panels and the QtWebEngine surface."""
