"""Shared test fixtures for the scdesk test suite."""

from __future__ import annotations

from pathlib import Path
import stat

import pytest

from scdesk.config.manager import ConfigManager
from scdesk.core.console import DebugConsole
from scdesk.core.events import EventChannel
from scdesk.core.interfaces import OPEN_LINK_IN_NEW_TAB, OPEN_LINK_IN_NEW_WINDOW
from scdesk.core.supervisor import DownloadSupervisor


# -- Rendering surface and menu fakes -------------------------------------------


class FakeSurface:
    """In-memory ``RenderingSurface``; scripts resolve only when told to."""

    def __init__(self) -> None:
        self.loaded: list[str] = []
        self.scripts: dict[str, str] = {}
        self.pending: list[tuple[str, object]] = []
        self.handler = None
        self.closed = False
        self.current_url: str | None = None
        self.current_title: str | None = None
        self.back = False
        self.forward = False
        self.calls: list[str] = []

    def load(self, url):
        self.loaded.append(url)

    def go_back(self):
        self.calls.append("back")

    def go_forward(self):
        self.calls.append("forward")

    def reload(self):
        self.calls.append("reload")

    def url(self):
        return self.current_url

    def title(self):
        return self.current_title

    def can_go_back(self):
        return self.back

    def can_go_forward(self):
        return self.forward

    def add_user_script(self, name, source):
        self.scripts[name] = source

    def evaluate(self, script, callback):
        self.pending.append((script, callback))

    def set_event_handler(self, handler):
        self.handler = handler

    def close(self):
        self.closed = True

    # test helpers

    def emit(self, event):
        assert self.handler is not None, "no handler attached"
        self.handler(event)

    def resolve(self, result, index=-1):
        _script, callback = self.pending.pop(index)
        callback(result)


class FakeMenu:
    """``ContextMenu`` recording removals and insertions."""

    def __init__(self) -> None:
        self.actions: list[tuple[str, object]] = [
            (OPEN_LINK_IN_NEW_TAB, None),
            (OPEN_LINK_IN_NEW_WINDOW, None),
            ("copy-link", None),
        ]
        self.open = True

    def remove_actions(self, identifiers):
        self.actions = [entry for entry in self.actions if entry[0] not in identifiers]

    def insert_action(self, index, title, callback):
        self.actions.insert(index, (title, callback))

    def is_open(self):
        return self.open

    def titles(self):
        return [title for title, _ in self.actions]

    def trigger(self, title):
        callback = dict(self.actions)[title]
        callback()


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture
def menu() -> FakeMenu:
    return FakeMenu()


# -- Downloader stand-ins ---------------------------------------------------------


def write_script(path: Path, body: str) -> Path:
    """Write an executable shell script."""
    path.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def make_downloader(tmp_path):
    """Factory writing a fake ``scdl`` with the given shell body."""

    def make(body: str, name: str = "scdl") -> Path:
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir(exist_ok=True)
        return write_script(bin_dir / name, body)

    return make


@pytest.fixture
def download_dir(tmp_path) -> Path:
    directory = tmp_path / "downloads"
    directory.mkdir()
    return directory


@pytest.fixture
def channel() -> EventChannel:
    return EventChannel()


@pytest.fixture
def console(channel) -> DebugConsole:
    console = DebugConsole()
    console.attach(channel)
    return console


@pytest.fixture
def supervisor_for(console, channel):
    """Factory building a supervisor around a downloader path."""
    supervisors: list[DownloadSupervisor] = []

    def build(downloader_path: Path) -> DownloadSupervisor:
        supervisor = DownloadSupervisor(console, channel, downloader_path)
        supervisors.append(supervisor)
        return supervisor

    yield build

    for supervisor in supervisors:
        supervisor.shutdown()


# -- Configuration ------------------------------------------------------------------


@pytest.fixture
def config_dir(tmp_path) -> Path:
    return tmp_path / "config"


@pytest.fixture
def config_manager(config_dir, monkeypatch) -> ConfigManager:
    for name in (
        "SCDESK_HOME_URL",
        "SCDESK_SITE_DOMAIN",
        "SCDESK_MAX_TABS",
        "SCDESK_DOWNLOADER_PATH",
        "SCDESK_DEFAULT_DOWNLOAD_DIRECTORY",
        "SCDESK_USE_LOSSLESS",
        "SCDESK_LOGGING_LEVEL",
        "SCDESK_POLL_INTERVAL_MS",
        "SCDESK_CONSOLE_MAX_LINES",
    ):
        monkeypatch.delenv(name, raising=False)
    return ConfigManager(config_dir=config_dir)


@pytest.fixture
def surface_factory():
    """Class used to build additional fake surfaces."""
    return FakeSurface
