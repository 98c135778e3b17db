"""QtWebEngine rendering surface and context menu adapters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from PySide6.QtCore import QFile, QIODevice, QObject, QUrl, Slot
from PySide6.QtGui import QAction
from PySide6.QtWebChannel import QWebChannel
from PySide6.QtWebEngineCore import QWebEnginePage, QWebEngineScript
from PySide6.QtWebEngineWidgets import QWebEngineView

from ..core.container import WebContainer
from ..core.events import (
    HistoryChanged,
    LocationChanged,
    NavigationFinished,
    NewWindowRequested,
)
from ..core.interfaces import OPEN_LINK_IN_NEW_TAB, OPEN_LINK_IN_NEW_WINDOW

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from PySide6.QtGui import QContextMenuEvent
    from PySide6.QtWebEngineCore import QWebEngineNewWindowRequest, QWebEngineProfile
    from PySide6.QtWidgets import QMenu

    from ..storage.models import ShellConfig

logger = logging.getLogger(__name__)

BRIDGE_OBJECT_NAME = "scdesk"
BRIDGE_SCRIPT_NAME = "scdesk-bridge"

BRIDGE_BOOTSTRAP = """
new QWebChannel(qt.webChannelTransport, function(channel) {
    var bridge = channel.objects.%s;
    window.__scdeskPost = function(message) {
        bridge.report(String(message.url || ""), String(message.title || ""));
    };
});
"""

# Host entries replaced by the shell's own "open link" actions
_REPLACED_ACTIONS = {
    OPEN_LINK_IN_NEW_TAB: (
        QWebEnginePage.WebAction.OpenLinkInNewTab,
        QWebEnginePage.WebAction.OpenLinkInNewBackgroundTab,
    ),
    OPEN_LINK_IN_NEW_WINDOW: (QWebEnginePage.WebAction.OpenLinkInNewWindow,),
}


def _load_webchannel_js() -> str:
    source = QFile(":/qtwebchannel/qwebchannel.js")
    if not source.open(QIODevice.OpenModeFlag.ReadOnly):
        logger.error("qwebchannel.js resource is missing; page observer disabled")
        return ""
    try:
        return bytes(source.readAll().data()).decode("utf-8")
    finally:
        source.close()


class _PageBridge(QObject):
    """Object exposed to the page over the web channel."""

    def __init__(self, surface: WebEngineSurface) -> None:
        super().__init__()
        self._surface = surface

    @Slot(str, str)
    def report(self, url: str, title: str) -> None:
        self._surface.dispatch(LocationChanged(url, title))


class QtContextMenu:
    """``ContextMenu`` adapter over a standard QtWebEngine menu."""

    def __init__(self, menu: QMenu, page: QWebEnginePage) -> None:
        self.menu = menu
        self.page = page

    def remove_actions(self, identifiers: Iterable[str]) -> None:
        for identifier in identifiers:
            for web_action in _REPLACED_ACTIONS.get(identifier, ()):
                self.menu.removeAction(self.page.action(web_action))

    def insert_action(self, index: int, title: str, callback: Callable[[], None]) -> None:
        action = QAction(title, self.menu)
        action.triggered.connect(lambda checked=False: callback())

        actions = self.menu.actions()
        if index < len(actions):
            self.menu.insertAction(actions[index], action)
        else:
            self.menu.addAction(action)

    def is_open(self) -> bool:
        return self.menu.isVisible()


class SurfaceView(QWebEngineView):
    """Web view handing its context menu to the owning container."""

    def __init__(self, surface: WebEngineSurface, profile: QWebEngineProfile | None = None) -> None:
        super().__init__()
        if profile is not None:
            self.setPage(QWebEnginePage(profile, self))
        self._surface = surface
        self._menu: QMenu | None = None

    def contextMenuEvent(self, event: QContextMenuEvent) -> None:
        handler = self._surface.context_menu_handler
        menu = self.createStandardContextMenu()
        if self._menu is not None:
            self._menu.deleteLater()
        self._menu = menu

        if handler is not None:
            zoom = self.zoomFactor() or 1.0
            position = event.pos()
            handler(QtContextMenu(menu, self.page()), position.x() / zoom, position.y() / zoom)

        menu.popup(event.globalPos())


class WebEngineSurface:
    """``RenderingSurface`` backed by a QtWebEngine view."""

    def __init__(self, profile: QWebEngineProfile | None = None) -> None:
        self.view = SurfaceView(self, profile)
        self.page = self.view.page()
        self.context_menu_handler: Callable[[QtContextMenu, float, float], None] | None = None
        self._handler: Callable[[Any], None] | None = None

        self._bridge = _PageBridge(self)
        self._channel = QWebChannel(self.page)
        self._channel.registerObject(BRIDGE_OBJECT_NAME, self._bridge)
        self.page.setWebChannel(self._channel)
        self._insert_script(
            BRIDGE_SCRIPT_NAME,
            _load_webchannel_js() + BRIDGE_BOOTSTRAP % BRIDGE_OBJECT_NAME,
            QWebEngineScript.InjectionPoint.DocumentCreation,
        )

        self.view.urlChanged.connect(lambda _url: self.dispatch(HistoryChanged()))
        self.view.loadFinished.connect(self._on_load_finished)
        self.page.newWindowRequested.connect(self._on_new_window_requested)

    # --- RenderingSurface ----------------------------------------------------

    def load(self, url: str) -> None:
        self.view.setUrl(QUrl(url))

    def go_back(self) -> None:
        self.view.back()

    def go_forward(self) -> None:
        self.view.forward()

    def reload(self) -> None:
        self.view.reload()

    def url(self) -> str | None:
        url = self.view.url()
        return url.toString() if url.isValid() and not url.isEmpty() else None

    def title(self) -> str | None:
        return self.view.title() or None

    def can_go_back(self) -> bool:
        return self.page.history().canGoBack()

    def can_go_forward(self) -> bool:
        return self.page.history().canGoForward()

    def add_user_script(self, name: str, source: str) -> None:
        self._insert_script(name, source, QWebEngineScript.InjectionPoint.DocumentReady)

    def evaluate(self, script: str, callback: Callable[[Any], None]) -> None:
        # World 0 is the page's main world, where the DOM is visible as-is
        self.page.runJavaScript(script, 0, callback)

    def set_event_handler(self, handler: Callable[[Any], None] | None) -> None:
        self._handler = handler

    def close(self) -> None:
        self._handler = None
        self.context_menu_handler = None
        self.view.stop()
        self.view.deleteLater()

    # --- Qt signal plumbing --------------------------------------------------

    def dispatch(self, event: Any) -> None:
        """Forward an engine event to the owning container."""
        if self._handler is not None:
            self._handler(event)

    def _insert_script(
        self, name: str, source: str, injection_point: QWebEngineScript.InjectionPoint
    ) -> None:
        script = QWebEngineScript()
        script.setName(name)
        script.setSourceCode(source)
        script.setInjectionPoint(injection_point)
        script.setWorldId(QWebEngineScript.ScriptWorldId.MainWorld)
        script.setRunsOnSubFrames(False)
        self.page.scripts().insert(script)

    def _on_load_finished(self, ok: bool) -> None:
        if not ok:
            logger.debug(f"Navigation did not finish cleanly: {self.url()}")
        self.dispatch(NavigationFinished())
        self.dispatch(HistoryChanged())

    def _on_new_window_requested(self, request: QWebEngineNewWindowRequest) -> None:
        # Leaving the request unanswered means no surface is created
        url = request.requestedUrl()
        self.dispatch(NewWindowRequested(url.toString() if url.isValid() else None))


def container_factory(
    config: ShellConfig, profile: QWebEngineProfile | None = None
) -> Callable[[str], WebContainer]:
    """
    Build the tab store's container factory.

    Args:
        config: Shell configuration
        profile: Web profile shared by every surface (default profile if None)

    Returns:
        Callable creating a container already loading a URL
    """

    def build(url: str) -> WebContainer:
        surface = WebEngineSurface(profile)
        container = WebContainer(
            surface,
            url,
            site_domain=config.site_domain,
            poll_interval_ms=config.poll_interval_ms,
        )
        surface.context_menu_handler = container.prepare_context_menu
        return container

    return build
