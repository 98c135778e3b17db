"""Web container: one rendering surface plus its derived navigation state."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from ..utils.helpers import short_display_name
from .classifier import PAGE_SNAPSHOT_SCRIPT, classify_result, link_under_cursor_script
from .events import HistoryChanged, LocationChanged, NavigationFinished, NewWindowRequested
from .interfaces import OPEN_LINK_IN_NEW_TAB, OPEN_LINK_IN_NEW_WINDOW

if TYPE_CHECKING:
    from collections.abc import Callable

    from .interfaces import ContextMenu, RenderingSurface

logger = logging.getLogger(__name__)

PAGE_OBSERVER_NAME = "scdesk-location-observer"

# Polls instead of listening for navigation events: single-page routing
# changes the address without firing any.
PAGE_OBSERVER_TEMPLATE = """
(function() {
    var currentHref = null;
    var currentTitle = null;
    function checkChanges() {
        var changed = window.location.href !== currentHref || document.title !== currentTitle;
        // The bridge may still be connecting; retry on the next tick
        if (changed && window.__scdeskPost) {
            currentHref = window.location.href;
            currentTitle = document.title;
            window.__scdeskPost({url: currentHref, title: currentTitle});
        }
        setTimeout(checkChanges, %d);
    }
    checkChanges();
})();
"""


def page_observer_script(interval_ms: int = 500) -> str:
    """Page-side change-detection loop posting ``{url, title}``."""
    return PAGE_OBSERVER_TEMPLATE % interval_ms


def host_matches(url: str, domain: str) -> bool:
    """Whether a URL's host is the domain or one of its subdomains."""
    host = (urlparse(url).hostname or "").lower()
    return host == domain or host.endswith("." + domain)


class WebContainer:
    """Owns one rendering surface and keeps its navigation state current."""

    def __init__(
        self,
        surface: RenderingSurface,
        url: str,
        site_domain: str = "soundcloud.com",
        poll_interval_ms: int = 500,
    ) -> None:
        """
        Configure the surface and start loading a URL.

        Args:
            surface: Rendering surface to own
            url: Initial URL
            site_domain: Host whose links get an "Open Link in New Tab" entry
            poll_interval_ms: Page observer polling interval
        """
        self.surface = surface
        self.initial_url = url
        self.site_domain = site_domain.lower()

        self.current_url: str | None = url
        self.current_title: str | None = None
        self.can_go_back = False
        self.can_go_forward = False

        self.on_open_new_tab: Callable[[str], None] | None = None
        self.on_open_new_window: Callable[[str], None] | None = None

        self._listeners: list[Callable[[WebContainer], None]] = []
        self._closed = False

        surface.add_user_script(PAGE_OBSERVER_NAME, page_observer_script(poll_interval_ms))
        surface.set_event_handler(self.handle_event)
        surface.load(url)
        self._refresh_capabilities()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def display_name(self) -> str:
        """Short title for tab headers."""
        return short_display_name(self.current_url, f"https://{self.site_domain}")

    def add_listener(self, listener: Callable[[WebContainer], None]) -> None:
        """Register a callback run whenever navigation state changes."""
        self._listeners.append(listener)

    # --- Navigation ----------------------------------------------------------

    def go_back(self) -> None:
        self.surface.go_back()

    def go_forward(self) -> None:
        self.surface.go_forward()

    def reload(self) -> None:
        self.surface.reload()

    # --- Surface events ------------------------------------------------------

    def handle_event(self, event: Any) -> None:
        """Apply a surface event. Must be called on the UI thread."""
        if self._closed:
            return

        if isinstance(event, LocationChanged):
            self._apply_location(event.url, event.title)
        elif isinstance(event, NavigationFinished):
            self._apply_navigation_finished()
        elif isinstance(event, HistoryChanged):
            self._refresh_capabilities()
        elif isinstance(event, NewWindowRequested):
            self.request_new_surface(event.url)
        else:
            logger.debug(f"Ignoring surface event {event!r}")

    def _apply_location(self, url: str, title: str) -> None:
        parsed = urlparse(url)
        if not parsed.scheme:
            logger.debug(f"Ignoring location message with unparseable URL {url!r}")
            return

        changed = False
        if self.current_url != url:
            self.current_url = url
            changed = True
        if self.current_title != title:
            self.current_title = title
            changed = True

        if changed:
            self._notify()

    def _apply_navigation_finished(self) -> None:
        # Fallback for pages where the injected observer never reports
        url = self.surface.url()
        if not url:
            return

        changed = False
        if self.current_url != url:
            self.current_url = url
            changed = True

        title = (self.surface.title() or "").strip()
        if title and self.current_title != title:
            self.current_title = title
            changed = True

        if changed:
            self._notify()

    def _refresh_capabilities(self) -> None:
        can_go_back = bool(self.surface.can_go_back())
        can_go_forward = bool(self.surface.can_go_forward())
        if (can_go_back, can_go_forward) != (self.can_go_back, self.can_go_forward):
            self.can_go_back = can_go_back
            self.can_go_forward = can_go_forward
            self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # --- New tabs and windows ------------------------------------------------

    def request_new_surface(self, url: str | None) -> None:
        """
        Handle a page request for a new rendering surface.

        No nested surface is ever created; the destination is re-routed
        through ``on_open_new_tab``.

        Returns:
            None, meaning no surface was created
        """
        if url:
            self._open_new_tab(url)
        return None

    def prepare_context_menu(self, menu: ContextMenu, x: float, y: float) -> None:
        """
        Replace the host's "open link in new tab/window" entries.

        The link under the cursor is resolved asynchronously; if the menu has
        closed by the time it resolves, nothing happens.

        Args:
            menu: Menu about to be shown
            x: Cursor x in viewport coordinates
            y: Cursor y in viewport coordinates
        """
        menu.remove_actions([OPEN_LINK_IN_NEW_TAB, OPEN_LINK_IN_NEW_WINDOW])
        self.surface.evaluate(
            link_under_cursor_script(x, y),
            lambda result: self._offer_link(menu, result),
        )

    def _offer_link(self, menu: ContextMenu, result: Any) -> None:
        if self._closed or not menu.is_open():
            return
        if not isinstance(result, str) or not host_matches(result, self.site_domain):
            return

        url = result
        menu.insert_action(0, "Open Link in New Tab", lambda: self._open_new_tab(url))
        if self.on_open_new_window is not None:
            menu.insert_action(
                1, "Open Link in New Window", lambda: self.open_in_new_window(url)
            )

    def _open_new_tab(self, url: str) -> None:
        logger.info(f"Request to open in new tab: {url}")
        if self.on_open_new_tab is not None:
            self.on_open_new_tab(url)

    def open_in_new_window(self, url: str) -> None:
        """Route a URL to an independent top-level window."""
        logger.info(f"Request to open in new window: {url}")
        if self.on_open_new_window is not None:
            self.on_open_new_window(url)

    # --- Page inspection -----------------------------------------------------

    def classify_current_page(self, callback: Callable[[str | None], None]) -> None:
        """
        Infer the downloadable URL for the displayed page.

        Args:
            callback: Receives the URL, or None when the page gave nothing usable
        """
        if self._closed:
            callback(None)
            return
        self.surface.evaluate(PAGE_SNAPSHOT_SCRIPT, lambda result: callback(classify_result(result)))

    def link_under_cursor(
        self, x: float, y: float, callback: Callable[[str | None], None]
    ) -> None:
        """Resolve the href of the anchor under a viewport point."""
        if self._closed:
            callback(None)
            return
        self.surface.evaluate(
            link_under_cursor_script(x, y),
            lambda result: callback(result if isinstance(result, str) and result else None),
        )

    def close(self) -> None:
        """Release the surface; later events are ignored."""
        if self._closed:
            return
        self._closed = True
        self.surface.set_event_handler(None)
        self.surface.close()
        self._listeners.clear()
