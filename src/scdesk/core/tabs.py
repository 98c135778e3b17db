"""Tab collection, selection and lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING

from cuid import cuid

if TYPE_CHECKING:
    from collections.abc import Callable

    from .container import WebContainer

logger = logging.getLogger(__name__)

DEFAULT_MAX_TABS = 10


@dataclass(eq=False)
class Tab:
    """A user-visible slot owning exactly one web container."""

    initial_url: str
    container: WebContainer
    id: str = field(default_factory=cuid)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Tab) and other.id == self.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def title(self) -> str:
        return self.container.display_name


class TabStore:
    """
    Ordered tab collection with a single selection.

    Exactly one tab is selected whenever the collection is non-empty.
    Closing the last tab is terminal: ``on_empty`` runs (the GUI quits) and
    the store refuses further tabs.
    """

    def __init__(
        self,
        container_factory: Callable[[str], WebContainer],
        max_tabs: int = DEFAULT_MAX_TABS,
        on_limit_reached: Callable[[], None] | None = None,
        on_empty: Callable[[], None] | None = None,
        window_opener: Callable[[str], object] | None = None,
    ) -> None:
        """
        Initialize the tab store.

        Args:
            container_factory: Builds a container already loading a URL
            max_tabs: Live tab ceiling
            on_limit_reached: Alert hook when the ceiling refuses a tab
            on_empty: Hook run when the last tab closes
            window_opener: Opens a URL in an independent top-level window
        """
        self._container_factory = container_factory
        self.max_tabs = max_tabs
        self.on_limit_reached = on_limit_reached
        self.on_empty = on_empty
        self.window_opener = window_opener

        self._tabs: list[Tab] = []
        self._selected: Tab | None = None
        self._terminated = False
        self._listeners: list[Callable[[], None]] = []

    @property
    def tabs(self) -> list[Tab]:
        return list(self._tabs)

    @property
    def selected_tab(self) -> Tab | None:
        return self._selected

    @property
    def is_terminated(self) -> bool:
        """True once the last tab was closed."""
        return self._terminated

    def __len__(self) -> int:
        return len(self._tabs)

    def __contains__(self, tab: object) -> bool:
        return tab in self._tabs

    def add_listener(self, listener: Callable[[], None]) -> None:
        """Register a callback run after every tab or selection change."""
        self._listeners.append(listener)

    def find(self, tab_id: str) -> Tab | None:
        """Get a live tab by id."""
        return next((tab for tab in self._tabs if tab.id == tab_id), None)

    def add_tab(self, url: str) -> Tab | None:
        """
        Open a new tab on a URL and select it.

        Args:
            url: URL the new tab starts loading

        Returns:
            The new tab, or None when the ceiling refused it
        """
        if self._terminated:
            logger.warning(f"Ignoring new tab for {url}: the last tab was closed")
            return None

        if len(self._tabs) >= self.max_tabs:
            logger.info(f"Tab limit of {self.max_tabs} reached, not opening {url}")
            if self.on_limit_reached is not None:
                self.on_limit_reached()
            return None

        container = self._container_factory(url)
        container.on_open_new_tab = self.add_tab
        container.on_open_new_window = self.open_window

        tab = Tab(initial_url=url, container=container)
        self._tabs.append(tab)
        self._selected = tab
        logger.info(f"Tab added: {url}. Total tabs: {len(self._tabs)}")

        container.add_listener(lambda _container: self._notify())
        self._notify()
        return tab

    def close_tab(self, tab: Tab) -> bool:
        """
        Close a tab.

        Closing an already-closed tab is a no-op.

        Args:
            tab: Tab to close

        Returns:
            True if the tab was open and is now closed
        """
        if tab not in self._tabs:
            logger.debug(f"Tab {tab.id} already closed")
            return False

        self._tabs.remove(tab)
        tab.container.close()

        if self._selected == tab:
            self._selected = self._tabs[-1] if self._tabs else None

        logger.info(f"Tab closed. Total tabs: {len(self._tabs)}")
        self._notify()

        if not self._tabs:
            self._terminated = True
            logger.info("Last tab closed")
            if self.on_empty is not None:
                self.on_empty()
        return True

    def close_selected(self) -> bool:
        """Close the selected tab, if any."""
        if self._selected is None:
            return False
        return self.close_tab(self._selected)

    def select_tab(self, tab: Tab) -> bool:
        """
        Select a live tab. Containers are not touched.

        Returns:
            True if the selection changed
        """
        if tab not in self._tabs:
            logger.warning(f"Cannot select closed tab {tab.id}")
            return False
        if self._selected == tab:
            return False

        self._selected = tab
        self._notify()
        return True

    def open_current_in_new_tab(self) -> Tab | None:
        """Open the selected tab's current URL in a new tab."""
        if self._selected is None:
            return None

        url = self._selected.container.current_url
        if not url:
            return None
        return self.add_tab(url)

    def open_window(self, url: str) -> None:
        """Open a URL in an independent window not tracked by this store."""
        if self.window_opener is None:
            logger.info(f"No window opener configured, ignoring {url}")
            return
        self.window_opener(url)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()
