"""Core interfaces and protocols for the browser shell."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

# Host-provided context menu entries the shell replaces
OPEN_LINK_IN_NEW_TAB = "open-link-in-new-tab"
OPEN_LINK_IN_NEW_WINDOW = "open-link-in-new-window"


class RenderingSurface(Protocol):
    """Protocol for the embedded web-rendering engine."""

    def load(self, url: str) -> None:
        """Start loading a URL."""
        ...

    def go_back(self) -> None:
        """Navigate back in the surface's history."""
        ...

    def go_forward(self) -> None:
        """Navigate forward in the surface's history."""
        ...

    def reload(self) -> None:
        """Reload the current page."""
        ...

    def url(self) -> str | None:
        """Current address as reported by the engine."""
        ...

    def title(self) -> str | None:
        """Current document title as reported by the engine."""
        ...

    def can_go_back(self) -> bool:
        """Engine's native back capability."""
        ...

    def can_go_forward(self) -> bool:
        """Engine's native forward capability."""
        ...

    def add_user_script(self, name: str, source: str) -> None:
        """
        Inject a script into every document once it is ready.

        The script may call ``window.__scdeskPost({url, title})`` to send a
        location message back through the page-to-shell channel.

        Args:
            name: Unique script name
            source: JavaScript source
        """
        ...

    def evaluate(self, script: str, callback: Callable[[Any], None]) -> None:
        """
        Evaluate a read-only script against the live page.

        Args:
            script: JavaScript expression
            callback: Receives the result (None on error), later, on the UI thread
        """
        ...

    def set_event_handler(self, handler: Callable[[Any], None] | None) -> None:
        """Route surface events (see ``core.events``) to a handler."""
        ...

    def close(self) -> None:
        """Release the surface."""
        ...


class ContextMenu(Protocol):
    """Protocol for a context menu being shown over a surface."""

    def remove_actions(self, identifiers: Iterable[str]) -> None:
        """Remove host-provided entries by identifier."""
        ...

    def insert_action(
        self, index: int, title: str, callback: Callable[[], None]
    ) -> None:
        """Insert an entry that runs a callback when chosen."""
        ...

    def is_open(self) -> bool:
        """Whether the menu is still displayed."""
        ...
