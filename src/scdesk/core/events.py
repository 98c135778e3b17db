"""Typed shell events and the single-consumer channel that delivers them.

Producers on any thread (process output readers, the startup dependency
probe) post events; the UI-owning thread drains the channel and runs the
subscribed handlers, so shared state is only ever mutated on that thread.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
import logging
import queue
import threading
import time
from typing import TYPE_CHECKING, Any

from ..errors import ChannelError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


# --- Process events -------------------------------------------------------


@dataclass(frozen=True)
class ProcessOutput:
    """A decoded chunk of merged stdout/stderr from a downloader process."""

    handle: Any
    text: str


@dataclass(frozen=True)
class ProcessExited:
    """A downloader process terminated."""

    handle: Any
    return_code: int


# --- Console events -------------------------------------------------------


@dataclass(frozen=True)
class ConsoleAppend:
    lines: tuple[str, ...]


@dataclass(frozen=True)
class ConsoleReset:
    message: str


# --- Startup probe --------------------------------------------------------


@dataclass(frozen=True)
class DependencyReport:
    """Result of probing for the downloader and the transcoder."""

    results: tuple[Any, ...]


# --- Page events ----------------------------------------------------------


@dataclass(frozen=True)
class LocationChanged:
    """The page-side observer saw a new address or title."""

    url: str
    title: str


@dataclass(frozen=True)
class NavigationFinished:
    """The surface finished loading a navigation."""


@dataclass(frozen=True)
class HistoryChanged:
    """The surface's back/forward capability may have changed."""


@dataclass(frozen=True)
class NewWindowRequested:
    """The page asked for a new rendering surface (target=_blank, window.open)."""

    url: str | None


class EventChannel:
    """Thread-safe, single-consumer event channel."""

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[Any] = queue.SimpleQueue()
        self._handlers: dict[type, list[Callable[[Any], None]]] = defaultdict(list)
        self._owner = threading.get_ident()

    @property
    def owner_thread(self) -> int:
        """Identifier of the thread allowed to drain the channel."""
        return self._owner

    def on_owner_thread(self) -> bool:
        """Whether the calling thread is the consumer thread."""
        return threading.get_ident() == self._owner

    def subscribe(self, event_type: type, handler: Callable[[Any], None]) -> None:
        """
        Register a handler for an event type.

        Args:
            event_type: Event class to handle
            handler: Callable run on the owner thread for each event
        """
        self._handlers[event_type].append(handler)

    def post(self, event: Any) -> None:
        """Queue an event. Safe to call from any thread."""
        self._queue.put(event)

    def drain(self) -> int:
        """
        Dispatch every queued event in FIFO order.

        Returns:
            Number of events dispatched

        Raises:
            ChannelError: If called from a thread other than the owner
        """
        if not self.on_owner_thread():
            raise ChannelError("EventChannel.drain() called off the owner thread")

        dispatched = 0
        while True:
            try:
                event = self._queue.get_nowait()
            except queue.Empty:
                return dispatched

            handlers = self._handlers.get(type(event))
            if not handlers:
                logger.debug(f"No handler for {type(event).__name__}")
            else:
                for handler in list(handlers):
                    handler(event)
            dispatched += 1

    def wait_until(
        self,
        predicate: Callable[[], bool],
        timeout: float | None = None,
        interval: float = 0.01,
    ) -> bool:
        """
        Drain repeatedly until a predicate holds.

        Args:
            predicate: Condition checked after each drain
            timeout: Maximum seconds to wait (None waits forever)
            interval: Sleep between drains

        Returns:
            True if the predicate held, False on timeout
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            self.drain()
            if predicate():
                return True
            if deadline is not None and time.monotonic() >= deadline:
                return False
            time.sleep(interval)
