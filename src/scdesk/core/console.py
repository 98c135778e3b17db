"""Append-only debug console shared by the supervisor and diagnostics."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from .events import ConsoleAppend, ConsoleReset

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from .events import EventChannel

logger = logging.getLogger(__name__)
mirror_logger = logging.getLogger("scdesk.console")


def split_lines(text: str) -> list[str]:
    """Split text on newlines, dropping blank lines and trimming the rest."""
    return [line.strip() for line in text.splitlines() if line.strip()]


class DebugConsole:
    """
    Debug log model.

    Mutations are applied on the thread that created the console. Calls made
    from any other thread are posted to the attached channel and applied
    when the owner drains it.
    """

    def __init__(self, max_lines: int | None = None) -> None:
        """
        Initialize the console.

        Args:
            max_lines: Optional cap; oldest lines are dropped beyond it
        """
        self.max_lines = max_lines
        self._messages: list[str] = []
        self._listeners: list[Callable[[], None]] = []
        self._owner = threading.get_ident()
        self._channel: EventChannel | None = None

    def attach(self, channel: EventChannel) -> None:
        """Route off-thread mutations through a channel."""
        self._channel = channel
        self._owner = channel.owner_thread
        channel.subscribe(ConsoleAppend, lambda event: self._extend(event.lines))
        channel.subscribe(ConsoleReset, lambda event: self._reset(event.message))

    def add_listener(self, listener: Callable[[], None]) -> None:
        """Register a callback run after every mutation."""
        self._listeners.append(listener)

    @property
    def messages(self) -> list[str]:
        """Copy of the current log entries."""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def text(self) -> str:
        """Log entries joined for display."""
        return "\n".join(self._messages)

    def set(self, message: str) -> None:
        """Replace the entire log with a single entry."""
        if self._off_thread():
            self._channel.post(ConsoleReset(message))
        else:
            self._reset(message)

    def append(self, message: str) -> None:
        """Append the non-blank lines of a message."""
        self.extend([message])

    def extend(self, messages: Iterable[str]) -> None:
        """Append the non-blank lines of several messages, preserving order."""
        lines = tuple(line for message in messages for line in split_lines(message))
        if not lines:
            return

        if self._off_thread():
            self._channel.post(ConsoleAppend(lines))
        else:
            self._extend(lines)

    def _off_thread(self) -> bool:
        return self._channel is not None and threading.get_ident() != self._owner

    def _reset(self, message: str) -> None:
        self._messages = [message]
        mirror_logger.debug(message)
        self._notify()

    def _extend(self, lines: Iterable[str]) -> None:
        for line in lines:
            mirror_logger.debug(line)
            self._messages.append(line)

        if self.max_lines is not None and len(self._messages) > self.max_lines:
            del self._messages[: len(self._messages) - self.max_lines]
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()
