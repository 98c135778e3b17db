"""Tests for the debug console model."""

from __future__ import annotations

import logging
import threading

from scdesk.core.console import DebugConsole, split_lines
from scdesk.core.events import EventChannel
from scdesk.utils.logging import LogCapture


class TestSplitLines:
    def test_drops_blank_lines(self):
        assert split_lines("a\n\nb") == ["a", "b"]

    def test_trims_whitespace(self):
        assert split_lines("  a  \r\n\t b\t") == ["a", "b"]

    def test_whitespace_only(self):
        assert split_lines(" \n\t\n ") == []


class TestDebugConsole:
    def test_append_splits_and_filters(self):
        console = DebugConsole()
        console.append("a\n\nb")
        assert console.messages == ["a", "b"]

    def test_append_blank_is_noop(self):
        console = DebugConsole()
        notified = []
        console.add_listener(lambda: notified.append(True))

        console.append("")
        console.append("   \n  ")

        assert console.messages == []
        assert notified == []

    def test_extend_preserves_order(self):
        console = DebugConsole()
        console.extend(["one\ntwo", "", "three"])
        assert console.messages == ["one", "two", "three"]

    def test_set_replaces_log(self):
        console = DebugConsole()
        console.append("old\nlines")
        console.set("fresh")
        assert console.messages == ["fresh"]

    def test_text_joins_lines(self):
        console = DebugConsole()
        console.extend(["a", "b"])
        assert console.text() == "a\nb"

    def test_messages_is_a_copy(self):
        console = DebugConsole()
        console.append("a")
        console.messages.append("b")
        assert len(console) == 1

    def test_max_lines_drops_oldest(self):
        console = DebugConsole(max_lines=3)
        console.extend(["1", "2", "3", "4\n5"])
        assert console.messages == ["3", "4", "5"]

    def test_listener_runs_after_each_mutation(self):
        console = DebugConsole()
        sizes = []
        console.add_listener(lambda: sizes.append(len(console)))

        console.append("a")
        console.append("b\nc")
        console.set("d")

        assert sizes == [1, 3, 1]

    def test_off_thread_append_is_deferred_until_drain(self):
        channel = EventChannel()
        console = DebugConsole()
        console.attach(channel)

        thread = threading.Thread(target=console.append, args=("from worker\n",))
        thread.start()
        thread.join()

        assert console.messages == []
        channel.drain()
        assert console.messages == ["from worker"]

    def test_off_thread_set_is_deferred_until_drain(self):
        channel = EventChannel()
        console = DebugConsole()
        console.attach(channel)
        console.append("before")

        thread = threading.Thread(target=console.set, args=("reset",))
        thread.start()
        thread.join()

        assert console.messages == ["before"]
        channel.drain()
        assert console.messages == ["reset"]

    def test_lines_are_mirrored_to_logging(self):
        console = DebugConsole()
        with LogCapture("scdesk.console", level=logging.DEBUG) as capture:
            console.append("mirrored line")

        assert capture.has_message_containing("mirrored line")
