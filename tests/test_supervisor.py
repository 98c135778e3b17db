"""Tests for the download supervisor.

The downloader is stood in for by small shell scripts, so every test here
runs real child processes through the real output reader and exit path.
"""

from __future__ import annotations

import subprocess
import time

import psutil
import pytest

from scdesk.core.supervisor import build_arguments
from scdesk.errors import DownloadStateError
from scdesk.storage.models import DownloadStatus

URL = "https://soundcloud.com/artist/track"
OTHER_URL = "https://soundcloud.com/artist/other"

ECHO_ARGS = 'echo "args: $*"\necho "to stderr" >&2\nexit 0\n'
SLEEPER = "echo started\nsleep 30\n"


class TestBuildArguments:
    def test_continue_flag_last(self, tmp_path):
        assert build_arguments(URL, tmp_path, False) == ["-l", URL, "--path", str(tmp_path), "-c"]

    def test_lossless_flag(self, tmp_path):
        arguments = build_arguments(URL, tmp_path, True)
        assert arguments[-2:] == ["--flac", "-c"]


class TestStartRefusals:
    @pytest.mark.parametrize("url", ["", "   ", "not a url", "soundcloud.com/a"])
    def test_invalid_url_creates_nothing(self, supervisor_for, make_downloader, console, download_dir, url):
        supervisor = supervisor_for(make_downloader(ECHO_ARGS))

        assert supervisor.start(url, download_dir) is None
        assert supervisor.items == []
        assert console.messages == ["No valid URL to download."]

    def test_missing_downloader(self, supervisor_for, console, tmp_path, download_dir):
        missing = tmp_path / "nowhere" / "scdl"
        supervisor = supervisor_for(missing)

        assert supervisor.start(URL, download_dir) is None

        assert supervisor.items == []
        assert supervisor.current_item is None
        naming_path = [line for line in console.messages if str(missing) in line]
        assert naming_path == [f"ERROR: scdl not found at {missing}."]

    def test_non_executable_downloader(self, supervisor_for, console, tmp_path, download_dir):
        script = tmp_path / "scdl"
        script.write_text("#!/bin/sh\nexit 0\n")
        script.chmod(0o644)
        supervisor = supervisor_for(script)

        assert supervisor.start(URL, download_dir) is None
        assert supervisor.items == []


class TestRun:
    def test_successful_run_completes(self, supervisor_for, make_downloader, console, download_dir):
        supervisor = supervisor_for(make_downloader(ECHO_ARGS))

        item = supervisor.start(URL, download_dir)
        assert item is not None
        assert item.status is DownloadStatus.DOWNLOADING
        assert supervisor.current_item is item
        assert item.file_name == "track"

        assert supervisor.wait(item, timeout=10)

        assert item.status is DownloadStatus.COMPLETED
        assert item.return_code == 0
        assert item.process is None
        assert supervisor.current_item is None
        assert f"Started download for {URL}" in console.messages
        assert f"args: -l {URL} --path {download_dir} -c" in console.messages
        assert "to stderr" in console.messages
        assert console.messages[-1] == f"Download finished for {URL}"

    def test_finished_line_precedes_completion(self, supervisor_for, make_downloader, console, download_dir):
        supervisor = supervisor_for(make_downloader(ECHO_ARGS))
        finished_seen_at_completion = []

        def on_change():
            items = supervisor.items
            if items and items[-1].status is DownloadStatus.COMPLETED:
                finished_seen_at_completion.append(
                    f"Download finished for {URL}" in console.messages
                )

        supervisor.add_listener(on_change)
        item = supervisor.start(URL, download_dir)
        supervisor.wait(item, timeout=10)

        assert finished_seen_at_completion and all(finished_seen_at_completion)

    def test_running_line_lists_arguments(self, supervisor_for, make_downloader, console, download_dir):
        downloader = make_downloader(ECHO_ARGS)
        supervisor = supervisor_for(downloader)

        item = supervisor.start(URL, download_dir, use_lossless=True)
        supervisor.wait(item, timeout=10)

        assert f"Running: {downloader} -l {URL} --path {download_dir} --flac -c" in console.messages
        assert item.lossless is True

    def test_nonzero_exit_fails(self, supervisor_for, make_downloader, console, download_dir):
        supervisor = supervisor_for(make_downloader("echo oops\nexit 3\n"))

        item = supervisor.start(URL, download_dir)
        supervisor.wait(item, timeout=10)

        assert item.status is DownloadStatus.FAILED
        assert item.return_code == 3
        assert "Download failed with status: 3" in console.messages
        assert supervisor.last_status is DownloadStatus.FAILED

    def test_output_lines_are_trimmed_and_ordered(self, supervisor_for, make_downloader, console, download_dir):
        supervisor = supervisor_for(make_downloader('printf "  one  \\n\\n\\ttwo\\nthree\\n"\n'))

        item = supervisor.start(URL, download_dir)
        supervisor.wait(item, timeout=10)

        output = [line for line in console.messages if line in {"one", "two", "three"}]
        assert output == ["one", "two", "three"]

    def test_search_path_prefixes_come_first(self, supervisor_for, make_downloader, console, download_dir):
        supervisor = supervisor_for(make_downloader('echo "PATH=$PATH"\n'))

        item = supervisor.start(URL, download_dir)
        supervisor.wait(item, timeout=10)

        path_line = next(line for line in console.messages if line.startswith("PATH="))
        assert path_line.startswith("PATH=/usr/local/bin:/opt/homebrew/bin:/usr/bin")

    def test_launch_failure_fails_item(self, supervisor_for, make_downloader, console, download_dir, monkeypatch):
        supervisor = supervisor_for(make_downloader(ECHO_ARGS))

        def refuse(*args, **kwargs):
            raise PermissionError("permission denied")

        monkeypatch.setattr(subprocess, "Popen", refuse)
        item = supervisor.start(URL, download_dir)

        assert item is not None
        assert item.status is DownloadStatus.FAILED
        assert supervisor.current_item is None
        assert supervisor.items == [item]
        assert "Failed to start download: permission denied" in console.messages

    def test_output_streams_while_running(self, supervisor_for, make_downloader, channel, console, download_dir):
        supervisor = supervisor_for(make_downloader("echo started\nsleep 3\n"))
        item = supervisor.start(URL, download_dir)

        assert channel.wait_until(lambda: "started" in console.messages, timeout=2)
        assert item.status is DownloadStatus.DOWNLOADING
        assert item.return_code is None

    def test_items_keep_insertion_order(self, supervisor_for, make_downloader, download_dir):
        supervisor = supervisor_for(make_downloader(ECHO_ARGS))

        first = supervisor.start(URL, download_dir)
        second = supervisor.start(OTHER_URL, download_dir)
        supervisor.wait(first, timeout=10)
        supervisor.wait(second, timeout=10)

        assert supervisor.items == [first, second]
        assert supervisor.completed() == [first, second]
        assert supervisor.last_status is DownloadStatus.COMPLETED


class TestStop:
    def test_stop_current(self, supervisor_for, make_downloader, console, download_dir):
        supervisor = supervisor_for(make_downloader(SLEEPER))
        item = supervisor.start(URL, download_dir)

        assert supervisor.stop(item) is True

        assert item.status is DownloadStatus.FAILED
        assert supervisor.current_item is None
        assert "Download manually stopped for track" in console.messages

        # the natural exit still arrives but must not transition again
        assert supervisor.wait(item, timeout=10)
        assert item.status is DownloadStatus.FAILED
        assert not any(line.startswith("Download failed with status") for line in console.messages)

    def test_stop_terminates_child_processes(self, supervisor_for, make_downloader, download_dir):
        supervisor = supervisor_for(make_downloader(SLEEPER))
        item = supervisor.start(URL, download_dir)
        parent = psutil.Process(item.process.pid)

        children = []
        for _ in range(100):
            children = parent.children(recursive=True)
            if children:
                break
            time.sleep(0.05)

        supervisor.stop(item)
        _gone, alive = psutil.wait_procs(children, timeout=5)
        assert alive == []

    def test_stop_non_current_item_is_noop(self, supervisor_for, make_downloader, download_dir):
        supervisor = supervisor_for(make_downloader(SLEEPER))
        first = supervisor.start(URL, download_dir)
        second = supervisor.start(OTHER_URL, download_dir)

        assert supervisor.current_item is second
        assert supervisor.can_stop(first) is False
        assert supervisor.can_stop(second) is True
        assert supervisor.stop(first) is False
        assert first.status is DownloadStatus.DOWNLOADING
        assert supervisor.current_item is second

    def test_stop_terminal_item_is_noop(self, supervisor_for, make_downloader, console, download_dir):
        supervisor = supervisor_for(make_downloader(ECHO_ARGS))
        item = supervisor.start(URL, download_dir)
        supervisor.wait(item, timeout=10)
        lines = console.messages

        assert supervisor.can_stop(item) is False
        assert supervisor.stop(item) is False
        assert item.status is DownloadStatus.COMPLETED
        assert console.messages == lines

    def test_stop_item_with_foreign_id_is_noop(self, supervisor_for, make_downloader, download_dir):
        supervisor = supervisor_for(make_downloader(SLEEPER))
        item = supervisor.start(URL, download_dir)
        lookalike = item.model_copy()

        assert supervisor.stop(lookalike) is False
        assert item.status is DownloadStatus.DOWNLOADING

    def test_stop_current_without_process(self, supervisor_for, make_downloader):
        supervisor = supervisor_for(make_downloader(ECHO_ARGS))
        assert supervisor.stop_current() is False

    def test_earlier_exit_does_not_clear_current(self, supervisor_for, make_downloader, tmp_path, download_dir):
        quick = make_downloader(ECHO_ARGS, name="quick")
        supervisor = supervisor_for(quick)
        first = supervisor.start(URL, download_dir)

        supervisor.downloader_path = make_downloader(SLEEPER, name="slow")
        second = supervisor.start(OTHER_URL, download_dir)
        supervisor.wait(first, timeout=10)

        assert first.status is DownloadStatus.COMPLETED
        assert supervisor.current_item is second
        assert supervisor.stop_current() is True
        assert second.status is DownloadStatus.FAILED


class TestShutdown:
    def test_shutdown_fails_running_items(self, supervisor_for, make_downloader, download_dir):
        supervisor = supervisor_for(make_downloader(SLEEPER))
        first = supervisor.start(URL, download_dir)
        second = supervisor.start(OTHER_URL, download_dir)

        supervisor.shutdown()

        assert first.status is DownloadStatus.FAILED
        assert second.status is DownloadStatus.FAILED
        assert supervisor.current_item is None
        assert supervisor.wait(first, timeout=10)
        assert supervisor.wait(second, timeout=10)


class TestItemTransitions:
    def test_terminal_items_cannot_transition(self, supervisor_for, make_downloader, download_dir):
        supervisor = supervisor_for(make_downloader(ECHO_ARGS))
        item = supervisor.start(URL, download_dir)
        supervisor.wait(item, timeout=10)

        with pytest.raises(DownloadStateError):
            item.mark_failed()
        with pytest.raises(DownloadStateError):
            item.mark_completed()
        assert item.status is DownloadStatus.COMPLETED
