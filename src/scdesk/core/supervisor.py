"""Download supervisor: launches, monitors and cancels downloader processes."""

from __future__ import annotations

import codecs
import logging
import os
from pathlib import Path
import subprocess
import threading
from typing import TYPE_CHECKING

import psutil

from ..storage.models import DEFAULT_SEARCH_PATH_PREFIXES, DownloadItem, DownloadStatus
from ..utils.helpers import augmented_search_path
from ..utils.validation import validate_url
from .events import ProcessExited, ProcessOutput

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from .console import DebugConsole
    from .events import EventChannel

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096


class ProcessHandle:
    """A running downloader process and the item it belongs to."""

    def __init__(self, item: DownloadItem, process: subprocess.Popen[bytes]) -> None:
        self.item = item
        self.process = process
        self.stopped = False
        self.return_code: int | None = None
        self.exit_dispatched = False
        self.reader: threading.Thread | None = None

    @property
    def pid(self) -> int:
        return self.process.pid

    def terminate(self) -> None:
        """Terminate the process and any transcoder it spawned. Abrupt."""
        try:
            children = psutil.Process(self.process.pid).children(recursive=True)
        except psutil.NoSuchProcess:
            children = []

        for child in children:
            try:
                child.terminate()
            except psutil.NoSuchProcess:
                pass

        if self.process.poll() is None:
            self.process.terminate()

    def __repr__(self) -> str:
        return f"ProcessHandle(pid={self.pid}, item={self.item.id})"


def build_arguments(url: str, destination: Path, use_lossless: bool) -> list[str]:
    """
    Compose scdl arguments.

    Args:
        url: Target URL
        destination: Download directory
        use_lossless: Prefer FLAC output when available

    Returns:
        Argument list, the continue flag last
    """
    arguments = ["-l", url, "--path", str(destination)]
    if use_lossless:
        arguments.append("--flac")
    arguments.append("-c")
    return arguments


def build_environment(prefixes: Iterable[str]) -> dict[str, str]:
    """Inherited environment with the install directories searched first."""
    env = dict(os.environ)
    env["PATH"] = augmented_search_path(prefixes, os.environ.get("PATH", ""))
    return env


class DownloadSupervisor:
    """
    Launches and tracks external downloader processes.

    Items are kept in insertion order and only ever move from downloading to
    completed or failed. The most recently started process is the single
    "current" one that ``stop()`` can cancel; earlier items still
    downloading keep running until they exit on their own or the supervisor
    shuts down.

    All state changes happen on the channel's owner thread: the output
    reader threads only post ``ProcessOutput``/``ProcessExited`` events.
    """

    def __init__(
        self,
        console: DebugConsole,
        channel: EventChannel,
        downloader_path: Path,
        search_path_prefixes: Iterable[str] = DEFAULT_SEARCH_PATH_PREFIXES,
    ) -> None:
        """
        Initialize the supervisor.

        Args:
            console: Debug console receiving process output and diagnostics
            channel: Channel marshalling process events onto the UI thread
            downloader_path: Expected scdl executable
            search_path_prefixes: Directories searched before the inherited PATH
        """
        self.console = console
        self.channel = channel
        self.downloader_path = downloader_path
        self.search_path_prefixes = list(search_path_prefixes)

        self._items: list[DownloadItem] = []
        self._handles: dict[str, ProcessHandle] = {}
        self._current: ProcessHandle | None = None
        self._listeners: list[Callable[[], None]] = []

        channel.subscribe(ProcessOutput, self._on_output)
        channel.subscribe(ProcessExited, self._on_exited)

    # --- Queries -------------------------------------------------------------

    @property
    def items(self) -> list[DownloadItem]:
        return list(self._items)

    @property
    def current_item(self) -> DownloadItem | None:
        """Item owning the current process, if any."""
        return self._current.item if self._current is not None else None

    def downloading(self) -> list[DownloadItem]:
        return self._with_status(DownloadStatus.DOWNLOADING)

    def completed(self) -> list[DownloadItem]:
        return self._with_status(DownloadStatus.COMPLETED)

    def failed(self) -> list[DownloadItem]:
        return self._with_status(DownloadStatus.FAILED)

    @property
    def last_status(self) -> DownloadStatus | None:
        """Status of the most recently started item."""
        return self._items[-1].status if self._items else None

    def _with_status(self, status: DownloadStatus) -> list[DownloadItem]:
        return [item for item in self._items if item.status is status]

    def add_listener(self, listener: Callable[[], None]) -> None:
        """Register a callback run after every item change."""
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # --- Lifecycle -----------------------------------------------------------

    def downloader_available(self) -> bool:
        """Whether the downloader is present and executable."""
        path = self.downloader_path
        return path.is_file() and os.access(path, os.X_OK)

    def start(
        self, url_string: str, destination: Path | str, use_lossless: bool = False
    ) -> DownloadItem | None:
        """
        Start downloading a URL.

        Args:
            url_string: URL to download
            destination: Download directory
            use_lossless: Prefer lossless output

        Returns:
            The new item (already failed if the launch itself failed), or None
            if the URL was invalid or the downloader is missing
        """
        url_string = (url_string or "").strip()
        if not validate_url(url_string):
            logger.warning(f"Refusing to download invalid URL {url_string!r}")
            self.console.append("No valid URL to download.")
            return None

        if not self.downloader_available():
            logger.error(f"Downloader not found at {self.downloader_path}")
            self.console.append(f"ERROR: scdl not found at {self.downloader_path}.")
            return None

        destination = Path(destination)
        arguments = build_arguments(url_string, destination, use_lossless)
        env = build_environment(self.search_path_prefixes)
        self.console.append(f"Running: {self.downloader_path} {' '.join(arguments)}")

        item = DownloadItem(url=url_string, destination=destination, lossless=use_lossless)
        self._items.append(item)

        try:
            process = subprocess.Popen(
                [str(self.downloader_path), *arguments],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                env=env,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.error(f"Failed to start download for {url_string}: {e}")
            self.console.append(f"Failed to start download: {e}")
            item.mark_failed()
            self._notify()
            return item

        handle = ProcessHandle(item, process)
        item.attach_process(handle)
        self._handles[item.id] = handle
        self._current = handle

        handle.reader = threading.Thread(
            target=self._stream_output,
            args=(handle,),
            name=f"scdl-output-{process.pid}",
            daemon=True,
        )
        handle.reader.start()

        logger.info(
            f"Started download for {url_string} (pid {process.pid})",
            extra={"item_id": item.id, "url": url_string},
        )
        self.console.append(f"Started download for {url_string}")
        self._notify()
        return item

    def can_stop(self, item: DownloadItem) -> bool:
        """Whether ``stop(item)`` would terminate a process."""
        handle = self._current
        return (
            item.status is DownloadStatus.DOWNLOADING
            and handle is not None
            and handle.item is item
            and item.process is handle
        )

    def stop(self, item: DownloadItem) -> bool:
        """
        Manually stop a download.

        Only effective while the item is downloading and owns the current
        process (by identity).

        Args:
            item: Item to stop

        Returns:
            True if the process was terminated
        """
        if not self.can_stop(item):
            return False

        handle = self._current
        handle.stopped = True
        handle.terminate()
        self._current = None
        item.mark_failed()

        logger.info(f"Download manually stopped for {item.file_name}", extra={"item_id": item.id})
        self.console.append(f"Download manually stopped for {item.file_name}")
        self._notify()
        return True

    def stop_current(self) -> bool:
        """Stop whichever item owns the current process."""
        if self._current is None:
            return False
        return self.stop(self._current.item)

    def shutdown(self) -> None:
        """Terminate every running process and fail their items."""
        for handle in list(self._handles.values()):
            if handle.exit_dispatched:
                continue

            handle.stopped = True
            handle.terminate()
            if not handle.item.is_terminal:
                handle.item.mark_failed()
                logger.info(f"Download stopped on exit for {handle.item.file_name}")

        self._current = None
        self._notify()

    def wait(self, item: DownloadItem, timeout: float | None = None) -> bool:
        """
        Wait for an item's process to exit and its events to be applied.

        Must be called on the channel's owner thread.

        Returns:
            True if the exit was dispatched before the timeout
        """
        handle = self._handles.get(item.id)
        if handle is None:
            return item.is_terminal
        return self.channel.wait_until(lambda: handle.exit_dispatched, timeout)

    # --- Process events ------------------------------------------------------

    def _stream_output(self, handle: ProcessHandle) -> None:
        """Reader thread: post decoded output chunks, then the exit code."""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        stream = handle.process.stdout

        try:
            while True:
                chunk = stream.read1(READ_CHUNK_SIZE)
                if not chunk:
                    break
                text = decoder.decode(chunk)
                if text:
                    self.channel.post(ProcessOutput(handle, text))

            tail = decoder.decode(b"", final=True)
            if tail:
                self.channel.post(ProcessOutput(handle, tail))
        except (OSError, ValueError) as e:
            logger.warning(f"Output stream for pid {handle.pid} closed: {e}")
        finally:
            stream.close()

        self.channel.post(ProcessExited(handle, handle.process.wait()))

    def _on_output(self, event: ProcessOutput) -> None:
        self.console.append(event.text)

    def _on_exited(self, event: ProcessExited) -> None:
        handle = event.handle
        item = handle.item
        handle.return_code = event.return_code

        self.console.append(f"Download finished for {item.url}")

        # A manual stop already failed the item; never transition it again
        if not item.is_terminal:
            if event.return_code == 0:
                item.mark_completed()
                logger.info(f"Download completed for {item.url}", extra={"item_id": item.id})
            else:
                item.mark_failed(event.return_code)
                logger.warning(
                    f"Download failed for {item.url} with status {event.return_code}",
                    extra={"item_id": item.id, "return_code": event.return_code},
                )
                self.console.append(f"Download failed with status: {event.return_code}")

        if self._current is handle:
            self._current = None

        handle.exit_dispatched = True
        self._notify()
