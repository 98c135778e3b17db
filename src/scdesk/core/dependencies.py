"""Startup probe for the downloader and its transcoder."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
import shutil
from typing import TYPE_CHECKING

from .events import DependencyReport

if TYPE_CHECKING:
    from concurrent.futures import Executor, Future

    from .console import DebugConsole
    from .events import EventChannel

logger = logging.getLogger(__name__)

TRANSCODER_NAME = "ffmpeg"


@dataclass(frozen=True)
class DependencyResult:
    """Outcome of looking for one external tool."""

    name: str
    found: bool
    location: str | None
    searched: str

    def describe(self) -> str:
        if self.found:
            return f"{self.name} found at {self.location}"
        return f"{self.name} not found (searched {self.searched})"


def probe_downloader(downloader_path: Path) -> DependencyResult:
    """Check the downloader is an executable file at its expected path."""
    found = downloader_path.is_file() and os.access(downloader_path, os.X_OK)
    return DependencyResult(
        name="scdl",
        found=found,
        location=str(downloader_path) if found else None,
        searched=str(downloader_path),
    )


def probe_transcoder(search_path: str, name: str = TRANSCODER_NAME) -> DependencyResult:
    """Look the transcoder up on an executable search path."""
    location = shutil.which(name, path=search_path)
    return DependencyResult(
        name=name, found=location is not None, location=location, searched=search_path
    )


def probe_dependencies(downloader_path: Path, search_path: str) -> tuple[DependencyResult, ...]:
    """
    Probe for every external tool a download needs.

    Blocking: touches the filesystem once per search path entry. Run it off
    the UI thread.

    Args:
        downloader_path: Expected downloader executable
        search_path: Augmented executable search path

    Returns:
        Results for the downloader and the transcoder, in that order
    """
    results = (probe_downloader(downloader_path), probe_transcoder(search_path))
    for result in results:
        if result.found:
            logger.info(result.describe())
        else:
            logger.warning(result.describe())
    return results


def report_lines(results: tuple[DependencyResult, ...]) -> list[str]:
    """Console lines for a dependency report."""
    lines = ["Checking dependencies..."]
    for result in results:
        if result.found:
            lines.append(f"{result.name} found at {result.location}")
        else:
            lines.append(f"WARNING: {result.name} not found. Searched: {result.searched}")
    if all(result.found for result in results):
        lines.append("All dependencies available.")
    return lines


def start_dependency_probe(
    executor: Executor,
    channel: EventChannel,
    console: DebugConsole,
    downloader_path: Path,
    search_path: str,
) -> Future[tuple[DependencyResult, ...]]:
    """
    Run the probe on a background executor and render it into the console.

    The report is posted to the channel, so the console is only touched on
    the channel's owner thread.

    Returns:
        Future of the probe results
    """
    channel.subscribe(DependencyReport, lambda event: console.extend(report_lines(event.results)))

    def run() -> tuple[DependencyResult, ...]:
        results = probe_dependencies(downloader_path, search_path)
        channel.post(DependencyReport(results))
        return results

    return executor.submit(run)
