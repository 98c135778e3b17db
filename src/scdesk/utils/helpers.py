"""Common utility functions."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlparse

if TYPE_CHECKING:
    from collections.abc import Iterable


def real_user_home() -> Path:
    """
    Get the invoking user's home directory from the password database.

    ``$HOME`` may be redirected (sandboxes, sudo environments); the downloader
    is always installed under the account's real home.

    Returns:
        Home directory path
    """
    try:
        import pwd

        return Path(pwd.getpwuid(os.getuid()).pw_dir)
    except (ImportError, KeyError):
        return Path.home()


def augmented_search_path(prefixes: Iterable[str], inherited: str | None = None) -> str:
    """
    Build an executable search path with fixed directories first.

    Args:
        prefixes: Directories to search before the inherited value
        inherited: Inherited PATH value (defaults to the current environment)

    Returns:
        PATH string joined with the platform separator
    """
    if inherited is None:
        inherited = os.environ.get("PATH", "")
    return os.pathsep.join(entry for entry in [*prefixes, inherited] if entry)


def file_name_guess(url: str) -> str:
    """
    Guess a display file name from the last path segment of a URL.

    Args:
        url: Source URL

    Returns:
        Last non-empty path segment, or the host when the path is empty
    """
    parsed = urlparse(url)
    segments = [segment for segment in parsed.path.split("/") if segment]
    if segments:
        return unquote(segments[-1])
    return parsed.netloc or url


def short_display_name(url: str | None, home_url: str = "https://soundcloud.com") -> str:
    """
    Get a short tab title for a URL.

    Args:
        url: Page URL
        home_url: URL treated as the site home

    Returns:
        "Home" for the site root, else the last path segment title-cased
    """
    if not url or url.rstrip("/") == home_url.rstrip("/"):
        return "Home"

    segments = [segment for segment in urlparse(url).path.split("/") if segment]
    if not segments:
        return "Home"
    return unquote(segments[-1]).title()
