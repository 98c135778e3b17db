"""Input validation utilities."""

import os
from pathlib import Path
from urllib.parse import urlparse


def validate_url(url: str) -> bool:
    """
    Validate if a string is a valid URL.

    Args:
        url: URL string to validate

    Returns:
        True if valid URL, False otherwise
    """
    if not url or not url.strip():
        return False

    try:
        result = urlparse(url.strip())
        return all([result.scheme, result.netloc])
    except Exception:
        return False


def validate_directory(path: str | Path, writable: bool = True) -> bool:
    """
    Validate that a path names an accessible directory.

    Args:
        path: Directory path to validate
        writable: Whether the directory must also be writable

    Returns:
        True if the directory exists and is accessible, False otherwise
    """
    try:
        path_obj = Path(path).expanduser()
        if not path_obj.is_dir():
            return False

        mode = os.R_OK | os.X_OK
        if writable:
            mode |= os.W_OK
        return os.access(path_obj, mode)
    except OSError:
        return False
