"""Persisted capability token for the chosen download directory."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, PrivateAttr

from ..errors import BookmarkError, ConfigError
from ..utils.validation import validate_directory

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ..config.manager import BookmarkStore

logger = logging.getLogger(__name__)


class DirectoryBookmark(BaseModel):
    """
    Opaque token naming a directory by path and filesystem identity.

    A bookmark is stale when its path now names a different filesystem
    object than the one it was created for (the directory was replaced).
    Filesystem access outside the default area must be bracketed by
    ``start_access()``/``stop_access()`` or the ``access()`` context manager.
    """

    path: Path
    device: int
    inode: int
    created_at: datetime = Field(default_factory=datetime.now)

    _access_count: int = PrivateAttr(default=0)

    @classmethod
    def create(cls, path: Path | str) -> DirectoryBookmark:
        """
        Create a bookmark for an existing directory.

        Args:
            path: Directory to bookmark

        Returns:
            New bookmark

        Raises:
            BookmarkError: If the path is not an existing directory
        """
        directory = Path(path).expanduser().resolve()
        try:
            stat_result = directory.stat()
        except OSError as e:
            raise BookmarkError(f"Cannot bookmark {directory}: {e}") from e

        if not directory.is_dir():
            raise BookmarkError(f"Cannot bookmark {directory}: not a directory")

        return cls(path=directory, device=stat_result.st_dev, inode=stat_result.st_ino)

    def resolve(self) -> tuple[Path, bool]:
        """
        Resolve the bookmark.

        Returns:
            Tuple of (directory, is_stale)

        Raises:
            BookmarkError: If the directory no longer exists
        """
        try:
            stat_result = self.path.stat()
        except OSError as e:
            raise BookmarkError(f"Failed to resolve bookmark {self.path}: {e}") from e

        if not self.path.is_dir():
            raise BookmarkError(f"Failed to resolve bookmark {self.path}: not a directory")

        is_stale = (stat_result.st_dev, stat_result.st_ino) != (self.device, self.inode)
        return self.path, is_stale

    def refreshed(self) -> DirectoryBookmark:
        """Create a fresh bookmark for the same path."""
        return DirectoryBookmark.create(self.path)

    @property
    def is_accessing(self) -> bool:
        """Whether access has been started and not yet stopped."""
        return self._access_count > 0

    def start_access(self) -> bool:
        """
        Acquire access to the directory.

        Returns:
            True if the directory is readable and writable, False otherwise
        """
        if not validate_directory(self.path, writable=True):
            logger.warning(f"Directory {self.path} is not accessible")
            return False

        self._access_count += 1
        return True

    def stop_access(self) -> None:
        """Release one acquisition of the directory."""
        if self._access_count > 0:
            self._access_count -= 1

    @contextmanager
    def access(self) -> Iterator[Path]:
        """
        Context manager bracketing filesystem access to the directory.

        Raises:
            BookmarkError: If access cannot be started
        """
        if not self.start_access():
            raise BookmarkError(f"Access to {self.path} denied")
        try:
            yield self.path
        finally:
            self.stop_access()


def restore_download_directory(
    store: BookmarkStore, fallback: Path
) -> tuple[Path, DirectoryBookmark | None]:
    """
    Restore the download directory from the persisted bookmark.

    Stale bookmarks are refreshed and re-persisted. Access is started on the
    restored bookmark and held until the caller stops it.

    Args:
        store: Bookmark persistence
        fallback: Directory used when no usable bookmark exists

    Returns:
        Tuple of (directory, bookmark or None when falling back)
    """
    bookmark = store.load()
    if bookmark is None:
        return fallback, None

    try:
        directory, is_stale = bookmark.resolve()
        if is_stale:
            logger.info(f"Bookmark for {directory} is stale, refreshing")
            bookmark = bookmark.refreshed()
            store.save(bookmark)
    except (BookmarkError, ConfigError) as e:
        logger.error(f"Failed to restore bookmark: {e}")
        return fallback, None

    if bookmark.start_access():
        logger.info(f"Restored download directory {directory}")
        return directory, bookmark

    logger.warning(f"Bookmarked directory {directory} is not accessible")
    return fallback, None
