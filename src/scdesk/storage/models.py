"""Data models for the browser shell and its download manager."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from cuid import cuid
from pydantic import BaseModel, Field, PrivateAttr, field_validator, model_validator

from ..errors import DownloadStateError
from ..utils.helpers import file_name_guess

DEFAULT_SEARCH_PATH_PREFIXES = ["/usr/local/bin", "/opt/homebrew/bin", "/usr/bin"]


class DownloadStatus(Enum):
    """Download item status enumeration."""

    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    FAILED = "failed"


class DownloadItem(BaseModel):
    """One tracked download attempt."""

    id: str = Field(default_factory=cuid)
    url: str
    destination: Path
    file_name: str = ""
    lossless: bool = False
    status: DownloadStatus = DownloadStatus.DOWNLOADING
    return_code: int | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    # Owning process handle, present only while downloading
    _process: Any = PrivateAttr(default=None)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL is non-empty and has a scheme and host."""
        if not v.strip():
            raise ValueError("URL cannot be empty")

        parsed = urlparse(v)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("URL must include a scheme and host")
        return v.strip()

    @model_validator(mode="after")
    def fill_file_name(self) -> "DownloadItem":
        """Derive the file name guess from the URL when not given."""
        if not self.file_name:
            self.file_name = file_name_guess(self.url)
        return self

    @property
    def is_terminal(self) -> bool:
        """Whether the item reached completed or failed."""
        return self.status is not DownloadStatus.DOWNLOADING

    @property
    def process(self) -> Any:
        """Owning process handle, or None once the item is terminal."""
        return self._process

    def attach_process(self, handle: Any) -> None:
        """Attach the process handle that runs this download."""
        if self.is_terminal:
            raise DownloadStateError(
                f"Cannot attach a process to {self.status.value} item {self.id}"
            )
        self._process = handle

    def mark_completed(self, return_code: int = 0) -> None:
        """Mark item as completed."""
        self._transition(DownloadStatus.COMPLETED)
        self.return_code = return_code

    def mark_failed(self, return_code: int | None = None) -> None:
        """Mark item as failed."""
        self._transition(DownloadStatus.FAILED)
        self.return_code = return_code

    def _transition(self, target: DownloadStatus) -> None:
        if self.is_terminal:
            raise DownloadStateError(
                f"Item {self.id} is already {self.status.value}; "
                f"cannot become {target.value}"
            )
        self.status = target
        self.updated_at = datetime.now()
        self._process = None


class ShellConfig(BaseModel):
    """Global application configuration."""

    home_url: str = "https://soundcloud.com"
    site_domain: str = "soundcloud.com"
    max_tabs: int = 10

    # Downloader settings; None resolves to <real home>/.local/bin/scdl
    downloader_path: Path | None = None
    search_path_prefixes: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SEARCH_PATH_PREFIXES)
    )
    default_download_directory: Path = Path.home() / "Music" / "downloaded"
    use_lossless: bool = False

    # Page observer settings
    poll_interval_ms: int = 500

    # Debug console; None keeps every line
    console_max_lines: int | None = None
    logging_level: str = "INFO"

    # Window settings
    window_width: int = 1280
    window_height: int = 720
    min_window_width: int = 400
    min_window_height: int = 300

    @field_validator("home_url")
    @classmethod
    def validate_home_url(cls, v: str) -> str:
        """Validate home URL format."""
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("home_url must be an http(s) URL with a host")
        return v

    @field_validator("site_domain")
    @classmethod
    def validate_site_domain(cls, v: str) -> str:
        """Validate site domain is a bare host name."""
        v = v.strip().lower()
        if not v or "/" in v or ":" in v:
            raise ValueError("site_domain must be a bare host name")
        return v

    @field_validator("max_tabs", "poll_interval_ms", "window_width", "window_height")
    @classmethod
    def validate_positive_integers(cls, v: int) -> int:
        """Validate that integer values are positive."""
        if v <= 0:
            raise ValueError("Value must be positive")
        return v

    @field_validator("console_max_lines")
    @classmethod
    def validate_console_max_lines(cls, v: int | None) -> int | None:
        """Validate console cap is positive when set."""
        if v is not None and v <= 0:
            raise ValueError("console_max_lines must be positive")
        return v

    @field_validator("downloader_path", "default_download_directory")
    @classmethod
    def expand_paths(cls, v: Path | None) -> Path | None:
        """Expand user-relative paths."""
        if v is None:
            return v
        return v.expanduser()

    @field_validator("logging_level")
    @classmethod
    def validate_logging_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"logging_level must be one of {valid_levels}")
        return v.upper()

    @model_validator(mode="after")
    def validate_window_sizes(self) -> "ShellConfig":
        """Validate window size is not below the minimum size."""
        if (self.window_width < self.min_window_width
                or self.window_height < self.min_window_height):
            raise ValueError("Window size cannot be smaller than the minimum size")
        return self
