"""Exception hierarchy shared across scdesk modules."""


class ShellError(Exception):
    """Base exception for shell errors."""

    pass


class ChannelError(ShellError):
    """Raised when the event channel is used from the wrong thread."""

    pass


class DownloadStateError(ShellError):
    """Raised on an illegal download item status transition."""

    pass


class BookmarkError(ShellError):
    """Raised when a directory bookmark cannot be created or resolved."""

    pass


class ConfigError(ShellError):
    """Raised when configuration cannot be validated or saved."""

    pass
