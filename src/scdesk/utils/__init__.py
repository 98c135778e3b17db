"""Utility modules."""

from .helpers import (
    augmented_search_path,
    file_name_guess,
    real_user_home,
    short_display_name,
)
from .logging import (
    LogCapture,
    StructuredFormatter,
    log_system_info,
    setup_logging,
)
from .validation import validate_directory, validate_url

__all__ = [
    # Helpers
    "augmented_search_path",
    "file_name_guess",
    "real_user_home",
    "short_display_name",
    # Logging
    "setup_logging",
    "log_system_info",
    "StructuredFormatter",
    "LogCapture",
    # Validation
    "validate_directory",
    "validate_url",
]
