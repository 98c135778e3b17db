"""Configuration settings models."""

# Re-export from storage.models for convenience
from ..storage.models import ShellConfig

__all__ = ["ShellConfig"]
