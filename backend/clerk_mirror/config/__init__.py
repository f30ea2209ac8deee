"""Process configuration."""

from clerk_mirror.config.settings import Settings

__all__ = ["Settings"]
