"""Configuration module for file-kv."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
