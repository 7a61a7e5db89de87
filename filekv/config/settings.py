"""
file-kv Configuration Settings

This module contains all configuration constants for the file-kv server.
Every value can be overridden through a FILE_KV_* environment variable;
the command line flags of ``filekv.server`` default to these values.
"""

import os
from dataclasses import dataclass


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


@dataclass
class Settings:
    """Server configuration settings."""

    # Network settings
    HOST: str = os.environ.get("FILE_KV_HOST", "0.0.0.0")
    PORT: int = int(os.environ.get("FILE_KV_PORT", "5000"))

    # Storage settings
    DATA_DIR: str = os.environ.get("FILE_KV_DATA_DIR", "data")
    MAX_VALUE_SIZE: int = 4096  # GET reads at most this many bytes
    STRICT_VALUES: bool = _env_bool("FILE_KV_STRICT_VALUES", "false")
    FSYNC: bool = _env_bool("FILE_KV_FSYNC", "true")

    # Connection settings
    MAX_REQUEST_SIZE: int = 1024
    MAX_CONNECTIONS: int = int(os.environ.get("FILE_KV_MAX_CONNECTIONS", "100"))
    READ_TIMEOUT: float = float(os.environ.get("FILE_KV_READ_TIMEOUT", "10"))
    CONNECTION_TIMEOUT: float = float(os.environ.get("FILE_KV_CONNECTION_TIMEOUT", "30"))

    # Logging settings
    DEBUG: bool = _env_bool("FILE_KV_DEBUG", "false")
    LOG_LEVEL: str = os.environ.get("FILE_KV_LOG_LEVEL", "INFO")


# Global settings instance
settings = Settings()
