"""
Configuration schema (``distro_config.schema``).

Frozen dataclasses for everything the YAML file can set.  Validation
happens in ``__post_init__`` so an invalid object can never exist; the
loader turns the resulting errors into ConfigurationError with the file
name attached.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from distro_kernel.domain.policy import AllocationPolicy

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///distro_ledger.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    sqlite_busy_timeout: float = 30.0

    def __post_init__(self) -> None:
        if not self.url or "://" not in self.url:
            raise ValueError(f"database.url is not a database URL: {self.url!r}")
        if self.pool_size < 1:
            raise ValueError("database.pool_size must be at least 1")
        if self.max_overflow < 0:
            raise ValueError("database.max_overflow must not be negative")
        if self.sqlite_busy_timeout < 0:
            raise ValueError("database.sqlite_busy_timeout must not be negative")


@dataclass(frozen=True)
class LedgerSettings:
    """Top-level settings object returned by get_active_config()."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    policy: AllocationPolicy = field(default_factory=AllocationPolicy)
    log_level: str = "INFO"
    source: str = "<defaults>"

    def __post_init__(self) -> None:
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {', '.join(_LOG_LEVELS)}")
        object.__setattr__(self, "log_level", self.log_level.upper())

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)


__all__ = ["AllocationPolicy", "DatabaseSettings", "LedgerSettings"]
