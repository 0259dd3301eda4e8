"""
distro_config -- single public entrypoint for ledger configuration.

Responsibility:
    ``get_active_config()`` returns the LedgerSettings in force: the file
    named by DISTRO_CONFIG_PATH, or the packaged defaults, with the
    database URL optionally replaced by DISTRO_DATABASE_URL.
    ``bootstrap()`` applies settings to the engine and logging.

Architecture position:
    Configuration -- sits above distro_kernel.  The kernel never imports
    from this package; it receives AllocationPolicy objects as arguments.

Failure modes:
    - ConfigurationError for unreadable, malformed or invalid files.

Audit relevance:
    Every get_active_config() call emits a DISTRO_CONFIG_TRACE record
    naming the file the settings came from.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Mapping
from pathlib import Path

from distro_config.loader import load_settings
from distro_config.schema import AllocationPolicy, DatabaseSettings, LedgerSettings

_logger = logging.getLogger("distro_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "ledger.yaml"

CONFIG_PATH_ENV = "DISTRO_CONFIG_PATH"
DATABASE_URL_ENV = "DISTRO_DATABASE_URL"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> LedgerSettings:
    """
    Load the active settings.

    Resolution order for the file: explicit path, then DISTRO_CONFIG_PATH,
    then the packaged defaults.  DISTRO_DATABASE_URL overrides
    database.url whichever file was used.
    """
    env = os.environ if environ is None else environ
    config_path = Path(path or env.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)
    settings = load_settings(config_path)

    url_override = env.get(DATABASE_URL_ENV)
    if url_override:
        settings = dataclasses.replace(
            settings,
            database=dataclasses.replace(settings.database, url=url_override),
        )

    _logger.info(
        "DISTRO_CONFIG_TRACE",
        extra={
            "trace_type": "DISTRO_CONFIG_TRACE",
            "config_source": settings.source,
            "database_url_overridden": bool(url_override),
            "product_rules": len(settings.policy.product_allocation),
        },
    )
    return settings


def bootstrap(settings: LedgerSettings) -> None:
    """Configure logging and initialise the module-level engine from settings."""
    from distro_kernel.db.engine import init_engine_from_url
    from distro_kernel.logging_config import configure_logging

    configure_logging(level=settings.log_level_number)
    db = settings.database
    init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        sqlite_busy_timeout=db.sqlite_busy_timeout,
    )


__all__ = [
    "AllocationPolicy",
    "DatabaseSettings",
    "LedgerSettings",
    "DEFAULT_CONFIG_PATH",
    "bootstrap",
    "get_active_config",
]
