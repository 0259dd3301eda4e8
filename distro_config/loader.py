"""
Configuration loader (``distro_config.loader``).

Responsibility
--------------
Reads the ledger YAML file and turns it into ``LedgerSettings``.  Callers
outside this package use ``distro_config.get_active_config()``.

Invariants enforced
-------------------
* Every parse failure is a ``ConfigurationError`` naming the file and the
  offending key; nothing falls back silently to a default.
* Missing sections take the schema defaults; unknown top-level sections
  are rejected so that typos are caught.

Failure modes
-------------
* Missing or unreadable file -> ``ConfigurationError``.
* Malformed YAML -> ``ConfigurationError`` chained from ``yaml.YAMLError``.
* Out-of-range values -> ``ConfigurationError`` chained from the
  dataclass validation error.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from distro_config.schema import AllocationPolicy, DatabaseSettings, LedgerSettings
from distro_kernel.exceptions import ConfigurationError, ValidationError

_SECTIONS = frozenset({"database", "logging", "allocation", "planning"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load one YAML file as a dict (empty file gives an empty dict)."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigurationError(str(path), f"cannot read file: {exc.strerror}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(str(path), f"malformed YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return data


def _section(data: dict[str, Any], key: str, source: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(source, f"{key} must be a mapping")
    return value


def _decimal(value: Any, key: str, source: str) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ConfigurationError(source, f"{key} is not a number: {value!r}") from exc


def parse_allocation_policy(
    data: dict[str, Any],
    source: str = "<memory>",
) -> AllocationPolicy:
    """Build an AllocationPolicy from the ``allocation`` and ``planning`` sections."""
    allocation = _section(data, "allocation", source)
    planning = _section(data, "planning", source)

    products = allocation.get("products") or {}
    if not isinstance(products, dict):
        raise ConfigurationError(source, "allocation.products must map product name to units")

    defaults = AllocationPolicy()
    try:
        return AllocationPolicy(
            product_allocation={str(name): qty for name, qty in products.items()},
            addon_default=allocation.get("addon_default", defaults.addon_default),
            buffer_min=planning.get("buffer_min", defaults.buffer_min),
            buffer_pct=_decimal(
                planning.get("buffer_pct", defaults.buffer_pct), "planning.buffer_pct", source
            ),
            surplus_factor=_decimal(
                planning.get("surplus_factor", defaults.surplus_factor),
                "planning.surplus_factor",
                source,
            ),
            default_rider_count=planning.get(
                "default_rider_count", defaults.default_rider_count
            ),
        )
    except ValidationError as exc:
        raise ConfigurationError(source, str(exc)) from exc


def parse_database_settings(
    data: dict[str, Any],
    source: str = "<memory>",
) -> DatabaseSettings:
    section = _section(data, "database", source)
    defaults = DatabaseSettings()
    try:
        return DatabaseSettings(
            url=str(section.get("url", defaults.url)),
            echo=bool(section.get("echo", defaults.echo)),
            pool_size=int(section.get("pool_size", defaults.pool_size)),
            max_overflow=int(section.get("max_overflow", defaults.max_overflow)),
            sqlite_busy_timeout=float(
                section.get("sqlite_busy_timeout", defaults.sqlite_busy_timeout)
            ),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(source, str(exc)) from exc


def parse_settings(data: dict[str, Any], source: str = "<memory>") -> LedgerSettings:
    unknown = set(data) - _SECTIONS
    if unknown:
        raise ConfigurationError(source, f"unknown section(s): {', '.join(sorted(unknown))}")

    log_level = _section(data, "logging", source).get("level", "INFO")
    try:
        return LedgerSettings(
            database=parse_database_settings(data, source),
            policy=parse_allocation_policy(data, source),
            log_level=str(log_level),
            source=source,
        )
    except ValueError as exc:
        raise ConfigurationError(source, str(exc)) from exc


def load_settings(path: Path) -> LedgerSettings:
    """Load and validate the settings file at path."""
    return parse_settings(load_yaml_file(path), source=str(path))
