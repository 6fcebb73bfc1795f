"""
Configuration Loader (``market_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen dataclasses
of ``market_config.schema``.  Runtime callers go through
``market_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys (``config_id``, ``version``, ``database.url``)
  -> ``KeyError`` propagates.
* Unknown keys inside a section -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from market_config.schema import (
    ApprovalConfig,
    DatabaseConfig,
    LoggingConfig,
    MarketConfig,
    PaginationConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _section(data: dict[str, Any], name: str, allowed: set[str]) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Section '{name}' must be a mapping")
    unknown = set(section) - allowed
    if unknown:
        raise ValueError(f"Unknown keys in '{name}': {sorted(unknown)}")
    return section


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    section = _section(
        data, "database",
        {"url", "echo", "pool_size", "max_overflow", "pool_timeout", "pool_recycle"},
    )
    return DatabaseConfig(
        url=section["url"],
        echo=bool(section.get("echo", False)),
        pool_size=section.get("pool_size", 20),
        max_overflow=section.get("max_overflow", 10),
        pool_timeout=section.get("pool_timeout", 30),
        pool_recycle=section.get("pool_recycle", 1800),
    )


def parse_approval(data: dict[str, Any]) -> ApprovalConfig:
    section = _section(
        data, "approval",
        {
            "min_reason_length",
            "max_status_reason_length",
            "money_decimal_places",
            "currency",
            "mutating_roles",
        },
    )
    defaults = ApprovalConfig()
    return ApprovalConfig(
        min_reason_length=section.get("min_reason_length", defaults.min_reason_length),
        max_status_reason_length=section.get(
            "max_status_reason_length", defaults.max_status_reason_length,
        ),
        money_decimal_places=section.get(
            "money_decimal_places", defaults.money_decimal_places,
        ),
        currency=section.get("currency", defaults.currency),
        mutating_roles=tuple(section.get("mutating_roles", defaults.mutating_roles)),
    )


def parse_pagination(data: dict[str, Any]) -> PaginationConfig:
    section = _section(data, "pagination", {"default_limit", "max_limit"})
    return PaginationConfig(
        default_limit=section.get("default_limit", 20),
        max_limit=section.get("max_limit", 100),
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    section = _section(data, "logging", {"level"})
    return LoggingConfig(level=str(section.get("level", "INFO")).upper())


def parse_config(data: dict[str, Any]) -> MarketConfig:
    """Parse a raw YAML mapping into a ``MarketConfig`` stamped with its checksum."""
    return MarketConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        database=parse_database(data),
        approval=parse_approval(data),
        pagination=parse_pagination(data),
        logging=parse_logging(data),
        checksum=compute_checksum(data),
    )


def load_config_file(path: Path) -> MarketConfig:
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums, whatever the key
    order in the source file.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
