"""
MarketConfig schema.

The human-authored configuration set is a single YAML file.  The loader
parses it into these frozen dataclasses; nothing else in the system sees
raw YAML.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings handed to ``init_engine_from_config``."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class ApprovalConfig:
    """Rules for admin approval actions."""

    min_reason_length: int = 5
    max_status_reason_length: int = 500
    money_decimal_places: int = 2
    currency: str = "USD"
    mutating_roles: tuple[str, ...] = ("SUPER_ADMIN", "ADMIN")


@dataclass(frozen=True)
class PaginationConfig:
    default_limit: int = 20
    max_limit: int = 100


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MarketConfig:
    """A complete, parsed configuration set."""

    config_id: str
    version: int
    database: DatabaseConfig
    approval: ApprovalConfig = field(default_factory=ApprovalConfig)
    pagination: PaginationConfig = field(default_factory=PaginationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checksum: str = ""
