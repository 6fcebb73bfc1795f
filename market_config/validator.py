"""
Configuration validation (``market_config.validator``).

Checks a parsed ``MarketConfig`` for values that would make the kernel
misbehave at runtime.  Collects every problem instead of stopping at the
first one so an operator can fix a file in one pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from market_config.schema import MarketConfig

_KNOWN_ROLES = frozenset({"SUPER_ADMIN", "ADMIN", "MODERATOR"})
_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.  Warnings
    do not block loading but should be reviewed.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: MarketConfig) -> ConfigValidationResult:
    """Validate a parsed configuration set."""
    result = ConfigValidationResult()

    _validate_database(config, result)
    _validate_approval(config, result)
    _validate_pagination(config, result)
    _validate_logging(config, result)

    return result


def _validate_database(config: MarketConfig, result: ConfigValidationResult) -> None:
    db = config.database
    if not db.url:
        result.add_error("database.url must not be empty")
    elif not db.url.startswith(("postgresql", "sqlite")):
        result.add_error(f"database.url has unsupported scheme: {db.url.split(':', 1)[0]}")
    elif db.url.startswith("sqlite"):
        result.add_warning("database.url is SQLite; row locks are not enforced")
    if db.pool_size < 1:
        result.add_error("database.pool_size must be >= 1")
    if db.max_overflow < 0:
        result.add_error("database.max_overflow must be >= 0")


def _validate_approval(config: MarketConfig, result: ConfigValidationResult) -> None:
    approval = config.approval
    if approval.min_reason_length < 1:
        result.add_error("approval.min_reason_length must be >= 1")
    if approval.max_status_reason_length < approval.min_reason_length:
        result.add_error(
            "approval.max_status_reason_length must be >= min_reason_length"
        )
    if not 0 <= approval.money_decimal_places <= 9:
        result.add_error("approval.money_decimal_places must be between 0 and 9")
    if len(approval.currency) != 3 or not approval.currency.isupper():
        result.add_error(f"approval.currency is not a 3-letter code: {approval.currency!r}")
    if not approval.mutating_roles:
        result.add_error("approval.mutating_roles must not be empty")
    for role in approval.mutating_roles:
        if role not in _KNOWN_ROLES:
            result.add_error(f"approval.mutating_roles has unknown role: {role!r}")
    if "MODERATOR" in approval.mutating_roles:
        result.add_warning("MODERATOR is allowed to mutate balances and orders")


def _validate_pagination(config: MarketConfig, result: ConfigValidationResult) -> None:
    pagination = config.pagination
    if pagination.max_limit < 1:
        result.add_error("pagination.max_limit must be >= 1")
    if not 1 <= pagination.default_limit <= pagination.max_limit:
        result.add_error("pagination.default_limit must be between 1 and max_limit")


def _validate_logging(config: MarketConfig, result: ConfigValidationResult) -> None:
    if config.logging.level not in _LOG_LEVELS:
        result.add_error(f"logging.level is not a log level: {config.logging.level!r}")
