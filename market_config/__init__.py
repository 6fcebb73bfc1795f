"""
market_config -- single public entrypoint for marketplace configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    directly.  The kernel never imports this package; ``bridges`` translate
    a loaded set into kernel inputs.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Load-time validation: a set with errors is never returned.
    - Deterministic checksum: the same YAML content always yields the same
      ``MarketConfig.checksum``.

Failure modes:
    - ``FileNotFoundError`` -- the requested set does not exist.
    - ``ValueError`` -- validation failures (all of them, one per line).

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``MARKET_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying admin actions to the configuration that governed them.
"""

from __future__ import annotations

import logging
from pathlib import Path

from market_config.loader import compute_checksum, load_config_file
from market_config.schema import (
    ApprovalConfig,
    DatabaseConfig,
    LoggingConfig,
    MarketConfig,
    PaginationConfig,
)
from market_config.validator import ConfigValidationResult, validate_configuration

_logger = logging.getLogger("market_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | None = None) -> MarketConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a YAML configuration set.
            Defaults to market_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the configuration set does not exist.
        ValueError: If configuration validation fails.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    config = load_config_file(path)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("config_validation_warning", extra={"warning": warning})

    _logger.info(
        "MARKET_CONFIG_TRACE",
        extra={
            "trace_type": "MARKET_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "config_path": str(path),
        },
    )

    return config


__all__ = [
    "ApprovalConfig",
    "ConfigValidationResult",
    "DatabaseConfig",
    "LoggingConfig",
    "MarketConfig",
    "PaginationConfig",
    "compute_checksum",
    "get_active_config",
    "validate_configuration",
]
