"""
Config -> Kernel Bridges.

Convert a loaded ``MarketConfig`` into kernel-compatible inputs.  These
live in market_config (the producer) because the kernel must NEVER import
market_config.

Usage:
    config = get_active_config()
    engine = ApprovalEngine(factory, settings=build_approval_settings(config))
"""

from __future__ import annotations

from market_config.schema import MarketConfig
from market_kernel.domain.actor import AdminRole
from market_kernel.domain.settings import ApprovalSettings
from market_kernel.logging_config import configure_logging


def build_approval_settings(config: MarketConfig) -> ApprovalSettings:
    """Build the kernel's ApprovalSettings from a configuration set."""
    return ApprovalSettings(
        min_reason_length=config.approval.min_reason_length,
        max_status_reason_length=config.approval.max_status_reason_length,
        money_decimal_places=config.approval.money_decimal_places,
        currency=config.approval.currency,
        mutating_roles=frozenset(
            AdminRole(role) for role in config.approval.mutating_roles
        ),
        default_limit=config.pagination.default_limit,
        max_limit=config.pagination.max_limit,
    )


def configure_kernel_logging(config: MarketConfig) -> None:
    """Configure the market_kernel logger hierarchy at the configured level."""
    configure_logging(level=config.logging.level)
