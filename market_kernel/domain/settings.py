"""
Kernel settings consumed by the approval engine and selectors.

The kernel never reads configuration files.  ``market_config.bridges``
turns a loaded configuration set into an ``ApprovalSettings``; callers
that pass nothing get the defaults below.
"""

from __future__ import annotations

from dataclasses import dataclass

from market_kernel.domain.actor import DEFAULT_MUTATING_ROLES, AdminRole
from market_kernel.domain.validation import (
    DEFAULT_MAX_STATUS_REASON_LENGTH,
    DEFAULT_MIN_REASON_LENGTH,
)


@dataclass(frozen=True)
class ApprovalSettings:
    min_reason_length: int = DEFAULT_MIN_REASON_LENGTH
    max_status_reason_length: int = DEFAULT_MAX_STATUS_REASON_LENGTH
    money_decimal_places: int = 2
    currency: str = "USD"
    mutating_roles: frozenset[AdminRole] = DEFAULT_MUTATING_ROLES
    default_limit: int = 20
    max_limit: int = 100
