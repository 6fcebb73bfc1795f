"""
Input checks shared by every admin transition.

Pure functions.  Each raises ``ValidationError`` before any row is read.
"""

from __future__ import annotations

from market_kernel.exceptions import ValidationError

DEFAULT_MIN_REASON_LENGTH = 5
DEFAULT_MAX_STATUS_REASON_LENGTH = 500


def require_reason(
    reason: str | None,
    min_length: int = DEFAULT_MIN_REASON_LENGTH,
    field: str = "reason",
) -> str:
    """Return the stripped reason, or raise if it is shorter than ``min_length``."""
    if reason is None or not isinstance(reason, str):
        raise ValidationError(field, "is required")
    cleaned = reason.strip()
    if len(cleaned) < min_length:
        raise ValidationError(
            field, f"must be at least {min_length} characters long"
        )
    return cleaned


def optional_reason(
    reason: str | None,
    max_length: int = DEFAULT_MAX_STATUS_REASON_LENGTH,
    field: str = "reason",
) -> str | None:
    """Validate an optional free-text reason: 1..max_length chars when given."""
    if reason is None:
        return None
    if not isinstance(reason, str) or len(reason) < 1:
        raise ValidationError(field, "must not be empty when provided")
    if len(reason) > max_length:
        raise ValidationError(
            field, f"must be at most {max_length} characters long"
        )
    return reason
