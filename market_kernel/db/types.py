"""
Module: market_kernel.db.types
Responsibility: Money helpers.  Centralizes
    precision and rounding so that every model and service uses identical
    definitions for balances, deposits, withdrawals and order amounts.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - round_money() is the ONLY sanctioned rounding function for monetary
      values.  Storage precision is Numeric(38, 9); business precision is
      MONEY_DECIMAL_PLACES (2, ROUND_HALF_UP) unless configured otherwise.
    - No floats.  to_money() refuses float input.

Failure modes:
    - TypeError on float input to to_money().
    - decimal.InvalidOperation on a non-numeric string.
"""

from decimal import Decimal, ROUND_HALF_UP

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_money(value: Decimal | int | str) -> Decimal:
    """
    Coerce an int, str or Decimal into a Decimal without rounding.

    Raises:
        TypeError: If value is a float (binary floats are never money).
    """
    if isinstance(value, float):
        raise TypeError("Monetary values must not be floats")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the business precision.

    Values read back from SQLite come out with the storage scale (9 places);
    services pass them through here before comparing or returning them.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    return to_money(value).quantize(Decimal(quantize_str), rounding=rounding)
