"""
Module: bid_kernel.db.types
Responsibility: Rounding and parsing helpers for monetary
    amounts.  Centralizes precision, rounding, and numeric parsing so that
    every model and service handles money identically.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats for money.  Amounts are Decimal end to end.
    - round_money() is the ONLY sanctioned cents-rounding function and
      ceil_dollars() the ONLY sanctioned whole-dollar rounding function.
    - parse_money() is the ONLY entry point for caller-supplied numbers; a
      malformed value fails with MalformedNumberError naming the field.

Failure modes:
    - MalformedNumberError on unparseable, non-finite, or boolean input.
"""

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal, InvalidOperation

from bid_kernel.exceptions import MalformedNumberError

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to cents (or the given number of places).

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def ceil_dollars(value: Decimal) -> Decimal:
    """
    Round a monetary value up to the next whole dollar.

    ceil_dollars(Decimal("12100.00")) -> Decimal("12100")
    ceil_dollars(Decimal("12100.01")) -> Decimal("12101")
    """
    return value.quantize(Decimal("1"), rounding=ROUND_CEILING)


def parse_money(field: str, value: Decimal | int | float | str) -> Decimal:
    """
    Convert caller input into a Decimal.

    Strings are stripped; ints and Decimals pass through.  Floats are
    converted through their repr so 0.1 becomes Decimal("0.1").

    Args:
        field: Field name reported on failure.
        value: The raw input.

    Returns:
        Decimal (not rounded; callers apply round_money where needed).

    Raises:
        MalformedNumberError: If value is not a finite number.
    """
    if isinstance(value, bool):
        raise MalformedNumberError(field, str(value))
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise MalformedNumberError(field, value) from None
    else:
        raise MalformedNumberError(field, repr(value))

    if not result.is_finite():
        raise MalformedNumberError(field, str(value))
    return result


def parse_whole_number(field: str, value: int | str | Decimal) -> int:
    """Convert caller input into an int (day counts, position ids)."""
    number = parse_money(field, value)
    if number != number.to_integral_value():
        raise MalformedNumberError(field, str(value))
    return int(number)
