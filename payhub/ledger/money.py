"""Fixed-point helpers for monetary amounts. No floats past this module."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from payhub.ledger.errors import InvalidIntent

MONEY_DECIMAL_PLACES = 2
_QUANTUM = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)

# Largest value a Numeric(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")


def round_money(value: Decimal) -> Decimal:
    return value.quantize(_QUANTUM, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    """Render an amount the way the UI expects it, e.g. ``"960.01"``."""
    return f"{round_money(value):.2f}"


def parse_amount(value) -> Decimal:
    """
    Parse a transaction amount into a positive two-place Decimal.

    Accepts Decimal, int, float and numeric strings. Floats go through
    ``str`` so ``39.99`` stays ``39.99``. Rejects booleans, non-numeric
    input, NaN and infinities, zero, negatives and more than two fraction
    digits.

    Raises:
        InvalidIntent: if the value is not an acceptable amount.
    """
    if value is None or isinstance(value, bool):
        raise InvalidIntent("Amount is required", field="amount")

    if isinstance(value, float):
        value = str(value)
    if isinstance(value, str):
        value = value.strip()

    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidIntent(f"Amount is not a number: {value!r}", field="amount")

    if not amount.is_finite():
        raise InvalidIntent("Amount must be a finite number", field="amount")
    if amount <= 0:
        raise InvalidIntent("Amount must be greater than zero", field="amount")
    if amount > MAX_AMOUNT:
        raise InvalidIntent(f"Amount cannot exceed {MAX_AMOUNT}", field="amount")

    rounded = round_money(amount)
    if amount != rounded:
        raise InvalidIntent(
            "Amount cannot have more than two decimal places", field="amount"
        )

    return rounded
