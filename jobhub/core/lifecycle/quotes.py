from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from jobhub.common.exceptions import InvalidQuoteError
from jobhub.config import settings
from jobhub.core.lifecycle.schemas import QuoteData
from jobhub.db.base import as_utc, utcnow

CENT = Decimal("0.01")


def round_money(value: Decimal | float | int | str) -> Decimal:
    """Half-up rounding to cents, applied to every persisted amount."""
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise InvalidQuoteError(f"Invalid monetary amount: {value!r}") from e


def exact_money(value: Decimal) -> Decimal:
    """Return a caller-supplied amount unchanged, refusing sub-cent precision."""
    if not value.is_finite() or value != value.quantize(CENT):
        raise InvalidQuoteError(f"Quote amount {value} has more than two decimal places")
    return value.quantize(CENT)


def compute_quote_amount(data: QuoteData) -> Decimal:
    if data.breakdown:
        total = Decimal("0")
        for line in data.breakdown:
            if line.quantity <= 0:
                raise InvalidQuoteError(f"Quantity for '{line.item}' must be greater than zero")
            if line.unit_price < 0:
                raise InvalidQuoteError(f"Unit price for '{line.item}' cannot be negative")
            total += line.quantity * line.unit_price
        amount = round_money(total)
    elif data.amount is not None:
        amount = exact_money(data.amount)
    else:
        raise InvalidQuoteError("A quote needs either a breakdown or an amount")

    if amount <= 0:
        raise InvalidQuoteError("Quote amount must be greater than zero")
    return amount


def serialize_breakdown(data: QuoteData) -> list[dict]:
    return [
        {
            "item": line.item,
            "quantity": str(line.quantity),
            "unit_price": str(round_money(line.unit_price)),
            "total_price": str(round_money(line.quantity * line.unit_price)),
        }
        for line in data.breakdown
    ]


def resolve_valid_until(data: QuoteData, now: datetime | None = None) -> datetime:
    now = now or utcnow()
    if data.valid_until is None:
        return now + timedelta(days=settings.QUOTE_VALIDITY_DAYS)
    valid_until = as_utc(data.valid_until)
    if valid_until <= now:
        raise InvalidQuoteError("Quote validity deadline must be in the future")
    return valid_until


def split_tax(amount: Decimal) -> tuple[Decimal, Decimal]:
    """Split a tax-inclusive amount into (subtotal, tax)."""
    rate = Decimal(str(settings.TAX_RATE))
    if rate <= 0:
        return amount, Decimal("0.00")
    tax = round_money(amount * rate / (1 + rate))
    return amount - tax, tax


def is_past_deadline(valid_until: datetime, now: datetime | None = None) -> bool:
    return (now or utcnow()) > as_utc(valid_until)
