"""Profitability recalculation.

Pure functions that derive profit, profitability percentage and remaining
hours for a client from its hourly rate, target hours, actual hours and
revenue:

    cost            = hourly_rate * actual_hours
    profit          = revenue - cost
    profitability   = profit / revenue * 100   (0 when revenue is 0)
    remaining_hours = target_hours - actual_hours

All arithmetic uses Decimal. Money and percentages are quantized to cents,
hours to 1/10000 of an hour. Inputs and derived figures must fit the storage
columns; anything larger is rejected as invalid input.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from profitdesk.core.errors import InvalidInputError
from profitdesk.models.profitability import Profitability

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")
TENTH = Decimal("0.1")
HOUR_PRECISION = Decimal("0.0001")

# Largest values the Numeric columns hold.
MAX_MONEY = Decimal("9999999999.99")  # Numeric(12, 2)
MAX_PERCENT = Decimal("99999999.99")  # Numeric(10, 2)
MAX_HOURS = Decimal("999999.9999")  # Numeric(10, 4)


def q_money(value: Decimal) -> Decimal:
    """Quantize a money or percentage figure to cents."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def q_hours(value: Decimal) -> Decimal:
    """Quantize an hour figure to 1/10000 of an hour."""
    return value.quantize(HOUR_PRECISION, rounding=ROUND_HALF_UP)


def to_decimal(value: object, field: str) -> Decimal:
    """Coerce a numeric input to Decimal.

    Raises:
        InvalidInputError: If the value is missing or not a finite number.
    """
    if value is None or isinstance(value, bool):
        raise InvalidInputError(f"{field} is required")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidInputError(f"{field} must be a number") from exc
    if not result.is_finite():
        raise InvalidInputError(f"{field} must be a finite number")
    return result


def require_within(value: Decimal, limit: Decimal, field: str) -> Decimal:
    """Reject a figure whose magnitude does not fit its column."""
    if abs(value) > limit:
        raise InvalidInputError(f"{field} must not exceed {limit}")
    return value


def require_positive_rate(hourly_rate: object) -> Decimal:
    """Validate an hourly rate; a falsy or negative rate is rejected.

    A rate that rounds to zero cents counts as zero.
    """
    rate = to_decimal(hourly_rate, "hourly_rate")
    require_within(rate, MAX_MONEY, "hourly_rate")
    if q_money(rate) <= ZERO:
        raise InvalidInputError("hourly_rate must be greater than 0")
    return rate


def require_non_negative(
    value: object, field: str, limit: Decimal = MAX_MONEY
) -> Decimal:
    """Validate a figure that can be zero but never negative.

    ``limit`` defaults to the money column bound; pass ``MAX_HOURS`` for hours.
    """
    result = to_decimal(value, field)
    if result < ZERO:
        raise InvalidInputError(f"{field} must not be negative")
    return require_within(result, limit, field)


@dataclass(frozen=True)
class ProfitabilityFigures:
    """Derived profitability fields.

    Attributes:
        cost: hourly_rate * actual_hours.
        profit: revenue - cost.
        profitability: profit as a percentage of revenue, 0 without revenue.
        remaining_hours: target_hours - actual_hours, negative when over target.
    """

    cost: Decimal
    profit: Decimal
    profitability: Decimal
    remaining_hours: Decimal


def compute_profitability(
    hourly_rate: Decimal,
    target_hours: Decimal,
    actual_hours: Decimal,
    revenue: Decimal,
) -> ProfitabilityFigures:
    """Compute derived profitability fields.

    Args:
        hourly_rate: Internal cost of one hour of work. Must be positive.
        target_hours: Hours budgeted for the client.
        actual_hours: Hours actually worked.
        revenue: Amount billed to the client.

    Returns:
        ProfitabilityFigures with quantized values.

    Raises:
        InvalidInputError: On a non-positive rate or negative inputs, or when
            an input or a derived figure does not fit its column.
    """
    rate = require_positive_rate(hourly_rate)
    target = require_non_negative(target_hours, "target_hours", MAX_HOURS)
    actual = require_non_negative(actual_hours, "actual_hours", MAX_HOURS)
    income = require_non_negative(revenue, "revenue")

    cost = rate * actual
    profit = income - cost
    if income > ZERO:
        profitability = profit / income * HUNDRED
    else:
        profitability = ZERO

    return ProfitabilityFigures(
        cost=q_money(cost),
        profit=require_within(q_money(profit), MAX_MONEY, "profit"),
        profitability=require_within(
            q_money(profitability), MAX_PERCENT, "profitability"
        ),
        remaining_hours=q_hours(target - actual),
    )


def target_hours_from_budget(monthly_budget: Decimal, hourly_rate: Decimal) -> Decimal:
    """Default target hours for a monthly budget, rounded to one decimal.

    ``target_hours * hourly_rate`` approximates ``monthly_budget``.

    Example:
        >>> target_hours_from_budget(Decimal("1000"), Decimal("100"))
        Decimal('10.0')
    """
    rate = require_positive_rate(hourly_rate)
    budget = require_non_negative(monthly_budget, "monthly_budget")
    target = (budget / rate).quantize(TENTH, rounding=ROUND_HALF_UP)
    return require_within(target, MAX_HOURS, "target_hours")


def apply_recalculation(record: Profitability) -> ProfitabilityFigures:
    """Recompute and store the derived fields of a profitability record."""
    figures = compute_profitability(
        hourly_rate=record.hourly_rate,
        target_hours=record.target_hours,
        actual_hours=record.actual_hours,
        revenue=record.revenue,
    )
    record.profit = figures.profit
    record.profitability = figures.profitability
    record.remaining_hours = figures.remaining_hours
    return figures


__all__ = [
    "ProfitabilityFigures",
    "apply_recalculation",
    "compute_profitability",
    "MAX_HOURS",
    "MAX_MONEY",
    "MAX_PERCENT",
    "q_hours",
    "q_money",
    "require_non_negative",
    "require_positive_rate",
    "require_within",
    "target_hours_from_budget",
    "to_decimal",
]
