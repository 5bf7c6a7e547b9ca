"""Payroll arithmetic and amount-mapping parsing.

All arithmetic is done in :class:`decimal.Decimal` so a payroll computed
twice from the same attendance rows and deductions yields identical figures.
"""

import json
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Mapping, Optional

from hrdesk.agents.hr.enums import DeductionCategory
from hrdesk.core.logging import get_logger

logger = get_logger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")

_CATEGORY_KEYS = {category.value: category.value for category in DeductionCategory}


def to_decimal(value: Any) -> Decimal:
    """Convert a numeric-looking value to Decimal; anything else counts as zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            return ZERO
    else:
        return ZERO
    if not result.is_finite():
        return ZERO
    return result


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount_mapping(payload: Any, *, field: str = "amounts") -> Dict[str, Decimal]:
    """Parse a deductions/allowances payload into ``{key: Decimal}``.

    Accepts a mapping or its JSON text. Keys matching a
    :class:`DeductionCategory` (case-insensitively) are normalized to the
    category value; other keys are kept as given. Non-numeric values count
    as zero. An unparseable payload yields an empty mapping and a warning.
    """
    if payload is None or payload == "":
        return {}

    data = payload
    if isinstance(payload, str):
        try:
            data = json.loads(payload)
        except ValueError:
            logger.warning(f"Unparseable {field} payload treated as empty", data={"field": field})
            return {}

    if not isinstance(data, Mapping):
        logger.warning(
            f"Non-mapping {field} payload treated as empty",
            data={"field": field, "type": type(data).__name__},
        )
        return {}

    amounts: Dict[str, Decimal] = {}
    for key, value in data.items():
        name = str(key)
        name = _CATEGORY_KEYS.get(name.lower(), name)
        amounts[name] = amounts.get(name, ZERO) + to_decimal(value)
    return amounts


def amounts_to_json(amounts: Mapping[str, Decimal]) -> Dict[str, float]:
    return {key: float(value) for key, value in amounts.items()}


@dataclass(frozen=True)
class PayrollFigures:
    base_salary: Decimal
    overtime_hours: Decimal
    overtime_pay: Decimal
    total_deductions: Decimal
    net_salary: Decimal


def compute_payroll(
    base_salary: Any,
    overtime_hours: Iterable[Any],
    deductions: Optional[Mapping[str, Decimal]] = None,
    *,
    standard_period_hours: Any = 160,
    overtime_multiplier: Any = "1.5",
) -> PayrollFigures:
    """Compute overtime pay and net salary for one period.

    ``overtime_pay = sum(hours) * (base / standard_period_hours) * multiplier``
    and ``net = base + overtime_pay - sum(deductions)``, rounded half-up to cents.
    """
    base = to_decimal(base_salary)
    period_hours = to_decimal(standard_period_hours)
    if period_hours <= 0:
        raise ValueError("standard_period_hours must be positive")
    multiplier = to_decimal(overtime_multiplier)

    total_hours = sum((to_decimal(hours) for hours in overtime_hours), ZERO)
    overtime_pay = quantize_money(total_hours * (base / period_hours) * multiplier)
    total_deductions = quantize_money(sum((deductions or {}).values(), ZERO))
    net = quantize_money(base + overtime_pay - total_deductions)

    return PayrollFigures(
        base_salary=quantize_money(base),
        overtime_hours=total_hours,
        overtime_pay=overtime_pay,
        total_deductions=total_deductions,
        net_salary=net,
    )
