"""
Budget Range Parsing

Students pick a budget band in the requirement form. The band arrives either
as two numbers or as a range string in one of the forms the form produces:

    "1000-2000"        closed range
    "3000+"            open-ended, upper bound is UNBOUNDED_BUDGET
    "₹1000-2000/hr"    currency symbol and per-hour suffix are tolerated

Anything else is rejected with ValidationError instead of defaulting.
"""

import math
import re
from typing import Optional, Tuple

from utils.errors import ValidationError
from .constants import UNBOUNDED_BUDGET

_NUMBER = r"\d+(?:\.\d+)?"
_RANGE_RE = re.compile(rf"^(?P<min>{_NUMBER})\s*-\s*(?P<max>{_NUMBER})$")
_OPEN_RE = re.compile(rf"^(?P<min>{_NUMBER})\s*\+$")


def _strip_decorations(raw: str) -> str:
    text = raw.strip().lower().replace(",", "")
    text = re.sub(r"/\s*(hr|hour)$", "", text).strip()
    return text.lstrip("₹$").strip()


def parse_budget_range(raw: str) -> Tuple[float, float]:
    """
    Parse a budget range string into (min, max).

    Args:
        raw: Range string, e.g. "1000-2000" or "3000+"

    Returns:
        Tuple of (budget_min, budget_max); max is UNBOUNDED_BUDGET for "N+"

    Raises:
        ValidationError: the string is empty, malformed, or min > max
    """
    if raw is None or not raw.strip():
        raise ValidationError("budget_range must not be empty")

    text = _strip_decorations(raw)

    open_match = _OPEN_RE.match(text)
    if open_match:
        return float(open_match.group("min")), UNBOUNDED_BUDGET

    range_match = _RANGE_RE.match(text)
    if not range_match:
        raise ValidationError(f"Malformed budget range: {raw!r}")

    low = float(range_match.group("min"))
    high = float(range_match.group("max"))
    if low > high:
        raise ValidationError(f"Budget minimum exceeds maximum: {raw!r}")
    return low, high


def resolve_budget(
    budget_range: Optional[str],
    budget_min: Optional[float],
    budget_max: Optional[float],
) -> Tuple[float, float]:
    """
    Resolve the budget a requirement was submitted with.

    A range string wins over explicit numbers. Explicit numbers must be
    non-negative with min <= max; a missing max means open-ended.
    """
    if budget_range is not None:
        return parse_budget_range(budget_range)

    if budget_min is None:
        raise ValidationError("A budget (budget_range or budget_min) is required")
    low = float(budget_min)
    high = UNBOUNDED_BUDGET if budget_max is None else float(budget_max)

    if math.isnan(low) or math.isnan(high):
        raise ValidationError("Budget values must be numbers")
    if low < 0 or high < 0:
        raise ValidationError("Budget values must be non-negative")
    if low > high:
        raise ValidationError("Budget minimum exceeds maximum")
    return low, high


def _amount(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def format_budget(budget_min: float, budget_max: float) -> str:
    """Render a budget the way the requirement form displays it."""
    if math.isinf(budget_max):
        return f"{_amount(budget_min)}+"
    return f"{_amount(budget_min)}-{_amount(budget_max)}"
