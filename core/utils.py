"""
Core Utility Functions for the Construction Cost Performance Suite

This module contains shared helpers used by the EVM engine, the cash-flow
and cost-control calculations and the service layer:
- Numeric validation and safe division
- Date parsing and duration calculations
- Baseline S-curve functions (Beta distribution) for planned progress

Validation helpers raise; the arithmetic helpers never do.
"""

from __future__ import annotations
import math
import logging
from datetime import datetime, date, timedelta
from typing import Any, Tuple, Optional

import pandas as pd
from dateutil import parser as date_parser
from scipy.stats import beta as beta_dist

from config.constants import DAYS_PER_MONTH

# Set up logging
logger = logging.getLogger(__name__)

# Constants
EXCEL_ORDINAL_BASE = datetime(1899, 12, 30)  # Excel date ordinal base


# ============================================================================
# VALIDATION & SAFETY FUNCTIONS
# ============================================================================

def validate_numeric_input(
    value: Any,
    field_name: str,
    min_val: Optional[float] = None,
    max_val: Optional[float] = None
) -> float:
    """
    Validate and convert a value to a valid finite float.

    Args:
        value: The value to validate (can be any type)
        field_name: Name of the field (for error messages)
        min_val: Minimum allowed value (inclusive), or None for no minimum
        max_val: Maximum allowed value (inclusive), or None for no maximum

    Returns:
        float: The validated numeric value

    Raises:
        ValueError: If the value is invalid, NaN, infinite, or out of range

    Examples:
        >>> validate_numeric_input("1500000", "Actual Cost", min_val=0.0)
        1500000.0
        >>> validate_numeric_input(-10, "Budget", min_val=0.0)
        ValueError: Invalid Budget: Budget must be >= 0.0
    """
    try:
        num_val = float(value)
        if math.isnan(num_val) or math.isinf(num_val):
            raise ValueError(f"{field_name} cannot be NaN or infinite")
        if min_val is not None and num_val < min_val:
            raise ValueError(f"{field_name} must be >= {min_val}")
        if max_val is not None and num_val > max_val:
            raise ValueError(f"{field_name} must be <= {max_val}")
        return num_val
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid {field_name}: {e}") from e


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Divide two numbers, returning ``default`` instead of failing.

    Zero denominators and non-finite results both yield ``default``.

    Examples:
        >>> safe_divide(100, 50)
        2.0
        >>> safe_divide(100, 0)
        0.0
        >>> safe_divide(100, 0, default=1.0)
        1.0
    """
    try:
        if denominator == 0:
            return default
        result = numerator / denominator
        if math.isinf(result) or math.isnan(result):
            return default
        return result
    except (ZeroDivisionError, TypeError, ValueError):
        return default


def is_valid_finite_number(value: Any) -> bool:
    """
    Check if a value is a valid finite number (not None, NaN, or Inf).

    Examples:
        >>> is_valid_finite_number(42.5)
        True
        >>> is_valid_finite_number(float('nan'))
        False
        >>> is_valid_finite_number(None)
        False
    """
    try:
        if value is None:
            return False
        num_val = float(value)
        return math.isfinite(num_val)
    except (ValueError, TypeError, OverflowError):
        return False


def clamp(value: float, low: float, high: float) -> float:
    """Clamp ``value`` into the closed range [low, high]."""
    return max(low, min(high, value))


# ============================================================================
# DATE PARSING & DURATIONS
# ============================================================================

def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return pd.Timestamp(value).tz_convert(None).to_pydatetime()


def parse_date_any(x: Any) -> Optional[datetime]:
    """
    Parse various date formats and types into a datetime object.

    Supports:
    - datetime objects (passthrough)
    - date objects (converted to datetime at midnight)
    - pandas Timestamp
    - Excel ordinal dates (numeric)
    - String dates in multiple formats (YYYY-MM-DD, DD/MM/YYYY, MM/DD/YYYY, ...)

    Returns:
        datetime: Parsed datetime object, or None if parsing fails
        Timezone-aware values are converted to UTC and returned naive.

    Examples:
        >>> parse_date_any("2025-03-01")
        datetime(2025, 3, 1, 0, 0)
        >>> parse_date_any(45658)  # Excel ordinal
        datetime(2025, 1, 1, 0, 0)
        >>> parse_date_any("")
        None
    """
    if x is None or x is pd.NaT:
        return None

    # Pandas Timestamp (checked first, it is also a datetime)
    if isinstance(x, pd.Timestamp):
        if pd.isna(x):
            return None
        return _as_naive_utc(x.to_pydatetime())

    # Already a datetime
    elif isinstance(x, datetime):
        return _as_naive_utc(x)

    # Python date object
    elif isinstance(x, date):
        return datetime.combine(x, datetime.min.time())

    # Excel ordinal
    elif isinstance(x, (int, float)) and not isinstance(x, bool):
        try:
            if x > 1 and math.isfinite(x):
                return EXCEL_ORDINAL_BASE + timedelta(days=x)
        except (OverflowError, ValueError):
            pass
        return None

    # String date
    elif isinstance(x, str):
        text = x.strip()
        if text == "":
            return None

        formats = [
            '%Y-%m-%d', '%Y-%m-%dT%H:%M:%S', '%d/%m/%Y', '%m/%d/%Y',
            '%d-%m-%Y', '%Y/%m/%d', '%d.%m.%Y', '%Y.%m.%d'
        ]
        for fmt in formats:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue

        try:
            # ISO timestamps with zones, before dayfirst parsing can swap month and day
            return _as_naive_utc(date_parser.isoparse(text))
        except (ValueError, TypeError, OverflowError):
            pass

        try:
            # Fallback to dateutil parser (month names, ...)
            return _as_naive_utc(date_parser.parse(text, dayfirst=True))
        except (ValueError, TypeError, OverflowError):
            logger.debug(f"Unparseable date value: {x!r}")
            return None

    return None


def calculate_durations(plan_start: Any, plan_finish: Any, data_date: Any) -> Tuple[float, float]:
    """
    Calculate elapsed duration and planned duration in days.

    Returns:
        Tuple[float, float]: (elapsed_days, planned_days), both clamped at 0.
        Returns (0.0, 0.0) if any date cannot be parsed.

    Examples:
        >>> calculate_durations("2025-01-01", "2025-01-31", "2025-01-16")
        (15.0, 30.0)
    """
    ps = parse_date_any(plan_start)
    pf = parse_date_any(plan_finish)
    dd = parse_date_any(data_date)

    if ps is None or pf is None or dd is None:
        logger.warning(f"Duration calculation skipped - ps: {ps}, pf: {pf}, dd: {dd}")
        return 0.0, 0.0

    elapsed = max((dd - ps).total_seconds() / 86400.0, 0.0)
    planned = max((pf - ps).total_seconds() / 86400.0, 0.0)
    return elapsed, planned


def days_to_months(days: float) -> float:
    """Convert a day count to approximate months (30.44 days per month)."""
    return round(days / DAYS_PER_MONTH, 2)


# ============================================================================
# BASELINE CURVE FUNCTIONS
# ============================================================================

def scurve_cdf(x: float, alpha: float = 2.0, beta: float = 2.0) -> float:
    """
    Cumulative share of planned work done at time ratio ``x``.

    The S-curve models the usual construction ramp: slow mobilisation, fast
    structural phase, slow finishing. Beta(2,2) is the symmetric default and
    has the closed form ``3x² - 2x³``; other shapes use the Beta CDF.

    Examples:
        >>> scurve_cdf(0.5)
        0.5
        >>> scurve_cdf(0.25)
        0.15625

    Notes:
        - Alpha > Beta: back-loaded curve (work peaks late)
        - Alpha < Beta: front-loaded curve (work peaks early)
    """
    x = clamp(float(x), 0.0, 1.0)
    alpha = max(0.1, float(alpha))
    beta = max(0.1, float(beta))

    if x == 0.0:
        return 0.0
    if x == 1.0:
        return 1.0

    # Closed-form solution for Beta(2,2)
    if abs(alpha - 2.0) < 1e-9 and abs(beta - 2.0) < 1e-9:
        return 3 * x * x - 2 * x * x * x

    return clamp(float(beta_dist.cdf(x, alpha, beta)), 0.0, 1.0)


def scurve_inverse(fraction: float, alpha: float = 2.0, beta: float = 2.0) -> float:
    """
    Time ratio at which the S-curve reaches ``fraction`` of planned work.

    Inverse of :func:`scurve_cdf`, used for earned schedule.
    """
    fraction = clamp(float(fraction), 0.0, 1.0)
    if fraction == 0.0:
        return 0.0
    if fraction == 1.0:
        return 1.0
    return clamp(float(beta_dist.ppf(fraction, max(0.1, alpha), max(0.1, beta))), 0.0, 1.0)


# ============================================================================
# MODULE EXPORTS
# ============================================================================

__all__ = [
    # Validation & Safety
    'validate_numeric_input',
    'safe_divide',
    'is_valid_finite_number',
    'clamp',

    # Date Functions
    'parse_date_any',
    'calculate_durations',
    'days_to_months',

    # Curve Functions
    'scurve_cdf',
    'scurve_inverse',

    # Constants
    'DAYS_PER_MONTH',
    'EXCEL_ORDINAL_BASE',
]
