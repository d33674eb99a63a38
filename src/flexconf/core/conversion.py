"""
Best-effort conversion of configuration strings to Python types.

Configuration values are always stored as strings. Conversion never raises on
bad input: a value that cannot be parsed converts to the zero value of the
requested type, so that dynamic access like ``tree.server.port.convert(int)``
stays total.
"""

import logging
import re
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

ZERO_VALUES: dict[type, Any] = {
    str: "",
    int: 0,
    float: 0.0,
    bool: False,
    Decimal: Decimal(0),
    timedelta: timedelta(0),
}

# [-][d.]hh:mm[:ss[.fffffff]]
_TIMESPAN_PATTERN = re.compile(
    r"^(-)?(?:(\d+)\.)?(\d{1,2}):(\d{1,2})(?::(\d{1,2})(?:\.(\d{1,7}))?)?$"
)
_DAYS_PATTERN = re.compile(r"^(-)?(\d+)$")


def zero_value(target: type) -> Any:
    """Return the value used when a conversion to ``target`` fails."""
    return ZERO_VALUES.get(target)


def parse_timedelta(text: str) -> timedelta | None:
    """Parse a ``[-][d.]hh:mm[:ss[.fffffff]]`` duration or a whole number of days.

    Returns:
        The parsed duration, or None if the text has neither format
    """
    text = text.strip()

    match = _DAYS_PATTERN.match(text)
    if match:
        days = int(match.group(2))
        return -timedelta(days=days) if match.group(1) else timedelta(days=days)

    match = _TIMESPAN_PATTERN.match(text)
    if not match:
        return None

    negative, days, hours, minutes, seconds, fraction = match.groups()
    hours_value = int(hours)
    minutes_value = int(minutes)
    seconds_value = int(seconds or 0)
    if hours_value > 23 or minutes_value > 59 or seconds_value > 59:
        return None

    microseconds = int((fraction or "0").ljust(7, "0")[:6])
    result = timedelta(
        days=int(days or 0),
        hours=hours_value,
        minutes=minutes_value,
        seconds=seconds_value,
        microseconds=microseconds,
    )
    return -result if negative else result


def to_type(text: str | None, target: type) -> Any:
    """Convert a configuration string to ``target``.

    Supported targets are ``str``, ``int``, ``float``, ``bool``, ``Decimal``,
    ``timedelta``, ``Enum`` subclasses and any type whose constructor accepts
    a single string.

    Args:
        text: The raw configuration value
        target: The requested type

    Returns:
        The converted value, or the zero value of ``target`` on failure
    """
    if text is None:
        return zero_value(target)

    if target is str:
        return text

    try:
        if target is bool:
            lowered = text.strip().lower()
            if lowered in ("true", "false"):
                return lowered == "true"
            return False
        if target is int:
            return int(text.strip())
        if target is float:
            return float(text.strip())
        if target is Decimal:
            return Decimal(text.strip())
        if target is timedelta:
            parsed = parse_timedelta(text)
            return parsed if parsed is not None else timedelta(0)
        if isinstance(target, type) and issubclass(target, Enum):
            return _to_enum(text.strip(), target)
        return target(text)
    except (ValueError, TypeError, ArithmeticError, InvalidOperation) as e:
        logger.debug(f"Cannot convert '{text}' to {getattr(target, '__name__', target)}: {e}")
        return zero_value(target)


def _to_enum(text: str, target: type[Enum]) -> Enum | None:
    if text in target.__members__:
        return target[text]
    for member in target:
        if str(member.value) == text:
            return member
    return None
