"""Shared coercion helpers for form-shaped input.

parse_optional_int:  blank/None → None, numeric strings → int, garbage → None
parse_whole_number:  blank/None → None, whole numbers → int, anything else raises
parse_date:          ISO / DD.MM.YYYY → date, None on bad input
is_truthy_flag:      checkbox-style flags ("1", "true", True)
is_blank:            None or whitespace-only string
"""
import logging
from datetime import date, datetime

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def is_blank(value) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def parse_optional_int(value):
    """Coerce a form value to int.

    Returns None for None, blank strings, bools and anything that is not
    an integer literal.  Form posts send "" for untouched number inputs,
    which must read as "not supplied" rather than 0.
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        logger.debug("Ignoring non-integer form value %r", value)
        return None


def parse_whole_number(value):
    """Coerce a supplied number to int, refusing to guess.

    None and blank strings mean "not supplied" and give None.  Ints, whole
    floats (60.0) and their string forms ("60", "60.0") give an int.

    Raises:
        ValueError: any other value, including bools, fractions and "60%".
    """
    if is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValueError(f"Not a whole number: {value!r}")
    if isinstance(value, int):
        return value
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        raise ValueError(f"Not a whole number: {value!r}") from None
    if not number.is_integer():
        raise ValueError(f"Not a whole number: {value!r}")
    return int(number)


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def is_truthy_flag(value) -> bool:
    """True for True, "1", "true" (any case) and the other checkbox spellings."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUTHY
