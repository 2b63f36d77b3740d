"""Date conversions between ISO calendar dates and Banco do Brasil's numeric encoding.

The bank uses day+month+year digits without separators in two flavours:

- wire (request parameters): day has no leading zero, "3032024" for 2024-03-03
- internal (storage): day is always two digits, "03032024"

Responses may carry either flavour, as string or integer.
"""

import logging
import re
from datetime import date, datetime
from typing import Tuple, Union

from bb_gateway.domain.exceptions import InvalidDateRangeError

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str]

_ENCODED = re.compile(r"^\d{7,8}$")
MIN_YEAR = 2020
MAX_YEAR = 2050
MAX_PERIOD_DAYS = 31
MAX_HISTORY_YEARS = 5


def _to_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise TypeError(f"Unsupported date value: {value!r}")


def format_wire_date(value: DateLike) -> str:
    """Encode a date for request parameters (day without leading zero).

    Strings that are already 7 or 8 digits are returned unchanged.
    """
    if isinstance(value, str) and _ENCODED.match(value):
        return value
    d = _to_date(value)
    return f"{d.day}{d.month:02d}{d.year:04d}"


def format_internal_date(value: Union[DateLike, int]) -> str:
    """Encode a date as fixed-width DDMMYYYY"""
    if isinstance(value, int):
        value = str(value)
    if isinstance(value, str) and _ENCODED.match(value):
        return value.zfill(8)
    d = _to_date(value)
    return f"{d.day:02d}{d.month:02d}{d.year:04d}"


def parse_wire_date(value: Union[str, int]) -> date:
    """
    Decode a 7 or 8 digit bank date.

    Inputs the bank should never send (wrong length, non-digits, components
    out of range) resolve to today with a warning, since upstream data is not
    fully trusted.
    """
    raw = str(value).strip()
    if not raw.isdigit() or len(raw) not in (7, 8):
        logger.warning("Invalid bank date %r, expected 7 or 8 digits; using today", raw)
        return date.today()

    padded = raw.zfill(8)
    day, month, year = int(padded[0:2]), int(padded[2:4]), int(padded[4:8])

    if not (1 <= day <= 31 and 1 <= month <= 12 and MIN_YEAR <= year <= MAX_YEAR):
        logger.warning(
            "Bank date components out of range: day=%s month=%s year=%s; using today",
            day, month, year,
        )
        return date.today()

    try:
        return date(year, month, day)
    except ValueError:
        logger.warning("Bank date %r is not a calendar date; using today", raw)
        return date.today()


def wire_date_to_iso(value: Union[str, int]) -> str:
    """Convert a bank date to YYYY-MM-DD"""
    return parse_wire_date(value).isoformat()


def clamp_future(value: date, now: date | None = None) -> date:
    """Replace a date after `now` with `now`"""
    now = now or date.today()
    if value > now:
        logger.warning(
            "Future date clamped to today",
            extra={"requested_date": value.isoformat(), "today": now.isoformat()},
        )
        return now
    return value


def normalize_period(start: date, end: date, now: date | None = None) -> Tuple[date, date]:
    """Clamp the end of a period to today, then keep start <= end"""
    end = clamp_future(end, now)
    if start > end:
        logger.warning(
            "Period start after end once clamped, moving start to end",
            extra={"start": start.isoformat(), "end": end.isoformat()},
        )
        start = end
    return start, end


def validate_period(start: date, end: date, today: date | None = None) -> None:
    """
    Check a period against the bank's limits.

    Raises:
        InvalidDateRangeError: start older than 5 years or range over 31 days
    """
    today = today or date.today()
    try:
        oldest = today.replace(year=today.year - MAX_HISTORY_YEARS)
    except ValueError:  # Feb 29
        oldest = today.replace(year=today.year - MAX_HISTORY_YEARS, day=28)

    if start < oldest:
        raise InvalidDateRangeError("Start date cannot be older than 5 years")
    if abs((end - start).days) > MAX_PERIOD_DAYS:
        raise InvalidDateRangeError(f"Period cannot exceed {MAX_PERIOD_DAYS} days")


def format_wire_period(
    date_from: Union[DateLike, None],
    date_to: Union[DateLike, None],
    today: date | None = None,
) -> Tuple[str, str]:
    """
    Wire-encode a statement period.

    Already encoded values are sent untouched; calendar dates are clamped to
    today (end first, then start). A missing bound defaults to today.
    """
    today = today or date.today()

    def is_encoded(value) -> bool:
        return isinstance(value, str) and bool(_ENCODED.match(value))

    if is_encoded(date_from) and is_encoded(date_to):
        return date_from, date_to

    start = None if is_encoded(date_from) else _to_date(date_from if date_from is not None else today)
    end = None if is_encoded(date_to) else _to_date(date_to if date_to is not None else today)

    if start is not None and end is not None:
        start, end = normalize_period(start, end, today)
    elif start is not None:
        start = clamp_future(start, today)
    elif end is not None:
        end = clamp_future(end, today)

    return (
        date_from if start is None else format_wire_date(start),
        date_to if end is None else format_wire_date(end),
    )
