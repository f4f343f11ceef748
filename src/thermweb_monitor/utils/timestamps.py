"""Timestamps as they appear in portal payloads and stored alert records.

The portal reports ``last`` as epoch seconds (sometimes as a numeric
string); alert records store epoch milliseconds; older records and
configuration may carry ISO strings. Everything is normalized to aware UTC
datetimes and only converted to the display timezone when rendered.
"""

from datetime import datetime, timezone
from typing import Any, Optional, Union
from zoneinfo import ZoneInfo

from dateutil import parser as dateutil_parser

# Epoch values above this are milliseconds (anything after 2001 in ms)
MILLISECONDS_THRESHOLD = 1e12

DISPLAY_FORMAT = "%m/%d/%Y, %I:%M:%S %p"


def _from_epoch(value: Union[int, float]) -> datetime:
    if value > MILLISECONDS_THRESHOLD:
        value = value / 1000
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise ValueError(f"Timestamp out of range: {value!r}") from e


def normalize_timestamp(value: Any) -> datetime:
    """Convert epoch seconds or milliseconds, strings, or datetimes to UTC.

    Naive datetimes and strings without an offset are taken as UTC.

    Raises:
        ValueError: If value cannot be read as a timestamp.

    Example:
        >>> normalize_timestamp(1705084800000)  # alert record, milliseconds
        datetime.datetime(2024, 1, 12, 18, 40, tzinfo=datetime.timezone.utc)
        >>> normalize_timestamp("1705084800")  # portal "last", seconds
        datetime.datetime(2024, 1, 12, 18, 40, tzinfo=datetime.timezone.utc)
    """
    if isinstance(value, bool):
        raise ValueError(f"Cannot parse timestamp: {value!r} (type: bool)")

    if isinstance(value, (int, float)):
        return _from_epoch(value)

    if isinstance(value, str):
        text = value.strip()
        try:
            return _from_epoch(float(text))
        except ValueError:
            pass
        try:
            dt = dateutil_parser.parse(text)
        except (dateutil_parser.ParserError, OverflowError) as e:
            raise ValueError(f"Cannot parse timestamp: {value!r}") from e
    elif isinstance(value, datetime):
        dt = value
    else:
        raise ValueError(f"Cannot parse timestamp: {value!r} (type: {type(value).__name__})")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_epoch_ms(dt: datetime) -> int:
    """Epoch milliseconds, the unit alert records are stored in."""
    return int(dt.timestamp() * 1000)


def format_local(value: Optional[Any], tz_name: str = "America/Puerto_Rico") -> str:
    """Format a timestamp for display, e.g. ``01/12/2024, 02:40:00 PM``.

    Returns ``—`` for missing or unparseable values.
    """
    if value is None:
        return "—"
    try:
        dt = normalize_timestamp(value)
    except ValueError:
        return "—"
    return dt.astimezone(ZoneInfo(tz_name)).strftime(DISPLAY_FORMAT)
