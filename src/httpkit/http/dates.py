"""
HTTP-date formatting (RFC 7231), used by Expires and Date headers.

HTTP dates are always GMT:

    Thu, 15 Jan 2026 12:30:45 GMT
"""

from datetime import datetime, timezone


_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date.

    Naive datetimes are taken to be UTC already; aware ones are converted.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def format_timestamp(timestamp: float) -> str:
    """Format a Unix timestamp as an HTTP-date."""
    return format_http_date(datetime.fromtimestamp(timestamp, tz=timezone.utc))
