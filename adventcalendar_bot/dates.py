"""Day-key normalization in a fixed time zone."""

import re
from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser

from .config import TIME_ZONE, ConfigurationError

DAY_PATTERN = re.compile(r"(\d+)-(\d+)-(\d+)", re.ASCII)

# North American zone names allowed by RFC 2822, in seconds east of UTC
RFC2822_ZONES = {
    "UT": 0,
    "EST": -5 * 3600,
    "EDT": -4 * 3600,
    "CST": -6 * 3600,
    "CDT": -5 * 3600,
    "MST": -7 * 3600,
    "MDT": -6 * 3600,
    "PST": -8 * 3600,
    "PDT": -7 * 3600,
}

DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


class MalformedDateError(ValueError):
    """Raised when a YYYY-MM-DD string cannot be parsed."""


def get_zone(time_zone: str) -> ZoneInfo:
    """Resolve a named time zone.

    Raises:
        ConfigurationError: If the zone name is unknown
    """
    try:
        return ZoneInfo(time_zone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown time zone: {time_zone}") from e


def format_day(instant: datetime, time_zone: str = TIME_ZONE) -> str:
    """Render the calendar date of an instant in the given zone as YYYY-MM-DD.

    Naive datetimes are taken as UTC.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)

    local = instant.astimezone(get_zone(time_zone))
    return f"{local.year:04d}-{local.month:02d}-{local.day:02d}"


def parse_day(text: str) -> datetime:
    """Parse strict YYYY-MM-DD text into UTC midnight of that date.

    Raises:
        MalformedDateError: If the text is not three positive integers forming
            a real calendar date
    """
    match = DAY_PATTERN.fullmatch((text or "").strip())
    if not match:
        raise MalformedDateError(f"Invalid date: {text}")

    year, month, day = (int(part) for part in match.groups())
    if not year or not month or not day:
        raise MalformedDateError(f"Invalid date: {text}")

    try:
        return datetime(year, month, day, tzinfo=UTC)
    except ValueError as e:
        raise MalformedDateError(f"Invalid date: {text}") from e


def parse_publication_date(
    text: str | None, time_zone: str = TIME_ZONE
) -> datetime | None:
    """Parse a feed timestamp (RFC 2822, ISO 8601, ...) into an aware datetime.

    Returns None for missing or unparseable text, and for text without a full
    calendar date. Results without any zone are interpreted in ``time_zone``.
    """
    if not text or not text.strip():
        return None

    try:
        # Two defaults expose fields dateutil would otherwise fill in silently
        published = date_parser.parse(
            text.strip(), default=DEFAULTS[0], tzinfos=RFC2822_ZONES
        )
        check = date_parser.parse(
            text.strip(), default=DEFAULTS[1], tzinfos=RFC2822_ZONES
        )
    except (ValueError, OverflowError):
        return None

    if published.date() != check.date():
        return None

    if published.tzinfo is None:
        published = published.replace(tzinfo=get_zone(time_zone))

    return published
