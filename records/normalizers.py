"""Normalization helpers applied to records before they are saved."""
import re
from datetime import datetime, timezone

from dateutil import parser as dateparser

from records.errors import InvalidFormatError, RequiredFieldError

_SLUG_SEPARATOR_RE = re.compile(r'[^a-z0-9]+')
_TIME_RE = re.compile(
    r'^(\d{1,2})(?::|\.|h)?(\d{2})?\s*(am|pm)?$',
    re.IGNORECASE
)
_EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

# Times without a date are parsed against this day.
REFERENCE_DATE = '1970-01-01'

# Two defaults that differ in every date part; a parse that depends on the
# default was missing its year, month or day.
_DATE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def generate_slug(title: str) -> str:
    """
    Derive a URL-safe slug from an event title.

    Lowercases and trims the title, collapses every run of characters other
    than a-z and 0-9 into a single hyphen and strips hyphens from both ends.

    Args:
        title: Event title

    Returns:
        Slug string, empty when the title has no alphanumeric characters
    """
    slug = _SLUG_SEPARATOR_RE.sub('-', (title or '').lower().strip())
    return slug.strip('-')


def normalize_date(date_str: str) -> str:
    """
    Normalize a date-like string to ISO 8601 format (YYYY-MM-DD).

    Args:
        date_str: Date string in any format the generic parser understands.
            Year, month and day must all be present; "September 15" is
            rejected rather than completed from today's date.

    Returns:
        UTC calendar date formatted as YYYY-MM-DD

    Raises:
        InvalidFormatError: If the string is empty or not a valid date
    """
    if not date_str or not date_str.strip():
        raise InvalidFormatError('date', 'Invalid date')

    try:
        parsed, check = (
            dateparser.parse(date_str.strip(), default=default)
            for default in _DATE_DEFAULTS
        )
    except (ValueError, OverflowError):
        raise InvalidFormatError('date', 'Invalid date')

    if parsed.date() != check.date():
        raise InvalidFormatError('date', 'Invalid date')

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime('%Y-%m-%d')


def normalize_time(time_str: str) -> str:
    """
    Normalize a time-like string to 24-hour format (HH:MM).

    ISO times such as "21:00" or "21:00:30Z" are parsed first; anything else
    falls back to "9:30 AM", "9.30", "9h30" or "930pm" style input.

    Args:
        time_str: Time string in various formats

    Returns:
        Zero-padded 24-hour time string

    Raises:
        RequiredFieldError: If the string is empty
        InvalidFormatError: If the string is not a valid time of day
    """
    if not time_str or not time_str.strip():
        raise RequiredFieldError('time', 'Time is required')
    trimmed = time_str.strip()

    try:
        parsed = dateparser.isoparse(f'{REFERENCE_DATE}T{trimmed}')
    except (ValueError, OverflowError):
        parsed = None

    if parsed is not None:
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
        return f'{parsed.hour:02d}:{parsed.minute:02d}'

    match = _TIME_RE.match(trimmed)
    if not match:
        raise InvalidFormatError('time', 'Invalid time format')

    hour = int(match.group(1))
    minute = int(match.group(2)) if match.group(2) else 0
    meridiem = match.group(3)
    if meridiem:
        meridiem = meridiem.lower()
        if hour == 12:
            hour = 0 if meridiem == 'am' else 12
        elif meridiem == 'pm':
            hour += 12

    if not 0 <= hour <= 23 or not 0 <= minute <= 59:
        raise InvalidFormatError('time', 'Invalid time value')

    return f'{hour:02d}:{minute:02d}'


def normalize_email(email: str) -> str:
    """
    Trim and lowercase an email address and check its basic shape.

    Raises:
        RequiredFieldError: If the email is empty
        InvalidFormatError: If it does not look like local@domain.tld
    """
    cleaned = (email or '').strip().lower()
    if not cleaned:
        raise RequiredFieldError('email', 'Email is required')
    if not _EMAIL_RE.match(cleaned):
        raise InvalidFormatError('email', 'Invalid email format')
    return cleaned
