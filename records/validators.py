"""Field-level validation rules for events and bookings."""
import logging
from typing import Iterable, List, Optional

from records.errors import RequiredFieldError
from records.models import EVENT_LIST_FIELDS, EVENT_TEXT_FIELDS, Booking, Event

logger = logging.getLogger(__name__)

REQUIRED_MESSAGES = {
    'title': 'Title is required',
    'description': 'Description is required',
    'overview': 'Overview is required',
    'image': 'Image is required',
    'venue': 'Venue is required',
    'location': 'Location is required',
    'date': 'Date is required',
    'time': 'Time is required',
    'mode': 'Mode is required',
    'audience': 'Audience is required',
    'organizer': 'Organizer is required',
    'agenda': 'Agenda must contain at least one item',
    'tags': 'Tags must contain at least one tag',
    'slug': 'Slug is required',
    'event_id': 'Event is required',
    'email': 'Email is required',
}


def clean_text(value: Optional[str]) -> str:
    """Return the value trimmed of surrounding whitespace ('' for None)."""
    if value is None:
        return ''
    return str(value).strip()


def clean_items(values: Optional[Iterable[str]], unique: bool = False) -> List[str]:
    """
    Trim list items and drop the blank ones.

    Args:
        values: Items to clean
        unique: Drop repeated items, keeping the first occurrence

    Returns:
        Cleaned list in original order
    """
    cleaned = []
    for value in values or []:
        item = clean_text(value)
        if not item:
            continue
        if unique and item in cleaned:
            continue
        cleaned.append(item)
    return cleaned


def require_text(field_name: str, value: Optional[str]) -> None:
    """Raise RequiredFieldError if the text value is blank."""
    if not clean_text(value):
        logger.warning(f"Missing required field: {field_name}")
        raise RequiredFieldError(field_name, REQUIRED_MESSAGES[field_name])


def require_items(field_name: str, values: Optional[List[str]]) -> None:
    """Raise RequiredFieldError if the list has no elements."""
    if not values:
        logger.warning(f"Empty required list: {field_name}")
        raise RequiredFieldError(field_name, REQUIRED_MESSAGES[field_name])


def validate_event(event: Event, changed: Optional[Iterable[str]] = None) -> None:
    """
    Check the required-field rules of an event.

    Args:
        event: Event whose text and list fields are already cleaned
        changed: Names of the fields modified on this save, or None to
            check every field (first save)

    Raises:
        RequiredFieldError: On the first field that violates its rule
    """
    fields = set(changed) if changed is not None else None

    for field_name in EVENT_TEXT_FIELDS + ('date', 'time'):
        if fields is None or field_name in fields:
            require_text(field_name, getattr(event, field_name))

    for field_name in EVENT_LIST_FIELDS:
        if fields is None or field_name in fields:
            require_items(field_name, getattr(event, field_name))


def validate_booking(booking: Booking) -> None:
    """
    Check the required-field rules of a booking.

    The email format and event existence are checked by the record processor.
    """
    require_text('event_id', booking.event_id)
    require_text('email', booking.email)
