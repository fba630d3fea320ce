"""Record processor that validates and normalizes events and bookings."""
import logging
import time
import uuid
from dataclasses import replace
from typing import Callable, Optional, Set

from records.errors import ReferentialIntegrityError, UniquenessError
from records.models import EVENT_LIST_FIELDS, EVENT_TEXT_FIELDS, Booking, Event
from records.normalizers import (
    generate_slug,
    normalize_date,
    normalize_email,
    normalize_time,
)
from records.validators import (
    clean_items,
    clean_text,
    require_text,
    validate_booking,
    validate_event,
)

logger = logging.getLogger(__name__)

# Fields whose modification re-runs validation on update.
TRACKED_FIELDS = EVENT_TEXT_FIELDS + ('date', 'time') + EVENT_LIST_FIELDS


class RecordProcessor:
    """
    Pipeline run immediately before an event or booking is written.

    Storage lookups are injected so the pipeline itself stays pure:
    ``find_slug_owner(slug)`` returns the event_id currently holding a slug
    (or None) and ``event_exists(event_id)`` confirms a booking's event.
    """

    def __init__(
        self,
        find_slug_owner: Callable[[str], Optional[str]],
        event_exists: Callable[[str], bool],
        clock: Callable[[], float] = time.time
    ):
        self._find_slug_owner = find_slug_owner
        self._event_exists = event_exists
        self._clock = clock

    def prepare_event(self, event: Event, previous: Optional[Event] = None) -> Event:
        """
        Validate and normalize an event for saving.

        Args:
            event: Event as submitted by the caller
            previous: Committed version of the event when this is an update

        Returns:
            New Event ready to be written

        Raises:
            ValidationError: If any rule fails; nothing should be written
        """
        cleaned = self._clean_event(event)
        changed = self._changed_fields(cleaned, previous)

        validate_event(cleaned, changed)

        # Submitted slugs are ignored; the slug always follows the title.
        if previous is None or 'title' in changed or not previous.slug:
            slug = generate_slug(cleaned.title)
        else:
            slug = previous.slug
        require_text('slug', slug)

        event_id = previous.event_id if previous else (cleaned.event_id or str(uuid.uuid4()))
        self._check_slug_available(slug, event_id)

        event_date = cleaned.date
        if changed is None or 'date' in changed:
            event_date = normalize_date(cleaned.date)

        event_time = cleaned.time
        if changed is None or 'time' in changed:
            event_time = normalize_time(cleaned.time)

        now = int(self._clock())
        prepared = replace(
            cleaned,
            event_id=event_id,
            slug=slug,
            date=event_date,
            time=event_time,
            created_at=previous.created_at if previous else now,
            updated_at=now
        )
        logger.info(f"Prepared event '{prepared.slug}' ({prepared.event_id})")
        return prepared

    def prepare_booking(self, booking: Booking) -> Booking:
        """
        Validate and normalize a booking for saving.

        Raises:
            ValidationError: If a field is missing, the email is malformed or
                the referenced event does not exist
        """
        cleaned = replace(
            booking,
            event_id=clean_text(booking.event_id),
            email=clean_text(booking.email)
        )
        validate_booking(cleaned)
        email = normalize_email(cleaned.email)

        if not self._event_exists(cleaned.event_id):
            logger.warning(f"Booking references unknown event: {cleaned.event_id}")
            raise ReferentialIntegrityError(
                'event_id', 'Referenced event does not exist'
            )

        now = int(self._clock())
        return replace(
            cleaned,
            email=email,
            booking_id=cleaned.booking_id or str(uuid.uuid4()),
            created_at=cleaned.created_at or now,
            updated_at=now
        )

    def _clean_event(self, event: Event) -> Event:
        """Trim text fields and list items of an event."""
        updates = {
            name: clean_text(getattr(event, name))
            for name in EVENT_TEXT_FIELDS + ('date', 'time')
        }
        updates['agenda'] = clean_items(event.agenda)
        updates['tags'] = clean_items(event.tags, unique=True)
        return replace(event, **updates)

    def _changed_fields(self, event: Event, previous: Optional[Event]) -> Optional[Set[str]]:
        """
        Names of tracked fields that differ from the committed version.

        Returns None for a first save, meaning every field counts as changed.
        """
        if previous is None:
            return None
        return {
            name for name in TRACKED_FIELDS
            if getattr(event, name) != getattr(previous, name)
        }

    def _check_slug_available(self, slug: str, event_id: str) -> None:
        """Raise UniquenessError if another event already holds the slug."""
        owner = self._find_slug_owner(slug)
        if owner is not None and owner != event_id:
            logger.warning(f"Slug '{slug}' already used by event {owner}")
            raise UniquenessError('slug', f"Slug '{slug}' is already in use")
