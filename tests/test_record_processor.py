"""Unit tests for RecordProcessor."""
from dataclasses import replace
from unittest.mock import patch

import pytest

from records.errors import (
    InvalidFormatError,
    ReferentialIntegrityError,
    RequiredFieldError,
    UniquenessError,
)
from records.models import Booking, Event
from records.record_processor import RecordProcessor


class FakeStore:
    """In-memory stand-in for the storage lookups."""

    def __init__(self):
        self.slugs = {}
        self.event_ids = set()

    def find_slug_owner(self, slug):
        return self.slugs.get(slug)

    def event_exists(self, event_id):
        return event_id in self.event_ids


class FakeClock:
    def __init__(self, now=1700000000):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def processor(store, clock):
    return RecordProcessor(
        find_slug_owner=store.find_slug_owner,
        event_exists=store.event_exists,
        clock=clock
    )


@pytest.fixture
def raw_event():
    """Create an Event as a user would submit it."""
    return Event(
        title='  Tech Conference 2024 ',
        description='A day of talks',
        overview='Talks and workshops',
        image='/images/event1.png',
        venue='Main Hall',
        location='location-1',
        date='September 15, 2024',
        time='10:00 AM',
        mode='offline',
        audience='Developers',
        organizer='Dev Club',
        agenda=['Keynote', ' Lunch ', ''],
        tags=['tech', 'conference', 'tech']
    )


class TestPrepareEvent:
    """Test cases for event preparation."""

    def test_prepare_event_new(self, processor, raw_event):
        """Test that a new event is cleaned, slugged and normalized."""
        event = processor.prepare_event(raw_event)

        assert event.title == 'Tech Conference 2024'
        assert event.slug == 'tech-conference-2024'
        assert event.date == '2024-09-15'
        assert event.time == '10:00'
        assert event.agenda == ['Keynote', 'Lunch']
        assert event.tags == ['tech', 'conference']
        assert event.event_id is not None
        assert event.created_at == 1700000000
        assert event.updated_at == 1700000000

    def test_prepare_event_does_not_modify_input(self, processor, raw_event):
        """Test that the submitted event is left untouched."""
        processor.prepare_event(raw_event)

        assert raw_event.slug is None
        assert raw_event.date == 'September 15, 2024'

    def test_prepare_event_ignores_submitted_slug(self, processor, raw_event):
        """Test that a first save always derives the slug from the title."""
        raw_event.slug = 'custom-slug'

        event = processor.prepare_event(raw_event)

        assert event.slug == 'tech-conference-2024'

    def test_prepare_event_empty_agenda(self, processor, raw_event):
        """Test that an event with no agenda items is rejected."""
        raw_event.agenda = ['  ']

        with pytest.raises(RequiredFieldError) as exc_info:
            processor.prepare_event(raw_event)

        assert exc_info.value.field == 'agenda'

    def test_prepare_event_title_without_slug_characters(self, processor, raw_event):
        """Test that a title yielding an empty slug is rejected."""
        raw_event.title = '!!!'

        with pytest.raises(RequiredFieldError) as exc_info:
            processor.prepare_event(raw_event)

        assert exc_info.value.field == 'slug'

    def test_prepare_event_invalid_date(self, processor, raw_event):
        """Test that an unparseable date is rejected."""
        raw_event.date = 'invalid-date'

        with pytest.raises(InvalidFormatError) as exc_info:
            processor.prepare_event(raw_event)

        assert exc_info.value.field == 'date'

    def test_prepare_event_invalid_time(self, processor, raw_event):
        """Test that an unparseable time is rejected."""
        raw_event.time = 'invalid-time'

        with pytest.raises(InvalidFormatError) as exc_info:
            processor.prepare_event(raw_event)

        assert exc_info.value.field == 'time'

    def test_prepare_event_slug_taken(self, processor, store, raw_event):
        """Test that a slug held by another event is rejected."""
        store.slugs['tech-conference-2024'] = 'other-event'
        raw_event.title = 'Tech conference, 2024!'

        with pytest.raises(UniquenessError) as exc_info:
            processor.prepare_event(raw_event)

        assert exc_info.value.field == 'slug'


class TestUpdateEvent:
    """Test cases for updates of committed events."""

    @pytest.fixture
    def committed(self, processor, store, raw_event):
        event = processor.prepare_event(raw_event)
        store.slugs[event.slug] = event.event_id
        store.event_ids.add(event.event_id)
        return event

    def test_update_keeps_own_slug(self, processor, committed, clock):
        """Test that an event may keep the slug it already holds."""
        clock.now += 60

        updated = processor.prepare_event(
            replace(committed, description='New description'), committed
        )

        assert updated.slug == committed.slug
        assert updated.event_id == committed.event_id
        assert updated.created_at == committed.created_at
        assert updated.updated_at == committed.updated_at + 60

    def test_update_title_regenerates_slug(self, processor, committed):
        """Test that changing the title derives a new slug."""
        updated = processor.prepare_event(
            replace(committed, title='Tech Conference 2025'), committed
        )

        assert updated.slug == 'tech-conference-2025'

    def test_update_without_title_change_keeps_slug(self, processor, committed):
        """Test that the slug survives updates that leave the title alone."""
        previous = replace(committed, slug='legacy-slug')

        updated = processor.prepare_event(replace(previous, venue='Room 2'), previous)

        assert updated.slug == 'legacy-slug'

    def test_update_ignores_submitted_slug(self, processor, committed):
        """Test that a caller-supplied slug never replaces the stored one."""
        updated = processor.prepare_event(
            replace(committed, slug='Totally Custom!!', venue='Room 2'), committed
        )

        assert updated.slug == 'tech-conference-2024'

    def test_update_regenerates_missing_slug(self, processor, committed):
        """Test that a committed event without a slug gets one from its title."""
        previous = replace(committed, slug='')

        updated = processor.prepare_event(
            replace(previous, slug='Totally Custom!!', venue='Room 2'), previous
        )

        assert updated.slug == 'tech-conference-2024'

    def test_update_skips_unchanged_date_and_time(self, processor, committed):
        """Test that date and time are only renormalized when modified."""
        with patch('records.record_processor.normalize_date') as mock_date, \
                patch('records.record_processor.normalize_time') as mock_time:
            processor.prepare_event(replace(committed, venue='Room 2'), committed)

        mock_date.assert_not_called()
        mock_time.assert_not_called()

    def test_update_renormalizes_changed_time(self, processor, committed):
        """Test that a modified time is normalized again."""
        updated = processor.prepare_event(replace(committed, time='7:45 PM'), committed)

        assert updated.time == '19:45'
        assert updated.date == committed.date

    def test_update_only_validates_changed_fields(self, processor, committed):
        """Test that blanking a field on update is still caught."""
        with pytest.raises(RequiredFieldError) as exc_info:
            processor.prepare_event(replace(committed, organizer=' '), committed)

        assert exc_info.value.field == 'organizer'


class TestPrepareBooking:
    """Test cases for booking preparation."""

    def test_prepare_booking_existing_event(self, processor, store):
        """Test that a booking for an existing event is accepted."""
        store.event_ids.add('event-1')

        booking = processor.prepare_booking(
            Booking(event_id='event-1', email='User@Example.com')
        )

        assert booking.email == 'user@example.com'
        assert booking.booking_id is not None
        assert booking.created_at == 1700000000
        assert booking.updated_at == 1700000000

    def test_prepare_booking_unknown_event(self, processor):
        """Test that a booking for a missing event is rejected."""
        with pytest.raises(ReferentialIntegrityError) as exc_info:
            processor.prepare_booking(
                Booking(event_id='missing', email='user@example.com')
            )

        assert exc_info.value.field == 'event_id'
        assert exc_info.value.message == 'Referenced event does not exist'

    def test_prepare_booking_invalid_email(self, processor, store):
        """Test that a malformed email is rejected."""
        store.event_ids.add('event-1')

        with pytest.raises(InvalidFormatError) as exc_info:
            processor.prepare_booking(Booking(event_id='event-1', email='not-an-email'))

        assert exc_info.value.field == 'email'

    def test_prepare_booking_missing_event_id(self, processor):
        """Test that a booking without an event reference is rejected."""
        with pytest.raises(RequiredFieldError) as exc_info:
            processor.prepare_booking(Booking(event_id=' ', email='user@example.com'))

        assert exc_info.value.field == 'event_id'
