"""Data models for events and bookings."""
from dataclasses import dataclass, field
from typing import List, Optional


# Text fields that must be present and non-blank on every event.
EVENT_TEXT_FIELDS = (
    'title',
    'description',
    'overview',
    'image',
    'venue',
    'location',
    'mode',
    'audience',
    'organizer',
)

EVENT_LIST_FIELDS = ('agenda', 'tags')


@dataclass
class Event:
    """Event open for booking."""
    title: str
    description: str
    overview: str
    image: str
    venue: str
    location: str
    date: str
    time: str
    mode: str
    audience: str
    organizer: str
    agenda: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    slug: Optional[str] = None
    event_id: Optional[str] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


@dataclass
class Booking:
    """Reservation against an existing event."""
    event_id: str
    email: str
    booking_id: Optional[str] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


@dataclass
class EventCard:
    """Summary of an event as shown in the featured events listing."""
    title: str
    slug: str
    image: str
    location: str
    date: str
    time: str
