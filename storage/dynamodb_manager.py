"""DynamoDB manager for event and booking storage operations."""
import logging
from typing import Dict, List, Optional

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from config import Settings, load_settings
from records.errors import UniquenessError
from records.models import Booking, Event, EventCard
from records.record_processor import RecordProcessor
from storage.connection import DynamoDBConnection, ensure_tables, get_connection

logger = logging.getLogger(__name__)


class DynamoDBManager:
    """Manager for DynamoDB operations."""

    COLLECTION_KEYS = {
        'events': 'event_id',
        'bookings': 'booking_id',
    }

    def __init__(
        self,
        settings: Optional[Settings] = None,
        connection: Optional[DynamoDBConnection] = None
    ):
        """
        Acquire the shared connection and table references.

        Args:
            settings: Table names and region; read from the environment if omitted
            connection: Connection handle; the process-wide one if omitted
        """
        self.settings = settings or load_settings()
        self.connection = connection or get_connection(self.settings)
        self.dynamodb = self.connection.acquire()
        ensure_tables(self.dynamodb, self.settings)

        self.tables = {
            'events': self.dynamodb.Table(self.settings.events_table),
            'bookings': self.dynamodb.Table(self.settings.bookings_table),
        }
        self.slugs_table = self.dynamodb.Table(self.settings.slugs_table)
        self.processor = RecordProcessor(
            find_slug_owner=self.find_slug_owner,
            event_exists=self.event_exists
        )
        logger.info(
            f"Initialized DynamoDBManager for tables: "
            f"{self.settings.events_table}, {self.settings.bookings_table}"
        )

    def close(self) -> None:
        """Release this manager's reference to the shared connection."""
        self.connection.release()

    def exists(self, collection: str, record_id: str) -> bool:
        """
        Check whether a record exists.

        Args:
            collection: 'events' or 'bookings'
            record_id: Primary key of the record

        Returns:
            True if the record is present
        """
        if collection not in self.COLLECTION_KEYS:
            raise ValueError(f"Unknown collection: {collection}")
        if not record_id:
            return False

        key_name = self.COLLECTION_KEYS[collection]
        try:
            response = self.tables[collection].get_item(
                Key={key_name: record_id},
                ProjectionExpression=key_name
            )
        except ClientError as e:
            logger.error(f"Error reading {collection} record {record_id}: {e}")
            raise
        return 'Item' in response

    def event_exists(self, event_id: str) -> bool:
        return self.exists('events', event_id)

    def find_slug_owner(self, slug: str) -> Optional[str]:
        """Return the event_id holding a slug, or None if it is free."""
        try:
            response = self.slugs_table.get_item(Key={'slug': slug})
        except ClientError as e:
            logger.error(f"Error reading slug {slug}: {e}")
            raise
        item = response.get('Item')
        return item['event_id'] if item else None

    def get_event(self, event_id: str) -> Optional[Event]:
        """Return an event by ID, or None if not found."""
        try:
            response = self.tables['events'].get_item(Key={'event_id': event_id})
        except ClientError as e:
            logger.error(f"Error reading event {event_id}: {e}")
            raise
        item = response.get('Item')
        return self._item_to_event(item) if item else None

    def get_event_by_slug(self, slug: str) -> Optional[Event]:
        """Return the event published under a slug, or None."""
        event_id = self.find_slug_owner(slug)
        if event_id is None:
            return None
        return self.get_event(event_id)

    def list_events(self) -> List[Event]:
        """
        Retrieve all events ordered by date and time.

        Returns:
            List of Event objects
        """
        logger.info("Scanning DynamoDB table for all events")
        items = self._scan(self.tables['events'])

        events = []
        for item in items:
            event = self._item_to_event(item)
            if event:
                events.append(event)

        events.sort(key=lambda event: (event.date, event.time, event.title))
        logger.info(f"Retrieved {len(events)} events from DynamoDB")
        return events

    def list_event_cards(self) -> List[EventCard]:
        """Return the featured events listing."""
        return [
            EventCard(
                title=event.title,
                slug=event.slug,
                image=event.image,
                location=event.location,
                date=event.date,
                time=event.time
            )
            for event in self.list_events()
        ]

    def list_bookings_for_event(self, event_id: str) -> List[Booking]:
        """Return the bookings made against an event."""
        try:
            response = self.tables['bookings'].query(
                IndexName='event-index',
                KeyConditionExpression=Key('event_id').eq(event_id)
            )
            items = response.get('Items', [])
            while 'LastEvaluatedKey' in response:
                response = self.tables['bookings'].query(
                    IndexName='event-index',
                    KeyConditionExpression=Key('event_id').eq(event_id),
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))
        except ClientError as e:
            logger.error(f"Error querying bookings for event {event_id}: {e}")
            raise

        bookings = [self._item_to_booking(item) for item in items]
        return [booking for booking in bookings if booking]

    def save_event(self, event: Event, previous: Optional[Event] = None) -> Event:
        """
        Validate, normalize and write an event.

        The slug is claimed with a conditional write before the event itself
        is stored, so two events can never commit the same slug.

        Args:
            event: Event to save
            previous: Committed version when updating; looked up by
                event_id if omitted

        Returns:
            The committed Event

        Raises:
            ValidationError: If the event is rejected
            ClientError: On DynamoDB failures
        """
        if previous is None and event.event_id:
            previous = self.get_event(event.event_id)

        prepared = self.processor.prepare_event(event, previous)
        new_slug = previous is None or previous.slug != prepared.slug

        if new_slug:
            self._claim_slug(prepared.slug, prepared.event_id)

        try:
            self.tables['events'].put_item(Item=self._event_to_item(prepared))
        except ClientError as e:
            logger.error(f"Error writing event {prepared.event_id}: {e}")
            if new_slug:
                self._release_slug(prepared.slug, prepared.event_id)
            raise

        if previous is not None and new_slug and previous.slug:
            self._release_slug(previous.slug, prepared.event_id)

        logger.info(f"Saved event '{prepared.slug}' ({prepared.event_id})")
        return prepared

    def save_booking(self, booking: Booking) -> Booking:
        """
        Validate and write a booking.

        Returns:
            The committed Booking

        Raises:
            ValidationError: If the booking is rejected
            ClientError: On DynamoDB failures
        """
        prepared = self.processor.prepare_booking(booking)
        try:
            self.tables['bookings'].put_item(Item=self._booking_to_item(prepared))
        except ClientError as e:
            logger.error(f"Error writing booking {prepared.booking_id}: {e}")
            raise

        logger.info(
            f"Saved booking {prepared.booking_id} for event {prepared.event_id}"
        )
        return prepared

    def _claim_slug(self, slug: str, event_id: str) -> None:
        """Reserve a slug for an event, failing if another event holds it."""
        try:
            self.slugs_table.put_item(
                Item={'slug': slug, 'event_id': event_id},
                ConditionExpression=(
                    Attr('slug').not_exists() | Attr('event_id').eq(event_id)
                )
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                logger.warning(f"Slug '{slug}' was claimed concurrently")
                raise UniquenessError('slug', f"Slug '{slug}' is already in use")
            logger.error(f"Error claiming slug {slug}: {e}")
            raise

    def _release_slug(self, slug: str, event_id: str) -> None:
        """Delete a slug claim if it still belongs to the event."""
        try:
            self.slugs_table.delete_item(
                Key={'slug': slug},
                ConditionExpression=Attr('event_id').eq(event_id)
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                logger.warning(f"Slug '{slug}' no longer belongs to {event_id}")
                return
            logger.error(f"Error releasing slug {slug}: {e}")
            raise

    def _scan(self, table) -> List[dict]:
        try:
            # Scan the table (paginated automatically by boto3)
            response = table.scan()
            items = response.get('Items', [])

            # Handle pagination
            while 'LastEvaluatedKey' in response:
                response = table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))
        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table {table.name}: {e}")
            raise
        return items

    def _item_to_event(self, item: dict) -> Optional[Event]:
        """
        Convert DynamoDB item to Event object.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Event object or None if conversion fails
        """
        try:
            return Event(
                event_id=item['event_id'],
                title=item['title'],
                slug=item['slug'],
                description=item['description'],
                overview=item['overview'],
                image=item['image'],
                venue=item['venue'],
                location=item['location'],
                date=item['date'],
                time=item['time'],
                mode=item['mode'],
                audience=item['audience'],
                organizer=item['organizer'],
                agenda=list(item['agenda']),
                tags=list(item['tags']),
                created_at=int(item['created_at']),
                updated_at=int(item['updated_at'])
            )
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Failed to convert item to Event: {e}")
            return None

    def _event_to_item(self, event: Event) -> Dict:
        return {
            'event_id': event.event_id,
            'title': event.title,
            'slug': event.slug,
            'description': event.description,
            'overview': event.overview,
            'image': event.image,
            'venue': event.venue,
            'location': event.location,
            'date': event.date,
            'time': event.time,
            'mode': event.mode,
            'audience': event.audience,
            'organizer': event.organizer,
            'agenda': event.agenda,
            'tags': event.tags,
            'created_at': event.created_at,
            'updated_at': event.updated_at
        }

    def _item_to_booking(self, item: dict) -> Optional[Booking]:
        try:
            return Booking(
                booking_id=item['booking_id'],
                event_id=item['event_id'],
                email=item['email'],
                created_at=int(item['created_at']),
                updated_at=int(item['updated_at'])
            )
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Failed to convert item to Booking: {e}")
            return None

    def _booking_to_item(self, booking: Booking) -> Dict:
        return {
            'booking_id': booking.booking_id,
            'event_id': booking.event_id,
            'email': booking.email,
            'created_at': booking.created_at,
            'updated_at': booking.updated_at
        }
