"""Shared fixtures for DynamoDB-backed tests."""
import pytest
from moto import mock_aws

from config import Settings
from storage.connection import DynamoDBConnection, close_connection
from storage.dynamodb_manager import DynamoDBManager


@pytest.fixture
def settings():
    """Settings pointing at test table names."""
    return Settings(
        events_table='test-events',
        bookings_table='test-event-bookings',
        slugs_table='test-event-slugs',
        region_name='us-east-1',
        endpoint_url=None,
        log_level='INFO'
    )


@pytest.fixture
def aws():
    """Mock AWS for the duration of a test and reset table registration."""
    close_connection()
    with mock_aws():
        yield
    close_connection()


@pytest.fixture
def connection(aws, settings):
    return DynamoDBConnection(region_name=settings.region_name)


@pytest.fixture
def dynamodb_manager(settings, connection):
    """Create DynamoDBManager instance backed by mock tables."""
    manager = DynamoDBManager(settings=settings, connection=connection)
    yield manager
    manager.close()


@pytest.fixture
def event_payload():
    """Fields of a valid event as submitted by a user."""
    return {
        'title': 'Tech Conference 2024',
        'description': 'A day of talks on everything developers care about',
        'overview': 'Talks, workshops and networking',
        'image': '/images/event1.png',
        'venue': 'Main Hall',
        'location': 'location-1',
        'date': 'September 15, 2024',
        'time': '10:00 AM',
        'mode': 'offline',
        'audience': 'Developers',
        'organizer': 'Dev Club',
        'agenda': ['Keynote', 'Workshops', 'Networking'],
        'tags': ['tech', 'conference'],
    }
