"""Process-wide DynamoDB connection handle and table registration."""
import logging
from typing import Optional, Set

import boto3
from botocore.exceptions import ClientError

from config import Settings, load_settings

logger = logging.getLogger(__name__)

_connection = None
_registered_tables: Set[str] = set()


class DynamoDBConnection:
    """
    Lazily created, reference-counted DynamoDB resource.

    The boto3 resource is built on the first acquire() and dropped once
    every holder has called release().
    """

    def __init__(self, region_name: str, endpoint_url: Optional[str] = None):
        self.region_name = region_name
        self.endpoint_url = endpoint_url
        self._resource = None
        self._ref_count = 0

    @property
    def ref_count(self) -> int:
        return self._ref_count

    @property
    def is_open(self) -> bool:
        return self._resource is not None

    def acquire(self):
        """Return the shared DynamoDB resource, creating it on first use."""
        if self._resource is None:
            self._resource = boto3.resource(
                'dynamodb',
                region_name=self.region_name,
                endpoint_url=self.endpoint_url
            )
            logger.info(f"Opened DynamoDB connection in {self.region_name}")
        self._ref_count += 1
        return self._resource

    def release(self) -> None:
        """Drop one reference; the resource is discarded at zero."""
        if self._ref_count == 0:
            return
        self._ref_count -= 1
        if self._ref_count == 0:
            self._resource = None
            logger.info("Closed DynamoDB connection")


def get_connection(settings: Optional[Settings] = None) -> DynamoDBConnection:
    """Return the process-wide connection handle, creating it once."""
    global _connection
    if _connection is None:
        settings = settings or load_settings()
        _connection = DynamoDBConnection(
            region_name=settings.region_name,
            endpoint_url=settings.endpoint_url
        )
    return _connection


def close_connection() -> None:
    """Forget the shared handle and table registrations (tests, shutdown)."""
    global _connection
    _connection = None
    _registered_tables.clear()


def ensure_tables(dynamodb, settings: Settings) -> None:
    """
    Create the events, bookings and slugs tables if they do not exist.

    Runs at most once per table per process; later calls return immediately.

    Args:
        dynamodb: boto3 DynamoDB resource
        settings: Settings naming the tables
    """
    definitions = {
        settings.events_table: _key_schema('event_id'),
        settings.slugs_table: _key_schema('slug'),
        settings.bookings_table: _bookings_schema(),
    }

    for table_name, definition in definitions.items():
        if table_name in _registered_tables:
            continue
        try:
            dynamodb.Table(table_name).load()
            logger.debug(f"Table {table_name} already exists")
        except ClientError as e:
            if e.response['Error']['Code'] != 'ResourceNotFoundException':
                logger.error(f"Error describing table {table_name}: {e}")
                raise
            logger.info(f"Creating table {table_name}")
            table = dynamodb.create_table(
                TableName=table_name,
                BillingMode='PAY_PER_REQUEST',
                **definition
            )
            table.wait_until_exists()
        _registered_tables.add(table_name)


def _key_schema(key: str) -> dict:
    return {
        'KeySchema': [{'AttributeName': key, 'KeyType': 'HASH'}],
        'AttributeDefinitions': [{'AttributeName': key, 'AttributeType': 'S'}],
    }


def _bookings_schema() -> dict:
    return {
        'KeySchema': [{'AttributeName': 'booking_id', 'KeyType': 'HASH'}],
        'AttributeDefinitions': [
            {'AttributeName': 'booking_id', 'AttributeType': 'S'},
            {'AttributeName': 'event_id', 'AttributeType': 'S'}
        ],
        'GlobalSecondaryIndexes': [
            {
                'IndexName': 'event-index',
                'KeySchema': [{'AttributeName': 'event_id', 'KeyType': 'HASH'}],
                'Projection': {'ProjectionType': 'ALL'}
            }
        ],
    }
