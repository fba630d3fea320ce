"""Configuration read from environment variables."""
import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class Settings:
    """Runtime settings for the events service."""
    events_table: str
    bookings_table: str
    slugs_table: str
    region_name: str
    endpoint_url: Optional[str]
    log_level: str


def load_settings() -> Settings:
    """
    Build settings from the environment.

    Variables:
        EVENTS_TABLE: DynamoDB table holding events
        BOOKINGS_TABLE: DynamoDB table holding bookings
        SLUGS_TABLE: DynamoDB table claiming event slugs
        AWS_REGION: AWS region of the tables
        DYNAMODB_ENDPOINT_URL: Override endpoint, e.g. DynamoDB Local
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    return Settings(
        events_table=os.environ.get('EVENTS_TABLE', 'dev-events'),
        bookings_table=os.environ.get('BOOKINGS_TABLE', 'dev-event-bookings'),
        slugs_table=os.environ.get('SLUGS_TABLE', 'dev-event-slugs'),
        region_name=os.environ.get('AWS_REGION', 'us-east-1'),
        endpoint_url=os.environ.get('DYNAMODB_ENDPOINT_URL') or None,
        log_level=os.environ.get('LOG_LEVEL', 'INFO')
    )
