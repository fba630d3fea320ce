"""AWS Lambda handler for the Dev Event Hub API."""
import json
import logging
import time
from dataclasses import asdict, replace
from typing import Any, Dict, List, Optional

from config import load_settings
from records.errors import ErrorCode, ValidationError
from records.models import EVENT_LIST_FIELDS, EVENT_TEXT_FIELDS, Booking, Event
from storage.connection import close_connection
from storage.dynamodb_manager import DynamoDBManager

EDITABLE_EVENT_FIELDS = EVENT_TEXT_FIELDS + ('date', 'time') + EVENT_LIST_FIELDS

ERROR_STATUS = {
    ErrorCode.REQUIRED_FIELD_MISSING: 400,
    ErrorCode.INVALID_FORMAT: 400,
    ErrorCode.UNIQUENESS_VIOLATION: 409,
    ErrorCode.REFERENTIAL_INTEGRITY_VIOLATION: 404,
}

# Attributes every LogRecord carries; anything else came in through `extra`.
STANDARD_LOG_ATTRS = set(
    logging.LogRecord('', logging.INFO, '', 0, '', (), None).__dict__
) | {'message', 'asctime'}

_manager = None


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in record.__dict__.items():
            if key not in STANDARD_LOG_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


class BadRequest(Exception):
    """Raised when the request body cannot be used."""


def get_manager(settings) -> DynamoDBManager:
    """Return the storage manager shared by every invocation in this process."""
    global _manager
    if _manager is None:
        _manager = DynamoDBManager(settings=settings)
    return _manager


def shutdown() -> None:
    """Release the shared manager and its DynamoDB connection."""
    global _manager
    if _manager is not None:
        _manager.close()
        _manager = None
    close_connection()


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for API Gateway proxy requests.

    Routes:
        GET  /events          featured events listing
        GET  /events/{slug}   single event
        POST /events          create an event
        PUT  /events/{slug}   update an event
        POST /bookings        book an event

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        Response dict with statusCode, headers and JSON body
    """
    settings = load_settings()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    method = (event.get('httpMethod') or 'GET').upper()
    path = event.get('path') or '/'
    logger.info(
        f"Lambda execution started",
        extra={'method': method, 'path': path}
    )

    try:
        manager = get_manager(settings)
        response = route_request(manager, method, path, event.get('body'))

    except ValidationError as e:
        logger.warning(f"Rejected {method} {path}: {e}")
        response = _response(ERROR_STATUS[e.code], {
            'error': e.code.value,
            'field': e.field,
            'message': e.message
        })

    except BadRequest as e:
        logger.warning(f"Bad request {method} {path}: {e}")
        response = _response(400, {'error': 'BAD_REQUEST', 'message': str(e)})

    except Exception as e:
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        response = _response(500, {
            'error': 'INTERNAL_ERROR',
            'message': 'Request failed',
            'error_type': type(e).__name__
        })

    duration = time.time() - start_time
    logger.info(
        f"Lambda execution completed with status {response['statusCode']}",
        extra={'duration_seconds': round(duration, 2)}
    )
    return response


def route_request(
    manager: DynamoDBManager,
    method: str,
    path: str,
    body: Optional[str]
) -> Dict[str, Any]:
    """Dispatch a request to the matching operation."""
    segments = [segment for segment in path.strip('/').split('/') if segment]
    if segments and segments[0] == 'api':
        segments = segments[1:]

    if segments == ['events'] and method == 'GET':
        cards = manager.list_event_cards()
        return _response(200, {'events': [asdict(card) for card in cards]})

    if segments == ['events'] and method == 'POST':
        created = manager.save_event(event_from_payload(_parse_body(body)))
        return _response(201, {'event': asdict(created)})

    if len(segments) == 2 and segments[0] == 'events' and method in ('GET', 'PUT'):
        existing = manager.get_event_by_slug(segments[1])
        if existing is None:
            return _response(404, {'error': 'NOT_FOUND', 'message': 'Event not found'})
        if method == 'GET':
            return _response(200, {'event': asdict(existing)})
        updated = apply_event_changes(existing, _parse_body(body))
        saved = manager.save_event(updated, previous=existing)
        return _response(200, {'event': asdict(saved)})

    if segments == ['bookings'] and method == 'POST':
        booking = manager.save_booking(booking_from_payload(_parse_body(body)))
        return _response(201, {'booking': asdict(booking)})

    return _response(404, {'error': 'NOT_FOUND', 'message': f'No route for {method} {path}'})


def event_from_payload(payload: Dict[str, Any]) -> Event:
    """Build a draft Event from a request payload, ignoring unknown keys."""
    values = {name: payload.get(name) or '' for name in EVENT_TEXT_FIELDS + ('date', 'time')}
    for name in EVENT_LIST_FIELDS:
        values[name] = _as_list(payload.get(name))
    return Event(**values)


def apply_event_changes(existing: Event, payload: Dict[str, Any]) -> Event:
    """Overlay the editable fields present in a payload onto an event."""
    changes = {}
    for name in EDITABLE_EVENT_FIELDS:
        if name not in payload:
            continue
        if name in EVENT_LIST_FIELDS:
            changes[name] = _as_list(payload[name])
        else:
            changes[name] = payload[name] or ''
    return replace(existing, **changes)


def booking_from_payload(payload: Dict[str, Any]) -> Booking:
    return Booking(
        event_id=payload.get('event_id') or payload.get('eventId') or '',
        email=payload.get('email') or ''
    )


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


def _parse_body(body: Optional[str]) -> Dict[str, Any]:
    if not body:
        return {}
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        raise BadRequest('Request body is not valid JSON')
    if not isinstance(payload, dict):
        raise BadRequest('Request body must be a JSON object')
    return payload


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body)
    }
