"""AWS Lambda handler for the building room schedule."""
import json
import logging
import os
import time
from typing import Dict, Any, Optional

from feed.feed_loader import FeedLoader, FetchError, DEFAULT_FEED_URL, DEFAULT_FEED_PATH
from schedule.event_store import CACHE_CONTROL, ConfigurationError, EventStore
from schedule.location_extractor import ExtractionPolicy
from schedule.search_engine import SearchEngine
from schedule.weekly_view import build_week_view, render_week, share_url
from storage.payload_publisher import PayloadPublisher


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
        
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)
        
        return json.dumps(log_data)


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


def _json_response(
    status_code: int,
    body: Any,
    headers: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    response_headers = {'Content-Type': 'application/json'}
    response_headers.update(headers or {})
    return {
        'statusCode': status_code,
        'headers': response_headers,
        'body': body if isinstance(body, str) else json.dumps(body, ensure_ascii=False)
    }


def _error_response(message: str, error: Exception, start_time: float) -> Dict[str, Any]:
    return _json_response(500, {
        'message': message,
        'error': str(error),
        'error_type': type(error).__name__,
        'duration_seconds': round(time.time() - start_time, 2)
    })


def _http_method(event: Dict[str, Any]) -> Optional[str]:
    """Return the HTTP method of an API Gateway event, None for scheduled events."""
    if event.get('httpMethod'):
        return event['httpMethod'].upper()
    method = event.get('requestContext', {}).get('http', {}).get('method')
    return method.upper() if method else None


def _http_path(event: Dict[str, Any]) -> str:
    return event.get('rawPath') or event.get('path') or '/'


def handle_events_json(store: EventStore) -> Dict[str, Any]:
    """Serve the full payload with the one hour cache directive."""
    return _json_response(200, store.to_payload(), {'Cache-Control': CACHE_CONTROL})


def handle_search(store: EventStore, query: str) -> Dict[str, Any]:
    """
    Search the snapshot and render the current week.
    
    Args:
        store: Fresh event snapshot
        query: Raw query string from the ``query`` parameter
        
    Returns:
        API Gateway response with the rendered week
    """
    engine = SearchEngine(store.records)
    result = engine.filter(query)
    body = render_week(build_week_view(result))
    body['query'] = query
    body['share_url'] = share_url('/', query)
    return _json_response(200, body)


def handle_build(store: EventStore, publisher: PayloadPublisher) -> Dict[str, Any]:
    """
    Publish the static payload of a fresh snapshot.
    
    Args:
        store: Fresh event snapshot
        publisher: Configured payload publisher
        
    Returns:
        Response dict with publish statistics
    """
    targets = publisher.publish(store.to_payload())
    return _json_response(200, {
        'message': 'Build completed successfully',
        'statistics': {
            'event_records': len(store),
            'targets': targets
        }
    })


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function.
    
    API Gateway requests are served from a freshly loaded snapshot:
    ``GET /events.json`` returns the payload and ``GET /search?query=...``
    the rendered week. Events without an HTTP method (EventBridge schedule)
    rebuild and publish the static payload.
    
    Args:
        event: API Gateway or EventBridge event payload
        context: Lambda context object
        
    Returns:
        Response dict with statusCode, headers and body
    """
    # Read configuration from environment variables
    mode = os.environ.get('MODE', 'development')
    feed_url = os.environ.get('FEED_URL', DEFAULT_FEED_URL)
    feed_path = os.environ.get('FEED_PATH', DEFAULT_FEED_PATH)
    timeout = os.environ.get('TIMEOUT_SECONDS')
    policy_name = os.environ.get('EXTRACTION_POLICY', 'single-only')
    bucket_name = os.environ.get('BUCKET_NAME')
    output_dir = os.environ.get('OUTPUT_DIR')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    
    setup_logging(log_level)
    logger = logging.getLogger(__name__)
    
    start_time = time.time()
    method = _http_method(event)
    path = _http_path(event)
    logger.info(
        f"Lambda execution started",
        extra={'mode': mode, 'method': method, 'path': path}
    )
    
    if method is not None and method != 'GET':
        return _json_response(405, {'message': f'Method {method} not allowed'})
    if method is not None and path not in ('/events.json', '/search'):
        return _json_response(404, {'message': f'Not found: {path}'})
    
    try:
        policy = ExtractionPolicy(policy_name)
        loader = FeedLoader(
            mode=mode,
            url=feed_url,
            path=feed_path,
            timeout=float(timeout) if timeout else None
        )
        
        try:
            store = EventStore.refresh(loader, policy)
            logger.info(f"Loaded {len(store)} event records")
        except (FetchError, OSError, ConfigurationError) as e:
            logger.error(
                f"Failed to load calendar feed: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _error_response('Failed to load calendar feed', e, start_time)
        
        if method is None:
            publisher = PayloadPublisher(bucket_name=bucket_name, output_dir=output_dir)
            response = handle_build(store, publisher)
        elif path == '/events.json':
            response = handle_events_json(store)
        else:
            params = event.get('queryStringParameters') or {}
            response = handle_search(store, params.get('query', ''))
        
        logger.info(
            f"Lambda execution completed successfully",
            extra={'duration_seconds': round(time.time() - start_time, 2)}
        )
        return response
    
    except Exception as e:
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(time.time() - start_time, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _error_response('Request failed', e, start_time)
