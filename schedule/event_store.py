"""Event store: building EventRecords from the feed and (de)serializing them."""
import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from feed.feed_loader import FeedLoader
from schedule.calendar_parser import parse_calendar
from schedule.location_extractor import ExtractionPolicy, apply_policy
from schedule.models import CalendarEvent, EventRecord, LocationToken

logger = logging.getLogger(__name__)

CACHE_CONTROL = "max-age=3600"


class ConfigurationError(Exception):
    """Parsed calendar has no event list."""


def build(
    events: Optional[Iterable[CalendarEvent]],
    policy: ExtractionPolicy = ExtractionPolicy.SINGLE_ONLY
) -> List[EventRecord]:
    """
    Pair every usable event with the location(s) it belongs to.
    
    Events without location, start or end are skipped, as are events whose
    location the policy rejects.
    
    Args:
        events: Parsed calendar events, None if the calendar had no event list
        policy: Location extraction policy
        
    Returns:
        List of EventRecord objects
        
    Raises:
        ConfigurationError: If ``events`` is None
    """
    if events is None:
        raise ConfigurationError("no events in the ics")
    
    records = []
    skipped = 0
    
    for event in events:
        if not event.location or not event.start or not event.end:
            skipped += 1
            continue
        
        tokens = apply_policy(event.location, policy)
        if not tokens:
            logger.debug(f"Dropping event {event.uid}: unusable location '{event.location}'")
            skipped += 1
            continue
        
        records.extend(EventRecord(location=token, event=event) for token in tokens)
    
    logger.info(f"Built {len(records)} event records, skipped {skipped} events")
    return records


class EventStore:
    """Immutable snapshot of the event records of one feed load."""
    
    def __init__(self, records: Iterable[EventRecord]):
        self._records: Tuple[EventRecord, ...] = tuple(records)
    
    @property
    def records(self) -> Tuple[EventRecord, ...]:
        return self._records
    
    def __len__(self) -> int:
        return len(self._records)
    
    @classmethod
    def refresh(
        cls,
        loader: FeedLoader,
        policy: ExtractionPolicy = ExtractionPolicy.SINGLE_ONLY
    ) -> "EventStore":
        """
        Load, parse and extract the feed into a new snapshot.
        
        Args:
            loader: Feed loader to read the ICS document with
            policy: Location extraction policy
            
        Returns:
            New EventStore
        """
        calendar = parse_calendar(loader.load())
        return cls(build(calendar.events, policy))
    
    def to_payload(self) -> str:
        """Serialize the snapshot to the events.json JSON array."""
        return to_payload(self._records)


def record_to_dict(record: EventRecord) -> Dict[str, Any]:
    """
    Convert an EventRecord into its JSON payload shape.
    
    Args:
        record: EventRecord to convert
        
    Returns:
        Dictionary with ``location`` and ``event`` keys
    """
    event = record.event
    event_dict: Dict[str, Any] = {
        'uid': event.uid,
        'summary': event.summary,
        'location': event.location,
        'start': {'date': event.start.isoformat()},
    }
    
    # Optional fields are omitted rather than null
    if event.description is not None:
        event_dict['description'] = event.description
    if event.end is not None:
        event_dict['end'] = {'date': event.end.isoformat()}
    
    return {
        'location': {
            'building': record.location.building,
            'room': record.location.room,
        },
        'event': event_dict,
    }


def record_from_dict(item: Dict[str, Any]) -> EventRecord:
    """
    Convert a payload item back into an EventRecord.
    
    Args:
        item: Dictionary in the payload shape
        
    Returns:
        EventRecord with datetimes restored
    """
    event = item['event']
    end = event.get('end')
    return EventRecord(
        location=LocationToken(
            building=item['location']['building'],
            room=item['location']['room'],
        ),
        event=CalendarEvent(
            uid=event['uid'],
            summary=event['summary'],
            description=event.get('description'),
            start=datetime.fromisoformat(event['start']['date']),
            end=datetime.fromisoformat(end['date']) if end else None,
            location=event.get('location'),
        ),
    )


def to_payload(records: Iterable[EventRecord]) -> str:
    """Serialize records to the ``events.json`` JSON array."""
    return json.dumps([record_to_dict(r) for r in records], ensure_ascii=False)


def from_payload(payload: str) -> List[EventRecord]:
    """Parse an ``events.json`` JSON array back into records."""
    return [record_from_dict(item) for item in json.loads(payload)]
