"""Unit tests for the event store and payload serialization."""
import json
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from schedule.event_store import (
    CACHE_CONTROL,
    ConfigurationError,
    EventStore,
    build,
    from_payload,
    to_payload,
)
from schedule.location_extractor import ExtractionPolicy
from schedule.models import CalendarEvent, EventRecord, LocationToken


def make_event(uid="evt-1", location="Building13, A123", start=True, end=True,
               description="Linear algebra lecture"):
    return CalendarEvent(
        uid=uid,
        summary=f"Summary {uid}",
        description=description,
        start=datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc) if start else None,
        end=datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc) if end else None,
        location=location
    )


SAMPLE_ICS = r"""BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Test//Room bookings//EN
BEGIN:VEVENT
UID:evt-1
SUMMARY:Linear algebra
DTSTART:20240115T080000Z
DTEND:20240115T100000Z
LOCATION:Building13\, A123
END:VEVENT
BEGIN:VEVENT
UID:evt-2
SUMMARY:Two rooms
DTSTART:20240115T080000Z
DTEND:20240115T100000Z
LOCATION:Building13\, A123\, Building13\, B211
END:VEVENT
END:VCALENDAR
"""


class TestBuild:
    """Test cases for build()."""
    
    def test_build_pairs_event_with_location(self):
        """Test that a usable event yields one record."""
        event = make_event()
        
        records = build([event])
        
        assert records == [
            EventRecord(location=LocationToken("Building13", "A123"), event=event)
        ]
    
    @pytest.mark.parametrize("kwargs", [
        {"location": None},
        {"location": ""},
        {"start": False},
        {"end": False},
    ])
    def test_build_skips_incomplete_events(self, kwargs):
        """Test that events missing location, start or end are skipped."""
        assert build([make_event(**kwargs)]) == []
    
    def test_build_missing_end_excluded_regardless_of_location(self):
        """Test that a missing end always excludes the event."""
        events = [make_event(end=False), make_event(end=False, location="A,B,C,D")]
        
        assert build(events, ExtractionPolicy.EXPLODE) == []
    
    def test_build_single_only_drops_ambiguous_location(self):
        """Test that "X, Y, Z" is dropped under the single-only policy."""
        events = [make_event(uid="ok"), make_event(uid="ambiguous", location="X, Y, Z")]
        
        records = build(events, ExtractionPolicy.SINGLE_ONLY)
        
        assert [r.event.uid for r in records] == ["ok"]
    
    def test_build_explode_files_event_under_every_location(self):
        """Test that the explode policy fans out to every pair."""
        event = make_event(location="Building13, A123, Building14, B211")
        
        records = build([event], ExtractionPolicy.EXPLODE)
        
        assert [r.location for r in records] == [
            LocationToken("Building13", "A123"),
            LocationToken("Building14", "B211"),
        ]
        assert all(r.event is event for r in records)
    
    def test_build_empty_event_list(self):
        """Test that an empty event list is valid."""
        assert build([]) == []
    
    def test_build_without_event_list_raises(self):
        """Test that a calendar without an event list is a configuration error."""
        with pytest.raises(ConfigurationError):
            build(None)


class TestEventStore:
    """Test cases for EventStore snapshots."""
    
    def test_refresh_builds_new_snapshot(self):
        """Test that refresh loads, parses and extracts the feed."""
        loader = Mock()
        loader.load.return_value = SAMPLE_ICS
        
        store = EventStore.refresh(loader)
        
        loader.load.assert_called_once_with()
        assert len(store) == 1
        assert store.records[0].event.uid == "evt-1"
        assert store.records[0].location == LocationToken("Building13", "A123")
    
    def test_refresh_explode_policy(self):
        """Test that the policy is passed through to extraction."""
        loader = Mock()
        loader.load.return_value = SAMPLE_ICS
        
        store = EventStore.refresh(loader, ExtractionPolicy.EXPLODE)
        
        assert len(store) == 3
    
    def test_refresh_returns_independent_snapshots(self):
        """Test that each refresh produces its own snapshot."""
        loader = Mock()
        loader.load.return_value = SAMPLE_ICS
        
        first = EventStore.refresh(loader)
        second = EventStore.refresh(loader)
        
        assert first is not second
        assert isinstance(first.records, tuple)
        assert loader.load.call_count == 2


class TestPayload:
    """Test cases for events.json serialization."""
    
    def test_payload_shape(self):
        """Test the JSON layout of one record."""
        record = build([make_event()])[0]
        
        payload = json.loads(to_payload([record]))
        
        assert payload == [{
            "location": {"building": "Building13", "room": "A123"},
            "event": {
                "uid": "evt-1",
                "summary": "Summary evt-1",
                "description": "Linear algebra lecture",
                "location": "Building13, A123",
                "start": {"date": "2024-01-15T08:00:00+00:00"},
                "end": {"date": "2024-01-15T10:00:00+00:00"},
            },
        }]
    
    def test_payload_omits_missing_description(self):
        """Test that a missing description is left out of the payload."""
        record = build([make_event(description=None)])[0]
        
        payload = json.loads(to_payload([record]))
        
        assert "description" not in payload[0]["event"]
    
    def test_payload_round_trip(self):
        """Test that parsing the payload restores equal records."""
        records = build([
            make_event(uid="a"),
            make_event(uid="b", description=None, location="Exactum, B119"),
        ])
        
        restored = from_payload(to_payload(records))
        
        assert restored == records
        assert isinstance(restored[0].event.start, datetime)
    
    def test_store_to_payload(self):
        """Test that a snapshot serializes its records."""
        store = EventStore(build([make_event()]))
        
        assert json.loads(store.to_payload())[0]["event"]["uid"] == "evt-1"
    
    def test_cache_control(self):
        """Test the cache directive of the served payload."""
        assert CACHE_CONTROL == "max-age=3600"
