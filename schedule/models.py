"""Data models for the room schedule."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class CalendarEvent:
    """Event as read from the ICS feed."""
    uid: str
    summary: str
    description: Optional[str]
    start: Optional[datetime]
    end: Optional[datetime]
    location: Optional[str]


@dataclass(frozen=True)
class LocationToken:
    """Building and room pair extracted from a location string."""
    building: str
    room: str


@dataclass(frozen=True)
class EventRecord:
    """One event placed in one location."""
    location: LocationToken
    event: CalendarEvent


@dataclass(frozen=True)
class ParsedCalendar:
    """Parsed feed. ``events`` is None when the feed has no event list."""
    events: Optional[List[CalendarEvent]]


@dataclass(frozen=True)
class FilterState:
    """Query string split into room, building and free-text parts."""
    room_tokens: Tuple[str, ...]
    building_tokens: Tuple[str, ...]
    text_query: str


@dataclass
class SearchResult:
    """Filtered, sorted and capped search output."""
    events: List[EventRecord]
    too_many_events: bool


@dataclass
class DayBucket:
    """Events of one weekday row."""
    label: str
    start: datetime
    events: List[EventRecord] = field(default_factory=list)


@dataclass
class WeekView:
    """Search result bucketed into the current week."""
    week_start: datetime
    days: List[DayBucket]
    later: List[EventRecord]
    too_many_events: bool
