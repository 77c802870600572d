"""Conversion of raw ICS text into CalendarEvent objects."""
import logging
from datetime import date, datetime, time
from typing import List, Optional

from icalendar import Calendar

from schedule.models import CalendarEvent, ParsedCalendar

logger = logging.getLogger(__name__)


def parse_calendar(ics_text: str) -> ParsedCalendar:
    """
    Parse an ICS document.
    
    Args:
        ics_text: Raw ICS document
        
    Returns:
        ParsedCalendar whose ``events`` is None when the document holds no
        VEVENT components at all
        
    Raises:
        ValueError: If the text is not a calendar document
    """
    cal = Calendar.from_ical(ics_text)
    components = [c for c in cal.walk() if c.name == "VEVENT"]
    
    if not components:
        logger.warning("Calendar contains no VEVENT components")
        return ParsedCalendar(events=None)
    
    events: List[CalendarEvent] = [_to_calendar_event(c) for c in components]
    logger.info(f"Parsed {len(events)} events from calendar")
    return ParsedCalendar(events=events)


def _to_calendar_event(component) -> CalendarEvent:
    description = component.get("DESCRIPTION")
    location = component.get("LOCATION")
    return CalendarEvent(
        uid=str(component.get("UID", "")),
        summary=str(component.get("SUMMARY", "")),
        description=str(description) if description is not None else None,
        start=_to_local_datetime(component.get("DTSTART")),
        end=_to_local_datetime(component.get("DTEND")),
        location=str(location) if location is not None else None,
    )


def _to_local_datetime(prop) -> Optional[datetime]:
    """
    Convert a DTSTART/DTEND property to an aware local datetime.
    
    Floating times are taken as local time and all-day dates as local
    midnight.
    """
    if prop is None:
        return None
    
    value = prop.dt
    if isinstance(value, datetime):
        return value.astimezone()
    if isinstance(value, date):
        return datetime.combine(value, time()).astimezone()
    return None
