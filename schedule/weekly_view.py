"""Weekly bucketing and display formatting of search results."""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from schedule.models import DayBucket, EventRecord, SearchResult, WeekView
from schedule.search_engine import week_start

WEEKDAYS = [
    "Maanantai",
    "Tiistai",
    "Keskiviikko",
    "Torstai",
    "Perjantai",
    "Lauantai",
    "Sunnuntai",
]
WEEKDAYS_SHORT = ["Ma", "Ti", "Ke", "To", "Pe", "La", "Su"]
LATER_LABEL = "Myöhemmin"
NO_EVENTS_TEXT = "Ei tapahtumia."

QUERY_PARAM = "query"
DAY = timedelta(hours=24)


def build_week_view(result: SearchResult, now: Optional[datetime] = None) -> WeekView:
    """
    Bucket search results into the days of the current week.
    
    Day ``i`` holds events starting in ``[start + i*24h, start + (i+1)*24h)``;
    everything from ``start + 7*24h`` on goes to ``later``.
    
    Args:
        result: Search result, already sorted
        now: Reference time (default: current local time)
        
    Returns:
        WeekView with seven day buckets
    """
    start = week_start(now)
    days = [DayBucket(label=label, start=start + DAY * i) for i, label in enumerate(WEEKDAYS)]
    later = []
    
    for record in result.events:
        offset = record.event.start - start
        if offset < timedelta(0):
            continue
        index = int(offset // DAY)
        if index < len(days):
            days[index].events.append(record)
        else:
            later.append(record)
    
    return WeekView(
        week_start=start,
        days=days,
        later=later,
        too_many_events=result.too_many_events
    )


def format_time(value: datetime) -> str:
    """Format a datetime as local HH:MM."""
    return value.astimezone().strftime("%H:%M")


def format_row(record: EventRecord) -> Dict[str, str]:
    """
    Format one record as a table row.
    
    Args:
        record: EventRecord to format
        
    Returns:
        Dictionary with weekday, date, time, location and summary columns
    """
    start = record.event.start.astimezone()
    end = record.event.end
    
    return {
        'uid': record.event.uid,
        'weekday': WEEKDAYS_SHORT[start.weekday()],
        'date': f"{start.day}.{start.month}.{start.year}",
        'time': f"{format_time(start)} - {format_time(end) if end else ''}",
        'location': f"{record.location.building} {record.location.room}",
        'summary': record.event.summary,
    }


def result_count_label(view: WeekView, count: int) -> str:
    """Return the result count label, prefixed with "yli" when capped."""
    prefix = "yli " if view.too_many_events else ""
    return f"hakutuloksia: {prefix}{count}"


def truncation_notice(count: int) -> str:
    """Return the notice shown when only the first results are listed."""
    return f"Vain {count} ensimmäistä tulosta näytettiin. Tarkenna hakua."


def render_week(view: WeekView) -> Dict[str, Any]:
    """
    Render a WeekView as a JSON-ready dictionary.
    
    Args:
        view: WeekView to render
        
    Returns:
        Dictionary with day rows, later rows and the result notices
    """
    count = sum(len(day.events) for day in view.days) + len(view.later)
    
    return {
        'week_start': view.week_start.isoformat(),
        'result_count': count,
        'result_count_label': result_count_label(view, count),
        'too_many_events': view.too_many_events,
        'truncation_notice': truncation_notice(count) if view.too_many_events else None,
        'days': [
            {
                'label': day.label,
                'date': day.start.date().isoformat(),
                'rows': [format_row(r) for r in day.events],
                'placeholder': None if day.events else NO_EVENTS_TEXT,
            }
            for day in view.days
        ],
        'later': {
            'label': LATER_LABEL,
            'rows': [format_row(r) for r in view.later],
        },
    }


def share_url(url: str, query: str) -> str:
    """
    Reflect the query into the ``query`` parameter of a URL.
    
    Args:
        url: Current page URL
        query: Search box value
        
    Returns:
        URL with the parameter set, or removed when ``query`` is empty
    """
    parts = urlsplit(url)
    params = parse_qs(parts.query, keep_blank_values=True)
    if query:
        params[QUERY_PARAM] = [query]
    else:
        params.pop(QUERY_PARAM, None)
    return urlunsplit(parts._replace(query=urlencode(params, doseq=True)))


def query_from_url(url: str) -> str:
    """Restore the search box value from a URL (empty when absent)."""
    params = parse_qs(urlsplit(url).query, keep_blank_values=True)
    return params.get(QUERY_PARAM, [""])[0]
