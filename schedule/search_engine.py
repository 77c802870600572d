"""Faceted and fuzzy search over event records."""
import logging
from datetime import datetime, time, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from rapidfuzz import fuzz, utils

from schedule.models import EventRecord, FilterState, SearchResult

logger = logging.getLogger(__name__)

MAX_RESULTS = 1000
SCORE_THRESHOLD = 0.2


def week_start(now: Optional[datetime] = None) -> datetime:
    """
    Return Monday 00:00 local time of the week containing ``now``.
    
    Args:
        now: Reference time (default: current local time)
        
    Returns:
        Aware datetime of the start of the week
    """
    now = (now or datetime.now()).astimezone()
    monday = now.date() - timedelta(days=now.weekday())
    # Monday gets its own UTC offset
    return datetime.combine(monday, time()).astimezone()


def description_score(query: str, description: str) -> float:
    """
    Score how well ``query`` matches within ``description``.
    
    Partial matching finds the query inside a longer description. A
    description shorter than the query is scaled down by the length ratio,
    so a fragment of the query does not score as a full match.
    
    Args:
        query: Processed free-text query
        description: Processed description
        
    Returns:
        Score in [0, 100]
    """
    if not query or not description:
        return 0.0
    score = fuzz.partial_ratio(query, description)
    if len(description) < len(query):
        score *= len(description) / len(query)
    return score


def plateau_cut(hits: Iterable[Tuple[EventRecord, float]]) -> List[EventRecord]:
    """
    Keep the leading hits that share the best score.
    
    Args:
        hits: (record, score) pairs in descending score order
        
    Returns:
        Records up to the first score strictly below the first hit's score
    """
    results = []
    best_score = None
    for record, score in hits:
        if best_score is None:
            best_score = score
        if score < best_score:
            break
        results.append(record)
    return results


class SearchIndex:
    """Fuzzy description index and facet vocabularies over a record set."""
    
    def __init__(self, records: Sequence[EventRecord]):
        self.records = list(records)
        self.descriptions = [r.event.description or "" for r in self.records]
        self._processed = [utils.default_process(d) for d in self.descriptions]
        self.rooms = {r.location.room.lower() for r in self.records}
        self.buildings = {r.location.building.lower() for r in self.records}
    
    def parse_query(self, query: str) -> FilterState:
        """
        Split a query into room tokens, building tokens and free text.
        
        A word matching both a room and a building counts for both facets.
        
        Args:
            query: Raw query string
            
        Returns:
            FilterState for the query
        """
        words = [w.strip() for w in query.split()]
        words = [w for w in words if w]
        
        room_tokens = tuple(w.lower() for w in words if w.lower() in self.rooms)
        building_tokens = tuple(w.lower() for w in words if w.lower() in self.buildings)
        text = " ".join(
            w for w in words
            if w.lower() not in room_tokens and w.lower() not in building_tokens
        )
        return FilterState(
            room_tokens=room_tokens,
            building_tokens=building_tokens,
            text_query=text
        )
    
    def fuzzy_hits(self, text: str) -> List[Tuple[EventRecord, float]]:
        """
        Fuzzy match ``text`` against event descriptions.
        
        Args:
            text: Free-text query
            
        Returns:
            (record, score) pairs with score in [0, 1], best first
        """
        query = utils.default_process(text)
        cutoff = SCORE_THRESHOLD * 100
        
        hits = []
        for record, description in zip(self.records, self._processed):
            score = description_score(query, description)
            if score >= cutoff:
                hits.append((record, score / 100))
        
        # Equal scores keep index order
        hits.sort(key=lambda hit: hit[1], reverse=True)
        return hits


def _facet_match(record: EventRecord, state: FilterState) -> bool:
    match_room = (
        not state.room_tokens or
        record.location.room.lower() in state.room_tokens
    )
    match_building = (
        not state.building_tokens or
        record.location.building.lower() in state.building_tokens
    )
    return match_room and match_building


class SearchEngine:
    """
    Search over the current week's working set.
    
    The working set and its index are built once per record set; ``filter``
    can be called for every query change.
    """
    
    def __init__(self, records: Iterable[EventRecord], now: Optional[datetime] = None):
        """
        Build the working set and search index.
        
        Args:
            records: All event records of the current snapshot
            now: Reference time for the week restriction (default: now)
        """
        self.week_start = week_start(now)
        working_set = [r for r in records if r.event.start >= self.week_start]
        self.index = SearchIndex(working_set)
        logger.debug(f"Search index built over {len(working_set)} records")
    
    def filter(self, query: str) -> SearchResult:
        """
        Filter, rank, sort and cap the working set for a query.
        
        Args:
            query: Raw query string
            
        Returns:
            SearchResult with at most MAX_RESULTS records
        """
        state = self.index.parse_query(query)
        
        if state.text_query:
            hits = (
                (record, score)
                for record, score in self.index.fuzzy_hits(state.text_query)
                if _facet_match(record, state)
            )
            matched = plateau_cut(hits)
        else:
            matched = [r for r in self.index.records if _facet_match(r, state)]
        
        too_many_events = len(matched) > MAX_RESULTS
        ordered = sorted(matched, key=lambda r: r.event.start)
        
        return SearchResult(
            events=ordered[:MAX_RESULTS],
            too_many_events=too_many_events
        )


def filter_events(
    records: Iterable[EventRecord],
    query: str,
    now: Optional[datetime] = None
) -> SearchResult:
    """
    Run a single search over ``records``.
    
    Args:
        records: All event records
        query: Raw query string
        now: Reference time for the week restriction (default: now)
        
    Returns:
        SearchResult
    """
    return SearchEngine(records, now).filter(query)
