"""Extraction of building and room tokens from event locations."""
from enum import Enum
from typing import List, Tuple

from schedule.models import LocationToken


class ExtractionPolicy(Enum):
    """What to do with the tokens found in one location string."""
    SINGLE_ONLY = "single-only"
    EXPLODE = "explode"


def _split_fields(location: str) -> Tuple[List[LocationToken], List[str]]:
    # Fields are consumed two at a time; an odd trailing field is left over.
    fields = location.split(",")
    paired = len(fields) - len(fields) % 2
    tokens = [
        LocationToken(building=fields[i].strip(), room=fields[i + 1].strip())
        for i in range(0, paired, 2)
    ]
    return tokens, fields[paired:]


def extract(location: str) -> List[LocationToken]:
    """
    Extract (building, room) pairs from a comma separated location.
    
    Args:
        location: Free-text location, e.g. "Building13, A123"
        
    Returns:
        One token per consecutive pair of fields; empty if there is no comma
    """
    tokens, _ = _split_fields(location)
    return tokens


def apply_policy(location: str, policy: ExtractionPolicy) -> List[LocationToken]:
    """
    Extract tokens and keep the ones the policy allows.
    
    With SINGLE_ONLY the location must hold exactly one pair and no other
    non-blank field (a trailing separator is ignored); with EXPLODE every
    pair is kept.
    
    Args:
        location: Free-text location
        policy: Extraction policy
        
    Returns:
        Tokens the event should be filed under
    """
    tokens, leftover = _split_fields(location)
    if policy is ExtractionPolicy.EXPLODE:
        return tokens
    if len(tokens) == 1 and not any(f.strip() for f in leftover):
        return tokens
    return []
