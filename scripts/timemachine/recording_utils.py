#!/usr/bin/env python3
"""
Shared Recording Utilities

Common functions for turning raw Archive.org search documents into
CandidateRecords: date normalization, structured venue/location lookup,
soundboard and taper detection, and track counting.
"""

import logging
import re
from typing import Any, Dict, Optional, Sequence, Tuple

from .models import CandidateRecord, non_negative_float, non_negative_int
from .title_parsing import extract_venue_from_title, extract_location_from_title

logger = logging.getLogger(__name__)

UNKNOWN_VENUE = 'Unknown Venue'
UNKNOWN_LOCATION = 'Unknown Location'

SOUNDBOARD_MARKER = 'sbd'

# Tapers and transfer sources whose recordings are preferred, best first
PREFERRED_SOURCES = (
    'miller',
    'hicks',
    'bertrando',
    'seamons',
    'cotsman',
    'clugston',
    'vernon',
    'ladner',
)

# Optional alphabetic tag (e.g. "gd"), optional "19", then YY-MM-DD
DATE_PATTERN = re.compile(r'(?:[A-Za-z]{1,4})?(?:19)?(\d{2})-(\d{2})-(\d{2})')
TOKEN_SPLIT = re.compile(r'[._\-\s]+')


def normalize_date(date_str: Optional[str]) -> Optional[str]:
    """
    Normalize a loosely formatted Archive.org date to YYYY-MM-DD.

    Two-digit years are always placed in the 1900s. Returns None when no
    date can be found.

    Examples:
        - "1977-04-23" -> "1977-04-23"
        - "77-04-23" -> "1977-04-23"
        - "gd77-04-23" -> "1977-04-23"
        - "1977-04-23T00:00:00Z" -> "1977-04-23"
        - "unknown" -> None
    """
    if not date_str or not isinstance(date_str, str):
        return None

    match = DATE_PATTERN.search(date_str)
    if not match:
        return None

    year, month, day = match.groups()
    return f"19{year}-{month}-{day}"


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    return ' '.join(text.split())


def first_value(value: Any) -> Optional[str]:
    """Return a metadata value that may be a string or a list of strings."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def resolve_venue(doc: Dict[str, Any]) -> str:
    """Venue from structured metadata, then the title, then a placeholder."""
    venue = (first_value(doc.get('venue'))
             or extract_venue_from_title(first_value(doc.get('title')))
             or UNKNOWN_VENUE)
    return collapse_whitespace(venue)


def resolve_location(doc: Dict[str, Any]) -> str:
    """Location from coverage metadata, then the title, then a placeholder."""
    location = (first_value(doc.get('coverage'))
                or extract_location_from_title(first_value(doc.get('title')))
                or UNKNOWN_LOCATION)
    return collapse_whitespace(location)


def is_soundboard(identifier: str) -> bool:
    """True when the identifier marks a soundboard source."""
    return SOUNDBOARD_MARKER in identifier.lower()


def identifier_tokens(identifier: str) -> Tuple[str, ...]:
    """Split an identifier like "gd77-05-08.sbd.hicks.4982" into tokens."""
    return tuple(token for token in TOKEN_SPLIT.split(identifier.lower()) if token)


def preferred_source_rank(identifier: str,
                          preferred: Sequence[str] = PREFERRED_SOURCES) -> Optional[int]:
    """
    Index of the best preferred source named in the identifier.

    Returns None when no token of the identifier is on the allow-list.
    """
    tokens = set(identifier_tokens(identifier))
    for index, source in enumerate(preferred):
        if source in tokens:
            return index
    return None


def count_titled_tracks(tracks: Sequence[Dict[str, Any]]) -> int:
    """Number of tracks carrying a non-empty title."""
    return sum(1 for track in tracks if str(track.get('title') or '').strip())


def _normalize_tracks(tracks: Any) -> Tuple[Dict[str, Any], ...]:
    if not isinstance(tracks, (list, tuple)):
        return ()

    normalized = []
    for track in tracks:
        if isinstance(track, dict):
            normalized.append(dict(track))
        elif isinstance(track, str):
            normalized.append({'title': track})
    return tuple(normalized)


def normalize_document(doc: Dict[str, Any]) -> Optional[CandidateRecord]:
    """
    Convert one raw search document into a CandidateRecord.

    Entries that are not objects, and documents without an identifier or a
    usable date, are logged and skipped (None is returned).
    """
    if not isinstance(doc, dict):
        logger.warning(f"Skipping malformed search document: {doc!r}")
        return None

    identifier = doc.get('identifier')
    if not identifier or not isinstance(identifier, str):
        logger.warning(f"Skipping document without identifier: {doc!r}")
        return None

    normalized_date = normalize_date(doc.get('date'))
    if not normalized_date:
        logger.warning(f"Invalid date format: {doc.get('date')!r} for {identifier}")
        return None

    title = first_value(doc.get('title')) or ''
    year = first_value(doc.get('year')) or normalized_date.split('-')[0]
    rating = doc.get('avg_rating', doc.get('rating'))

    return CandidateRecord(
        date=normalized_date,
        venue=resolve_venue(doc),
        location=resolve_location(doc),
        identifier=identifier,
        title=title,
        year=year,
        downloads=non_negative_int(doc.get('downloads')),
        tracks=_normalize_tracks(doc.get('tracks')),
        rating=non_negative_float(rating),
    )
