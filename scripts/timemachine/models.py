#!/usr/bin/env python3
"""
Shared Data Models for the Show Database

This module contains the dataclasses passed between the fetch loop and the
record reducer. The show database file consumed by the frontend build is a
direct serialization of ShowDatabase.

Used by:
- scripts/build_show_database.py
- scripts/timemachine/selection.py
"""

import logging
import math
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Any, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateRecord:
    """One normalized recording, competing for its show date"""
    date: str                                 # YYYY-MM-DD
    venue: str
    location: str
    identifier: str
    title: str
    year: str
    downloads: int = 0
    tracks: Tuple[Dict[str, Any], ...] = ()
    rating: float = 0.0


@dataclass
class ShowDatabase:
    """Persistent state: one winning recording per date plus the resume page"""
    shows_by_date: Dict[str, CandidateRecord] = field(default_factory=dict)
    last_processed_page: int = 1

    @property
    def shows(self) -> List[CandidateRecord]:
        """Winning records ordered ascending by date."""
        return [self.shows_by_date[d] for d in sorted(self.shows_by_date)]


@dataclass
class PageSummary:
    """Counters for a single processed page of search results"""
    page: int
    documents: int = 0
    candidates: int = 0
    skipped: int = 0
    new_dates: int = 0
    replaced: int = 0


def non_negative_int(value: Any) -> int:
    """Coerce a count to a non-negative int; unusable values become 0."""
    return int(non_negative_float(value))


def non_negative_float(value: Any) -> float:
    """Coerce a number to a finite, non-negative float; unusable values become 0.0."""
    try:
        number = float(value or 0.0)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return max(number, 0.0)


def record_to_dict(record: CandidateRecord) -> Dict[str, Any]:
    """Convert CandidateRecord to a JSON-ready dictionary"""
    data = asdict(record)
    data['tracks'] = list(data['tracks'])
    return data


def record_from_dict(data: Dict[str, Any]) -> CandidateRecord:
    """Build a CandidateRecord from a persisted entry, tolerating older files"""
    date = data['date']
    if not isinstance(date, str):
        raise ValueError(f"Invalid date in persisted show: {date!r}")

    return CandidateRecord(
        date=date,
        venue=data.get('venue') or '',
        location=data.get('location') or '',
        identifier=data.get('identifier') or '',
        title=data.get('title') or '',
        year=str(data.get('year') or date.split('-')[0]),
        downloads=non_negative_int(data.get('downloads')),
        tracks=tuple(track for track in data.get('tracks') or () if isinstance(track, dict)),
        rating=non_negative_float(data.get('rating')),
    )


def database_to_dict(database: ShowDatabase) -> Dict[str, Any]:
    """Convert ShowDatabase to the {shows, lastProcessedPage} file shape"""
    return {
        'shows': [record_to_dict(record) for record in database.shows],
        'lastProcessedPage': database.last_processed_page,
    }


def database_from_dict(data: Dict[str, Any]) -> ShowDatabase:
    """
    Rebuild a ShowDatabase from the persisted file shape.

    Entries that cannot be read are logged and skipped so the remaining shows
    survive.
    """
    shows_by_date = {}
    for entry in data.get('shows') or []:
        try:
            record = record_from_dict(entry)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Skipping unreadable show entry {entry!r}: {e}")
            continue
        shows_by_date[record.date] = record

    last_page = data.get('lastProcessedPage') or 1
    return ShowDatabase(
        shows_by_date=shows_by_date,
        last_processed_page=max(int(last_page), 1),
    )
