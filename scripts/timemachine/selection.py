#!/usr/bin/env python3
"""
Best Recording Selection

Reduces every candidate recording sharing a show date to a single winner.
Candidates are compared on a strict priority chain:

1. soundboard source beats anything else
2. a preferred taper/source beats an unknown one (earlier on the list wins)
3. more downloads
4. more tracks
5. more tracks with a title
6. higher rating

When every criterion ties, the candidate seen first wins. Nothing in this
module mutates its inputs.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .models import CandidateRecord, PageSummary, ShowDatabase
from .recording_utils import (
    PREFERRED_SOURCES,
    count_titled_tracks,
    is_soundboard,
    normalize_document,
    preferred_source_rank,
)

logger = logging.getLogger(__name__)


def recording_sort_key(record: CandidateRecord,
                       preferred: Sequence[str] = PREFERRED_SOURCES) -> Tuple:
    """Comparison key for a record; larger keys are better recordings."""
    rank = preferred_source_rank(record.identifier, preferred)
    preferred_score = len(preferred) - rank if rank is not None else 0

    return (
        is_soundboard(record.identifier),
        preferred_score,
        record.downloads,
        len(record.tracks),
        count_titled_tracks(record.tracks),
        record.rating,
    )


def select_best_recording(records: Sequence[CandidateRecord],
                          preferred: Sequence[str] = PREFERRED_SOURCES) -> CandidateRecord:
    """
    Pick the best recording out of candidates for the same date.

    max() keeps the first of equally ranked records, so earlier candidates
    win full ties.
    """
    if not records:
        raise ValueError("select_best_recording() needs at least one record")
    return max(records, key=lambda record: recording_sort_key(record, preferred))


def reduce_by_date(candidates: Iterable[CandidateRecord],
                   existing: Optional[Dict[str, CandidateRecord]] = None,
                   preferred: Sequence[str] = PREFERRED_SOURCES) -> Dict[str, CandidateRecord]:
    """
    Group candidates by date and keep one winner per date.

    Records in ``existing`` take part as the earliest-seen candidate for their
    date. Returns a new mapping.
    """
    winners = dict(existing or {})

    grouped: Dict[str, List[CandidateRecord]] = defaultdict(list)
    for candidate in candidates:
        grouped[candidate.date].append(candidate)

    for date, group in grouped.items():
        incumbent = winners.get(date)
        contenders = [incumbent] + group if incumbent else group
        winners[date] = select_best_recording(contenders, preferred)

    return winners


def merge_page(database: ShowDatabase, docs: Iterable[Dict[str, Any]], page: int,
               preferred: Sequence[str] = PREFERRED_SOURCES) -> Tuple[ShowDatabase, PageSummary]:
    """
    Fold one page of raw search documents into the show database.

    Returns the updated database, tagged with ``page`` as the last processed
    page, together with counters describing what changed.
    """
    summary = PageSummary(page=page)
    candidates = []

    for doc in docs:
        summary.documents += 1
        record = normalize_document(doc)
        if record is None:
            summary.skipped += 1
            continue
        candidates.append(record)

    summary.candidates = len(candidates)
    previous = database.shows_by_date
    winners = reduce_by_date(candidates, previous, preferred)

    for date, record in winners.items():
        if date not in previous:
            summary.new_dates += 1
        elif previous[date].identifier != record.identifier:
            summary.replaced += 1
            logger.debug(f"{date}: {previous[date].identifier} replaced by {record.identifier}")

    updated = ShowDatabase(shows_by_date=winners, last_processed_page=page)
    return updated, summary
