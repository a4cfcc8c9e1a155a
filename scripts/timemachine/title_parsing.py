#!/usr/bin/env python3
"""
Free-text Title Parsing

Best-effort venue and location extraction from Archive.org item titles such as
"Grateful Dead Live at Barton Hall, Cornell University on 1977-05-08".

These heuristics are only consulted when the structured venue/coverage
metadata is missing.
"""

import re
from typing import Optional

VENUE_PATTERN = re.compile(r'Live at ([^,]+?)(?:,|\s+on\s+|$)')
LOCATION_PATTERN = re.compile(r',\s*([^,]+?)(?:\s+on\s+|$)')


def extract_venue_from_title(title: Optional[str]) -> Optional[str]:
    """
    Extract the venue name following "Live at" in a title.

    Examples:
        - "Grateful Dead Live at Winterland on 1977-05-08" -> "Winterland"
        - "Grateful Dead Live at Barton Hall, Ithaca, NY" -> "Barton Hall"
        - "Grateful Dead 1977-05-08" -> None
    """
    if not title:
        return None

    match = VENUE_PATTERN.search(title)
    if not match:
        return None
    return match.group(1).strip() or None


def extract_location_from_title(title: Optional[str]) -> Optional[str]:
    """
    Extract the location following a comma in a title, stopping at " on ".

    Examples:
        - "Live at Barton Hall, Cornell University on 1977-05-08" -> "Cornell University"
        - "Live at Winterland on 1977-05-08" -> None
    """
    if not title:
        return None

    match = LOCATION_PATTERN.search(title)
    if not match:
        return None
    return match.group(1).strip() or None
