#!/usr/bin/env python3
"""
Show Database Build Script

This script pages through the Archive.org advanced search API for Grateful Dead
etree recordings, keeps the best recording for every show date and writes the
result to frontend/src/data/shows.json, which the frontend bundles at build
time.

Architecture:
- Sequential paging through search results, 100 documents per page
- Best recording per date chosen by timemachine.selection
- Checkpoints the whole database after every page
- Resumes from the last processed page recorded in the database file
- Exponential backoff on failures, aborting after 3 consecutive errors
- Fixed cooldown when Archive.org answers 507 (overloaded)

Usage:
    # Build or resume the database in frontend/src/data/shows.json
    python scripts/build_show_database.py
"""

import argparse
import json
import logging
import os
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import requests

# Add shared module to path
sys.path.append(str(Path(__file__).parent))
from timemachine.models import ShowDatabase, database_to_dict, database_from_dict
from timemachine.recording_utils import PREFERRED_SOURCES
from timemachine.selection import merge_page

SEARCH_URL = "https://archive.org/advancedsearch.php"
SEARCH_QUERY = 'collection:(GratefulDead) AND mediatype:(etree)'
SEARCH_FIELDS = [
    'identifier', 'date', 'venue', 'coverage', 'title', 'year',
    'downloads', 'avg_rating',
    # advancedsearch returns no per-item track list, so the track-count
    # criteria in selection tie at zero unless a document carries one
    'tracks',
]

DATABASE_PATH = Path('frontend') / 'src' / 'data' / 'shows.json'

PAGE_SIZE = 100
BASE_DELAY = 1.0            # seconds between successful pages
MAX_DELAY = 60.0            # ceiling for exponential backoff
OVERLOAD_COOLDOWN = 30.0    # seconds to wait after a 507
MAX_ERRORS = 3              # consecutive failures before giving up
REQUEST_TIMEOUT = 60
OVERLOADED_STATUS = 507


class ArchiveOverloadedError(Exception):
    """Archive.org asked us to come back later (HTTP 507)."""


class MalformedResponseError(ValueError):
    """The search API answered with something other than a result envelope."""


class ShowDatabaseBuilder:
    """
    Incremental, resumable builder for the frontend show database.
    """

    def __init__(self, db_path: Path = DATABASE_PATH,
                 page_size: int = PAGE_SIZE,
                 base_delay: float = BASE_DELAY,
                 max_delay: float = MAX_DELAY,
                 overload_cooldown: float = OVERLOAD_COOLDOWN,
                 max_errors: int = MAX_ERRORS,
                 preferred_sources: Sequence[str] = PREFERRED_SOURCES):
        """Initialize the builder with configuration."""
        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': 'DeadTimeMachine-ShowDatabase/1.0 (Educational Use)'
        })

        # Paging and retry configuration
        self.page_size = page_size
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.overload_cooldown = overload_cooldown
        self.max_errors = max_errors
        self.preferred_sources = tuple(preferred_sources)

        self.db_path = Path(db_path)

        # Setup logging
        self._setup_logging()

    def _setup_logging(self):
        """Setup logging with console output for the builder and the reducer."""
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(formatter)

        for name in (__name__, 'timemachine'):
            logger = logging.getLogger(name)
            logger.setLevel(logging.INFO)

            # Clear any existing handlers
            logger.handlers.clear()
            logger.addHandler(console_handler)

        self.logger = logging.getLogger(__name__)

    def load_database(self) -> ShowDatabase:
        """Load the existing database, or start empty if there is none."""
        if not self.db_path.exists():
            return ShowDatabase()

        self.logger.info("Loading existing database...")
        try:
            with open(self.db_path, 'r') as f:
                data = json.load(f)
            database = database_from_dict(data)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            self.logger.error(f"Failed to load {self.db_path}: {e}. Starting from scratch.")
            return ShowDatabase()

        self.logger.info(f"Loaded {len(database.shows_by_date)} existing shows, "
                         f"resuming from page {database.last_processed_page}")
        return database

    def save_database(self, database: ShowDatabase):
        """Write the database atomically so an interrupted run never leaves a partial file."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = self.db_path.with_name(self.db_path.name + '.tmp')
        with open(tmp_path, 'w') as f:
            json.dump(database_to_dict(database), f, indent=2, allow_nan=False)
        os.replace(tmp_path, self.db_path)

    def fetch_page(self, page: int) -> List[Dict[str, Any]]:
        """
        Fetch one page of search results.

        Returns the page's documents (empty once results are exhausted).
        Raises ArchiveOverloadedError on 507, requests exceptions on other
        HTTP failures and MalformedResponseError on an unexpected body.
        """
        params = {
            'q': SEARCH_QUERY,
            'fl': ','.join(SEARCH_FIELDS),
            'sort[]': 'date asc',
            'output': 'json',
            'rows': self.page_size,
            'page': page,
        }

        response = self.session.get(SEARCH_URL, params=params, timeout=REQUEST_TIMEOUT)
        if response.status_code == OVERLOADED_STATUS:
            raise ArchiveOverloadedError(f"Archive.org overloaded (HTTP {OVERLOADED_STATUS}) on page {page}")
        response.raise_for_status()

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Response for page {page} is not JSON: {e}") from e

        if not isinstance(data, dict):
            raise MalformedResponseError(f"Unexpected response for page {page}: {data!r}")
        if data.get('error'):
            raise MalformedResponseError(f"Search error on page {page}: {data['error']}")

        body = data.get('response')
        if body is None:
            return []
        if not isinstance(body, dict):
            raise MalformedResponseError(f"Unexpected response envelope for page {page}")

        docs = body.get('docs') or []
        if not isinstance(docs, list):
            raise MalformedResponseError(f"Unexpected docs for page {page}: {type(docs).__name__}")
        return docs

    def build(self) -> bool:
        """
        Page through Archive.org until results run out.

        Returns True when the search was exhausted, False when the run was
        abandoned after too many consecutive errors. The database is saved
        in both cases.
        """
        if not self.db_path.exists():
            # The frontend build expects the file to exist, even if empty
            self.save_database(ShowDatabase())

        database = self.load_database()
        page = database.last_processed_page
        error_count = 0
        current_delay = self.base_delay
        exhausted = False

        self.logger.info("Starting to fetch Grateful Dead shows from Archive.org...")

        while True:
            self.logger.info(f"Fetching page {page}...")
            try:
                docs = self.fetch_page(page)
            except ArchiveOverloadedError as e:
                self.logger.warning(f"{e}. Cooling down for {self.overload_cooldown:.0f}s...")
                time.sleep(self.overload_cooldown)
                continue
            except (requests.RequestException, MalformedResponseError) as e:
                error_count += 1
                self.logger.error(f"Error on page {page} ({error_count}/{self.max_errors}): {e}")

                if error_count >= self.max_errors:
                    self.logger.error(f"Hit maximum retry attempts. Saving progress at page {page}...")
                    break

                current_delay = min(current_delay * 2, self.max_delay)
                self.logger.info(f"Backing off for {current_delay:.1f}s before retry...")
                time.sleep(current_delay)
                continue

            if not docs:
                self.logger.info("No more documents found, ending search")
                exhausted = True
                break

            self.logger.info(f"Found {len(docs)} documents on page {page}")
            database, summary = merge_page(database, docs, page, self.preferred_sources)

            # Save progress after each page
            self.save_database(database)

            self.logger.info(f"Added {summary.new_dates} new shows, replaced {summary.replaced}, "
                             f"skipped {summary.skipped} on this page")
            self.logger.info(f"Total unique shows so far: {len(database.shows_by_date)}")

            error_count = 0
            current_delay = self.base_delay
            time.sleep(current_delay)
            page += 1

        # Final save
        database = replace(database, last_processed_page=page)
        self.save_database(database)

        self.logger.info(f"Database built with {len(database.shows_by_date)} unique shows")
        self.logger.info(f"Last processed page: {page}")
        return exhausted


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Build the Grateful Dead show database from Archive.org')
    parser.parse_args(argv)

    builder = ShowDatabaseBuilder()

    if builder.build():
        print(f"✅ Show database complete! Output: {builder.db_path}")
        return 0

    print("❌ Gave up after repeated errors. Progress saved, run again to resume.")
    return 1


if __name__ == '__main__':
    sys.exit(main())
