"""Freshness checks and record merging for the package database."""

import os
import time
from typing import Optional, Union

from bundlestats.collectors.bundlephobia import PackageRecord
from bundlestats.db.store import PackageDatabase

# Default freshness threshold: 7 days
CACHE_FRESHNESS_DAYS = int(os.getenv("BUNDLESTATS_CACHE_DAYS", "7"))

# lastScraped value for a collection whose output could not be parsed
SCRAPE_ERROR = "Error"

MS_PER_DAY = 24 * 60 * 60 * 1000


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class ScrapeCache:
    """Manages collected records and their freshness."""

    def __init__(self, database: PackageDatabase, freshness_days: int = CACHE_FRESHNESS_DAYS):
        self.database = database
        self.freshness_ms = freshness_days * MS_PER_DAY

    def is_fresh(self, name: str, now: Optional[int] = None) -> bool:
        """Check if a package was collected within the freshness window.

        Entries whose last collection errored are never fresh.
        """
        entry = self.database.get(name)
        if not entry:
            return False

        last_scraped = entry.get("lastScraped")
        if last_scraped == SCRAPE_ERROR or isinstance(last_scraped, bool):
            return False
        if not isinstance(last_scraped, (int, float)):
            return False

        now = now_ms() if now is None else now
        return now - last_scraped < self.freshness_ms

    def store_records(
        self, records: list[PackageRecord], last_scraped: Union[int, str]
    ) -> None:
        """Upsert records into the database in order.

        The first record becomes the package's ``latest`` alias. Versions
        already stored and not present in ``records`` are kept.
        """
        for index, record in enumerate(records):
            entry = self.database.entry(record.name)
            stored = record.to_dict()
            entry[record.version] = stored
            entry["lastScraped"] = last_scraped
            if index == 0:
                entry["latest"] = stored
