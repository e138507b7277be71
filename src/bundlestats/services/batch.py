"""Batch collection service for bundlestats.

Collects packages one at a time, merges results into the package database,
and writes the database back once at the end of the run.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Union

from bundlestats.collectors.base import BaseCollector, ExternalToolError
from bundlestats.collectors.bundlephobia import parse_output
from bundlestats.db.store import PackageDatabase, PersistError
from bundlestats.services.cache import CACHE_FRESHNESS_DAYS, SCRAPE_ERROR, ScrapeCache, now_ms

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str, "CollectOutcome"], None]


@dataclass
class CollectOutcome:
    """Result of collecting a single package."""

    name: str
    status: str  # "skipped", "collected" or "error"
    versions: list[str] = field(default_factory=list)
    last_scraped: Union[int, str, None] = None
    parse_errors: int = 0
    error: Optional[str] = None


@dataclass
class BatchResult:
    """Summary of a collection run."""

    total: int = 0
    collected: int = 0
    skipped: int = 0
    errors: int = 0
    error_details: list[str] = field(default_factory=list)
    stopped_early: bool = False
    saved: bool = False
    database_path: Optional[Path] = None
    elapsed_seconds: float = 0.0

    @property
    def processed(self) -> int:
        return self.collected + self.skipped

    @property
    def success(self) -> bool:
        return self.saved and not self.stopped_early


async def collect_one(
    name: str,
    index: int,
    total: int,
    cache: ScrapeCache,
    collector: BaseCollector,
    skip_fresh: bool = True,
) -> CollectOutcome:
    """
    Collect one package and merge its records into the cache.

    Args:
        name: Package name to collect
        index: 1-based position in the run, for reporting
        total: Number of packages in the run
        cache: Cache wrapping the database being updated
        collector: Source of raw tool output
        skip_fresh: Skip packages collected within the freshness window

    Returns:
        CollectOutcome describing what was stored

    Raises:
        ExternalToolError: if the external tool fails; the database is
            left untouched for this package
    """
    if skip_fresh and cache.is_fresh(name):
        logger.debug(f"({index}/{total}) {name}: fresh, skipping")
        return CollectOutcome(name=name, status="skipped")

    stdout = await collector.collect(name)
    parsed = parse_output(stdout)

    # One malformed line marks the whole package for retry on the next run
    last_scraped = SCRAPE_ERROR if parsed.has_parse_error else now_ms()
    cache.store_records(parsed.records, last_scraped)

    parse_errors = sum(1 for r in parsed.rejected if r.malformed)
    logger.info(
        f"({index}/{total}) {name}: {len(parsed.records)} records, "
        f"{len(parsed.rejected)} rejected"
    )
    return CollectOutcome(
        name=name,
        status="collected",
        versions=[r.version for r in parsed.records],
        last_scraped=last_scraped,
        parse_errors=parse_errors,
    )


async def batch_collect(
    names: list[str],
    cache: ScrapeCache,
    collector: BaseCollector,
    skip_fresh: bool = True,
    progress_callback: Optional[ProgressCallback] = None,
) -> BatchResult:
    """
    Collect packages strictly in order, stopping at the first tool failure.

    Args:
        names: Package names, processed in list order
        cache: Cache wrapping the database being updated
        collector: Source of raw tool output
        skip_fresh: Skip packages collected within the freshness window
        progress_callback: Optional callback(index, total, name, outcome)

    Returns:
        BatchResult with counts; nothing is persisted here
    """
    result = BatchResult(total=len(names))

    for index, name in enumerate(names, 1):
        try:
            outcome = await collect_one(name, index, result.total, cache, collector, skip_fresh)
        except ExternalToolError as e:
            logger.error(f"Stopping run at {name}: {e}")
            outcome = CollectOutcome(name=name, status="error", error=str(e))
            result.errors += 1
            result.error_details.append(str(e))
            result.stopped_early = True
            if progress_callback:
                progress_callback(index, result.total, name, outcome)
            break

        if outcome.status == "skipped":
            result.skipped += 1
        else:
            result.collected += 1

        if progress_callback:
            progress_callback(index, result.total, name, outcome)

    return result


async def run_collection(
    names: list[str],
    database_path: Union[str, Path],
    collector: BaseCollector,
    freshness_days: int = CACHE_FRESHNESS_DAYS,
    skip_fresh: bool = True,
    progress_callback: Optional[ProgressCallback] = None,
) -> BatchResult:
    """
    Load the database, collect every package, and save the database once.

    The database is saved even when the run stops early on a tool failure
    or an unexpected exception, which is re-raised after the save.
    A failed save is reported in the result rather than raised.

    Raises:
        DatabaseError: if an existing database file cannot be loaded
    """
    start = time.monotonic()
    database_path = Path(database_path)

    database = PackageDatabase.load(database_path)
    cache = ScrapeCache(database, freshness_days=freshness_days)

    logger.info(f"Collecting {len(names)} packages")
    result = BatchResult(total=len(names))
    try:
        result = await batch_collect(
            names,
            cache,
            collector,
            skip_fresh=skip_fresh,
            progress_callback=progress_callback,
        )
    finally:
        # Anything collected before an unexpected error is still written
        try:
            result.database_path = database.save(database_path)
            result.saved = True
        except PersistError as e:
            logger.error(str(e))
            result.error_details.append(str(e))

    result.elapsed_seconds = time.monotonic() - start
    return result
