"""bundlestats services for collection and caching."""

from bundlestats.services.batch import BatchResult, batch_collect, collect_one, run_collection
from bundlestats.services.cache import ScrapeCache

__all__ = ["BatchResult", "ScrapeCache", "batch_collect", "collect_one", "run_collection"]
