"""Data collectors for package size sources."""

from bundlestats.collectors.base import BaseCollector, CollectorError, ExternalToolError
from bundlestats.collectors.bundlephobia import BundlePhobiaCollector

__all__ = ["BaseCollector", "BundlePhobiaCollector", "CollectorError", "ExternalToolError"]
