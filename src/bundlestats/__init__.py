"""bundlestats - offline bundle size collection for npm packages."""

__version__ = "0.1.0"
