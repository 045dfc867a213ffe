"""HTTP access - resource fetching."""

from .fetcher import ResourceFetcher

__all__ = ["ResourceFetcher"]
