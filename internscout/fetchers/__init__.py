"""
Fetcher layer for InternScout.

Provides a single-attempt async HTTP fetcher; retries and pacing live in
internscout.ratelimit.
"""

from internscout.fetchers.http import HttpFetcher, FetchResult, FetchError

__all__ = ["HttpFetcher", "FetchResult", "FetchError"]
