"""
Storage collaborator interface used by the pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Set

from internscout.models import ScoredPosting


class StoreError(Exception):
    """A storage operation failed; the pipeline reports it and carries on."""


class PostingStore(ABC):
    """
    What the pipeline needs from persistence.

    Implementations must make batch_insert all-or-nothing and must never
    overwrite an existing posting (first write wins).
    """

    @abstractmethod
    def load_all_posting_keys(self) -> Set[str]:
        """Dedup keys of every stored posting."""

    @abstractmethod
    def load_all_posting_urls(self) -> Set[str]:
        """Non-empty URLs of every stored posting."""

    @abstractmethod
    def batch_insert(self, postings: Sequence[ScoredPosting]) -> int:
        """Insert postings in one transaction; returns the number written."""

    @abstractmethod
    def append_run_log(self, source: str, found_count: int, error_summary: Optional[str] = None) -> None:
        """Append one run-log record for a provider."""
