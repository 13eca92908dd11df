"""
Deduplication for postings.

Two passes share one identity, the posting key (normalized company and
title plus the exact URL):
1. Intra-run: first posting per key wins, across all providers.
2. Cross-run: drop postings whose key, or whose source-supplied URL,
   is already in the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Generic, Iterable, List, Set, Tuple, TypeVar

from internscout.models import RawPosting


P = TypeVar("P")


@dataclass
class DedupeResult(Generic[P]):
    """Result of deduplication."""
    unique: List[P]
    duplicates_by_key: int = 0
    duplicates_by_url: int = 0

    @property
    def duplicates_removed(self) -> int:
        return self.duplicates_by_key + self.duplicates_by_url


def dedupe_postings(postings: Iterable[RawPosting]) -> List[RawPosting]:
    """Keep the first posting for each key, preserving order."""
    seen: Set[str] = set()
    out: List[RawPosting] = []
    for p in postings:
        key = p.key
        if key in seen:
            continue
        seen.add(key)
        out.append(p)
    return out


class DedupeEngine:
    """
    Engine for both dedup passes.

    Postings are anything exposing `.key` and `.url` (RawPosting) or a
    `(source, RawPosting)` pair; the pair form keeps provider provenance
    attached through the merge.
    """

    def __init__(
        self,
        existing_keys: AbstractSet[str] = frozenset(),
        existing_urls: AbstractSet[str] = frozenset(),
    ):
        # Snapshot loaded once per run; read-only afterwards
        self.existing_keys = frozenset(existing_keys)
        self.existing_urls = frozenset(u for u in existing_urls if u)

    def dedupe_run(self, tagged: Iterable[Tuple[str, RawPosting]]) -> DedupeResult[Tuple[str, RawPosting]]:
        """
        Intra-run pass over (source, posting) pairs in arrival order.
        Later duplicates, even from another provider, are dropped.
        """
        seen: Set[str] = set()
        unique: List[Tuple[str, RawPosting]] = []
        dropped = 0
        for source, posting in tagged:
            key = posting.key
            if key in seen:
                dropped += 1
                continue
            seen.add(key)
            unique.append((source, posting))
        return DedupeResult(unique=unique, duplicates_by_key=dropped)

    def filter_existing(self, tagged: Iterable[Tuple[str, RawPosting]]) -> DedupeResult[Tuple[str, RawPosting]]:
        """Cross-run pass against the store snapshot (key first, then URL)."""
        unique: List[Tuple[str, RawPosting]] = []
        by_key = 0
        by_url = 0
        for source, posting in tagged:
            if posting.key in self.existing_keys:
                by_key += 1
                continue
            if posting.url and not posting.url_is_fallback and posting.url in self.existing_urls:
                by_url += 1
                continue
            unique.append((source, posting))
        return DedupeResult(unique=unique, duplicates_by_key=by_key, duplicates_by_url=by_url)
