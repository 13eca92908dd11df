"""
Main orchestrator for InternScout runs.

Ties together providers, deduplication, scoring and storage into a single
run_pipeline_once() call:

Init -> Fan-out -> Collect -> Merge -> Filter-existing -> Score -> Cap
-> Persist -> Log -> Done
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from internscout.config import Settings, get_settings
from internscout.dedupe import DedupeEngine
from internscout.fetchers.http import HttpFetcher
from internscout.models import CandidateProfile, RawPosting, ScoredPosting
from internscout.providers import build_providers
from internscout.providers.base import Provider, ProviderResult
from internscout.scoring import Scorer, score_postings
from internscout.storage.base import PostingStore, StoreError
from internscout.storage.sqlite import SqlitePostingStore

logger = logging.getLogger(__name__)

SMOKE_TEST_LIMIT = 5


@dataclass
class SourceSummary:
    """Per-provider outcome of one run."""
    source: str
    found: int = 0
    errors: List[str] = field(default_factory=list)
    abandoned: bool = False


@dataclass
class PipelineResult:
    """What one run reports back to whoever triggered it."""
    total_new: int = 0
    errors: List[str] = field(default_factory=list)
    sources: List[SourceSummary] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {"totalNew": self.total_new, "errors": list(self.errors)}


async def _collect_all(
    providers: Sequence[Provider],
    fetcher: HttpFetcher,
    profile: CandidateProfile,
    budget_s: float,
) -> Tuple[List[ProviderResult], Dict[str, SourceSummary]]:
    """
    Run every provider concurrently and wait for all of them, up to the
    run budget. Results are returned in completion order; providers still
    running when the budget runs out are cancelled and reported.
    """
    completed: List[ProviderResult] = []
    summaries: Dict[str, SourceSummary] = {p.name: SourceSummary(source=p.name) for p in providers}

    async def run_one(p: Provider) -> None:
        result = await p.fetch(fetcher, profile)
        completed.append(result)

    tasks = {asyncio.create_task(run_one(p), name=f"provider:{p.name}"): p for p in providers}
    if not tasks:
        return completed, summaries

    _, pending = await asyncio.wait(set(tasks), timeout=budget_s)

    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
        for task in pending:
            p = tasks[task]
            message = f"abandoned after run budget of {budget_s:g}s"
            logger.warning("%s: %s", p.name, message)
            summary = summaries[p.name]
            summary.abandoned = True
            summary.errors.extend(p.stats.error_messages)
            summary.errors.append(message)

    for result in completed:
        summary = summaries[result.source]
        summary.found = result.found
        summary.errors.extend(result.errors)

    return completed, summaries


def _cap(scored: List[ScoredPosting], max_new: int) -> List[ScoredPosting]:
    if len(scored) > max_new:
        logger.info("Capping %d new postings to %d", len(scored), max_new)
        return scored[:max_new]
    return scored


async def run_pipeline_once(
    providers: Sequence[Provider],
    store: PostingStore,
    profile: CandidateProfile,
    settings: Optional[Settings] = None,
    scorer: Optional[Scorer] = None,
    fetcher: Optional[HttpFetcher] = None,
) -> PipelineResult:
    """
    Run one complete discovery pass.

    Args:
        providers: Provider instances to fan out to (each with its own limiter)
        store: Storage collaborator; only written once, in the Persist step
        profile: Candidate profile snapshot used by providers and the scorer
        settings: Run budget and write cap (defaults from the environment)
        scorer: Alternate scorer; defaults to the keyword scorer
        fetcher: Shared HTTP fetcher; one is created and closed if omitted

    Returns:
        PipelineResult with the number of newly stored postings and every
        error string collected along the way. Partial failures never raise.
    """
    settings = settings or get_settings()
    result = PipelineResult()

    # ===================== Init =====================
    try:
        existing_keys = store.load_all_posting_keys()
        existing_urls = store.load_all_posting_urls()
    except StoreError as e:
        logger.error("Could not load existing postings: %s", e)
        result.errors.append(f"store: {e}")
        return result
    logger.info("Loaded %d existing postings", len(existing_keys))

    # ===================== Fan-out / Collect =====================
    own_fetcher = fetcher is None
    fetcher = fetcher or HttpFetcher(timeout_s=settings.request_timeout_s)
    try:
        logger.info("Collecting from %d providers...", len(providers))
        completed, summaries = await _collect_all(providers, fetcher, profile, settings.run_budget_s)
    finally:
        if own_fetcher:
            await fetcher.close()

    result.sources = [summaries[p.name] for p in providers]
    for summary in result.sources:
        result.errors.extend(f"{summary.source}: {e}" for e in summary.errors)
        logger.info("  %s: %d postings, %d errors", summary.source, summary.found, len(summary.errors))

    # ===================== Merge =====================
    tagged: List[Tuple[str, RawPosting]] = [(r.source, p) for r in completed for p in r.postings]
    engine = DedupeEngine(existing_keys, existing_urls)
    merged = engine.dedupe_run(tagged)
    logger.info("After merge: %d postings (%d duplicates removed)", len(merged.unique), merged.duplicates_removed)

    # ===================== Filter-existing =====================
    fresh = engine.filter_existing(merged.unique)
    logger.info("Not yet stored: %d postings (%d already known)", len(fresh.unique), fresh.duplicates_removed)

    # ===================== Score / Cap =====================
    scored = [
        ScoredPosting(
            posting=posting,
            source=source,
            relevance_score=score.score,
            relevance_reason=score.reason,
            visa_flag=score.visa_flag,
        )
        for source, posting, score in score_postings(fresh.unique, profile, scorer)
    ]
    scored = _cap(scored, settings.max_new_per_run)

    # ===================== Persist =====================
    if scored:
        try:
            result.total_new = store.batch_insert(scored)
            logger.info("Stored %d new postings", result.total_new)
        except StoreError as e:
            logger.error("Persist failed: %s", e)
            result.errors.append(f"store: {e}")

    # ===================== Log =====================
    for summary in result.sources:
        try:
            store.append_run_log(summary.source, summary.found, "; ".join(summary.errors) or None)
        except StoreError as e:
            logger.error("Run log for %s failed: %s", summary.source, e)
            result.errors.append(f"store: {e}")

    return result


async def run_once(settings: Optional[Settings] = None, names: Optional[Sequence[str]] = None) -> PipelineResult:
    """Build the store, profile and providers from settings and run once."""
    settings = settings or get_settings()
    profile = settings.load_profile()
    providers = build_providers(settings, names)
    store = SqlitePostingStore(settings.db_path)
    try:
        return await run_pipeline_once(providers, store, profile, settings)
    finally:
        store.close()


async def run_provider_test(
    name: str,
    settings: Optional[Settings] = None,
    limit: int = SMOKE_TEST_LIMIT,
) -> ProviderResult:
    """
    Smoke-test one provider: fetch once, nothing is stored.
    Returns at most `limit` postings plus the provider's errors.
    """
    settings = settings or get_settings()
    providers = build_providers(settings, [name])
    if not providers:
        raise ValueError(f"Unknown provider: {name}")
    provider = providers[0]

    async with HttpFetcher(timeout_s=settings.request_timeout_s) as fetcher:
        result = await provider.fetch(fetcher, settings.load_profile())
    result.postings = result.postings[:limit]
    return result
