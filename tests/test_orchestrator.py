"""End-to-end pipeline tests with in-process providers (no network)."""

import asyncio
from typing import List, Optional, Sequence, Set

import pytest

from internscout.models import CandidateProfile, RawPosting, ScoredPosting
from internscout.orchestrator import PipelineResult, run_pipeline_once
from internscout.providers.base import Provider
from internscout.scoring import NEUTRAL_SCORE
from internscout.storage.base import PostingStore, StoreError
from internscout.storage.sqlite import SqlitePostingStore

from tests.conftest import StubFetcher, make_limiter


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class CannedProvider(Provider):
    """Returns fixed postings, optionally after a delay or with errors."""

    def __init__(
        self,
        name: str,
        postings: Sequence[RawPosting] = (),
        delay_s: float = 0,
        errors: Sequence[str] = (),
        exc: Optional[Exception] = None,
        timeout_s: float = 30,
    ) -> None:
        super().__init__(limiter=make_limiter(), timeout_s=timeout_s)
        self.name = name
        self._postings = list(postings)
        self._delay_s = delay_s
        self._errors = list(errors)
        self._exc = exc
        self.calls = 0

    async def collect(self, fetcher, profile) -> List[RawPosting]:
        self.calls += 1
        for e in self._errors:
            self.log_error(e)
        if self._delay_s:
            await asyncio.sleep(self._delay_s)
        if self._exc is not None:
            raise self._exc
        return list(self._postings)


class MemoryStore(PostingStore):
    def __init__(self, fail_insert: bool = False, fail_load: bool = False) -> None:
        self.rows: List[ScoredPosting] = []
        self.logs: List[tuple] = []
        self.fail_insert = fail_insert
        self.fail_load = fail_load

    def load_all_posting_keys(self) -> Set[str]:
        if self.fail_load:
            raise StoreError("database is locked")
        return {r.key for r in self.rows}

    def load_all_posting_urls(self) -> Set[str]:
        return {r.posting.url for r in self.rows if r.posting.url}

    def batch_insert(self, postings: Sequence[ScoredPosting]) -> int:
        if self.fail_insert:
            raise StoreError("disk full")
        self.rows.extend(postings)
        return len(postings)

    def append_run_log(self, source: str, found_count: int, error_summary: Optional[str] = None) -> None:
        self.logs.append((source, found_count, error_summary))


def _posting(n: int, company: str = "Acme", **kw) -> RawPosting:
    return RawPosting(title=kw.pop("title", f"Intern {n}"), company=company, url=f"https://{company.lower()}.example/{n}", **kw)


async def _run(providers, store, profile, settings, **kw) -> PipelineResult:
    return await run_pipeline_once(providers, store, profile, settings, fetcher=StubFetcher(), **kw)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestPipeline:
    async def test_happy_path_persists_and_logs(self, store, profile, settings) -> None:
        providers = [
            CannedProvider("simplify_list", [_posting(1), _posting(2)]),
            CannedProvider("github_repo", [_posting(3, company="Jane Street", title="Software Engineering Intern")]),
        ]
        result = await _run(providers, store, profile, settings)

        assert result.total_new == 3
        assert result.errors == []
        assert store.get_posting_count() == 3
        top = store.get_postings(limit=1)[0]
        assert top["company"] == "Jane Street"
        assert "target firm: Jane Street" in top["relevance_reason"]
        assert {(l["source"], l["found_count"]) for l in store.get_run_logs()} == {
            ("simplify_list", 2),
            ("github_repo", 1),
        }

    async def test_partial_failure_isolation(self, store, profile, settings) -> None:
        providers = [
            CannedProvider("indeed", exc=RuntimeError("blocked")),
            CannedProvider("simplify_list", [_posting(1)]),
        ]
        result = await _run(providers, store, profile, settings)

        assert result.total_new == 1
        assert result.errors == ["indeed: failed: blocked"]
        logs = {l["source"]: l for l in store.get_run_logs()}
        assert logs["indeed"]["found_count"] == 0
        assert logs["indeed"]["error_summary"] == "failed: blocked"
        assert logs["simplify_list"]["error_summary"] is None

    async def test_provider_timeout_isolated(self, store, profile, settings) -> None:
        providers = [
            CannedProvider("levels_fyi", [_posting(9)], delay_s=5, timeout_s=0.05),
            CannedProvider("themuse", [_posting(1)]),
        ]
        result = await _run(providers, store, profile, settings)
        assert result.total_new == 1
        assert result.errors == ["levels_fyi: timed out after 0.05s"]

    async def test_run_budget_abandons_slow_provider(self, store, profile, settings) -> None:
        settings = settings.model_copy(update={"run_budget_s": 0.1})
        providers = [
            CannedProvider("slow", [_posting(9)], delay_s=5),
            CannedProvider("fast", [_posting(1)]),
        ]
        result = await _run(providers, store, profile, settings)

        assert result.total_new == 1
        assert result.errors == ["slow: abandoned after run budget of 0.1s"]
        slow = [s for s in result.sources if s.source == "slow"][0]
        assert slow.abandoned and slow.found == 0
        assert len(store.get_run_logs()) == 2

    async def test_abandoned_provider_keeps_logged_errors(self, store, profile, settings) -> None:
        settings = settings.model_copy(update={"run_budget_s": 0.1})
        providers = [CannedProvider("indeed", errors=["Indeed q1: HTTP 403"], delay_s=5)]
        result = await _run(providers, store, profile, settings)

        assert result.errors == [
            "indeed: Indeed q1: HTTP 403",
            "indeed: abandoned after run budget of 0.1s",
        ]
        log = store.get_run_logs()[0]
        assert log["error_summary"] == "Indeed q1: HTTP 403; abandoned after run budget of 0.1s"
        assert log["found_count"] == 0

    async def test_errors_joined_in_run_log(self, store, profile, settings) -> None:
        providers = [CannedProvider("github_repo", [_posting(1)], errors=["a/b: HTTP 404", "c/d: Timeout"])]
        result = await _run(providers, store, profile, settings)
        assert result.errors == ["github_repo: a/b: HTTP 404", "github_repo: c/d: Timeout"]
        assert store.get_run_logs()[0]["error_summary"] == "a/b: HTTP 404; c/d: Timeout"

    async def test_cross_run_idempotence(self, store, profile, settings) -> None:
        providers = [CannedProvider("simplify_list", [_posting(1), _posting(2)])]
        first = await _run(providers, store, profile, settings)
        second = await _run(providers, store, profile, settings)
        assert first.total_new == 2
        assert second.total_new == 0
        assert store.get_posting_count() == 2
        assert len(store.get_run_logs()) == 2

    async def test_known_url_not_reinserted(self, store, profile, settings) -> None:
        await _run([CannedProvider("a", [_posting(1)])], store, profile, settings)
        renamed = RawPosting(title="Renamed Intern", company="Acme", url="https://acme.example/1")
        result = await _run([CannedProvider("b", [renamed])], store, profile, settings)
        assert result.total_new == 0

    async def test_intra_run_first_seen_wins(self, store, profile, settings) -> None:
        same_a = RawPosting(title="Intern", company="Acme", url="https://acme.example/x", description="from a")
        same_b = RawPosting(title="intern", company="ACME", url="https://acme.example/x", description="from b")
        providers = [
            CannedProvider("later", [same_b], delay_s=0.05),
            CannedProvider("sooner", [same_a]),
        ]
        result = await _run(providers, store, profile, settings)
        assert result.total_new == 1
        row = store.get_postings()[0]
        assert row["source"] == "sooner"
        assert row["description"] == "from a"

    async def test_cap_limits_writes(self, store, profile, settings) -> None:
        settings = settings.model_copy(update={"max_new_per_run": 3})
        providers = [CannedProvider("simplify_list", [_posting(i) for i in range(10)])]
        result = await _run(providers, store, profile, settings)
        assert result.total_new == 3
        assert store.get_posting_count() == 3
        # Capped postings are still new next time
        again = await _run(providers, store, profile, settings)
        assert again.total_new == 3

    async def test_capped_postings_sharing_fallback_url_stored_later(self, store, profile, settings) -> None:
        settings = settings.model_copy(update={"max_new_per_run": 1})
        board = "https://www.themuse.com/jobs"
        postings = [
            RawPosting(title="Data Intern", company="Acme", url=board, url_is_fallback=True),
            RawPosting(title="Quant Intern", company="Acme", url=board, url_is_fallback=True),
        ]
        providers = [CannedProvider("themuse", postings)]

        first = await _run(providers, store, profile, settings)
        second = await _run(providers, store, profile, settings)

        assert (first.total_new, second.total_new) == (1, 1)
        assert store.get_posting_count() == 2
        assert store.load_all_posting_urls() == set()

    async def test_scores_in_range_and_visa_flag(self, store, profile, settings) -> None:
        providers = [
            CannedProvider("indeed", [
                _posting(1, description="US citizenship required"),
                _posting(2, description="x" * 400),
                _posting(3, company="Citadel", title="Quantitative Research Intern", description="statistics"),
            ])
        ]
        await _run(providers, store, profile, settings)
        rows = {r["url"]: r for r in store.get_postings()}
        assert all(0 <= r["relevance_score"] <= 100 for r in rows.values())
        assert rows["https://acme.example/1"]["visa_flag"] == 1
        assert rows["https://acme.example/2"]["visa_flag"] == 0

    async def test_failing_scorer_uses_neutral(self, store, profile, settings) -> None:
        class Broken:
            def score(self, *args):
                raise ValueError("bad")

        result = await _run([CannedProvider("a", [_posting(1)])], store, profile, settings, scorer=Broken())
        assert result.total_new == 1
        assert store.get_postings()[0]["relevance_score"] == NEUTRAL_SCORE


class TestStoreFailures:
    async def test_persist_failure_reported_and_logs_written(self, profile, settings) -> None:
        store = MemoryStore(fail_insert=True)
        result = await _run([CannedProvider("a", [_posting(1)])], store, profile, settings)
        assert result.total_new == 0
        assert result.errors == ["store: disk full"]
        assert store.logs == [("a", 1, None)]

    async def test_load_failure_aborts_before_fetching(self, profile, settings) -> None:
        store = MemoryStore(fail_load=True)
        provider = CannedProvider("a", [_posting(1)])
        result = await _run([provider], store, profile, settings)
        assert result.total_new == 0
        assert result.errors == ["store: database is locked"]
        assert provider.calls == 0
        assert store.logs == []

    async def test_nothing_new_skips_insert(self, profile, settings) -> None:
        store = MemoryStore(fail_insert=True)
        result = await _run([CannedProvider("a", [])], store, profile, settings)
        assert result.errors == []
        assert store.logs == [("a", 0, None)]


class TestResultShape:
    async def test_to_dict(self, profile, settings) -> None:
        result = await _run([CannedProvider("a", exc=RuntimeError("x"))], MemoryStore(), profile, settings)
        assert result.to_dict() == {"totalNew": 0, "errors": ["a: failed: x"]}

    async def test_no_providers(self, store, profile, settings) -> None:
        result = await _run([], store, profile, settings)
        assert result.total_new == 0
        assert result.errors == []
