"""Tests for the research driver (plan-driven and frontier strategies)."""

import asyncio
import itertools
from dataclasses import replace

import pytest
import structlog
from pydantic import ValidationError

from src.config.settings import DeepResearchSettings, ResearchStrategyType
from src.deep_research.errors import ResearchCancelledError, ResearchThrottledError
from src.deep_research.nodes.plan import fallback_plan
from src.deep_research.nodes.report import write_report
from src.deep_research.nodes.researcher import (
    FrontierStrategy,
    PlanDrivenStrategy,
    deep_research,
    result_limit,
    select_strategy,
)
from src.deep_research.state import ResearchPlan, ResearchRequest, Section
from src.deep_research.structured_outputs import (
    FinalReportOutput,
    ResearchPlanOutput,
    SerpLearnings,
    SerpQuery,
    SerpQueryList,
)
from src.deep_research.utils.progress import ProgressReporter
from src.tools.base import RateLimitError, SearchProviderError

from tests.fakes import FakeLLM, FakeSearch, make_items


def _url(query: str) -> str:
    return f"https://example.com/{query.replace(' ', '-')}"


def _search_by_query(**overrides) -> FakeSearch:
    return FakeSearch(results=overrides, default=lambda q: make_items(_url(q)))


def _plan() -> ResearchPlan:
    return ResearchPlan(
        title="Caffeine and Sleep",
        sections=[
            Section(heading="Mechanisms", queries=["q1", "q2"]),
            Section(heading="Effects", queries=["q2", "q3"]),
        ],
    )


def _learnings(*batches: list[str]) -> list[SerpLearnings]:
    return [SerpLearnings(learnings=batch) for batch in batches]


def _drain(queue: asyncio.Queue) -> list:
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events


# ---------------------------------------------------------------------------
# Plan-driven strategy
# ---------------------------------------------------------------------------


class TestPlanDriven:
    async def test_learnings_and_urls_are_deduplicated(self, fast_settings):
        llm = FakeLLM(
            {
                SerpLearnings: _learnings(
                    ["Shared fact", "Fact q1"],
                    ["Fact q2", "Shared fact"],
                    ["Shared fact", "Fact q3"],
                )
            }
        )
        search = FakeSearch(
            results={
                "q1": make_items("https://a", "https://b"),
                "q2": make_items("https://b"),
                "q3": make_items("https://c", "https://a"),
            }
        )
        request = ResearchRequest(topic="caffeine", research_plan=_plan())

        result = await deep_research(request, llm=llm, search=search, settings=fast_settings)

        assert result.learnings == ["Shared fact", "Fact q1", "Fact q2", "Fact q3"]
        assert result.visited_urls == ["https://a", "https://b", "https://c"]
        assert len(set(result.learnings)) == len(result.learnings)

    async def test_duplicate_query_is_skipped_but_counted(self, fast_settings):
        llm = FakeLLM({SerpLearnings: SerpLearnings(learnings=["Fact"])})
        search = _search_by_query()
        progress = []
        request = ResearchRequest(topic="caffeine", research_plan=_plan())

        await deep_research(
            request,
            llm=llm,
            search=search,
            settings=fast_settings,
            on_progress=lambda percent, label: progress.append((percent, label)),
        )

        assert search.queries == ["q1", "q2", "q3"]
        assert progress == [
            (25, "Researching: Mechanisms"),
            (50, "Researching: Mechanisms"),
            (75, "Researching: Effects"),
            (100, "Researching: Effects"),
        ]

    async def test_progress_is_monotonic_and_completes(self, fast_settings):
        llm = FakeLLM({SerpLearnings: SerpLearnings(learnings=["Fact"])})
        reporter = ProgressReporter()
        queue = reporter.subscribe()
        request = ResearchRequest(topic="caffeine", research_plan=_plan())

        await deep_research(
            request,
            llm=llm,
            search=_search_by_query(),
            settings=fast_settings,
            reporter=reporter,
        )

        events = _drain(queue)
        completed = [e.completed_queries for e in events]
        assert completed == sorted(completed)
        assert events[-1].completed_queries == events[-1].total_queries == 4
        assert events[-1].percent == 100

    async def test_failed_query_is_skipped(self, fast_settings):
        llm = FakeLLM({SerpLearnings: _learnings(["Fact q1"], ["Fact q3"])})
        search = _search_by_query(q2=SearchProviderError("HTTP 500", status_code=500))
        progress = []
        request = ResearchRequest(topic="caffeine", research_plan=_plan())

        result = await deep_research(
            request,
            llm=llm,
            search=search,
            settings=fast_settings,
            on_progress=lambda percent, label: progress.append(percent),
        )

        assert result.learnings == ["Fact q1", "Fact q3"]
        assert result.visited_urls == [_url("q1"), _url("q3")]
        assert progress[-1] == 100

    async def test_persistent_rate_limit_aborts_with_partial_result(self, fast_settings):
        llm = FakeLLM({SerpLearnings: SerpLearnings(learnings=["Fact q1"])})
        search = _search_by_query(q2=RateLimitError())
        request = ResearchRequest(topic="caffeine", research_plan=_plan())

        with pytest.raises(ResearchThrottledError) as exc_info:
            await deep_research(request, llm=llm, search=search, settings=fast_settings)

        # first attempt plus max_retries
        assert search.queries == ["q1"] + ["q2"] * (fast_settings.max_retries + 1)
        assert exc_info.value.partial.learnings == ["Fact q1"]
        assert exc_info.value.partial.visited_urls == [_url("q1")]

    async def test_transient_rate_limit_is_retried(self, fast_settings):
        llm = FakeLLM({SerpLearnings: SerpLearnings(learnings=["Fact"])})
        attempts = {"q1": 0}

        def _flaky(query):
            if query == "q1" and attempts["q1"] == 0:
                attempts["q1"] += 1
                return RateLimitError(retry_after=0)
            return make_items(_url(query))

        search = FakeSearch(default=_flaky)
        request = ResearchRequest(topic="caffeine", research_plan=_plan())

        result = await deep_research(request, llm=llm, search=search, settings=fast_settings)

        assert search.queries == ["q1", "q1", "q2", "q3"]
        assert _url("q1") in result.visited_urls

    async def test_search_limit_follows_breadth(self, fast_settings):
        llm = FakeLLM({SerpLearnings: SerpLearnings(learnings=["Fact"])})
        search = _search_by_query()
        request = ResearchRequest(topic="caffeine", breadth=9, research_plan=_plan())

        await deep_research(request, llm=llm, search=search, settings=fast_settings)

        assert set(search.limits) == {5}
        assert result_limit(3) == 3
        assert result_limit(4) == 3
        assert result_limit(10) == 5

    async def test_cancel_between_queries(self, fast_settings):
        llm = FakeLLM({SerpLearnings: SerpLearnings(learnings=["Fact q1"])})
        search = _search_by_query()
        cancel_event = asyncio.Event()
        request = ResearchRequest(topic="caffeine", research_plan=_plan())

        with pytest.raises(ResearchCancelledError) as exc_info:
            await deep_research(
                request,
                llm=llm,
                search=search,
                settings=fast_settings,
                cancel_event=cancel_event,
                on_progress=lambda percent, label: cancel_event.set(),
            )

        assert search.queries == ["q1"]
        assert exc_info.value.partial.learnings == ["Fact q1"]

    async def test_cancel_interrupts_pacing(self, fast_settings):
        llm = FakeLLM({SerpLearnings: SerpLearnings(learnings=["Fact"])})
        search = _search_by_query()
        cancel_event = asyncio.Event()
        settings = replace(fast_settings, request_delay=30.0)
        request = ResearchRequest(topic="caffeine", research_plan=_plan())

        asyncio.get_running_loop().call_later(0.05, cancel_event.set)
        with pytest.raises(ResearchCancelledError) as exc_info:
            await asyncio.wait_for(
                deep_research(
                    request,
                    llm=llm,
                    search=search,
                    settings=settings,
                    cancel_event=cancel_event,
                ),
                timeout=5,
            )

        assert search.queries == []
        assert exc_info.value.partial.learnings == []

    async def test_run_context_leaves_caller_context_bound(self, fast_settings):
        llm = FakeLLM({SerpLearnings: SerpLearnings(learnings=["Fact"])})
        seen = []
        request = ResearchRequest(topic="caffeine", research_plan=_plan())

        structlog.contextvars.bind_contextvars(request_id="req-1")
        try:
            await deep_research(
                request,
                llm=llm,
                search=_search_by_query(),
                settings=fast_settings,
                on_progress=lambda percent, label: seen.append(structlog.contextvars.get_contextvars()),
            )
            after = structlog.contextvars.get_contextvars()
        finally:
            structlog.contextvars.clear_contextvars()

        assert seen[0]["request_id"] == "req-1"
        assert seen[0]["strategy"] == "plan"
        assert "run_id" in seen[0]
        assert after == {"request_id": "req-1"}

    async def test_generates_plan_when_missing(self, fast_settings):
        llm = FakeLLM(
            {
                ResearchPlanOutput: RuntimeError("model unavailable"),
                SerpLearnings: SerpLearnings(learnings=["Fact"]),
            }
        )
        search = _search_by_query()

        await deep_research(
            ResearchRequest(topic="solar sails"),
            llm=llm,
            search=search,
            settings=fast_settings,
        )

        expected = [q for s in fallback_plan("solar sails").sections for q in s.queries]
        assert search.queries == expected


# ---------------------------------------------------------------------------
# Frontier strategy
# ---------------------------------------------------------------------------


def _frontier_llm(queries_per_call: int = 3, follow_up: bool = True) -> FakeLLM:
    planner_calls = itertools.count(1)
    summaries = itertools.count(1)

    def _plan_queries(_messages):
        call = next(planner_calls)
        return SerpQueryList(
            queries=[
                SerpQuery(query=f"query {call}-{i}", research_goal="goal")
                for i in range(1, queries_per_call + 1)
            ]
        )

    def _summarize(_messages):
        n = next(summaries)
        return SerpLearnings(
            learnings=[f"Fact {n}", "Caffeine blocks adenosine receptors."],
            follow_up_questions=[f"Follow-up {n}?"] if follow_up else [],
        )

    return FakeLLM({SerpQueryList: _plan_queries, SerpLearnings: _summarize})


def _frontier_settings(settings: DeepResearchSettings, **overrides) -> DeepResearchSettings:
    return replace(settings, strategy=ResearchStrategyType.FRONTIER, **overrides)


class TestFrontier:
    async def test_caps_bound_total_queries_and_expansions(self, fast_settings):
        llm = _frontier_llm()
        search = _search_by_query()
        settings = _frontier_settings(fast_settings, max_total_queries=5, max_depth_iterations=2)

        result = await deep_research(
            ResearchRequest(topic="caffeine", breadth=10, depth=5),
            llm=llm,
            search=search,
            settings=settings,
        )

        assert len(search.queries) <= 5
        # root planning plus at most two expansions
        assert len(llm.calls[SerpQueryList]) <= 3
        assert len(set(result.learnings)) == len(result.learnings)

    async def test_depth_one_does_not_recurse(self, fast_settings):
        llm = _frontier_llm()
        search = _search_by_query()

        await deep_research(
            ResearchRequest(topic="caffeine", breadth=3, depth=1),
            llm=llm,
            search=search,
            settings=_frontier_settings(fast_settings),
        )

        assert len(llm.calls[SerpQueryList]) == 1
        assert search.queries == ["query 1-1", "query 1-2", "query 1-3"]

    async def test_no_follow_up_stops_recursion(self, fast_settings):
        llm = _frontier_llm(follow_up=False)
        search = _search_by_query()

        await deep_research(
            ResearchRequest(topic="caffeine", breadth=4, depth=3),
            llm=llm,
            search=search,
            settings=_frontier_settings(fast_settings),
        )

        assert len(llm.calls[SerpQueryList]) == 1
        assert len(search.queries) == 3

    async def test_progress_completes(self, fast_settings):
        reporter = ProgressReporter()
        queue = reporter.subscribe()

        await deep_research(
            ResearchRequest(topic="caffeine", breadth=5, depth=2),
            llm=_frontier_llm(),
            search=_search_by_query(),
            settings=_frontier_settings(fast_settings, concurrency=3),
            reporter=reporter,
        )

        events = _drain(queue)
        completed = [e.completed_queries for e in events]
        assert completed == sorted(completed)
        assert events[-1].completed_queries == events[-1].total_queries
        assert events[-1].label.startswith("Researching: ")

    async def test_root_planner_failure_propagates(self, fast_settings):
        llm = FakeLLM({SerpQueryList: ValueError("bad schema")})

        with pytest.raises(ValueError, match="bad schema"):
            await deep_research(
                ResearchRequest(topic="caffeine"),
                llm=llm,
                search=_search_by_query(),
                settings=_frontier_settings(fast_settings),
            )

    async def test_rate_limit_aborts_with_partial_result(self, fast_settings):
        llm = _frontier_llm(follow_up=False)
        search = _search_by_query(**{"query 1-2": RateLimitError()})

        with pytest.raises(ResearchThrottledError) as exc_info:
            await deep_research(
                ResearchRequest(topic="caffeine", breadth=3, depth=1),
                llm=llm,
                search=search,
                settings=_frontier_settings(fast_settings),
            )

        partial = exc_info.value.partial
        assert _url("query 1-1") in partial.visited_urls
        assert _url("query 1-2") not in partial.visited_urls

    async def test_cancel_keeps_finished_branches(self, fast_settings):
        llm = _frontier_llm(follow_up=False)
        search = _search_by_query()
        cancel_event = asyncio.Event()

        with pytest.raises(ResearchCancelledError) as exc_info:
            await deep_research(
                ResearchRequest(topic="caffeine", breadth=3, depth=1),
                llm=llm,
                search=search,
                settings=_frontier_settings(fast_settings, concurrency=1),
                cancel_event=cancel_event,
                on_progress=lambda percent, label: cancel_event.set(),
            )

        partial = exc_info.value.partial
        assert search.queries == ["query 1-1"]
        assert partial.visited_urls == [_url("query 1-1")]
        assert "Fact 1" in partial.learnings

    async def test_caffeine_scenario(self, fast_settings):
        llm = _frontier_llm()
        search = _search_by_query()

        result = await deep_research(
            ResearchRequest(topic="Effects of caffeine on sleep", breadth=5, depth=2),
            llm=llm,
            search=search,
            settings=_frontier_settings(fast_settings),
        )

        # three root queries, each followed up exactly once with three more
        assert len(llm.calls[SerpQueryList]) == 4
        assert len(search.queries) == 12
        assert set(search.limits) == {3}
        assert len(set(result.learnings)) == len(result.learnings)
        assert result.learnings.count("Caffeine blocks adenosine receptors.") == 1
        assert len(result.learnings) == 12 + 1
        assert len(result.visited_urls) == 12

        llm.responses[FinalReportOutput] = FinalReportOutput(report_markdown="# Caffeine and Sleep")
        report = await write_report(
            llm, "Effects of caffeine on sleep", result.learnings, result.visited_urls
        )

        sources = report.split("## Sources", 1)[1]
        for url in result.visited_urls:
            assert f"- {url}" in sources


# ---------------------------------------------------------------------------
# Request validation and strategy selection
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("field, value", [("breadth", 2), ("breadth", 11), ("depth", 0), ("depth", 6)])
def test_request_rejects_out_of_range(field, value):
    with pytest.raises(ValidationError):
        ResearchRequest(topic="caffeine", **{field: value})


def test_request_rejects_empty_topic():
    with pytest.raises(ValidationError):
        ResearchRequest(topic="")


def test_select_strategy():
    frontier = DeepResearchSettings(strategy=ResearchStrategyType.FRONTIER)
    plan = DeepResearchSettings(strategy=ResearchStrategyType.PLAN)

    assert isinstance(select_strategy(ResearchRequest(topic="t"), frontier), FrontierStrategy)
    assert isinstance(select_strategy(ResearchRequest(topic="t"), plan), PlanDrivenStrategy)
    with_plan = ResearchRequest(topic="t", research_plan=_plan())
    assert isinstance(select_strategy(with_plan, frontier), PlanDrivenStrategy)
