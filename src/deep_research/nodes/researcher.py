"""
Research Driver

Runs the search -> summarize loop for one research request and accumulates
de-duplicated learnings and URLs. Two strategies share one interface:

- PlanDrivenStrategy: walks a ResearchPlan section by section, query by
  query. The amount of work is fixed by the plan.
- FrontierStrategy: asks the query planner for queries and recursively
  follows each result's follow-up question, bounded by a RunBudget shared
  across all branches.

Failure policy is the same for both: a single query's ordinary failure is
logged and skipped, while a rate limit that survives the executor's
retries ends the run with ResearchThrottledError.
"""

import asyncio
import math
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence

from langchain_core.language_models import BaseChatModel

from src.config.settings import (
    DeepResearchSettings,
    ResearchStrategyType,
    resolve_deep_research_settings,
)
from src.tools.base import SearchProvider, SearchResultItem
from src.utils.logging_config import bound_context, get_logger

from ..errors import ResearchCancelledError, ResearchError, ResearchThrottledError
from ..executor import RateLimitedExecutor, is_rate_limited
from ..state import (
    ResearchAccumulator,
    ResearchPlan,
    ResearchProgress,
    ResearchRequest,
    ResearchResult,
    RunBudget,
    SearchQuery,
    SerpSummary,
)
from ..utils.progress import ProgressCallback, ProgressReporter
from .plan import generate_plan
from .queries import plan_queries
from .summarize import summarize

logger = get_logger(__name__)

# Frontier mode never asks the planner for more than this many queries per level
MAX_QUERIES_PER_LEVEL = 3


def result_limit(breadth: int) -> int:
    """Number of search results requested per query."""
    return max(3, math.ceil(breadth / 2))


def _query_key(query: str) -> str:
    return " ".join(query.split()).lower()


@dataclass
class ResearchContext:
    """Collaborators and run-wide controls shared by every step of one run."""

    llm: BaseChatModel
    search: SearchProvider
    settings: DeepResearchSettings
    executor: RateLimitedExecutor
    reporter: ProgressReporter
    cancel_event: Optional[asyncio.Event] = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise ResearchCancelledError("Research cancelled by caller")

    async def pace(self) -> None:
        """Fixed inter-request delay before every provider call; cut short by cancellation."""
        delay = self.settings.request_delay
        if self.cancel_event is None:
            if delay > 0:
                await asyncio.sleep(delay)
            return
        if delay > 0:
            try:
                await asyncio.wait_for(self.cancel_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
        self.raise_if_cancelled()

    async def search_query(self, query: str, limit: int) -> list[SearchResultItem]:
        timeout = self.settings.search_timeout

        async def _search() -> list[SearchResultItem]:
            return await asyncio.wait_for(
                self.search.search(query, timeout=timeout, limit=limit),
                timeout=timeout,
            )

        return await self.executor.execute(_search)

    async def research_query(self, query: str, limit: int) -> SerpSummary:
        """Pace, search through the executor, then summarize one query."""
        await self.pace()
        results = await self.search_query(query, limit)
        return await summarize(
            self.llm,
            query,
            results,
            max_content_length=self.settings.max_content_length,
            timeout=self.settings.summarize_timeout,
        )


class ResearchStrategy(ABC):
    """How a research run chooses and executes its queries."""

    name: str = ""

    @abstractmethod
    async def run(self, request: ResearchRequest, ctx: ResearchContext) -> ResearchResult:
        ...


def _throttled(query: str, error: Exception, partial: ResearchResult) -> ResearchThrottledError:
    return ResearchThrottledError(
        f"Search provider rate limit persisted after retries (query: '{query}'): {error}",
        partial=partial,
    )


class PlanDrivenStrategy(ResearchStrategy):
    """Execute every query of a ResearchPlan in declared order."""

    name = ResearchStrategyType.PLAN.value

    async def run(self, request: ResearchRequest, ctx: ResearchContext) -> ResearchResult:
        plan: Optional[ResearchPlan] = request.research_plan
        if plan is None:
            raise ValueError("PlanDrivenStrategy requires request.research_plan")

        acc = ResearchAccumulator()
        processed: set[str] = set()
        progress = ResearchProgress(total_queries=plan.total_queries)
        limit = result_limit(request.breadth)

        logger.info(
            "Starting plan-driven research",
            title=plan.title,
            sections=len(plan.sections),
            total_queries=progress.total_queries,
        )

        try:
            for section in plan.sections:
                progress.current_label = f"Researching: {section.heading}"

                for query in section.queries:
                    ctx.raise_if_cancelled()
                    key = _query_key(query)

                    if key in processed:
                        logger.info("Skipping duplicate query", query=query)
                    else:
                        processed.add(key)
                        try:
                            summary = await ctx.research_query(query, limit)
                            acc.add(summary.learnings, summary.visited_urls)
                        except ResearchError:
                            raise
                        except Exception as e:
                            if is_rate_limited(e):
                                raise _throttled(query, e, acc.snapshot()) from e
                            logger.warning(
                                "Query failed, continuing",
                                query=query,
                                section=section.heading,
                                error=f"{type(e).__name__}: {e}",
                            )

                    progress.completed_queries += 1
                    ctx.reporter.publish(progress)
        except ResearchCancelledError as e:
            raise ResearchCancelledError(str(e), partial=acc.snapshot()) from None

        result = acc.snapshot()
        logger.info(
            "Plan-driven research complete",
            learnings=len(result.learnings),
            urls=len(result.visited_urls),
            queries=len(processed),
        )
        return result


class FrontierStrategy(ResearchStrategy):
    """
    Planner-driven recursive research.

    ``depth`` counts levels including the first one: depth 2 runs the
    planner's queries and then follows each result's follow-up question
    once. The RunBudget caps apply on top of that, whichever is hit first.
    """

    name = ResearchStrategyType.FRONTIER.value

    async def run(self, request: ResearchRequest, ctx: ResearchContext) -> ResearchResult:
        budget = RunBudget(
            max_total_queries=ctx.settings.max_total_queries,
            max_depth_iterations=ctx.settings.max_depth_iterations,
        )
        semaphore = asyncio.Semaphore(ctx.settings.concurrency)
        progress = ResearchProgress(current_label=f"Researching: {request.topic}")

        logger.info(
            "Starting frontier research",
            topic=request.topic,
            breadth=request.breadth,
            depth=request.depth,
        )

        result = await self._explore(
            topic=request.topic,
            breadth=request.breadth,
            depth=request.depth,
            prior_learnings=[],
            answers=request.clarifying_answers,
            ctx=ctx,
            budget=budget,
            semaphore=semaphore,
            progress=progress,
        )

        logger.info(
            "Frontier research complete",
            learnings=len(result.learnings),
            urls=len(result.visited_urls),
            queries_issued=budget.queries_issued,
            depth_iterations=budget.depth_iterations,
        )
        return result

    async def _explore(
        self,
        *,
        topic: str,
        breadth: int,
        depth: int,
        prior_learnings: Sequence[str],
        answers: Sequence[str],
        ctx: ResearchContext,
        budget: RunBudget,
        semaphore: asyncio.Semaphore,
        progress: ResearchProgress,
    ) -> ResearchResult:
        ctx.raise_if_cancelled()
        if budget.queries_exhausted:
            return ResearchResult()

        queries = await plan_queries(
            ctx.llm,
            topic,
            max_queries=min(breadth, MAX_QUERIES_PER_LEVEL),
            prior_learnings=prior_learnings,
            clarifying_answers=answers,
        )
        unique = list({_query_key(q.query): q for q in queries}.values())

        tasks = [
            asyncio.ensure_future(
                self._run_query(
                    query=q,
                    breadth=breadth,
                    depth=depth,
                    prior_learnings=prior_learnings,
                    ctx=ctx,
                    budget=budget,
                    semaphore=semaphore,
                    progress=progress,
                )
            )
            for q in unique
        ]

        try:
            results = await asyncio.gather(*tasks)
        except BaseException as e:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            if isinstance(e, ResearchError):
                finished = [
                    t.result()
                    for t in tasks
                    if t.done() and not t.cancelled() and t.exception() is None
                ]
                e.partial = ResearchResult.merge(*finished, e.partial)
            raise

        return ResearchResult.merge(*results)

    async def _run_query(
        self,
        *,
        query: SearchQuery,
        breadth: int,
        depth: int,
        prior_learnings: Sequence[str],
        ctx: ResearchContext,
        budget: RunBudget,
        semaphore: asyncio.Semaphore,
        progress: ResearchProgress,
    ) -> ResearchResult:
        if not budget.try_issue_query():
            logger.info("Query budget exhausted, skipping", query=query.query)
            return ResearchResult()
        progress.total_queries += 1

        async with semaphore:
            try:
                ctx.raise_if_cancelled()
                summary = await ctx.research_query(query.query, result_limit(breadth))
            except ResearchError:
                raise
            except Exception as e:
                if is_rate_limited(e):
                    raise _throttled(query.query, e, ResearchResult()) from e
                logger.warning(
                    "Query failed, continuing",
                    query=query.query,
                    error=f"{type(e).__name__}: {e}",
                )
                summary = SerpSummary.empty()
            finally:
                progress.completed_queries += 1
                progress.current_label = f"Researching: {query.query}"
                ctx.reporter.publish(progress)

        own = ResearchResult(learnings=summary.learnings, visited_urls=summary.visited_urls)

        next_depth = depth - 1
        if next_depth <= 0 or not summary.follow_up_questions:
            return own
        if not budget.try_expand():
            logger.info(
                "Expansion budget exhausted",
                query=query.query,
                depth_iterations=budget.depth_iterations,
                queries_issued=budget.queries_issued,
            )
            return own

        follow_up = summary.follow_up_questions[0]
        logger.info("Following up", query=query.query, follow_up=follow_up, depth=next_depth)
        try:
            deeper = await self._explore(
                topic=follow_up,
                breadth=max(1, math.ceil(breadth / 2)),
                depth=next_depth,
                prior_learnings=[*prior_learnings, *summary.learnings],
                answers=(),
                ctx=ctx,
                budget=budget,
                semaphore=semaphore,
                progress=progress,
            )
        except ResearchError as e:
            e.partial = ResearchResult.merge(own, e.partial)
            raise
        except Exception as e:
            # A failed follow-up plan only loses this branch's expansion
            logger.warning("Follow-up planning failed", follow_up=follow_up, error=str(e))
            return own

        return ResearchResult.merge(own, deeper)


def select_strategy(
    request: ResearchRequest,
    settings: DeepResearchSettings,
) -> ResearchStrategy:
    """A supplied plan always means plan-driven; otherwise follow settings.strategy."""
    if request.research_plan is None and settings.strategy == ResearchStrategyType.FRONTIER:
        return FrontierStrategy()
    return PlanDrivenStrategy()


async def deep_research(
    request: ResearchRequest,
    *,
    llm: BaseChatModel,
    search: SearchProvider,
    settings: Optional[DeepResearchSettings] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
    strategy: Optional[ResearchStrategy] = None,
    executor: Optional[RateLimitedExecutor] = None,
    reporter: Optional[ProgressReporter] = None,
) -> ResearchResult:
    """
    Run one research request to completion.

    Args:
        request: Validated request (breadth in [3, 10], depth in [1, 5]).
        llm: Chat model used by the planner, plan generator and summarizer.
        search: Web search/scrape provider.
        settings: Deep research settings; resolved from the environment when omitted.
        on_progress: ``(percent, label)`` callback, fire-and-forget.
        cancel_event: Set it to stop the run before the next query.
        strategy: Override the strategy chosen by select_strategy().
        executor: Override the rate-limited executor built from settings.
        reporter: Existing ProgressReporter (queue subscribers); on_progress
            is ignored when a reporter is passed.

    Returns:
        ResearchResult with de-duplicated learnings and visited URLs.

    Raises:
        ResearchThrottledError: Rate limiting persisted after retries.
        ResearchCancelledError: cancel_event was set.
        Exception: Query planner failures in frontier mode propagate unchanged.
    """
    settings = settings or resolve_deep_research_settings()
    strategy = strategy or select_strategy(request, settings)
    ctx = ResearchContext(
        llm=llm,
        search=search,
        settings=settings,
        executor=executor or RateLimitedExecutor.from_settings(settings),
        reporter=reporter or ProgressReporter(on_progress),
        cancel_event=cancel_event,
    )

    with bound_context(run_id=uuid.uuid4().hex[:12], strategy=strategy.name):
        if isinstance(strategy, PlanDrivenStrategy) and request.research_plan is None:
            plan = await generate_plan(llm, request.topic, request.clarifying_answers)
            request = request.model_copy(update={"research_plan": plan})
        try:
            return await strategy.run(request, ctx)
        except ResearchThrottledError as e:
            logger.error(
                "Research aborted by rate limiting",
                error=str(e),
                partial_learnings=len(e.partial.learnings),
            )
            raise
