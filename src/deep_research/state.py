"""
Deep Research State Definition

Data model for one research run:
- SearchQuery / Section / ResearchPlan: what to search for
- ResearchRequest: validated entry-point input
- ResearchResult: accumulated learnings and visited URLs
- ResearchProgress / ProgressEvent: progress counters surfaced to callers
- RunBudget: shared caps for frontier-driven recursion
- AgentState: LangGraph state for the plan -> research -> report pipeline
"""

from dataclasses import dataclass, field
from typing import Optional, TypedDict

from pydantic import BaseModel, Field

from src.config.settings import DEFAULT_MAX_DEPTH_ITERATIONS, DEFAULT_MAX_TOTAL_QUERIES

MIN_BREADTH, MAX_BREADTH = 3, 10
MIN_DEPTH, MAX_DEPTH = 1, 5
DEFAULT_PLAN_DEPTH = 3
DEFAULT_PLAN_BREADTH = 6


class SearchQuery(BaseModel):
    """A SERP query and the research goal it serves (the goal only feeds prompts)."""

    query: str
    research_goal: str = ""


class Section(BaseModel):
    """One table-of-contents section of a research plan."""

    heading: str
    subheadings: list[str] = Field(default_factory=list)
    queries: list[str] = Field(default_factory=list)


class ResearchPlan(BaseModel):
    """Hierarchical research plan plus the model's suggested depth/breadth."""

    title: str
    sections: list[Section]
    estimated_depth: int = Field(default=DEFAULT_PLAN_DEPTH, ge=MIN_DEPTH, le=MAX_DEPTH)
    estimated_breadth: int = Field(default=DEFAULT_PLAN_BREADTH, ge=MIN_BREADTH, le=MAX_BREADTH)

    @property
    def total_queries(self) -> int:
        return sum(len(section.queries) for section in self.sections)


class ResearchRequest(BaseModel):
    """Validated input to the research driver."""

    topic: str = Field(min_length=1)
    clarifying_answers: list[str] = Field(default_factory=list)
    breadth: int = Field(default=4, ge=MIN_BREADTH, le=MAX_BREADTH)
    depth: int = Field(default=2, ge=MIN_DEPTH, le=MAX_DEPTH)
    research_plan: Optional[ResearchPlan] = None


class ResearchResult(BaseModel):
    """Terminal output of a research run. Both lists are duplicate-free."""

    learnings: list[str] = Field(default_factory=list)
    visited_urls: list[str] = Field(default_factory=list)

    @classmethod
    def merge(cls, *results: "ResearchResult") -> "ResearchResult":
        """Union several results, keeping first-seen order."""
        return cls(
            learnings=list(dict.fromkeys(x for r in results for x in r.learnings)),
            visited_urls=list(dict.fromkeys(x for r in results for x in r.visited_urls)),
        )


class SerpSummary(BaseModel):
    """What the summarizer extracted from one query's results."""

    learnings: list[str] = Field(default_factory=list)
    follow_up_questions: list[str] = Field(default_factory=list)
    visited_urls: list[str] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "SerpSummary":
        return cls()


@dataclass
class ResearchProgress:
    """Progress counters. Owned by exactly one driver run."""

    completed_queries: int = 0
    total_queries: int = 0
    current_label: str = ""

    @property
    def percent(self) -> int:
        if self.total_queries <= 0:
            return 0
        return min(100, round(self.completed_queries / self.total_queries * 100))


@dataclass(frozen=True)
class ProgressEvent:
    """Immutable snapshot of ResearchProgress handed to subscribers."""

    percent: int
    label: str
    completed_queries: int
    total_queries: int


@dataclass
class RunBudget:
    """
    Global caps for frontier-driven research.

    A single instance is shared by reference across every recursive branch
    of one run, so the caps bound the whole run rather than each branch.
    """

    max_total_queries: int = DEFAULT_MAX_TOTAL_QUERIES
    max_depth_iterations: int = DEFAULT_MAX_DEPTH_ITERATIONS
    queries_issued: int = 0
    depth_iterations: int = 0

    @property
    def queries_exhausted(self) -> bool:
        return self.queries_issued >= self.max_total_queries

    @property
    def depth_exhausted(self) -> bool:
        return self.depth_iterations >= self.max_depth_iterations

    def try_issue_query(self) -> bool:
        """Reserve one query slot. Returns False when the cap is reached."""
        if self.queries_exhausted:
            return False
        self.queries_issued += 1
        return True

    def try_expand(self) -> bool:
        """Reserve one recursive expansion. Returns False when the cap is reached."""
        if self.depth_exhausted or self.queries_exhausted:
            return False
        self.depth_iterations += 1
        return True


@dataclass
class ResearchAccumulator:
    """Insertion-ordered sets backing one driver run."""

    learnings: dict[str, None] = field(default_factory=dict)
    visited_urls: dict[str, None] = field(default_factory=dict)

    def add(self, learnings: list[str], urls: list[str]) -> None:
        for learning in learnings:
            self.learnings.setdefault(learning, None)
        for url in urls:
            self.visited_urls.setdefault(url, None)

    def snapshot(self) -> ResearchResult:
        return ResearchResult(
            learnings=list(self.learnings),
            visited_urls=list(self.visited_urls),
        )


class AgentState(TypedDict, total=False):
    """LangGraph state for the end-to-end research pipeline."""

    topic: str
    clarifying_answers: list[str]
    breadth: int
    depth: int
    research_plan: Optional[ResearchPlan]
    learnings: list[str]
    visited_urls: list[str]
    final_report: str
