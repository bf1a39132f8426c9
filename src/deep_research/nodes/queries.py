"""
Query Planner

Turns a topic (plus clarifying answers and anything already learned) into
a bounded list of distinct SERP queries, each with a research goal.
"""

from typing import Optional, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from src.prompts import load_prompt, system_prompt
from src.utils.logging_config import get_logger

from ..state import SearchQuery
from ..structured_outputs import SerpQueryList

logger = get_logger(__name__)


async def plan_queries(
    llm: BaseChatModel,
    topic: str,
    *,
    max_queries: int = 3,
    prior_learnings: Optional[Sequence[str]] = None,
    clarifying_answers: Optional[Sequence[str]] = None,
) -> list[SearchQuery]:
    """
    Ask the model for up to ``max_queries`` search queries.

    There is no fallback here: a model or schema error propagates, since
    there is no safe default for what to search.

    Args:
        llm: Chat model supporting with_structured_output.
        topic: Research topic or follow-up question.
        max_queries: Upper bound on returned queries (the model may return fewer).
        prior_learnings: Learnings so far, used to steer toward new ground.
        clarifying_answers: User answers to the clarifying questions.
    """
    if max_queries < 1:
        return []

    prompt_text = load_prompt(
        "deep_research/serp_queries",
        topic=topic,
        answers=list(clarifying_answers or []),
        learnings=list(prior_learnings or []),
        num_queries=max_queries,
    )
    llm_with_output = llm.with_structured_output(SerpQueryList)
    result: SerpQueryList = await llm_with_output.ainvoke(
        [SystemMessage(content=system_prompt()), HumanMessage(content=prompt_text)]
    )

    queries = [
        SearchQuery(query=q.query.strip(), research_goal=q.research_goal)
        for q in result.queries
        if q.query and q.query.strip()
    ][:max_queries]

    logger.info("Planned SERP queries", topic=topic, queries=[q.query for q in queries])
    return queries
