"""
Result Summarizer

Extracts atomic learnings and at most one follow-up question from the raw
results of one search query. Failures here never abort a research run: any
error, timeouts included, yields an empty summary.
"""

import asyncio
from typing import Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from src.config.settings import DEFAULT_MAX_CONTENT_LENGTH, DEFAULT_SUMMARIZE_TIMEOUT
from src.prompts import load_prompt, system_prompt
from src.tools.base import SearchResultItem
from src.utils.logging_config import get_logger

from ..state import SerpSummary
from ..structured_outputs import SerpLearnings

logger = get_logger(__name__)

# One follow-up per query keeps recursive research from branching exponentially
MAX_FOLLOW_UP_QUESTIONS = 1
MAX_LEARNINGS = 3


def combine_contents(items: Sequence[SearchResultItem], max_length: int) -> str:
    """Join item contents with blank lines and hard-cut to ``max_length`` characters."""
    return "\n\n".join(item.content for item in items if item.content)[:max_length]


async def summarize(
    llm: BaseChatModel,
    query: str,
    results: Sequence[SearchResultItem],
    *,
    max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH,
    timeout: float = DEFAULT_SUMMARIZE_TIMEOUT,
    num_learnings: int = MAX_LEARNINGS,
) -> SerpSummary:
    """
    Summarize the raw results of one query.

    Args:
        llm: Chat model supporting with_structured_output.
        query: The query the results belong to.
        results: Raw provider results; incomplete items are dropped.
        max_content_length: Character budget for the combined contents.
        timeout: Seconds before the model call is abandoned.
        num_learnings: Soft cap on learnings requested from the model.

    Returns:
        SerpSummary with de-duplicated learnings, at most one follow-up
        question and the URLs of the items that were used.
    """
    valid = [item for item in results if item.is_complete()]
    if not valid:
        logger.info("No usable results, skipping summarization", query=query)
        return SerpSummary.empty()

    prompt_text = load_prompt(
        "deep_research/summarize",
        query=query,
        contents=combine_contents(valid, max_content_length),
        num_learnings=num_learnings,
        num_follow_up=MAX_FOLLOW_UP_QUESTIONS,
    )

    try:
        llm_with_output = llm.with_structured_output(SerpLearnings)
        result: SerpLearnings = await asyncio.wait_for(
            llm_with_output.ainvoke(
                [SystemMessage(content=system_prompt()), HumanMessage(content=prompt_text)]
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.warning("Summarization timed out", query=query, timeout=timeout)
        return SerpSummary.empty()
    except Exception as e:
        logger.warning("Summarization failed", query=query, error=str(e))
        return SerpSummary.empty()

    if result is None:
        # Structured output parsers return None when the model skips the tool call
        logger.warning("Summarization returned no output", query=query)
        return SerpSummary.empty()

    learnings =[text.strip() for text in result.learnings if text and text.strip()]
    follow_ups = [q.strip() for q in result.follow_up_questions if q and q.strip()]

    return SerpSummary(
        learnings=list(dict.fromkeys(learnings)),
        follow_up_questions=follow_ups[:MAX_FOLLOW_UP_QUESTIONS],
        visited_urls=list(dict.fromkeys(item.url for item in valid)),
    )
