"""
Research Plan Generator

将用户主题与澄清回答转换为结构化研究计划（目录 + 每个章节的检索查询）。
与查询规划不同，这里总能返回可执行的计划：模型失败时退回到一个
固定的三章节大纲。
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from src.prompts import load_prompt, system_prompt
from src.utils.logging_config import get_logger

from ..state import (
    DEFAULT_PLAN_BREADTH,
    DEFAULT_PLAN_DEPTH,
    MAX_BREADTH,
    MAX_DEPTH,
    MIN_BREADTH,
    MIN_DEPTH,
    ResearchPlan,
    Section,
)
from ..structured_outputs import ResearchPlanOutput

logger = get_logger(__name__)


@dataclass(frozen=True)
class PlanParseResult:
    """Either a usable plan or the reason the model output was rejected."""

    plan: Optional[ResearchPlan] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.plan is not None


def _normalize_estimate(value: Optional[float], default: int, low: int, high: int) -> int:
    if value is None or not isinstance(value, (int, float)) or not math.isfinite(value):
        return default
    return max(low, min(high, round(value)))


def parse_plan_output(output: Optional[ResearchPlanOutput]) -> PlanParseResult:
    """
    Validate a raw model plan.

    Missing estimates fall back to depth 3 / breadth 6; out-of-range ones
    are clamped. A plan without a single usable query is rejected.
    """
    if output is None:
        return PlanParseResult(error="model returned no plan")

    sections = []
    for raw in output.table_of_contents.sections:
        heading = raw.heading.strip()
        if not heading:
            continue
        queries = [q.strip() for q in raw.research_queries if q and q.strip()]
        subheadings = [s.strip() for s in raw.subheadings if s and s.strip()]
        sections.append(Section(heading=heading, subheadings=subheadings, queries=queries))

    if not any(section.queries for section in sections):
        return PlanParseResult(error="plan contains no research queries")

    return PlanParseResult(
        plan=ResearchPlan(
            title=output.table_of_contents.title.strip() or "Research Plan",
            sections=sections,
            estimated_depth=_normalize_estimate(
                output.estimated_depth, DEFAULT_PLAN_DEPTH, MIN_DEPTH, MAX_DEPTH
            ),
            estimated_breadth=_normalize_estimate(
                output.estimated_breadth, DEFAULT_PLAN_BREADTH, MIN_BREADTH, MAX_BREADTH
            ),
        )
    )


def fallback_plan(topic: str) -> ResearchPlan:
    """Generic three-section outline derived mechanically from the topic."""
    topic = topic.strip() or "the topic"
    return ResearchPlan(
        title=f"Research Report: {topic}",
        sections=[
            Section(
                heading="Introduction",
                subheadings=["Background", "Key Concepts"],
                queries=[f"{topic} overview", f"{topic} background and history"],
            ),
            Section(
                heading="Main Analysis",
                subheadings=["Current State", "Key Findings"],
                queries=[f"{topic} latest research findings", f"{topic} analysis and evidence"],
            ),
            Section(
                heading="Conclusion",
                subheadings=["Implications", "Future Outlook"],
                queries=[f"{topic} implications", f"{topic} future trends"],
            ),
        ],
        estimated_depth=DEFAULT_PLAN_DEPTH,
        estimated_breadth=DEFAULT_PLAN_BREADTH,
    )


async def generate_plan(
    llm: BaseChatModel,
    topic: str,
    clarifying_answers: Sequence[str] = (),
) -> ResearchPlan:
    """
    生成研究计划。

    Args:
        llm: 支持 with_structured_output 的聊天模型。
        topic: 研究主题。
        clarifying_answers: 澄清问题的回答（按问题顺序）。

    Returns:
        ResearchPlan；任何失败都会返回 fallback_plan(topic)。
    """
    prompt_text = load_prompt(
        "deep_research/plan",
        topic=topic,
        answers=list(clarifying_answers),
    )

    try:
        llm_with_output = llm.with_structured_output(ResearchPlanOutput)
        output: ResearchPlanOutput = await llm_with_output.ainvoke(
            [SystemMessage(content=system_prompt()), HumanMessage(content=prompt_text)]
        )
        parsed = parse_plan_output(output)
    except Exception as e:
        parsed = PlanParseResult(error=f"{type(e).__name__}: {e}")

    if not parsed.ok:
        logger.warning("Research plan generation failed, using fallback plan", error=parsed.error)
        return fallback_plan(topic)

    plan = parsed.plan
    logger.info(
        "Research plan generated",
        title=plan.title,
        sections=[s.heading for s in plan.sections],
        depth=plan.estimated_depth,
        breadth=plan.estimated_breadth,
    )
    return plan
