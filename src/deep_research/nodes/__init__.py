"""
Deep Research Nodes

节点模块，包含研究流程各阶段的实现：澄清、查询规划、计划生成、
结果总结、研究驱动与最终报告。
"""

from .clarify import generate_clarifying_questions
from .plan import PlanParseResult, fallback_plan, generate_plan, parse_plan_output
from .queries import plan_queries
from .report import format_sources, write_report
from .researcher import (
    FrontierStrategy,
    PlanDrivenStrategy,
    ResearchContext,
    ResearchStrategy,
    deep_research,
    select_strategy,
)
from .summarize import summarize

__all__ = [
    "generate_clarifying_questions",
    "plan_queries",
    "generate_plan",
    "fallback_plan",
    "parse_plan_output",
    "PlanParseResult",
    "summarize",
    # 研究驱动
    "deep_research",
    "select_strategy",
    "ResearchContext",
    "ResearchStrategy",
    "PlanDrivenStrategy",
    "FrontierStrategy",
    "write_report",
    "format_sources",
]
