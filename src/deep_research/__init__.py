"""
Deep Research Module

LLM 驱动的深度研究引擎：查询规划、限速检索、结果总结、递归扩展与报告合成。

主要组件：
- deep_research: 研究驱动入口，返回去重后的 learnings 与 URL
- write_report: 从 learnings 生成最终报告
- build_deep_research_graph / run_deep_research: plan -> research -> report 图
- RateLimitedExecutor: 429 退避重试
- ResearchRequest / ResearchPlan / ResearchResult: 数据模型
"""

from .errors import (
    RateLimitError,
    ResearchCancelledError,
    ResearchError,
    ResearchThrottledError,
    SearchProviderError,
)
from .executor import RateLimitedExecutor
from .graph import build_deep_research_graph, run_deep_research
from .nodes import (
    FrontierStrategy,
    PlanDrivenStrategy,
    deep_research,
    generate_clarifying_questions,
    generate_plan,
    plan_queries,
    summarize,
    write_report,
)
from .state import (
    AgentState,
    ResearchPlan,
    ResearchRequest,
    ResearchResult,
    RunBudget,
    SearchQuery,
    Section,
)

__all__ = [
    # 研究流程
    "deep_research",
    "write_report",
    "generate_clarifying_questions",
    "generate_plan",
    "plan_queries",
    "summarize",
    "PlanDrivenStrategy",
    "FrontierStrategy",
    "RateLimitedExecutor",
    # 图构建
    "build_deep_research_graph",
    "run_deep_research",
    # 状态
    "AgentState",
    "ResearchRequest",
    "ResearchPlan",
    "ResearchResult",
    "RunBudget",
    "SearchQuery",
    "Section",
    # 错误
    "ResearchError",
    "ResearchThrottledError",
    "ResearchCancelledError",
    "RateLimitError",
    "SearchProviderError",
]
