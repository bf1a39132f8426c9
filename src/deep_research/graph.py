"""
Deep Research Graph Construction

构建端到端深度研究图：
1. plan -> research -> report
2. frontier 策略（或调用方已提供计划）时跳过 plan 节点：START -> research -> report

LLM 与搜索 provider 可以在构建时注入；未注入时由每次调用的
RunnableConfig（model_provider / model_name / search_provider）解析。
"""

import asyncio
from typing import Literal, Optional, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, START, StateGraph

from src.config.settings import ResearchStrategyType, resolve_search_settings
from src.tools.base import SearchProvider
from src.utils.logging_config import get_logger

from .config import DeepResearchConfig, parse_deep_research_config
from .nodes import deep_research, generate_plan, write_report
from .state import AgentState, ResearchRequest
from .utils.llm import get_llm
from .utils.progress import ProgressCallback
from .utils.search import get_search_provider

logger = get_logger(__name__)


def build_deep_research_graph(
    llm: Optional[BaseChatModel] = None,
    search: Optional[SearchProvider] = None,
):
    """
    构建完整的深度研究图。

    流程:
        START --(plan driven, no plan)--> plan -> research -> report -> END
          \\------(frontier / plan given)------^

    Args:
        llm: 所有节点共享的聊天模型（可选）。
        search: 搜索 provider（可选）。

    Returns:
        编译后的 StateGraph，准备执行。
    """

    def _llm(cfg: DeepResearchConfig) -> BaseChatModel:
        return llm or get_llm(cfg.model_provider, cfg.model_name)

    def _search(cfg: DeepResearchConfig) -> SearchProvider:
        return search or get_search_provider(resolve_search_settings(cfg.search_provider.value))

    async def plan_node(state: AgentState, config: RunnableConfig) -> dict:
        cfg = parse_deep_research_config(config)
        plan = await generate_plan(
            _llm(cfg),
            state["topic"],
            state.get("clarifying_answers", []),
        )
        return {"research_plan": plan}

    async def research_node(state: AgentState, config: RunnableConfig) -> dict:
        cfg = parse_deep_research_config(config)
        request_fields = {
            "topic": state["topic"],
            "clarifying_answers": state.get("clarifying_answers", []),
            "research_plan": state.get("research_plan"),
        }
        # 未提供时使用 ResearchRequest 的默认值
        for key in ("breadth", "depth"):
            if state.get(key) is not None:
                request_fields[key] = state[key]

        result = await deep_research(
            ResearchRequest(**request_fields),
            llm=_llm(cfg),
            search=_search(cfg),
            settings=cfg.settings,
            on_progress=cfg.on_progress,
            cancel_event=cfg.cancel_event,
        )
        return {"learnings": result.learnings, "visited_urls": result.visited_urls}

    async def report_node(state: AgentState, config: RunnableConfig) -> dict:
        cfg = parse_deep_research_config(config)
        report = await write_report(
            _llm(cfg),
            state["topic"],
            state.get("learnings", []),
            state.get("visited_urls", []),
            token_budget=cfg.settings.report_token_budget,
        )
        return {"final_report": report}

    def route_start(state: AgentState, config: RunnableConfig) -> Literal["plan", "research"]:
        if state.get("research_plan") is not None:
            return "research"
        cfg = parse_deep_research_config(config)
        if cfg.strategy == ResearchStrategyType.FRONTIER:
            return "research"
        return "plan"

    workflow = StateGraph(AgentState)

    workflow.add_node("plan", plan_node)
    workflow.add_node("research", research_node)
    workflow.add_node("report", report_node)

    workflow.add_conditional_edges(
        START,
        route_start,
        {"plan": "plan", "research": "research"},
    )
    workflow.add_edge("plan", "research")
    workflow.add_edge("research", "report")
    workflow.add_edge("report", END)

    return workflow.compile()


async def run_deep_research(
    topic: str,
    clarifying_answers: Sequence[str] = (),
    breadth: Optional[int] = None,
    depth: Optional[int] = None,
    *,
    llm: Optional[BaseChatModel] = None,
    search: Optional[SearchProvider] = None,
    strategy: Optional[str] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
    config: Optional[dict] = None,
) -> str:
    """
    运行完整的深度研究流程并返回最终报告。

    Args:
        topic: 研究主题。
        clarifying_answers: 澄清问题的回答。
        breadth: 研究广度 [3, 10]（可选）。
        depth: 研究深度 [1, 5]（可选）。
        llm: 聊天模型（可选，默认按环境变量创建）。
        search: 搜索 provider（可选）。
        strategy: "plan" 或 "frontier"（可选）。
        on_progress: 进度回调 ``(percent, label)``。
        cancel_event: 取消事件。
        config: 额外的 RunnableConfig 配置。

    Returns:
        最终研究报告（Markdown，含 Sources 章节）。
    """
    graph = build_deep_research_graph(llm=llm, search=search)

    run_config: dict = dict(config or {})
    configurable = dict(run_config.get("configurable", {}))
    if strategy is not None:
        configurable["strategy"] = strategy
    if on_progress is not None:
        configurable["on_progress"] = on_progress
    if cancel_event is not None:
        configurable["cancel_event"] = cancel_event
    run_config["configurable"] = configurable

    initial_state: AgentState = {
        "topic": topic,
        "clarifying_answers": list(clarifying_answers),
    }
    if breadth is not None:
        initial_state["breadth"] = breadth
    if depth is not None:
        initial_state["depth"] = depth

    result = await graph.ainvoke(initial_state, run_config)
    return result.get("final_report", "")
