"""
Final Report Generation

从累积的 learnings 生成最终研究报告，并确定性地追加 Sources 章节。
"""

from typing import Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from src.config.settings import DEFAULT_REPORT_TOKEN_BUDGET
from src.prompts import load_prompt, system_prompt
from src.utils.logging_config import get_logger

from ..structured_outputs import FinalReportOutput
from ..utils.compression import trim_prompt

logger = get_logger(__name__)


def format_sources(visited_urls: Sequence[str]) -> str:
    """Markdown Sources section with one bullet per distinct URL, in order."""
    urls = list(dict.fromkeys(url for url in visited_urls if url))
    bullets = "\n".join(f"- {url}" for url in urls)
    return f"## Sources\n\n{bullets}" if bullets else "## Sources\n"


async def write_report(
    llm: BaseChatModel,
    prompt: str,
    learnings: Sequence[str],
    visited_urls: Sequence[str],
    *,
    token_budget: int = DEFAULT_REPORT_TOKEN_BUDGET,
) -> str:
    """
    生成最终报告。

    Args:
        llm: 支持 with_structured_output 的聊天模型。
        prompt: 用户的原始研究主题。
        learnings: 全部研究发现。
        visited_urls: 全部访问过的 URL（按累积顺序）。
        token_budget: learnings 在提示中允许占用的 token 上限。

    Returns:
        模型生成的 Markdown 正文 + Sources 章节。

    Raises:
        模型或结构校验错误直接向上抛出（报告没有安全的默认值）。
    """
    learnings_text = trim_prompt(
        "\n".join(f"<learning>\n{learning}\n</learning>" for learning in learnings),
        token_budget,
    )
    prompt_text = load_prompt(
        "deep_research/final_report",
        prompt=prompt,
        learnings=learnings_text,
    )

    llm_with_output = llm.with_structured_output(FinalReportOutput)
    result: FinalReportOutput = await llm_with_output.ainvoke(
        [SystemMessage(content=system_prompt()), HumanMessage(content=prompt_text)]
    )

    report = f"{result.report_markdown.rstrip()}\n\n{format_sources(visited_urls)}"
    logger.info(
        "Final report generated",
        learnings=len(learnings),
        sources=len(set(visited_urls)),
        length=len(report),
    )
    return report
