"""
Clarifying Questions

在研究开始前生成 2-4 个澄清问题（附建议答案），
用户的回答会按顺序传给研究计划与查询生成。
"""

import uuid

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from src.prompts import load_prompt, system_prompt
from src.utils.logging_config import get_logger

from ..structured_outputs import ClarifyingQuestion, ClarifyingQuestions

logger = get_logger(__name__)

MIN_QUESTIONS = 2
MAX_QUESTIONS = 4


async def generate_clarifying_questions(
    llm: BaseChatModel,
    topic: str,
    breadth: int,
    depth: int,
) -> list[ClarifyingQuestion]:
    """
    生成澄清问题。

    Args:
        llm: 支持 with_structured_output 的聊天模型。
        topic: 用户的研究主题。
        breadth: 计划的研究广度（写入提示，帮助模型把握范围）。
        depth: 计划的研究深度。

    Returns:
        最多 4 个问题；缺失 id 的问题会补上随机 id。

    Raises:
        模型或结构校验错误会直接向上抛出。
    """
    prompt_text = load_prompt(
        "deep_research/clarify",
        topic=topic,
        breadth=breadth,
        depth=depth,
        min_questions=MIN_QUESTIONS,
        max_questions=MAX_QUESTIONS,
    )
    llm_with_output = llm.with_structured_output(ClarifyingQuestions)
    result: ClarifyingQuestions = await llm_with_output.ainvoke(
        [SystemMessage(content=system_prompt()), HumanMessage(content=prompt_text)]
    )

    questions = [
        q if q.id else q.model_copy(update={"id": uuid.uuid4().hex[:8]})
        for q in result.questions[:MAX_QUESTIONS]
    ]
    logger.info("Generated clarifying questions", topic=topic, count=len(questions))
    return questions
