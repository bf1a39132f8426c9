"""
LLM Utilities

为深度研究节点创建 LLM 实例的函数。
模型解析与 src/config/llm_factory.py 保持一致，provider/模型名按
“调用方覆盖 > 环境变量 > 默认值”的顺序确定。
"""

from typing import Optional, Union

from langchain_anthropic import ChatAnthropic
from langchain_openai import ChatOpenAI

from src.config.llm_factory import create_llm
from src.config.settings import resolve_llm_settings


def get_llm(
    model_provider: Optional[str] = None,
    model_name: Optional[str] = None,
) -> Union[ChatOpenAI, ChatAnthropic]:
    """
    获取深度研究节点的 LLM 实例。

    Args:
        model_provider: LLM 提供商 (openai, anthropic, openrouter)，未提供时读取 MODEL_PROVIDER。
        model_name: 具体的模型名称，未提供时读取 MODEL_NAME 或使用 provider 默认值。

    Returns:
        LLM 实例。
    """
    llm_settings = resolve_llm_settings(
        provider_override=model_provider,
        model_name_override=model_name,
    )
    return create_llm(
        model_provider=llm_settings.provider,
        model_name=llm_settings.model_name,
        base_url=llm_settings.base_url,
    )
