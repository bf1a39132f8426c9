"""
LLM Factory

统一的 LLM 实例创建模块。
支持 openai（含 OpenAI 兼容端点）, anthropic, openrouter 三种 provider。
所有研究节点都通过 with_structured_output() 使用这里创建的模型。
"""

import os
from typing import Optional, Union

import httpx
from langchain_anthropic import ChatAnthropic
from langchain_openai import ChatOpenAI

from src.config.settings import get_default_model_for_provider

# 结构化输出是一次性返回的，不需要 streaming 那么长的 read 超时；
# 单次调用的上限由各节点自己的 asyncio 超时控制
DEFAULT_TIMEOUT = httpx.Timeout(
    connect=30.0,
    read=180.0,
    write=30.0,
    pool=30.0,
)

# OpenRouter 配置
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENROUTER_MODELS = {
    "claude-sonnet-4.5": "anthropic/claude-sonnet-4.5",
    "gpt-4o-mini": "openai/gpt-4o-mini",
    "gpt-5": "openai/gpt-5",
    "gemini-3-flash": "google/gemini-3-flash-preview",
}


def create_llm(
    model_provider: str = "openai",
    model_name: Optional[str] = None,
    base_url: Optional[str] = None,
) -> Union[ChatOpenAI, ChatAnthropic]:
    """
    创建 LLM 实例。

    Args:
        model_provider: LLM 提供商 (openai, anthropic, openrouter)。
        model_name: 具体的模型名称，未提供时使用 provider 默认值。
        base_url: OpenAI 兼容端点地址（仅 openai provider 使用），
                  未提供时读取 OPENAI_API_BASE_URL。

    Returns:
        LLM 实例 (ChatOpenAI 或 ChatAnthropic)。

    Raises:
        ValueError: 未设置必要的 API key 或 provider 未知。
    """
    resolved_model = model_name or get_default_model_for_provider(model_provider)

    if model_provider == "openai":
        return ChatOpenAI(
            model=resolved_model,
            base_url=base_url or os.getenv("OPENAI_API_BASE_URL") or None,
            temperature=0.7,
            max_retries=5,  # SDK 层面自动重试
            timeout=DEFAULT_TIMEOUT,
        )
    elif model_provider == "anthropic":
        return ChatAnthropic(
            model=resolved_model,
            max_retries=5,
            timeout=DEFAULT_TIMEOUT,
        )
    elif model_provider == "openrouter":
        api_key = os.getenv("OPENROUTER_API_KEY")
        if not api_key:
            raise ValueError("OPENROUTER_API_KEY environment variable not set")

        # 支持简短别名（如 "gpt-5"）或完整模型名（如 "openai/gpt-5"）
        if model_name in OPENROUTER_MODELS:
            resolved_model = OPENROUTER_MODELS[model_name]

        return ChatOpenAI(
            model=resolved_model,
            api_key=api_key,
            base_url=OPENROUTER_BASE_URL,
            max_retries=5,
            timeout=DEFAULT_TIMEOUT,
            default_headers={
                "HTTP-Referer": os.getenv("OPENROUTER_REFERER", ""),
                "X-Title": os.getenv("OPENROUTER_APP_TITLE", "Deep Research Engine"),
            },
        )
    else:
        raise ValueError(f"Unknown provider: {model_provider}")
