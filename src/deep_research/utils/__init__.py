"""
Deep Research Utilities

工具函数模块，包含：
- compression: token 估算与上下文裁剪
- llm: LLM 实例创建
- progress: 进度事件分发
- search: 搜索 provider 创建
"""

from .compression import estimate_tokens, trim_prompt
from .llm import get_llm
from .progress import ProgressCallback, ProgressReporter
from .search import get_search_provider

__all__ = [
    "estimate_tokens",
    "trim_prompt",
    "get_llm",
    "get_search_provider",
    "ProgressCallback",
    "ProgressReporter",
]
