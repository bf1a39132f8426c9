"""
Context Compression Utilities

Token counting and prompt trimming so that research content fits the
model's context window.
"""

from functools import lru_cache

import tiktoken
from langchain_text_splitters import RecursiveCharacterTextSplitter

from src.config.settings import DEFAULT_CONTEXT_SIZE

# Below this many characters a trimmed prompt is simply hard-cut
MIN_CHUNK_SIZE = 140
# Rough characters-per-token ratio used to size the split
CHARS_PER_TOKEN = 3


@lru_cache(maxsize=1)
def _get_encoding() -> tiktoken.Encoding:
    return tiktoken.get_encoding("cl100k_base")


def estimate_tokens(text: str) -> int:
    """Count tokens with the cl100k_base encoding."""
    if not text:
        return 0
    return len(_get_encoding().encode(text, disallowed_special=()))


def trim_prompt(text: str, context_size: int = DEFAULT_CONTEXT_SIZE) -> str:
    """
    Trim ``text`` to at most ``context_size`` tokens.

    Splits on natural boundaries (paragraphs, lines, words) at an estimated
    character size and keeps the first chunk, repeating until the result
    fits. Falls back to a hard cut when splitting stops making progress.

    Args:
        text: Prompt content to trim.
        context_size: Token budget.

    Returns:
        The original text if it already fits, otherwise a prefix of it.
    """
    while text:
        length = estimate_tokens(text)
        if length <= context_size:
            return text

        overflow_tokens = length - context_size
        chunk_size = len(text) - overflow_tokens * CHARS_PER_TOKEN
        if chunk_size < MIN_CHUNK_SIZE:
            return text[:MIN_CHUNK_SIZE]

        splitter = RecursiveCharacterTextSplitter(chunk_size=chunk_size, chunk_overlap=0)
        chunks = splitter.split_text(text)
        trimmed = chunks[0] if chunks else ""

        # The splitter can hand back the whole text; force progress with a hard cut
        if len(trimmed) >= len(text):
            trimmed = text[:chunk_size]
        text = trimmed

    return ""
