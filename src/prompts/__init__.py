"""Prompts module for managing research prompts with Jinja2 templates."""

from src.prompts.loader import PromptLoader, load_prompt, system_prompt

__all__ = ["PromptLoader", "load_prompt", "system_prompt"]
