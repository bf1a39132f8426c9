"""
Prompt Loader Module

This module loads and renders the Jinja2 prompt templates (Markdown files)
used by the deep research nodes.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape


class PromptLoader:
    """
    A loader for managing and rendering Jinja2 prompt templates.

    Templates live under ``templates/`` and are addressed by a relative
    name such as ``deep_research/plan``.
    """

    _instance: Optional["PromptLoader"] = None

    def __init__(self, templates_dir: Optional[Path] = None):
        if templates_dir is None:
            templates_dir = Path(__file__).parent / "templates"

        self.templates_dir = templates_dir
        self._env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(enabled_extensions=()),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )

    @classmethod
    def get_instance(cls) -> "PromptLoader":
        """Get or create the singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def load(self, template_name: str, **kwargs: Any) -> str:
        """
        Load and render a prompt template.

        Args:
            template_name: Template path relative to the templates directory,
                with or without the .md extension.
            **kwargs: Variables to pass to the template for rendering.

        Raises:
            jinja2.TemplateNotFound: If the template file doesn't exist.
            jinja2.UndefinedError: If the template uses a variable that was not passed.
        """
        if not template_name.endswith(".md"):
            template_name = f"{template_name}.md"

        template = self._env.get_template(template_name)
        return template.render(**kwargs).strip()

    def list_templates(self) -> list[str]:
        """List all available prompt templates, relative to the templates directory."""
        return sorted(
            str(f.relative_to(self.templates_dir))
            for f in self.templates_dir.rglob("*.md")
            if f.is_file()
        )


def load_prompt(template_name: str, **kwargs: Any) -> str:
    """
    Convenience function to load and render a prompt template.

    Example:
        >>> prompt = load_prompt("deep_research/serp_queries", topic="...", num_queries=3)
    """
    return PromptLoader.get_instance().load(template_name, **kwargs)


def system_prompt(now: Optional[datetime] = None) -> str:
    """Render the shared research-analyst system prompt with today's date."""
    now = now or datetime.now()
    return load_prompt("deep_research/system", current_date=now.isoformat(timespec="seconds"))
