"""
Deep Research Main Entry Point

This module provides the command line entry point for the deep research
engine: it asks a few clarifying questions, runs the
plan -> research -> report pipeline and prints (or saves) the final report.
"""

import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from src.config.settings import (
    SearchProviderType,
    resolve_llm_settings,
    resolve_search_settings,
)
from src.deep_research import (
    ResearchCancelledError,
    ResearchThrottledError,
    generate_clarifying_questions,
    run_deep_research,
)
from src.deep_research.state import MAX_BREADTH, MAX_DEPTH, MIN_BREADTH, MIN_DEPTH
from src.deep_research.structured_outputs import ClarifyingQuestion
from src.deep_research.utils import get_llm, get_search_provider
from src.utils.logging_config import configure_logging

REQUIRED_KEYS_BY_PROVIDER = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}


def _check_api_keys(model_provider: str, search_provider: SearchProviderType) -> None:
    """Exit early when the selected providers have no credentials."""
    missing = []
    key = REQUIRED_KEYS_BY_PROVIDER.get(model_provider)
    if key and not os.getenv(key):
        missing.append(key)
    if search_provider == SearchProviderType.TAVILY and not os.getenv("TAVILY_API_KEY"):
        missing.append("TAVILY_API_KEY")
    if (
        search_provider == SearchProviderType.FIRECRAWL
        and not os.getenv("FIRECRAWL_API_KEY")
        and not os.getenv("FIRECRAWL_BASE_URL")
    ):
        missing.append("FIRECRAWL_API_KEY")

    if missing:
        print(f"Error: {', '.join(missing)} environment variable not set")
        print("Please set it in your .env file or environment")
        sys.exit(1)


def _ask(prompt: str, default: str = "") -> str:
    suffix = f" [{default}]" if default else ""
    answer = input(f"{prompt}{suffix}: ").strip()
    return answer or default


def _ask_question(question: ClarifyingQuestion) -> str:
    print(f"\n❓ {question.question}")
    if question.goal:
        print(f"   ({question.goal})")

    if question.type == "choice" and question.options:
        for i, option in enumerate(question.options, 1):
            print(f"   {i}. {option}")
        answer = _ask("   Your choice", question.suggested_answer)
        if answer.isdigit() and 1 <= int(answer) <= len(question.options):
            return question.options[int(answer) - 1]
        return answer

    if question.type == "multiline":
        print("   (finish with an empty line)")
        lines = []
        while line := input("   > ").rstrip():
            lines.append(line)
        return "\n".join(lines) or question.suggested_answer

    return _ask("   Your answer", question.suggested_answer)


def _print_progress(percent: int, label: str) -> None:
    print(f"[{percent:3d}%] {label}")


def _cancel_on_interrupt(loop: asyncio.AbstractEventLoop, cancel_event: asyncio.Event) -> bool:
    """Route Ctrl-C to cancel_event. Returns False where the loop has no signal support."""
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    except NotImplementedError:
        return False
    return True


async def main(
    query: Optional[str] = None,
    breadth: int = 4,
    depth: int = 2,
    strategy: Optional[str] = None,
    model_provider: Optional[str] = None,
    model_name: Optional[str] = None,
    output: Optional[str] = None,
    ask_questions: bool = True,
    verbose: bool = False,
) -> None:
    """
    Run one deep research session.

    Args:
        query: Research topic. Prompted for when None.
        breadth: Research breadth, 3-10.
        depth: Research depth, 1-5.
        strategy: 'plan' or 'frontier' (default from DEEP_RESEARCH_STRATEGY).
        model_provider: LLM provider ('openai', 'anthropic' or 'openrouter').
        model_name: Specific model name.
        output: Path to write the report to; printed when None.
        ask_questions: Ask clarifying questions before researching.
        verbose: Log at DEBUG level.
    """
    # Load environment variables
    load_dotenv()
    configure_logging(log_level=logging.DEBUG if verbose else None)

    llm_settings = resolve_llm_settings(provider_override=model_provider, model_name_override=model_name)
    search_settings = resolve_search_settings()
    _check_api_keys(llm_settings.provider, search_settings.provider)

    print("=" * 60)
    print("Deep Research")
    print(f"Provider: {llm_settings.provider} | Model: {llm_settings.model_name or 'default'}")
    print(f"Search: {search_settings.provider.value} | Breadth: {breadth} | Depth: {depth}")
    print("=" * 60)

    topic = query or input("\n📚 What would you like to research? ").strip()
    if not topic:
        print("Error: research topic must not be empty")
        sys.exit(1)

    llm = get_llm(llm_settings.provider, llm_settings.model_name)
    search = get_search_provider(search_settings)

    answers: list[str] = []
    if ask_questions:
        print("\n🤔 Generating clarifying questions...")
        questions = await generate_clarifying_questions(llm, topic, breadth, depth)
        answers = [_ask_question(q) for q in questions]

    print("\n🔍 Researching...\n")
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    interrupt_handled = _cancel_on_interrupt(loop, cancel_event)
    if interrupt_handled:
        print("(Ctrl-C stops after the current query)\n")
    try:
        report = await run_deep_research(
            topic,
            answers,
            breadth,
            depth,
            llm=llm,
            search=search,
            strategy=strategy,
            on_progress=_print_progress,
            cancel_event=cancel_event,
        )
    except ResearchThrottledError as e:
        print(f"\n⚠ {e}")
        print(f"Collected {len(e.partial.learnings)} learnings before stopping. Try again later.")
        sys.exit(2)
    except ResearchCancelledError as e:
        print(f"\n⚠ {e}")
        print(f"Collected {len(e.partial.learnings)} learnings before stopping.")
        sys.exit(130)
    finally:
        if interrupt_handled:
            loop.remove_signal_handler(signal.SIGINT)

    if output:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(report, encoding="utf-8")
        print(f"\n✓ Report saved to {path}")
    else:
        print("\n" + "-" * 60)
        print(report)
        print("-" * 60)


def run_cli() -> None:
    """CLI entry point for deep research."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Deep Research - LLM-orchestrated web research with a synthesized report"
    )
    parser.add_argument(
        "-q", "--query",
        type=str,
        help="Research topic (prompted for if not provided)",
    )
    parser.add_argument(
        "-b", "--breadth",
        type=int,
        default=4,
        choices=range(MIN_BREADTH, MAX_BREADTH + 1),
        metavar=f"{{{MIN_BREADTH}-{MAX_BREADTH}}}",
        help="Research breadth (default: 4)",
    )
    parser.add_argument(
        "-d", "--depth",
        type=int,
        default=2,
        choices=range(MIN_DEPTH, MAX_DEPTH + 1),
        metavar=f"{{{MIN_DEPTH}-{MAX_DEPTH}}}",
        help="Research depth (default: 2)",
    )
    parser.add_argument(
        "--strategy",
        type=str,
        default=None,
        choices=["plan", "frontier"],
        help="Research strategy (default: DEEP_RESEARCH_STRATEGY or 'plan')",
    )
    parser.add_argument(
        "-p", "--model-provider",
        type=str,
        default=None,
        choices=["openai", "anthropic", "openrouter"],
        help="LLM provider to use (default: MODEL_PROVIDER or 'openai')",
    )
    parser.add_argument(
        "-m", "--model-name",
        type=str,
        default=None,
        help="Model name to use (e.g., 'gpt-4o-mini', 'claude-sonnet-4-20250514')",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Write the report to this file instead of printing it",
    )
    parser.add_argument(
        "--no-questions",
        action="store_true",
        help="Skip the clarifying questions",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    args = parser.parse_args()

    try:
        asyncio.run(
            main(
                query=args.query,
                breadth=args.breadth,
                depth=args.depth,
                strategy=args.strategy,
                model_provider=args.model_provider,
                model_name=args.model_name,
                output=args.output,
                ask_questions=not args.no_questions,
                verbose=args.verbose,
            )
        )
    except KeyboardInterrupt:
        print("\n\nGoodbye!")


if __name__ == "__main__":
    run_cli()
