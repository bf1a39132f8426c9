"""
Structured Logging Configuration

Provides a unified logging system using structlog that supports:
- Development mode: Colored, human-readable console output
- Production mode: JSON lines for log aggregation

Usage:
    from src.utils.logging_config import configure_logging, get_logger

    # Initialize once at application startup
    configure_logging()

    # Get a logger in any module
    logger = get_logger(__name__)
    logger.info("Query processed", query="caffeine sleep", learnings=3)
"""

import logging
import os
import sys
from typing import Optional

import structlog
from structlog.types import Processor


def _is_production() -> bool:
    """Check if running in production environment."""
    env = os.getenv("ENV", os.getenv("ENVIRONMENT", "development")).lower()
    return env in ("production", "prod")


def _get_log_level() -> int:
    """Get log level from environment variable."""
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def configure_logging(
    json_format: Optional[bool] = None,
    log_level: Optional[int] = None,
) -> None:
    """
    Configure structlog for the application.

    Logs go to stderr so the CLI can keep stdout for the report itself.

    Args:
        json_format: If True, output JSON logs. If None, auto-detect based on ENV.
        log_level: Logging level. If None, read from LOG_LEVEL env var (default: INFO).
    """
    if json_format is None:
        json_format = _is_production()

    if log_level is None:
        log_level = _get_log_level()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,  # run_id / topic bound per research run
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        renderer: Processor = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    # Suppress noisy third-party loggers
    for noisy in ("httpx", "httpcore", "openai", "anthropic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger instance.

    Args:
        name: Logger name (typically __name__). If None, returns root logger.
    """
    return structlog.get_logger(name)


def bound_context(**kwargs):
    """
    Bind context variables for the duration of a with-block.

    Only the given keys are unbound on exit; keys bound by the caller survive.
    The research driver binds run_id and strategy around every run.
    """
    return structlog.contextvars.bound_contextvars(**kwargs)
