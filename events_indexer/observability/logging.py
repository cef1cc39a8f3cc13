"""
Logging setup for events-indexer.

Services log through structlog; repositories and the matcher use stdlib
``logging``. Both end up on a single stdout handler whose formatter runs
the structlog processor chain, so a repository warning and a pipeline
event render the same way: JSON lines in production, console output
everywhere else.

Context bound with ``bound_context`` (the platform during an indexing
cycle, the request id during an API call) is merged into every event
from either side.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from events_indexer.config.settings import get_settings

SERVICE_NAME = "events-indexer"

# Only useful at WARNING and above
QUIET_LOGGERS = (
    "asyncio",
    "asyncpg",
    "httpcore",
    "httpx",
    "openai",
    "uvicorn.access",
)


def add_service_name(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _shared_processors() -> list[Processor]:
    """Processors applied to structlog events and stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service_name,
    ]


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Route structlog and stdlib logging through one stdout handler.

    Safe to call more than once; each call replaces the root handler.

    Args:
        level: Overrides LOG_LEVEL, e.g. "DEBUG" for ``--debug``.
        json_output: Overrides the default of JSON in production only.

    Usage:
        setup_logging()
        logger = structlog.get_logger(__name__)
        logger.info("Batch processed", processed=12, skipped=3, errors=0)
    """
    settings = get_settings()
    level = (level or settings.log_level).upper()
    if json_output is None:
        json_output = settings.is_production

    shared = _shared_processors()

    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    render: list[Processor] = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if json_output:
        render += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        render.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(foreign_pre_chain=shared, processors=render)
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def bound_context(**kwargs) -> Iterator[None]:
    """Bind context for a block; previous values come back afterwards."""
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
