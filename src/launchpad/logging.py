import logging
import sys
from typing import Any

import structlog


def configure_logging(level: int | str = logging.INFO, fmt: str = "console") -> None:
    """Configure structlog/standard logging bridge.

    ``fmt`` selects the renderer: ``json`` for CI log shipping, ``console``
    for humans watching a deploy.
    """

    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    renderer: Any = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr, force=True)


def bind_context(**kwargs: Any) -> None:
    """Attach fields (project, cluster) to every log line that follows."""

    structlog.contextvars.bind_contextvars(**kwargs)
