"""Structured logging configuration using structlog."""

import logging
import sys

import structlog
from structlog.typing import Processor


def configure_logging(verbose: bool = False, debug: bool = False, json_output: bool = False) -> None:
    """Configure structlog for console or JSON output on stdout.

    Trigger lines are logged at info level, so they only show up in
    verbose mode. Debug mode additionally shows watcher and subscriber
    internals.

    Args:
        verbose: Enable info-level logging when True.
        debug: Enable debug-level logging when True.
        json_output: Render JSON lines instead of console text.
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    renderer: Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # watchdog logs through the standard library
    logging.getLogger("watchdog").setLevel(max(level, logging.INFO))
