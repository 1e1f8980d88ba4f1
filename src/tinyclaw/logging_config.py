"""structlog configuration.

Learn: Every module grabs `structlog.get_logger()` and logs dotted event
names with key-value context, e.g.

    logger.info("invoke.provider_selected", agent_id="coder", provider="openai")

contextvars are merged in first so anything bound for the current
invocation (agent_id) shows up on every line it emits.
"""

import logging
import sys

import structlog


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog once at process start. Log lines go to stderr."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )
