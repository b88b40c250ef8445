"""Logging configuration for reactgraph."""

import logging
import sys
from collections.abc import Iterable

# Chatty client libraries used by the chat model and SQLite adapters
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "aiosqlite")


def configure_logging(
    log_level: str = "INFO", quiet: Iterable[str] = NOISY_LOGGERS
) -> None:
    """Configure logging for the engine.

    The root handler is only installed when none exists, so an embedding
    application keeps its own handlers. The ``reactgraph`` logger always
    follows ``log_level``.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        quiet: Loggers capped at WARNING
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("reactgraph").setLevel(level)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured at {log_level} level")
