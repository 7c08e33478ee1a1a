"""Console logging for the service and the command line."""

from __future__ import annotations

import logging

from rich.logging import RichHandler


def setup_logging(level: str = "info") -> None:
    """Route root logging through a single rich handler at *level*."""

    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    rich_handler = RichHandler(
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_suppress=[logging],
    )
    root_logger.handlers = [rich_handler]

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
