"""Logging setup."""
import logging
import os

from rich.logging import RichHandler

DEFAULT_LEVEL = "WARNING"


def setup_logging(level: str | None = None) -> None:
    """Route log records through rich on the root logger.

    The level comes from ``level``, then ``STUDY_QUIZ_LOG_LEVEL``, then WARNING.
    """
    level = (level or os.environ.get("STUDY_QUIZ_LOG_LEVEL") or DEFAULT_LEVEL).upper()
    handler = RichHandler(rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if isinstance(existing, RichHandler):
            root_logger.removeHandler(existing)
    root_logger.setLevel(level)
    root_logger.addHandler(handler)
