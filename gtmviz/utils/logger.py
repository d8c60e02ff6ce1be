"""Utilities for logging.

Authors: gtmviz developers
"""

import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from logging import LoggerAdapter
from typing import Iterator

LOGGER_NAME = "gtmviz"
NO_PAIR_TAG = "-"

# Tag of the image pair currently being processed. Set by `pair_context`, read by every log call.
_PAIR_TAG: str = NO_PAIR_TAG


def get_pair_tag() -> str:
    """Returns the tag of the image pair currently being processed, e.g. "pair 2/5"."""
    return _PAIR_TAG


@contextmanager
def pair_context(pair_idx: int, num_pairs: int) -> Iterator[None]:
    """Tags all log records emitted within the context with the given (0-based) pair index.

    Args:
        pair_idx: index of the image pair being processed.
        num_pairs: total number of image pairs in the run.
    """
    global _PAIR_TAG

    _PAIR_TAG = f"pair {pair_idx + 1}/{num_pairs}"
    try:
        yield
    finally:
        _PAIR_TAG = NO_PAIR_TAG


class PairAwareAdapter(LoggerAdapter):
    """LoggerAdapter that injects the current pair tag into LogRecords.

    The tag is read at every log call, not at adapter creation, as adapters are created at import time.
    """

    def __init__(self, logger: logging.Logger):
        super().__init__(logger, {})

    def process(self, msg, kwargs):
        if "extra" not in kwargs:
            kwargs["extra"] = {}
        kwargs["extra"]["pair_tag"] = _PAIR_TAG

        return msg, kwargs


class UTCFormatter(logging.Formatter):
    """Formatter with UTC timestamps."""

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.strftime("%Y-%m-%d %H:%M:%S")


def get_logger() -> LoggerAdapter:
    """Get the main logger, with the pair tag in every line.

    Log format:
        "2025-10-28 00:00:45 [pair 2/5] [gtm_viewer.py] INFO: message"

    Returns:
        LoggerAdapter: Configured logger adapter instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)

        fmt = "%(asctime)s [%(pair_tag)s] [%(filename)s] %(levelname)s: %(message)s"
        handler.setFormatter(UTCFormatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))

        logger.addHandler(handler)

        # Silence noisy loggers
        pil_logger = logging.getLogger("PIL")
        pil_logger.setLevel(logging.ERROR)

    return PairAwareAdapter(logger)
