"""Process-wide logger.

Every line carries a short run id so that log output from one process
lifetime (and therefore one in-memory queue) can be told apart after restarts.
"""
from __future__ import annotations

import logging
import uuid

from cfgrelay.config import settings

_RUN_ID = uuid.uuid4().hex[:8]


def get_run_id() -> str:
    return _RUN_ID


class _RunIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _RUN_ID
        return True


logger = logging.getLogger("cfgrelay")
logger.setLevel(settings.LOG_LEVEL.upper())
logger.propagate = False

if not logger.handlers:
    _console = logging.StreamHandler()
    _console.addFilter(_RunIdFilter())
    _console.setFormatter(logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | run=%(run_id)s | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    ))
    logger.addHandler(_console)


def get_logger(name: str) -> logging.Logger:
    """Child logger sharing the ``cfgrelay`` handler, e.g. ``cfgrelay.queue``."""
    return logger.getChild(name)
