"""Logging setup for the API process."""

import logging
import sys
from typing import Optional

from config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once per process.

    Args:
        level: Log level name. Defaults to the LOG_LEVEL setting.
    """
    global _configured
    root = logging.getLogger()
    root.setLevel((level or LOG_LEVEL).upper())
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    # SQL echo is too noisy outside of debugging sessions
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
