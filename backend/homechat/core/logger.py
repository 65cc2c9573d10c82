"""
Logging setup.

Modules either import the shared ``logger`` or create their own with
``setup_logger(__name__)``. Both write to stderr with the same format.
"""

import logging
import sys

from homechat.core.config import get_settings

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logger(name: str = "homechat") -> logging.Logger:
    """Return a configured logger; handlers are attached once per name."""
    log = logging.getLogger(name)
    if log.handlers:
        return log

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    log.addHandler(handler)

    settings = get_settings()
    level = "DEBUG" if settings.DEBUG else settings.LOG_LEVEL.upper()
    log.setLevel(getattr(logging, level, logging.INFO))
    log.propagate = False
    return log


logger = setup_logger()
