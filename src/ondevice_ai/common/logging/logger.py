# shared service logger, import as `from ondevice_ai.common.logging.logger import logger`

import logging
import os
import sys

LOGGER_NAME = "ondevice_ai"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(module)s:%(lineno)d | %(message)s"

def _build_logger() -> logging.Logger:
    """
    Builds the single service-wide logger.
    - Level is read from LOG_LEVEL (defaults to INFO).
    - Handler is only attached once, so re-imports don't duplicate log lines.
    """
    service_logger = logging.getLogger(LOGGER_NAME)
    service_logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

    if not service_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        service_logger.addHandler(handler)
    # NOTE: don't bubble up to root, uvicorn/pytest attach their own root handlers
    service_logger.propagate = False
    return service_logger

logger = _build_logger()
