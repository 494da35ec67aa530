"""
Logging setup for the service.

Usage:
    from cali.core.logging_config import setup_logging

    setup_logging(settings.log_level)

Modules log through ``logging.getLogger(__name__)``.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def setup_logging(level: str = "INFO") -> None:
    global _configured

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)

    # SQL statements are logged through the engine's echo flag instead.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _configured = True
