"""Logging helpers that enrich records with request context.

``RequestIdFilter`` injects the current request id (set by the gateway
middleware) into every record, and ``configure_logging`` installs the JSON
formatter used by all ``storefront`` loggers.
"""

import logging
from logging import Filter, LogRecord

from pythonjsonlogger import jsonlogger

from .middleware import REQUEST_ID_CTX

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"


class RequestIdFilter(Filter):
    """Attach a ``request_id`` attribute to log records.

    Outside of a request the ContextVar default ``"-"`` is used, so
    formatters can always reference ``%(request_id)s``.
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = REQUEST_ID_CTX.get()
        return True


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Install a JSON stream handler on the ``storefront`` logger once.

    Args:
        level: Level name applied to the ``storefront`` logger.

    Returns:
        logging.Logger: The configured ``storefront`` logger.
    """
    logger = logging.getLogger("storefront")
    if not logger.handlers:
        h = logging.StreamHandler()
        h.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))
        h.addFilter(RequestIdFilter())
        logger.addHandler(h)
    logger.setLevel(level)
    return logger
