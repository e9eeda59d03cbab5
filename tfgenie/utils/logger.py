"""Logging setup shared by the API server, the CLI and the DB scripts.

All modules log through named loggers obtained from :func:`get_logger`;
the root handler is installed once by :func:`setup_logging`.
"""

import logging
import sys

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at INFO.
_NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "multipart")


def setup_logging(level: str = "INFO", sql_echo: bool = False) -> None:
    """Configure the root logger with a standard format.

    Args:
        level: Logging level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Unknown names fall back to INFO.
        sql_echo: Emit every SQL statement executed through SQLAlchemy.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if sql_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name`` (usually the caller's ``__name__``)."""
    return logging.getLogger(name)
