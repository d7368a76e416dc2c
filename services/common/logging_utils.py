"""
Logging setup shared by the API process and the council scripts.

Records always go to stderr: council scripts print their JSON result on
stdout, which must carry nothing else.
"""

import logging
import sys

import config

# Council scripts make one HTTP request per calendar month.
NOISY_LOGGERS = ("urllib3", "charset_normalizer")


def setup_logging(level: str | None = None) -> None:
    """
    Configure the root logger once, at `level` or config.LOG_LEVEL.
    Later calls are no-ops.
    """
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    resolved = getattr(logging, str(level or config.LOG_LEVEL).upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(config.LOG_FORMAT))
    root_logger.addHandler(handler)
    root_logger.setLevel(resolved)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
