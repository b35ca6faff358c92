"""
Logging setup for the portal API and its helper scripts.
"""

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Client libraries that log every request at INFO.
QUIET_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3", "multipart")


def _level_from(value: int | str) -> int:
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(value.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: int | str = logging.INFO, log_file: Optional[str] = None) -> None:
    """Configure the root logger.

    ``level`` accepts a number or a name such as ``"DEBUG"`` (unknown names
    fall back to INFO). When ``log_file`` is given, records are written there
    as well as to stderr.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=_level_from(level), format=LOG_FORMAT, handlers=handlers)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
