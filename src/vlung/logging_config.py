"""Logger setup for the ``vlung`` namespace."""
import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """Send ``vlung`` log records to stdout, and to ``log_file`` when given."""
    logger = logging.getLogger("vlung")
    logger.setLevel(level)
    for h in list(logger.handlers):
        h.close()
        logger.removeHandler(h)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S")
    for h in handlers:
        h.setFormatter(formatter)
        logger.addHandler(h)
    return logger
