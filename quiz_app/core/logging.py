# quiz_app/core/logging.py
import logging
import sys

LOGGER_NAME = "quiz_app"
FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stderr handler to the ``quiz_app`` logger tree.

    Safe to call more than once (tests build several apps per session).
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())
    if not any(getattr(h, "_quiz_app", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(FORMAT))
        handler._quiz_app = True
        logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    if not name.startswith(LOGGER_NAME):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)
