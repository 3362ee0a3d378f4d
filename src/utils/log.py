import logging
import os
import time
from functools import wraps
from typing import Callable

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Sets up a logger with a standard format.

    Level defaults to the PEMS_LOG_LEVEL environment variable (INFO when unset).
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        if level is None:
            level = logging.getLevelName(os.environ.get("PEMS_LOG_LEVEL", "INFO").upper())
            if not isinstance(level, int):
                level = logging.INFO
        logger.setLevel(level)
    return logger


def log_execution_time(logger: logging.Logger):
    """
    Decorator to measure and log execution time of a function.
    """

    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.time()
            try:
                result = func(*args, **kwargs)
                elapsed = time.time() - start
                logger.debug(f"{func.__name__} executed in {elapsed:.3f}s")
                return result
            except Exception as e:
                logger.error(f"{func.__name__} failed: {e}", exc_info=True)
                raise

        return wrapper

    return decorator
