"""
Utils functions
"""
import logging
import shutil
from functools import wraps

from .config import get_log_path


def log_function_call(func) -> callable:
    """
    A decorator that logs the function call and its arguments.

    Args:
        func: The function to be decorated

    Returns:
        function: The wrapped function with logging

    Raises:
        TypeError: If func is not callable
    """
    if not callable(func):
        raise TypeError("func must be callable")

    @wraps(func)
    def wrapper(*args, **kwargs):
        logging.info(f"Calling {func.__name__} with args: {args}, kwargs: {kwargs}")
        try:
            result = func(*args, **kwargs)
            logging.info(f"{func.__name__} returned: {result}")
            return result
        except Exception as e:
            logging.error(f"Exception in {func.__name__}: {e}")
            raise
    return wrapper


def check_virsh(virsh_path: str = "virsh") -> bool:
    """Checks if virsh is installed."""
    return shutil.which(virsh_path) is not None


def setup_logging(config: dict) -> None:
    """
    Send log records to the log file; the terminal belongs to the TUI.

    Args:
        config: Loaded configuration, see config.DEFAULT_CONFIG
    """
    level_name = str(config.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        filename=get_log_path(config),
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
