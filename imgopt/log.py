"""
Logging setup

Every module asks for its logger through get_logger(); setup_logging()
installs a single console handler on the root logger.
"""

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def setup_logging(level: Union[str, int] = "INFO") -> None:
    """(Re)configure the root logger with one console handler"""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Replace only the handler we installed earlier
    for handler in list(root_logger.handlers):
        if getattr(handler, "_imgopt", False):
            root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    console_handler._imgopt = True
    root_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """Convenience function to get logger"""
    return logging.getLogger(name)
