import logging
import os
import sys
from logging import Handler
from typing import Optional

from tqdm import tqdm

PACKAGE_LOGGER_NAME = "locale_sync"


class TqdmLoggingHandler(Handler):
    """
    Logging handler that writes through tqdm.write so log lines do not
    break the per-file progress bar.
    """
    def __init__(self, level=logging.NOTSET):
        super().__init__(level)

    def emit(self, record):
        try:
            msg = self.format(record)
            tqdm.write(msg, file=sys.stderr)
            self.flush()
        except (KeyboardInterrupt, SystemExit):
            raise
        except Exception:
            self.handleError(record)


LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def _file_handler(log_file_path: str, formatter: logging.Formatter) -> Optional[logging.Handler]:
    try:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handler = logging.FileHandler(log_file_path, encoding='utf-8')
    except OSError as e:
        # A read-only workspace should not stop the run; console output remains.
        print(f"locale-sync logging: cannot open '{log_file_path}' ({e}); file logging disabled.",
              file=sys.stderr)
        return None
    handler.setFormatter(formatter)
    return handler


def setup_logger(log_level_str: str, log_file_path: str, log_to_console: bool) -> logging.Logger:
    """
    Configure the ``locale_sync`` package logger.

    Every module logs through ``logging.getLogger(__name__)``, so records from
    ``locale_sync.*`` reach the handlers configured here. Calling this again
    replaces (and closes) the handlers of the previous call.

    Args:
        log_level_str: Level name such as 'INFO' or 'DEBUG'; unknown names mean INFO.
        log_file_path: Log file path. Empty disables file logging.
        log_to_console: Whether to also log to stderr through tqdm.

    Returns:
        The configured logger instance.
    """
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level_str.upper(), logging.INFO))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers = []
    if log_file_path:
        handlers.append(_file_handler(log_file_path, formatter))
    if log_to_console:
        console = TqdmLoggingHandler()
        console.setFormatter(formatter)
        handlers.append(console)

    for handler in handlers:
        if handler is not None:
            logger.addHandler(handler)
    return logger
