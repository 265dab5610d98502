"""
Logging configuration for the fractal explorer.

Every module logs through logging.getLogger(__name__), which places it
under the "fractalviz" package logger. configure_logging() attaches the
handlers once, from the command line entry point.
"""

import logging
import logging.handlers


PACKAGE_LOGGER = "fractalviz"
LOG_FORMAT = "%(asctime)s.%(msecs)03d %(threadName)s %(levelname)s %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def get_logger():
    """Get the package logger."""
    return logging.getLogger(PACKAGE_LOGGER)


def configure_logging(level=logging.INFO, console=True, log_file=None,
                      max_bytes=1024 * 1024, backup_count=3):
    """
    Attach handlers to the package logger, replacing any attached before.

    Args:
        level: Logging level for the logger and its handlers
        console: Log to stderr
        log_file: Also log to this file, rotated at max_bytes
        max_bytes: Size at which the log file rotates
        backup_count: Number of rotated files kept

    Returns:
        The package logger
    """
    logger = get_logger()
    logger.setLevel(level)
    # Handlers live on the package logger only
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = []
    if console:
        handlers.append(logging.StreamHandler())
    if log_file:
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
