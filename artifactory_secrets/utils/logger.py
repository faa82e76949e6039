"""
Console logging with key=value extras.

ContextAwareLogger folds the ``extra`` dict into the message text so that
context survives hosts that replace formatters, while still attaching the
extras to the record for structured handlers.
"""

import logging
import sys
from typing import Optional, Union

from ..config import get_config

_backend_logger = None

# Never written into log lines, whatever the caller passes as extra
_REDACTED_KEYS = {"access_token", "token", "password"}


class ContextAwareLogger:
    """
    Logger wrapper that formats extra attributes in message while preserving them.
    """

    def __init__(self, logger):
        """Initialize with an existing logger."""
        self.logger = logger

    def _log_with_formatted_extra(self, level, msg, **kwargs):
        extra = {
            k: ("***" if k in _REDACTED_KEYS else v) for k, v in kwargs.pop("extra", {}).items()
        }

        if extra:
            extra_str = " | ".join([f"{k}={v}" for k, v in extra.items()])
            full_msg = f"{msg} | {extra_str}"
        else:
            full_msg = msg

        log_method = getattr(self.logger, level)
        log_method(full_msg, extra=extra, **kwargs)

    def set_level(self, level):
        """Set the logging level of the underlying logger."""
        self.logger.setLevel(level)

    def info(self, msg, **kwargs):
        """Log at INFO level with formatted extra."""
        self._log_with_formatted_extra("info", msg, **kwargs)

    def error(self, msg, **kwargs):
        """Log at ERROR level with formatted extra."""
        self._log_with_formatted_extra("error", msg, **kwargs)

    def warning(self, msg, **kwargs):
        """Log at WARNING level with formatted extra."""
        self._log_with_formatted_extra("warning", msg, **kwargs)

    def debug(self, msg, **kwargs):
        """Log at DEBUG level with formatted extra."""
        self._log_with_formatted_extra("debug", msg, **kwargs)

    def exception(self, msg, **kwargs):
        """Log exception with formatted extra."""
        self._log_with_formatted_extra("exception", msg, **kwargs)


class CorrelationIdFilter(logging.Filter):
    """
    Logging filter that stamps the current correlation ID on log records.
    """

    def filter(self, record):
        # Lazy import, exceptions imports this module when logging errors
        from ..exceptions import get_correlation_id

        correlation_id = get_correlation_id()
        if correlation_id:
            record.correlation_id = correlation_id

        return True


def configure_logging(
    name: str = "artifactory_secrets",
    log_level: Optional[Union[int, str]] = None,
) -> "ContextAwareLogger":
    """
    Configure the backend logger with a stdout handler.

    Args:
        name: Logger name
        log_level: Logging level (default: from config)

    Returns:
        The configured logger wrapped with ContextAwareLogger
    """
    global _backend_logger

    if log_level is None:
        log_level = get_config().logging.level

    if isinstance(log_level, str):
        log_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    console_handler.addFilter(CorrelationIdFilter())
    logger.addHandler(console_handler)

    wrapped_logger = ContextAwareLogger(logger)
    wrapped_logger.debug("Backend logger configured", extra={"logger_name": name})

    _backend_logger = wrapped_logger
    return wrapped_logger


def get_logger(
    log_level: Optional[Union[int, str]] = None,
) -> "ContextAwareLogger":
    """
    Get the backend logger.

    Falls back to a wrapped ``artifactory_secrets`` logger without handlers of
    its own when configure_logging() has not been called.
    """
    if _backend_logger is not None:
        return _backend_logger

    logger = logging.getLogger("artifactory_secrets")

    if log_level is None:
        log_level = get_config().logging.level

    if isinstance(log_level, str):
        log_level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(log_level)

    return ContextAwareLogger(logger)
