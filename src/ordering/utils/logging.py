"""Logging configuration for the ordering service.

Everything logs through structlog. Console rendering is used locally and JSON
in deployed environments, where the gateway and webhook logs are shipped to
an aggregator.
"""

import logging
import os
import sys

import structlog

from ordering.config import get_settings

_LEVELS_BY_ENV = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

_JSON_ENVS = {"production", "staging"}

# Libraries that log request-level chatter at INFO
_NOISY_LOGGERS = ("protean", "urllib3", "asyncio", "razorpay")


def current_env() -> str:
    return (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level() -> str:
    """LOG_LEVEL wins, then the debug setting, then the environment default."""
    if os.getenv("LOG_LEVEL"):
        return os.environ["LOG_LEVEL"].upper()
    if get_settings().debug:
        return "DEBUG"
    return _LEVELS_BY_ENV.get(current_env(), "INFO")


def setup_stdlib_logging(level: str) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_structlog(json_output: bool) -> None:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging() -> None:
    """Configure stdlib and structlog logging for the current environment."""
    setup_stdlib_logging(get_log_level())
    setup_structlog(json_output=current_env() in _JSON_ENVS)


def add_context(**kwargs) -> None:
    """Bind key/value pairs to every log line emitted by the current request."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
