"""Structured logging for the command line.

Console logs go to stderr so tables on stdout can be piped. When a log file
is configured it receives one JSON object per event, whatever the console
renderer is.
"""

import sys
import logging
from pathlib import Path
from typing import Optional
import structlog

from pluginhub.config import HubConfig

# Loggers of the HTTP stack that log every request at INFO
HTTP_LOGGERS = ("httpx", "httpcore")

SHARED_PROCESSORS = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]


def log_level_for(config: HubConfig, verbose: bool = False) -> int:
    """Numeric level from the config, DEBUG when verbose."""
    if verbose:
        return logging.DEBUG
    return getattr(logging, config.log_level.upper(), logging.INFO)


def _handler(handler: logging.Handler, renderer, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=SHARED_PROCESSORS,
        )
    )
    return handler


def configure_logging(
    config: HubConfig,
    verbose: bool = False,
    stream=None,
) -> Optional[Path]:
    """Configure structlog and the root logger from a HubConfig.

    Args:
        config: Supplies log_level and log_file
        verbose: Log at DEBUG and keep HTTP request logs
        stream: Console stream, stderr by default

    Returns:
        Path of the JSON log file, if one was configured
    """
    level = log_level_for(config, verbose)
    stream = stream or sys.stderr

    handlers = [
        _handler(
            logging.StreamHandler(stream),
            structlog.dev.ConsoleRenderer(colors=stream.isatty()),
            level,
        )
    ]

    log_path = None
    if config.log_file:
        log_path = Path(config.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            _handler(
                logging.FileHandler(log_path, encoding="utf-8"),
                structlog.processors.JSONRenderer(),
                level,
            )
        )

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return log_path
