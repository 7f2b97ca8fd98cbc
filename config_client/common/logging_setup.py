"""
Structured Logging Setup

Consistent logging configuration across the client.
Uses JSON format for structured logs in production.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Iterable, TextIO

_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "service",
    "message", "taskName",
))


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", "unknown"),
            "message": record.getMessage(),
            "logger": record.name,
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds service name to all logs"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs.setdefault("extra", {})
        kwargs["extra"]["service"] = self.extra.get("service", "unknown")
        return msg, kwargs


def setup_logging(
    service_name: str,
    log_level: str = "INFO",
    json_format: bool = True,
) -> logging.Logger:
    """
    Set up structured logging for a component.

    Args:
        service_name: Name of the component (e.g., "config.store")
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format (True for production, False for dev)

    Returns:
        Configured logger instance
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(f"config_client.{service_name}")
    logger.setLevel(numeric_level)

    # Clear existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)

    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Don't propagate to parent loggers (each one has its own handler)
    logger.propagate = False

    return logger


def get_service_logger(service_name: str) -> ServiceLoggerAdapter:
    """
    Get a logger adapter with service context.

    Level and format come from CONFIG_CLIENT_LOG_LEVEL and
    CONFIG_CLIENT_LOG_FORMAT ("json" or "text").
    """
    log_level = os.environ.get("CONFIG_CLIENT_LOG_LEVEL", "INFO")
    json_format = os.environ.get("CONFIG_CLIENT_LOG_FORMAT", "json").lower() == "json"

    logger = setup_logging(service_name, log_level, json_format)
    return ServiceLoggerAdapter(logger, {"service": service_name})


def client_loggers() -> list[logging.Logger]:
    """Every logger created through setup_logging"""
    return [
        logger
        for name, logger in list(logging.root.manager.loggerDict.items())
        if name.startswith("config_client.") and isinstance(logger, logging.Logger)
    ]


def set_log_level(log_level: str) -> None:
    """Change the level of every config_client logger (e.g. for --verbose)"""
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    for logger in client_loggers():
        logger.setLevel(numeric_level)
        for handler in logger.handlers:
            handler.setLevel(numeric_level)


def set_log_stream(stream: TextIO) -> None:
    """Point every config_client stream handler at stream (e.g. stderr)"""
    for logger in client_loggers():
        for handler in logger.handlers:
            # Exact type: leave FileHandler and capture handlers alone
            if type(handler) is logging.StreamHandler:
                handler.setStream(stream)


def log_snapshot(
    logger: logging.LoggerAdapter,
    message: str,
    values: dict[str, Any],
    version: str | None = None,
) -> None:
    """Log the full content of a configuration snapshot"""
    rendered = ", ".join(f"{key}={value}" for key, value in values.items())
    logger.info(
        f"{message} Properties are: {{{rendered}}}",
        extra={"properties": values, "config_version": version},
    )


def log_violations(
    logger: logging.LoggerAdapter,
    violations: Iterable[Any],
    stage: str,
) -> None:
    """Log each validation violation of a rejected configuration"""
    violations = list(violations)
    logger.error(
        f"Configuration rejected during {stage}: {len(violations)} violation(s)",
        extra={"stage": stage, "violations": [str(v) for v in violations]},
    )
    for violation in violations:
        logger.warning(
            f"  {violation}",
            extra={"stage": stage, "key": getattr(violation, "key", None)},
        )
