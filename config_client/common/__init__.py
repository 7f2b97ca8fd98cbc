"""
Common Utilities

Shared modules used across the client:
- config.py - Local client settings
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
"""

from .config import (
    ClientSettings,
    load_client_settings,
    settings_from_dict,
    apply_env_overrides,
)
from .exceptions import (
    ConfigClientError,
    ConfigError,
    FetchError,
    FetchErrorKind,
    ValidationFailure,
    ServiceError,
)
from .logging_setup import (
    setup_logging,
    get_service_logger,
    set_log_level,
    set_log_stream,
    client_loggers,
    log_snapshot,
    log_violations,
)

__all__ = [
    # Config
    "ClientSettings",
    "load_client_settings",
    "settings_from_dict",
    "apply_env_overrides",
    # Exceptions
    "ConfigClientError",
    "ConfigError",
    "FetchError",
    "FetchErrorKind",
    "ValidationFailure",
    "ServiceError",
    # Logging
    "setup_logging",
    "get_service_logger",
    "set_log_level",
    "set_log_stream",
    "client_loggers",
    "log_snapshot",
    "log_violations",
]
