"""
Custom Exception Classes for the Config Client

Hierarchical exception structure for error handling across the client.
"""

from enum import Enum
from typing import Any


class ConfigClientError(Exception):
    """Base exception for all config client errors"""

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(ConfigClientError):
    """Local configuration or usage errors"""

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(f"Config Error: {message}", recoverable)


class FetchErrorKind(str, Enum):
    """Why a remote fetch failed"""
    UNREACHABLE = "unreachable"
    NOT_FOUND = "not_found"
    MALFORMED_RESPONSE = "malformed_response"


class FetchError(ConfigClientError):
    """Remote config server errors"""

    def __init__(
        self,
        kind: FetchErrorKind,
        message: str,
        url: str | None = None,
    ):
        self.kind = kind
        self.url = url
        super().__init__(f"Fetch Error [{kind.value}]: {message}", recoverable=True)


class ValidationFailure(ConfigClientError):
    """One or more configuration values broke their constraints"""

    def __init__(self, violations: Any):
        self.violations = tuple(violations)
        details = "; ".join(str(v) for v in self.violations)
        super().__init__(
            f"Validation failed with {len(self.violations)} violation(s): {details}",
            recoverable=True,
        )


class ServiceError(ConfigClientError):
    """Service lifecycle errors"""

    def __init__(self, message: str, service_name: str, recoverable: bool = False):
        self.service_name = service_name
        super().__init__(f"Service [{service_name}]: {message}", recoverable)
