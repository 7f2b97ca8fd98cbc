"""
Config Service - Configuration Management

Responsibilities:
- Declare the expected configuration (schema)
- Fetch configuration from the config server
- Validate it into immutable snapshots
- Swap snapshots atomically and notify subscribers
"""

from .listeners import SnapshotLogger
from .properties import CLIENT_APP_SCHEMA
from .refresh import RefreshCoordinator, RefreshResult
from .schema import (
    Constraint,
    FieldKind,
    FieldSpec,
    Schema,
    max_value,
    min_value,
    not_blank,
    not_empty,
    pattern,
    size,
    value_range,
)
from .service import ClientService
from .snapshot import ConfigSnapshot
from .store import ConfigStore, SubscriptionHandle
from .sync import FetchResult, RemoteFetcher
from .validator import Violation, validate, validate_or_raise

__all__ = [
    "CLIENT_APP_SCHEMA",
    "ClientService",
    "ConfigSnapshot",
    "ConfigStore",
    "Constraint",
    "FetchResult",
    "FieldKind",
    "FieldSpec",
    "RefreshCoordinator",
    "RefreshResult",
    "RemoteFetcher",
    "Schema",
    "SnapshotLogger",
    "SubscriptionHandle",
    "Violation",
    "max_value",
    "min_value",
    "not_blank",
    "not_empty",
    "pattern",
    "size",
    "validate",
    "validate_or_raise",
    "value_range",
]
