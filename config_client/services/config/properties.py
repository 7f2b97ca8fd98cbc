"""
Client App Properties

Schema of the "client-app" property group served by the config server.
"""

from .schema import FieldKind, FieldSpec, Schema, not_empty, size, value_range

CLIENT_APP_PREFIX = "client-app"

CLIENT_APP_SCHEMA = Schema(
    [
        FieldSpec("name", FieldKind.STRING, [not_empty()]),
        FieldSpec("number", FieldKind.INTEGER, [value_range(0, 100)], default=0),
        FieldSpec("enabled", FieldKind.BOOLEAN, default=False),
        FieldSpec("tags", FieldKind.STRING_LIST, [size(0, 5)], default=()),
    ],
    prefix=CLIENT_APP_PREFIX,
)
