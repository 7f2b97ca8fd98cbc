"""
Configuration Validator

Checks a raw key/value map against a Schema. Produces either a typed
ConfigSnapshot or every violation found, never both.
"""

import re
from dataclasses import dataclass
from typing import Any, Mapping

from config_client.common.exceptions import ValidationFailure
from config_client.common.logging_setup import get_service_logger

from .schema import FieldKind, FieldSpec, Schema
from .snapshot import ConfigSnapshot

logger = get_service_logger("config.validator")

_INTEGER = re.compile(r"^[+-]?\d+$")
_TRUE_STRINGS = frozenset(("true", "yes", "on", "1"))
_FALSE_STRINGS = frozenset(("false", "no", "off", "0"))


@dataclass(frozen=True)
class Violation:
    """A raw value that failed one of its field's checks"""
    key: str
    constraint: str
    value: Any = None

    def __str__(self) -> str:
        if self.constraint == "missing":
            return f"{self.key}: missing"
        return f"{self.key}: {self.constraint} (got {self.value!r})"


class CoercionError(ValueError):
    """Raw value cannot be turned into the field's kind"""


def _to_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    raise CoercionError("must be a string")


def _to_integer(value: Any) -> int:
    if isinstance(value, bool):
        raise CoercionError("must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INTEGER.match(value.strip()):
        try:
            return int(value.strip())
        except ValueError:
            # Beyond the interpreter's integer string conversion limit
            raise CoercionError("must be an integer") from None
    raise CoercionError("must be an integer")


def _to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise CoercionError("must be a boolean")


def _to_string_list(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        if not value.strip():
            return ()
        return tuple(item.strip() for item in value.split(","))
    if isinstance(value, (list, tuple)):
        try:
            return tuple(_to_string(item) for item in value)
        except CoercionError:
            raise CoercionError("must be a list of strings")
    raise CoercionError("must be a list of strings")


COERCERS = {
    FieldKind.STRING: _to_string,
    FieldKind.INTEGER: _to_integer,
    FieldKind.BOOLEAN: _to_boolean,
    FieldKind.STRING_LIST: _to_string_list,
}


def coerce(spec: FieldSpec, value: Any) -> Any:
    """Coerce a raw value to spec.kind, raising CoercionError on failure"""
    return COERCERS[spec.kind](value)


def _validate_field(spec: FieldSpec, bound: Mapping[str, Any]) -> tuple[Any, list[Violation]]:
    raw_value = bound.get(spec.key)

    if raw_value is None:
        if not spec.has_default:
            return None, [Violation(spec.key, "missing")]
        raw_value = spec.default

    try:
        value = coerce(spec, raw_value)
    except CoercionError as e:
        return None, [Violation(spec.key, str(e), raw_value)]

    # Every constraint is evaluated so one pass reports every problem
    violations = []
    for constraint in spec.constraints:
        try:
            ok = constraint(value)
        except (TypeError, ValueError):
            ok = False
        if not ok:
            violations.append(Violation(spec.key, constraint.description, value))

    return value, violations


def validate(
    schema: Schema,
    raw: Mapping[str, Any],
    version: str | None = None,
) -> ConfigSnapshot | tuple[Violation, ...]:
    """
    Validate raw values against schema.

    Args:
        schema: Declared keys, kinds and constraints
        raw: Raw key/value map (keys may carry the schema prefix)
        version: Source version recorded on the snapshot

    Returns:
        A ConfigSnapshot, or a non-empty tuple of Violations in
        schema order
    """
    bound = schema.bind(dict(raw))
    values: dict[str, Any] = {}
    violations: list[Violation] = []

    for spec in schema:
        value, field_violations = _validate_field(spec, bound)
        if field_violations:
            violations.extend(field_violations)
        else:
            values[spec.key] = value

    if violations:
        logger.debug(
            f"Config validation failed: {len(violations)} violation(s)",
            extra={"violations": [str(v) for v in violations]},
        )
        return tuple(violations)

    logger.debug("Config validation passed")
    return ConfigSnapshot(values, version=version)


def validate_or_raise(
    schema: Schema,
    raw: Mapping[str, Any],
    version: str | None = None,
) -> ConfigSnapshot:
    """Like validate(), but raises ValidationFailure instead of returning violations"""
    result = validate(schema, raw, version=version)
    if isinstance(result, ConfigSnapshot):
        return result
    raise ValidationFailure(result)
