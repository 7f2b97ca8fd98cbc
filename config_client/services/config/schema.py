"""
Configuration Schema

Declares which keys a configuration has, what kind of value each one
holds and which constraints the value must satisfy.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable

from config_client.common.exceptions import ConfigError

_INDEXED_KEY = re.compile(r"^(?P<key>.+)\[(?P<index>\d+)\]$")


class FieldKind(str, Enum):
    """Supported value kinds"""
    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    STRING_LIST = "string-list"


@dataclass(frozen=True)
class Constraint:
    """A named predicate over a coerced value"""
    description: str
    check: Callable[[Any], bool] = field(compare=False)

    def __call__(self, value: Any) -> bool:
        return bool(self.check(value))


def not_empty() -> Constraint:
    """Value must be a non-empty string or list"""
    return Constraint("must not be empty", lambda v: v is not None and len(v) > 0)


def not_blank() -> Constraint:
    """String must contain at least one non-whitespace character"""
    return Constraint("must not be blank", lambda v: v is not None and bool(str(v).strip()))


def min_value(minimum: int) -> Constraint:
    return Constraint(f"must be greater than or equal to {minimum}", lambda v: v >= minimum)


def max_value(maximum: int) -> Constraint:
    return Constraint(f"must be less than or equal to {maximum}", lambda v: v <= maximum)


def value_range(minimum: int, maximum: int) -> Constraint:
    """Numeric value must lie in [minimum, maximum]"""
    if minimum > maximum:
        raise ConfigError(f"Invalid range: {minimum} > {maximum}")
    return Constraint(
        f"must be between {minimum} and {maximum}",
        lambda v: minimum <= v <= maximum,
    )


def size(minimum: int = 0, maximum: int | None = None) -> Constraint:
    """Length of a list or string must lie in [minimum, maximum]"""
    if maximum is None:
        description = f"size must be at least {minimum}"
    else:
        description = f"size must be between {minimum} and {maximum}"
    return Constraint(
        description,
        lambda v: len(v) >= minimum and (maximum is None or len(v) <= maximum),
    )


def pattern(regex: str) -> Constraint:
    """String must fully match the regular expression"""
    compiled = re.compile(regex)
    return Constraint(
        f'must match "{regex}"',
        lambda v: compiled.fullmatch(str(v)) is not None,
    )


_MISSING = object()


@dataclass(frozen=True)
class FieldSpec:
    """One recognised configuration key"""
    key: str
    kind: FieldKind
    constraints: tuple[Constraint, ...] = ()
    default: Any = _MISSING

    def __post_init__(self):
        if not self.key:
            raise ConfigError("Field key must not be empty")
        # Accept any iterable of constraints
        object.__setattr__(self, "constraints", tuple(self.constraints))
        if isinstance(self.default, list):
            object.__setattr__(self, "default", tuple(self.default))

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING


class Schema:
    """
    Ordered, immutable set of FieldSpecs.

    With a prefix, raw keys "<prefix>.<key>" bind to "<key>" and every
    other key is ignored.
    """

    __slots__ = ("_fields", "_prefix")

    def __init__(self, fields: Iterable[FieldSpec], prefix: str | None = None):
        ordered: dict[str, FieldSpec] = {}
        for spec in fields:
            if spec.key in ordered:
                raise ConfigError(f"Duplicate schema key: {spec.key}")
            ordered[spec.key] = spec

        object.__setattr__(self, "_fields", tuple(ordered.values()))
        object.__setattr__(self, "_prefix", prefix.rstrip(".") if prefix else None)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Schema is immutable")

    @property
    def fields(self) -> tuple[FieldSpec, ...]:
        return self._fields

    @property
    def prefix(self) -> str | None:
        return self._prefix

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(spec.key for spec in self._fields)

    def __iter__(self):
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, key: object) -> bool:
        return any(spec.key == key for spec in self._fields)

    def __getitem__(self, key: str) -> FieldSpec:
        for spec in self._fields:
            if spec.key == key:
                return spec
        raise KeyError(key)

    def __repr__(self) -> str:
        return f"Schema(prefix={self._prefix!r}, keys={list(self.keys)})"

    def bind(self, raw: dict[str, Any]) -> dict[str, Any]:
        """
        Map raw source keys onto schema keys.

        Strips the prefix, drops keys outside it and collapses indexed
        keys ("tags[0]", "tags[1]") into one list in index order. A plain
        key wins over indexed keys of the same name.
        """
        bound: dict[str, Any] = {}
        indexed: dict[str, dict[int, Any]] = {}

        for raw_key, value in raw.items():
            key = self._strip_prefix(str(raw_key))
            if key is None:
                continue

            match = _INDEXED_KEY.match(key)
            if match:
                indexed.setdefault(match["key"], {})[int(match["index"])] = value
            else:
                bound[key] = value

        for key, items in indexed.items():
            if key not in bound:
                bound[key] = [items[i] for i in sorted(items)]

        return bound

    def _strip_prefix(self, key: str) -> str | None:
        if not self._prefix:
            return key
        head = f"{self._prefix}."
        if key.startswith(head):
            return key[len(head):]
        return None
