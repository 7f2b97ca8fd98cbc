"""
Configuration Snapshot

An immutable, fully validated set of configuration values.
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Iterator


class ConfigSnapshot(Mapping):
    """
    Immutable mapping from key to typed value.

    Equality compares values only; version and created_at are metadata.
    """

    __slots__ = ("_values", "_version", "_created_at")

    def __init__(self, values: Mapping[str, Any], version: str | None = None):
        frozen = {
            key: tuple(value) if isinstance(value, list) else value
            for key, value in values.items()
        }
        object.__setattr__(self, "_values", MappingProxyType(frozen))
        object.__setattr__(self, "_version", version)
        object.__setattr__(self, "_created_at", datetime.now(timezone.utc))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("ConfigSnapshot is immutable")

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(name) from None

    def __hash__(self) -> int:
        return hash(tuple(self._values.items()))

    def __repr__(self) -> str:
        rendered = ", ".join(f"{k}={v!r}" for k, v in self._values.items())
        return f"ConfigSnapshot({rendered})"

    @property
    def version(self) -> str | None:
        return self._version

    @property
    def created_at(self) -> datetime:
        return self._created_at

    def to_dict(self) -> dict[str, Any]:
        """Plain dict copy, with lists instead of tuples (JSON friendly)"""
        return {
            key: list(value) if isinstance(value, tuple) else value
            for key, value in self._values.items()
        }

    def changed_keys(self, other: "ConfigSnapshot | None") -> list[str]:
        """Keys whose value differs from other (all keys when other is None)"""
        if other is None:
            return sorted(self._values)
        keys = set(self._values) | set(other)
        return sorted(k for k in keys if self._values.get(k) != other.get(k))
