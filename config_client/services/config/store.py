"""
Configuration Store

Holds the current snapshot. Reads are lock-free; replaces are serialised
and notify subscribers once the new snapshot is visible.
"""

import itertools
import threading
import weakref
from dataclasses import dataclass
from typing import Callable

from config_client.common.logging_setup import get_service_logger

from .snapshot import ConfigSnapshot

logger = get_service_logger("config.store")

Subscriber = Callable[[ConfigSnapshot], object]


@dataclass(frozen=True)
class SubscriptionHandle:
    """Returned by subscribe(); pass to unsubscribe()"""
    id: int
    name: str


class _Subscription:
    """Weak or strong reference to a subscriber callable"""

    __slots__ = ("handle", "_ref", "_strong")

    def __init__(self, handle: SubscriptionHandle, callback: Subscriber, weak: bool):
        self.handle = handle
        if not weak:
            self._strong = callback
            self._ref = None
        elif hasattr(callback, "__self__") and hasattr(callback, "__func__"):
            # Bound methods die immediately under a plain weakref
            self._strong = None
            self._ref = weakref.WeakMethod(callback)
        else:
            self._strong = None
            self._ref = weakref.ref(callback)

    def resolve(self) -> Subscriber | None:
        if self._ref is None:
            return self._strong
        return self._ref()


class ConfigStore:
    """
    Process-wide holder of the active ConfigSnapshot.

    current() returns None until the first replace().
    """

    def __init__(self):
        self._current: ConfigSnapshot | None = None
        self._generation = 0
        self._replace_lock = threading.Lock()
        self._subscribers_lock = threading.Lock()
        self._subscriptions: list[_Subscription] = []
        self._ids = itertools.count(1)

    def current(self) -> ConfigSnapshot | None:
        """Get the active snapshot (single reference read, no locking)"""
        return self._current

    @property
    def generation(self) -> int:
        """Number of replaces performed so far"""
        return self._generation

    @property
    def initialized(self) -> bool:
        return self._current is not None

    def replace(self, new: ConfigSnapshot) -> None:
        """
        Install new as the current snapshot, then notify subscribers.

        The swap is a single reference assignment, so concurrent readers
        see either the old or the new snapshot. Subscribers run in
        registration order; a failing subscriber is logged and skipped.
        """
        if not isinstance(new, ConfigSnapshot):
            raise TypeError(f"Expected ConfigSnapshot, got {type(new).__name__}")

        with self._replace_lock:
            self._current = new
            self._generation += 1
            generation = self._generation

            logger.debug(
                f"Snapshot installed (generation {generation})",
                extra={"generation": generation, "config_version": new.version},
            )

            self._notify(new)

    def subscribe(self, callback: Subscriber, weak: bool = True) -> SubscriptionHandle:
        """
        Register a callback for future replaces.

        Args:
            callback: Called with the new snapshot after each replace
            weak: Hold only a weak reference (the caller keeps the
                callback alive). Use weak=False for lambdas and closures.
        """
        if not callable(callback):
            raise TypeError("Subscriber must be callable")

        name = getattr(callback, "__qualname__", None) or type(callback).__name__
        handle = SubscriptionHandle(next(self._ids), name)

        with self._subscribers_lock:
            self._subscriptions.append(_Subscription(handle, callback, weak))

        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Remove a subscription; unknown handles are ignored"""
        with self._subscribers_lock:
            self._subscriptions = [
                s for s in self._subscriptions if s.handle != handle
            ]

    @property
    def subscriber_count(self) -> int:
        """Live subscribers (dead weak references excluded)"""
        with self._subscribers_lock:
            return sum(1 for s in self._subscriptions if s.resolve() is not None)

    def _notify(self, snapshot: ConfigSnapshot) -> None:
        with self._subscribers_lock:
            subscriptions = list(self._subscriptions)

        dead = []
        for subscription in subscriptions:
            callback = subscription.resolve()
            if callback is None:
                dead.append(subscription.handle)
                continue

            try:
                callback(snapshot)
            except Exception as e:
                logger.error(
                    f"Subscriber {subscription.handle.name} failed: {e}",
                    exc_info=True,
                    extra={"subscriber": subscription.handle.name},
                )

        for handle in dead:
            logger.debug(f"Dropping collected subscriber {handle.name}")
            self.unsubscribe(handle)
