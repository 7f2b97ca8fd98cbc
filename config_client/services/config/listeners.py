"""
Snapshot Listeners

Subscribers that react to newly installed snapshots.
"""

from config_client.common.logging_setup import get_service_logger, log_snapshot

from .snapshot import ConfigSnapshot
from .store import ConfigStore, SubscriptionHandle

logger = get_service_logger("config.listeners")


class SnapshotLogger:
    """Logs the full snapshot on startup and after every refresh"""

    def __init__(self):
        self.calls = 0
        self._handle: SubscriptionHandle | None = None

    def attach(self, store: ConfigStore) -> SubscriptionHandle:
        """Subscribe to store (weakly; the owner keeps this object alive)"""
        self._handle = store.subscribe(self.on_snapshot)
        return self._handle

    def detach(self, store: ConfigStore) -> None:
        if self._handle is not None:
            store.unsubscribe(self._handle)
            self._handle = None

    def on_snapshot(self, snapshot: ConfigSnapshot) -> None:
        self.calls += 1
        if self.calls == 1:
            message = "Application is ready."
        else:
            message = "Configuration refreshed."
        log_snapshot(logger, message, snapshot.to_dict(), version=snapshot.version)
