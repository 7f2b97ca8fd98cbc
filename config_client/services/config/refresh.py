"""
Refresh Coordinator

Runs fetch -> validate -> swap -> notify as one operation, for the
initial bootstrap and for every later refresh.

Concurrent refreshes are serialised: the whole pipeline runs under one
asyncio.Lock, so an older fetch can never overwrite a newer one.
"""

import asyncio
from dataclasses import dataclass, field

from config_client.common.exceptions import ConfigError, ValidationFailure
from config_client.common.logging_setup import get_service_logger, log_violations

from .schema import Schema
from .snapshot import ConfigSnapshot
from .store import ConfigStore
from .sync import RemoteFetcher
from .validator import Violation, validate

logger = get_service_logger("config.refresh")


@dataclass(frozen=True)
class RefreshResult:
    """Outcome of a refresh that reached the validation step"""
    applied: bool
    snapshot: ConfigSnapshot | None = None
    changed: list[str] = field(default_factory=list)
    violations: tuple[Violation, ...] = ()


class RefreshCoordinator:
    """Bootstraps and refreshes a ConfigStore from a RemoteFetcher"""

    def __init__(
        self,
        fetcher: RemoteFetcher,
        schema: Schema,
        store: ConfigStore,
        app_name: str,
        profile: str,
        label: str | None = None,
    ):
        self.fetcher = fetcher
        self.schema = schema
        self.store = store
        self.app_name = app_name
        self.profile = profile
        self.label = label
        self._lock = asyncio.Lock()
        self._bootstrapped = False

    @property
    def bootstrapped(self) -> bool:
        return self._bootstrapped

    async def bootstrap(self) -> ConfigSnapshot:
        """
        Fetch, validate and install the first snapshot.

        Raises:
            FetchError: config server unreachable, no config, bad payload
            ValidationFailure: fetched values break the schema; nothing
                is installed
            ConfigError: already bootstrapped
        """
        async with self._lock:
            if self._bootstrapped:
                raise ConfigError("Configuration already bootstrapped")

            logger.info(
                f"Bootstrapping configuration for {self.app_name}/{self.profile}",
                extra={"app_name": self.app_name, "profile": self.profile},
            )

            result = await self.fetcher.fetch_result(self.app_name, self.profile, self.label)
            outcome = validate(self.schema, result.properties, version=result.version)

            if not isinstance(outcome, ConfigSnapshot):
                log_violations(logger, outcome, stage="bootstrap")
                raise ValidationFailure(outcome)

            # Commit point: no await between here and the end of the block
            self.store.replace(outcome)
            self._bootstrapped = True
            return outcome

    async def refresh(self) -> RefreshResult:
        """
        Re-fetch and re-validate; swap only when the new values are valid.

        A FetchError propagates and leaves the current snapshot untouched.
        Violations are logged and returned with applied=False.

        Raises:
            FetchError: as for bootstrap()
            ConfigError: called before bootstrap()
        """
        async with self._lock:
            if not self._bootstrapped:
                raise ConfigError("Cannot refresh before bootstrap")

            result = await self.fetcher.fetch_result(self.app_name, self.profile, self.label)
            outcome = validate(self.schema, result.properties, version=result.version)

            if not isinstance(outcome, ConfigSnapshot):
                log_violations(logger, outcome, stage="refresh")
                logger.warning("Keeping previous configuration")
                return RefreshResult(applied=False, violations=outcome)

            previous = self.store.current()
            changed = outcome.changed_keys(previous)

            self.store.replace(outcome)

            logger.info(
                f"Config refreshed: {len(changed)} key(s) changed",
                extra={
                    "changed": changed,
                    "old_version": previous.version if previous else None,
                    "new_version": outcome.version,
                },
            )

            return RefreshResult(applied=True, snapshot=outcome, changed=changed)
