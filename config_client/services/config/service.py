"""
Client Service - Configuration Lifecycle

Responsible for:
- Bootstrapping configuration from the config server before reporting ready
- Refreshing configuration on demand (POST /refresh) or periodically
- Serving the current properties over HTTP
"""

import asyncio
import signal
from datetime import datetime, timezone

from aiohttp import web

from config_client.common.config import ClientSettings
from config_client.common.exceptions import (
    ConfigClientError,
    FetchError,
    ServiceError,
)
from config_client.common.logging_setup import get_service_logger

from .listeners import SnapshotLogger
from .properties import CLIENT_APP_SCHEMA
from .refresh import RefreshCoordinator
from .schema import Schema
from .store import ConfigStore
from .sync import RemoteFetcher

logger = get_service_logger("config")


class ClientService:
    """
    Wires fetcher, store and coordinator, and runs the trigger server.

    The service only reports "running" after a successful bootstrap.
    """

    def __init__(
        self,
        settings: ClientSettings,
        schema: Schema = CLIENT_APP_SCHEMA,
        fetcher: RemoteFetcher | None = None,
    ):
        self.settings = settings
        self.schema = schema

        # Initialize components
        self.fetcher = fetcher or RemoteFetcher(
            server_url=settings.server_url,
            timeout_s=settings.timeout_s,
            auth=settings.auth,
            headers=settings.headers,
        )
        self.store = ConfigStore()
        self.coordinator = RefreshCoordinator(
            fetcher=self.fetcher,
            schema=schema,
            store=self.store,
            app_name=settings.app_name,
            profile=settings.profile,
            label=settings.label,
        )

        # Held here: the store only keeps a weak reference
        self.snapshot_logger = SnapshotLogger()
        self.snapshot_logger.attach(self.store)

        self.status = "created"
        self._start_time = datetime.now(timezone.utc)

        # HTTP server
        self._app: web.Application | None = None
        self._runner: web.AppRunner | None = None

        # State
        self._running = False
        self._refresh_task: asyncio.Task | None = None
        self._shutdown_event = asyncio.Event()

    async def start(self, wait: bool = True) -> None:
        """
        Bootstrap configuration, then serve until shutdown.

        Raises:
            ServiceError: bootstrap failed; the service never reports ready
        """
        logger.info(
            f"Starting client service ({self.settings.app_name}/{self.settings.profile})"
        )
        self.status = "starting"

        try:
            await self.coordinator.bootstrap()
        except ConfigClientError as e:
            self.status = "failed"
            logger.error(f"Bootstrap failed: {e}")
            raise ServiceError(f"Bootstrap failed: {e.message}", "config") from e

        self._running = True

        await self._start_http_server()

        if self.settings.refresh_interval_s > 0:
            self._refresh_task = asyncio.create_task(self._refresh_loop())

        self.status = "running"
        logger.info(
            "Client service started",
            extra={"generation": self.store.generation},
        )

        if wait:
            self._setup_signal_handlers()
            await self._shutdown_event.wait()

    async def stop(self) -> None:
        """Stop the refresh loop and HTTP server, close the fetcher"""
        logger.info("Stopping client service")

        self._running = False

        if self._refresh_task:
            self._refresh_task.cancel()
            try:
                await self._refresh_task
            except asyncio.CancelledError:
                pass
            self._refresh_task = None

        await self._stop_http_server()
        await self.fetcher.close()

        if self.status != "failed":
            self.status = "stopped"
        logger.info("Client service stopped")

    def request_shutdown(self) -> None:
        """Handle shutdown signal"""
        logger.info("Received shutdown signal")
        self._shutdown_event.set()

    def _setup_signal_handlers(self) -> None:
        """Setup graceful shutdown signal handlers"""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except NotImplementedError:
                # Windows doesn't support add_signal_handler
                signal.signal(sig, lambda s, f: self.request_shutdown())

    async def _refresh_loop(self) -> None:
        """Periodic refresh loop"""
        while self._running:
            await asyncio.sleep(self.settings.refresh_interval_s)

            try:
                await self.coordinator.refresh()
            except FetchError as e:
                logger.error(f"Periodic refresh failed: {e}")
            except Exception as e:
                logger.error(f"Error in refresh loop: {e}", exc_info=True)

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self._health_handler)
        app.router.add_get("/info", self._info_handler)
        app.router.add_get("/properties", self._properties_handler)
        app.router.add_post("/refresh", self._refresh_handler)
        return app

    async def _start_http_server(self) -> None:
        """Start the trigger HTTP server"""
        self._app = self.build_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        site = web.TCPSite(self._runner, self.settings.http_host, self.settings.http_port)
        await site.start()

        logger.info(
            f"HTTP server started on {self.settings.http_host}:{self.settings.http_port}"
        )

    async def _stop_http_server(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    async def _health_handler(self, request: web.Request) -> web.Response:
        """Handle health check requests"""
        uptime = (datetime.now(timezone.utc) - self._start_time).total_seconds()
        snapshot = self.store.current()

        return web.json_response({
            "status": self.status,
            "is_healthy": self.status == "running",
            "service": "config",
            "uptime": int(uptime),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "generation": self.store.generation,
            "config_version": snapshot.version if snapshot else None,
            "app_name": self.settings.app_name,
            "profile": self.settings.profile,
        })

    async def _info_handler(self, request: web.Request) -> web.Response:
        return web.Response(text=f"Info endpoint called. Properties are {self.store.current()}")

    async def _properties_handler(self, request: web.Request) -> web.Response:
        snapshot = self.store.current()
        if snapshot is None:
            return web.json_response({"error": "Configuration not loaded"}, status=503)

        return web.json_response({
            "version": snapshot.version,
            "generation": self.store.generation,
            "properties": snapshot.to_dict(),
        })

    async def _refresh_handler(self, request: web.Request) -> web.Response:
        """Handle refresh trigger requests"""
        try:
            result = await self.coordinator.refresh()
        except FetchError as e:
            return web.json_response(
                {"applied": False, "error": e.message, "kind": e.kind.value},
                status=502,
            )
        except ConfigClientError as e:
            return web.json_response({"applied": False, "error": e.message}, status=409)

        return web.json_response(
            {
                "applied": result.applied,
                "changed": result.changed,
                "violations": [str(v) for v in result.violations],
            },
            status=200 if result.applied else 422,
        )


async def run_service(settings: ClientSettings) -> int:
    """Run the service until shutdown; returns a process exit code"""
    service = ClientService(settings)

    try:
        await service.start()
        return 0
    except ServiceError:
        return 1
    finally:
        await service.stop()
