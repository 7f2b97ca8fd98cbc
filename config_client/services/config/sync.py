"""
Configuration Sync

Fetches raw configuration properties from a Spring Cloud Config style
server: GET {url}/{application}/{profile}[/{label}].

Reuses a single HTTP client. No retries: callers decide what to do
with a FetchError.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from config_client.common.exceptions import FetchError, FetchErrorKind
from config_client.common.logging_setup import get_service_logger

logger = get_service_logger("config.sync")


@dataclass(frozen=True)
class FetchResult:
    """Merged properties plus what the server reported about them"""
    properties: dict[str, Any]
    version: str | None = None
    label: str | None = None
    sources: list[str] = field(default_factory=list)


class RemoteFetcher:
    """
    Fetches configuration for (application, profile) from the config server.

    Property sources in the response are ordered highest precedence
    first, so earlier sources win when merging.
    """

    def __init__(
        self,
        server_url: str,
        timeout_s: float = 10.0,
        auth: tuple[str, str] | None = None,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.server_url = server_url.rstrip("/")
        self.timeout_s = timeout_s
        self.auth = auth
        self.headers = {"Accept": "application/json", **(headers or {})}
        self._transport = transport
        # Reusable HTTP client - avoids connection overhead per request
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create reusable HTTP client"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout_s,
                auth=self.auth,
                headers=self.headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client"""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def build_url(self, app_name: str, profile: str, label: str | None = None) -> str:
        parts = [app_name, profile] + ([label] if label else [])
        return "/".join([self.server_url] + [quote(p, safe="") for p in parts])

    async def fetch(
        self,
        app_name: str,
        profile: str,
        label: str | None = None,
    ) -> dict[str, Any]:
        """
        Fetch merged raw properties.

        Raises:
            FetchError: UNREACHABLE, NOT_FOUND or MALFORMED_RESPONSE
        """
        result = await self.fetch_result(app_name, profile, label)
        return result.properties

    async def fetch_result(
        self,
        app_name: str,
        profile: str,
        label: str | None = None,
    ) -> FetchResult:
        """Fetch merged raw properties together with version and source names"""
        url = self.build_url(app_name, profile, label)

        try:
            # Bound the whole call, not only each socket operation
            response = await asyncio.wait_for(self._get(url), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            raise FetchError(
                FetchErrorKind.UNREACHABLE,
                f"Timed out after {self.timeout_s}s",
                url=url,
            )
        except httpx.TimeoutException as e:
            raise FetchError(FetchErrorKind.UNREACHABLE, f"Timed out: {e}", url=url)
        except httpx.TransportError as e:
            raise FetchError(FetchErrorKind.UNREACHABLE, f"Connection failed: {e}", url=url)

        if response.status_code == 404:
            raise FetchError(
                FetchErrorKind.NOT_FOUND,
                f"No configuration for {app_name}/{profile}",
                url=url,
            )
        if response.status_code >= 400:
            raise FetchError(
                FetchErrorKind.UNREACHABLE,
                f"Config server returned HTTP {response.status_code}",
                url=url,
            )

        result = self._parse(response, url)

        if not result.sources:
            raise FetchError(
                FetchErrorKind.NOT_FOUND,
                f"No property sources for {app_name}/{profile}",
                url=url,
            )

        logger.info(
            f"Config fetched: {len(result.properties)} properties "
            f"from {len(result.sources)} source(s)",
            extra={
                "app_name": app_name,
                "profile": profile,
                "config_version": result.version,
                "property_count": len(result.properties),
            },
        )

        return result

    async def _get(self, url: str) -> httpx.Response:
        client = await self._get_client()
        return await client.get(url)

    def _parse(self, response: httpx.Response, url: str) -> FetchResult:
        """Parse an environment document and merge its property sources"""
        try:
            body = response.json()
        except ValueError as e:
            raise FetchError(
                FetchErrorKind.MALFORMED_RESPONSE,
                f"Response is not JSON: {e}",
                url=url,
            )

        if not isinstance(body, dict):
            raise FetchError(
                FetchErrorKind.MALFORMED_RESPONSE,
                "Response is not a JSON object",
                url=url,
            )

        sources = body.get("propertySources", [])
        if not isinstance(sources, list):
            raise FetchError(
                FetchErrorKind.MALFORMED_RESPONSE,
                "propertySources is not a list",
                url=url,
            )

        merged: dict[str, Any] = {}
        names: list[str] = []

        # Apply lowest precedence first so earlier sources overwrite
        for index, source in enumerate(reversed(sources)):
            if not isinstance(source, dict) or not isinstance(source.get("source"), dict):
                raise FetchError(
                    FetchErrorKind.MALFORMED_RESPONSE,
                    f"Property source #{len(sources) - index - 1} has no source mapping",
                    url=url,
                )
            merged.update(source["source"])
            names.insert(0, str(source.get("name", "")))

        version = body.get("version")
        return FetchResult(
            properties=merged,
            version=str(version) if version is not None else None,
            label=body.get("label"),
            sources=names,
        )
