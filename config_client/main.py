#!/usr/bin/env python3
"""
Config Client - Main Entry Point

Usage:
    config-client                          # Use default config.yaml
    config-client --config my.yaml         # Use custom settings file
    config-client --profile prod           # Override the profile
    config-client --check                  # Bootstrap, print properties and exit

The client will:
1. Load local settings (YAML + CONFIG_CLIENT_* environment variables)
2. Fetch and validate configuration from the config server
3. Serve /health, /info, /properties and POST /refresh
4. Optionally refresh periodically
"""

import argparse
import asyncio
import json
import sys
from dataclasses import replace

from config_client.common.config import ClientSettings, load_client_settings
from config_client.common.exceptions import ConfigClientError, ConfigError
from config_client.common.logging_setup import (
    get_service_logger,
    set_log_level,
    set_log_stream,
)
from config_client.services.config.listeners import SnapshotLogger
from config_client.services.config.properties import CLIENT_APP_SCHEMA
from config_client.services.config.refresh import RefreshCoordinator
from config_client.services.config.service import run_service
from config_client.services.config.store import ConfigStore
from config_client.services.config.sync import RemoteFetcher

logger = get_service_logger("main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Configuration client with validation and runtime refresh"
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to settings file (default: search standard locations)"
    )
    parser.add_argument(
        "--profile", "-p",
        type=str,
        default=None,
        help="Profile to fetch (overrides settings)"
    )
    parser.add_argument(
        "--server-url",
        type=str,
        default=None,
        help="Config server URL (overrides settings)"
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Bootstrap once, print the properties and exit"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (debug) logging"
    )
    return parser


def apply_cli_overrides(settings: ClientSettings, args: argparse.Namespace) -> ClientSettings:
    overrides = {}
    if args.profile:
        overrides["profile"] = args.profile
    if args.server_url:
        overrides["server_url"] = args.server_url
    return replace(settings, **overrides) if overrides else settings


async def check(settings: ClientSettings) -> int:
    """Bootstrap once and print the resulting properties"""
    # stdout carries only the JSON document
    set_log_stream(sys.stderr)

    fetcher = RemoteFetcher(
        server_url=settings.server_url,
        timeout_s=settings.timeout_s,
        auth=settings.auth,
        headers=settings.headers,
    )
    store = ConfigStore()
    snapshot_logger = SnapshotLogger()
    snapshot_logger.attach(store)

    coordinator = RefreshCoordinator(
        fetcher=fetcher,
        schema=CLIENT_APP_SCHEMA,
        store=store,
        app_name=settings.app_name,
        profile=settings.profile,
        label=settings.label,
    )

    try:
        snapshot = await coordinator.bootstrap()
    except ConfigClientError as e:
        print(f"Configuration check failed: {e}", file=sys.stderr)
        return 1
    finally:
        await fetcher.close()

    print(json.dumps(snapshot.to_dict(), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    if args.verbose:
        set_log_level("DEBUG")

    try:
        settings = apply_cli_overrides(load_client_settings(args.config), args)
    except ConfigError as e:
        logger.error(f"Error loading settings: {e}")
        return 1

    if args.check:
        return asyncio.run(check(settings))

    try:
        return asyncio.run(run_service(settings))
    except KeyboardInterrupt:
        print("\nStopped by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())
