"""
Client Settings

Local settings the client needs before it can reach the config server.
Loaded from a YAML file, with environment variable overrides.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

DEFAULT_CONFIG_PATHS = [
    "/etc/config-client/config.yaml",
    "config.yaml",
]


@dataclass(frozen=True)
class ClientSettings:
    """Where to fetch configuration from, and how to serve the trigger endpoints"""
    app_name: str = "client-app"
    profile: str = "default"
    label: str | None = None

    # Config server
    server_url: str = "http://localhost:8888"
    username: str | None = None
    password: str | None = None
    timeout_s: float = 10.0
    headers: dict[str, str] = field(default_factory=dict)

    # Periodic refresh (0 = disabled, refresh only on demand)
    refresh_interval_s: float = 0.0

    # Trigger server
    http_host: str = "127.0.0.1"
    http_port: int = 8080

    @property
    def auth(self) -> tuple[str, str] | None:
        if self.username:
            return (self.username, self.password or "")
        return None


# env var -> (settings field, converter)
ENV_OVERRIDES: dict[str, tuple[str, Any]] = {
    "CONFIG_CLIENT_APP_NAME": ("app_name", str),
    "CONFIG_CLIENT_PROFILE": ("profile", str),
    "CONFIG_CLIENT_LABEL": ("label", str),
    "CONFIG_CLIENT_SERVER_URL": ("server_url", str),
    "CONFIG_CLIENT_USERNAME": ("username", str),
    "CONFIG_CLIENT_PASSWORD": ("password", str),
    "CONFIG_CLIENT_TIMEOUT_S": ("timeout_s", float),
    "CONFIG_CLIENT_REFRESH_INTERVAL_S": ("refresh_interval_s", float),
    "CONFIG_CLIENT_HTTP_HOST": ("http_host", str),
    "CONFIG_CLIENT_HTTP_PORT": ("http_port", int),
}


def find_config_path() -> Path | None:
    """Find the settings file, or None when there is none"""
    env_path = os.environ.get("CONFIG_CLIENT_CONFIG")
    if env_path:
        return Path(env_path)

    for path in DEFAULT_CONFIG_PATHS:
        path = Path(path)
        if path.exists():
            return path

    return None


def _load_yaml(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"Settings file not found: {path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing settings file {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")
    return data


def settings_from_dict(data: dict) -> ClientSettings:
    """Build ClientSettings from the YAML layout"""
    application = data.get("application", {}) or {}
    server = data.get("config_server", {}) or {}
    refresh = data.get("refresh", {}) or {}
    http = data.get("server", {}) or {}
    defaults = ClientSettings()

    try:
        return ClientSettings(
            app_name=application.get("name", defaults.app_name),
            profile=data.get("profile", defaults.profile),
            label=server.get("label"),
            server_url=server.get("url", defaults.server_url),
            username=server.get("username"),
            password=server.get("password"),
            timeout_s=float(server.get("timeout_s", defaults.timeout_s)),
            headers=dict(server.get("headers", {}) or {}),
            refresh_interval_s=float(refresh.get("interval_s", defaults.refresh_interval_s)),
            http_host=http.get("host", defaults.http_host),
            http_port=int(http.get("port", defaults.http_port)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid settings value: {e}")


def apply_env_overrides(settings: ClientSettings, environ: dict | None = None) -> ClientSettings:
    """Apply CONFIG_CLIENT_* environment variables on top of settings"""
    environ = os.environ if environ is None else environ
    overrides = {}

    for env_name, (field_name, convert) in ENV_OVERRIDES.items():
        raw = environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            overrides[field_name] = convert(raw)
        except ValueError:
            raise ConfigError(f"Invalid value for {env_name}: {raw!r}")

    return replace(settings, **overrides) if overrides else settings


def load_client_settings(path: str | Path | None = None) -> ClientSettings:
    """
    Load client settings.

    Args:
        path: Settings file; searched for when omitted. A missing
            default file means built-in defaults.

    Returns:
        Settings with environment overrides applied
    """
    config_path = Path(path) if path else find_config_path()

    data = _load_yaml(config_path) if config_path else {}
    return apply_env_overrides(settings_from_dict(data))
