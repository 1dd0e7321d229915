"""Runtime configuration read from the environment.

Values come from process environment variables (a ``.env`` file in the
working directory is loaded on package import). Each setting has an
``MCP_``-prefixed key; a few also accept the legacy names used by the
travel-planner API deployment (``BASE_URL``, ``STUDENT_TOKEN``, ...).
"""

from __future__ import annotations

import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from travel_mcp.errors import ConfigurationError

__all__ = ["BridgeSettings", "RegistrationProfile", "load_settings"]

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


class RegistrationProfile(BaseModel):
    """One OpenAPI document registered under a label with its own credential."""

    model_config = ConfigDict(frozen=True)

    label: str
    spec: str
    default_credential: Optional[str] = None
    base_url: str


class BridgeSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_url: str = "http://localhost:3000"
    client_token: Optional[str] = "1234567"
    admin_token: Optional[str] = "admin-secret-token"
    client_openapi: str = "openapi/openapi-client.json"
    admin_openapi: str = "openapi/openapi-admin.json"
    enable_admin: bool = False

    host: str = "0.0.0.0"
    port: int = 3333
    # None means any host (DNS-rebinding protection off).
    allowed_hosts: Optional[List[str]] = Field(
        default_factory=lambda: ["127.0.0.1", "localhost", "leiame.app"]
    )
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    session_ttl: float = 3600.0
    session_renew: bool = False
    session_sweep_interval: float = 60.0

    server_name: str = "travel-planner-streamable"
    server_version: str = "1.0.0"
    json_response: bool = False
    request_timeout: float = 30.0
    max_body_bytes: int = 1024 * 1024

    log_level: str = "INFO"
    log_format: str = "human"

    def profiles(self) -> List[RegistrationProfile]:
        """Registration profiles in the order they should be registered."""
        out = [
            RegistrationProfile(
                label="client",
                spec=self.client_openapi,
                default_credential=self.client_token,
                base_url=self.base_url,
            )
        ]
        if self.enable_admin:
            out.append(
                RegistrationProfile(
                    label="admin",
                    spec=self.admin_openapi,
                    default_credential=self.admin_token,
                    base_url=self.base_url,
                )
            )
        return out

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BridgeSettings":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            base_url=_first(env, "MCP_BASE_URL", "BASE_URL", "BASE_PROD") or defaults.base_url,
            client_token=_first(env, "MCP_CLIENT_TOKEN", "STUDENT_TOKEN") or defaults.client_token,
            admin_token=_first(env, "MCP_ADMIN_TOKEN", "ADMIN_TOKEN") or defaults.admin_token,
            client_openapi=env.get("MCP_CLIENT_OPENAPI") or defaults.client_openapi,
            admin_openapi=env.get("MCP_ADMIN_OPENAPI") or defaults.admin_openapi,
            enable_admin=_bool(env, "MCP_ENABLE_ADMIN", defaults.enable_admin),
            host=env.get("MCP_HOST") or defaults.host,
            port=_int(env, "MCP_PORT", defaults.port),
            allowed_hosts=_hosts(env.get("MCP_ALLOWED_HOSTS"), defaults.allowed_hosts),
            cors_origins=_origins(env.get("MCP_CORS_ORIGIN")),
            session_ttl=_float(env, "MCP_SESSION_TTL", defaults.session_ttl),
            session_renew=_bool(env, "MCP_SESSION_RENEW", defaults.session_renew),
            session_sweep_interval=_float(
                env, "MCP_SESSION_SWEEP_INTERVAL", defaults.session_sweep_interval
            ),
            server_name=env.get("MCP_SERVER_NAME") or defaults.server_name,
            server_version=env.get("MCP_SERVER_VERSION") or defaults.server_version,
            json_response=_bool(env, "MCP_JSON_RESPONSE", defaults.json_response),
            request_timeout=_float(env, "MCP_REQUEST_TIMEOUT", defaults.request_timeout),
            max_body_bytes=_int(env, "MCP_MAX_BODY_BYTES", defaults.max_body_bytes),
            log_level=(env.get("MCP_LOG_LEVEL") or defaults.log_level).upper(),
            log_format=_choice(env, "MCP_LOG_FORMAT", ("human", "json"), defaults.log_format),
        )


def load_settings(**overrides) -> BridgeSettings:
    """Settings from the environment, with non-None keyword overrides applied."""
    settings = BridgeSettings.from_env()
    changes = {k: v for k, v in overrides.items() if v is not None}
    return settings.model_copy(update=changes) if changes else settings


# ---------------- parsing helpers ----------------

def _first(env: Mapping[str, str], *keys: str) -> Optional[str]:
    for key in keys:
        value = env.get(key)
        if value:
            return value.strip()
    return None


def _split(raw: str) -> List[str]:
    return [v.strip() for v in raw.split(",") if v.strip()]


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}", config_key=key) from None


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}", config_key=key) from None
    if value < 0:
        raise ConfigurationError(f"{key} must not be negative", config_key=key)
    return value


def _bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{key} must be a boolean, got {raw!r}", config_key=key)


def _choice(env: Mapping[str, str], key: str, choices: tuple, default: str) -> str:
    raw = (env.get(key) or "").strip().lower()
    if not raw:
        return default
    if raw not in choices:
        raise ConfigurationError(
            f"{key} must be one of {', '.join(choices)}, got {raw!r}", config_key=key
        )
    return raw


def _hosts(raw: Optional[str], default: Optional[List[str]]) -> Optional[List[str]]:
    if raw is None or not raw.strip():
        return default
    if raw.strip() == "*":
        return None
    return _split(raw)


def _origins(raw: Optional[str]) -> List[str]:
    if not raw or raw.strip() == "*":
        return ["*"]
    return _split(raw) or ["*"]
