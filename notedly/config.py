"""Application configuration helpers read from the process environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional

_TRUE_VALUES = {"1", "true", "yes", "on"}

DEFAULT_REDIRECT_URL = "http://localhost:8080/api/oauth/cb"
DEFAULT_STATE_TTL_SECONDS = 600

SUPPORTED_PROVIDERS = ("github", "google")


def _read_flag(name: str) -> bool | None:
    """Return the parsed boolean value for ``name`` if explicitly set."""

    value = os.getenv(name)
    if value is None:
        return None
    normalized = value.strip()
    if not normalized:
        return None
    return normalized.lower() in _TRUE_VALUES


def _read_str(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


__all__ = [
    "CorsSettings",
    "OAuthClientConfig",
    "SUPPORTED_PROVIDERS",
    "get_configured_providers",
    "get_cors_settings",
    "get_oauth_client_config",
    "get_oauth_redirect_url",
    "get_oauth_state_ttl_seconds",
    "is_metrics_enabled",
]


@dataclass(frozen=True)
class OAuthClientConfig:
    provider: str
    client_id: str
    client_secret: str


@dataclass(frozen=True)
class CorsSettings:
    allow_origins: List[str]
    allow_credentials: bool
    allow_methods: List[str]
    allow_headers: List[str]


@lru_cache(maxsize=1)
def is_metrics_enabled() -> bool:
    """Return ``True`` when the Prometheus ``/metrics`` endpoint is exposed."""

    flag = _read_flag("METRICS_ENABLED")
    if flag is None:
        return True
    return flag


@lru_cache(maxsize=1)
def get_oauth_redirect_url() -> str:
    """Return the callback URL registered with every OAuth provider."""

    return _read_str("OAUTH_REDIRECT_URL") or DEFAULT_REDIRECT_URL


@lru_cache(maxsize=1)
def get_oauth_state_ttl_seconds() -> int:
    """Return how long a pending login ``state`` remains redeemable."""

    raw = _read_str("OAUTH_STATE_TTL_SECONDS")
    if raw is None:
        return DEFAULT_STATE_TTL_SECONDS
    try:
        value = int(raw)
    except ValueError:
        return DEFAULT_STATE_TTL_SECONDS
    return value if value > 0 else DEFAULT_STATE_TTL_SECONDS


@lru_cache(maxsize=None)
def get_oauth_client_config(provider: str) -> Optional[OAuthClientConfig]:
    """Return the client credentials for ``provider`` or ``None`` if unset.

    A provider counts as configured only when both its client id and its
    client secret are present (``<PROVIDER>_OAUTH_CLIENT_ID`` and
    ``<PROVIDER>_OAUTH_CLIENT_SECRET``).
    """

    if provider not in SUPPORTED_PROVIDERS:
        return None
    prefix = provider.upper()
    client_id = _read_str(f"{prefix}_OAUTH_CLIENT_ID")
    client_secret = _read_str(f"{prefix}_OAUTH_CLIENT_SECRET")
    if not client_id or not client_secret:
        return None
    return OAuthClientConfig(provider=provider, client_id=client_id, client_secret=client_secret)


def get_configured_providers() -> Dict[str, OAuthClientConfig]:
    configured: Dict[str, OAuthClientConfig] = {}
    for provider in SUPPORTED_PROVIDERS:
        cfg = get_oauth_client_config(provider)
        if cfg is not None:
            configured[provider] = cfg
    return configured


def clear_config_caches() -> None:
    """Drop cached values so environment changes are picked up (tests)."""

    is_metrics_enabled.cache_clear()
    get_oauth_redirect_url.cache_clear()
    get_oauth_state_ttl_seconds.cache_clear()
    get_oauth_client_config.cache_clear()


def _read_list(name: str, default: str = "*") -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def get_cors_settings() -> CorsSettings:
    """Return the CORS policy from the ``CORS_ALLOW_*`` variables.

    Credentials default on only when explicit origins are listed; a wildcard
    origin never carries credentials unless ``CORS_ALLOW_CREDENTIALS`` says so.
    """

    origins = _read_list("CORS_ALLOW_ORIGINS")
    credentials = _read_flag("CORS_ALLOW_CREDENTIALS")
    if credentials is None:
        credentials = "*" not in origins
    return CorsSettings(
        allow_origins=origins,
        allow_credentials=credentials,
        allow_methods=_read_list("CORS_ALLOW_METHODS"),
        allow_headers=_read_list("CORS_ALLOW_HEADERS"),
    )
