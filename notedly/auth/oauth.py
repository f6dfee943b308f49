"""OAuth 2.0 login against GitHub and Google.

The login endpoint records a single-use ``state`` plus a PKCE verifier and
redirects to the provider. The callback redeems the state, exchanges the code
for an access token, asks the provider who the token belongs to and upserts
the local user. The provider's raw access token becomes the caller's bearer
credential; only its hash is stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlencode

import httpx
from sqlmodel import Session

from .. import store
from ..config import (
    OAuthClientConfig,
    get_oauth_client_config,
    get_oauth_redirect_url,
    get_oauth_state_ttl_seconds,
)
from ..errors import InvalidOAuthState, OAuthError, UnsupportedProvider
from ..models import User, utcnow
from ..observability.metrics import increment_user_login
from .credentials import generate_pkce_pair, generate_state
from .users import format_provider_identity, upsert_user_from_identity


logger = logging.getLogger(__name__)

USER_AGENT = "notedly"


@dataclass(frozen=True)
class ProviderEndpoints:
    name: str
    authorize_url: str
    token_url: str
    scope: str


PROVIDERS: Dict[str, ProviderEndpoints] = {
    "github": ProviderEndpoints(
        name="github",
        authorize_url="https://github.com/login/oauth/authorize",
        token_url="https://github.com/login/oauth/access_token",
        scope="user:email",
    ),
    "google": ProviderEndpoints(
        name="google",
        authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
        token_url="https://oauth2.googleapis.com/token",
        scope="openid email profile",
    ),
}

GITHUB_USER_URL = "https://api.github.com/user"
GITHUB_EMAILS_URL = "https://api.github.com/user/emails"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


@dataclass(frozen=True)
class ProviderIdentity:
    provider: str
    subject: str
    email: str
    access_token: str

    @property
    def provider_identity(self) -> str:
        return format_provider_identity(self.provider, self.subject)


def get_http_client() -> httpx.Client:
    return httpx.Client(timeout=5.0, headers={"User-Agent": USER_AGENT})


def _client_config(provider: str) -> Tuple[ProviderEndpoints, OAuthClientConfig]:
    endpoints = PROVIDERS.get(provider)
    if endpoints is None:
        raise UnsupportedProvider(f"Unknown identity provider '{provider}'")
    cfg = get_oauth_client_config(provider)
    if cfg is None:
        raise UnsupportedProvider(f"Identity provider '{provider}' is not configured")
    return endpoints, cfg


def begin_login(session: Session, provider: str) -> str:
    """Persist a pending login for ``provider`` and return its authorize URL."""

    endpoints, cfg = _client_config(provider)
    state = generate_state()
    verifier, challenge = generate_pkce_pair()
    store.insert_oauth_state(session, state=state, provider=provider, code_verifier=verifier)
    params = {
        "client_id": cfg.client_id,
        "redirect_uri": get_oauth_redirect_url(),
        "response_type": "code",
        "scope": endpoints.scope,
        "state": state,
        "code_challenge": challenge,
        "code_challenge_method": "S256",
    }
    logger.debug("Starting %s login", provider)
    return f"{endpoints.authorize_url}?{urlencode(params)}"


def _json_or_error(response: httpx.Response, what: str) -> Any:
    if response.status_code != 200:
        logger.warning("%s failed with status %s", what, response.status_code)
        raise OAuthError(f"{what} failed: {response.status_code}")
    try:
        return response.json()
    except ValueError as exc:
        raise OAuthError(f"{what} returned a malformed response") from exc


def exchange_code(
    client: httpx.Client,
    endpoints: ProviderEndpoints,
    cfg: OAuthClientConfig,
    code: str,
    code_verifier: str,
) -> str:
    """Exchange an authorization ``code`` for the provider's access token."""

    try:
        response = client.post(
            endpoints.token_url,
            data={
                "client_id": cfg.client_id,
                "client_secret": cfg.client_secret,
                "code": code,
                "redirect_uri": get_oauth_redirect_url(),
                "grant_type": "authorization_code",
                "code_verifier": code_verifier,
            },
            headers={"Accept": "application/json"},
        )
    except httpx.HTTPError as exc:
        raise OAuthError("Token exchange request failed") from exc
    payload = _json_or_error(response, "Token exchange")
    token = payload.get("access_token") if isinstance(payload, Mapping) else None
    if not token:
        # GitHub reports bad codes as 200 with an "error" field.
        error = payload.get("error") if isinstance(payload, Mapping) else None
        raise OAuthError(f"Token exchange was rejected: {error or 'no access_token'}")
    return str(token)


def best_github_email(emails: List[Mapping[str, Any]]) -> Optional[str]:
    """Pick the most suitable address from GitHub's ``/user/emails`` listing.

    Starts from the first entry; any verified address replaces it and a
    verified primary address ends the search.
    """

    if not emails:
        return None
    best = emails[0]
    for entry in emails:
        if entry.get("verified"):
            best = entry
            if entry.get("primary"):
                break
    email = best.get("email")
    return str(email) if email else None


def _get(client: httpx.Client, url: str, token: str, what: str) -> Any:
    try:
        response = client.get(
            url,
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
        )
    except httpx.HTTPError as exc:
        raise OAuthError(f"{what} request failed") from exc
    return _json_or_error(response, what)


def fetch_github_identity(client: httpx.Client, token: str) -> ProviderIdentity:
    profile = _get(client, GITHUB_USER_URL, token, "GitHub user lookup")
    if not isinstance(profile, Mapping) or profile.get("id") is None:
        raise OAuthError("GitHub user lookup returned no id")
    emails = _get(client, GITHUB_EMAILS_URL, token, "GitHub email lookup")
    email = best_github_email(emails if isinstance(emails, list) else [])
    email = email or profile.get("email")
    if not email:
        raise OAuthError("GitHub account has no usable email address")
    return ProviderIdentity(
        provider="github",
        subject=str(profile["id"]),
        email=str(email),
        access_token=token,
    )


def fetch_google_identity(client: httpx.Client, token: str) -> ProviderIdentity:
    userinfo = _get(client, GOOGLE_USERINFO_URL, token, "Google userinfo lookup")
    if not isinstance(userinfo, Mapping) or not userinfo.get("sub"):
        raise OAuthError("Google userinfo returned no subject")
    email = userinfo.get("email")
    if not email:
        raise OAuthError("Google account has no email address")
    return ProviderIdentity(
        provider="google",
        subject=str(userinfo["sub"]),
        email=str(email),
        access_token=token,
    )


_IDENTITY_FETCHERS = {
    "github": fetch_github_identity,
    "google": fetch_google_identity,
}


def _redeem_state(session: Session, state: str) -> Tuple[str, str]:
    ttl = get_oauth_state_ttl_seconds()
    store.purge_expired_oauth_states(session, ttl)
    pending = store.pop_oauth_state(session, state) if state else None
    if pending is None:
        raise InvalidOAuthState()
    created_at = pending.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    if utcnow() - created_at > timedelta(seconds=ttl):
        raise InvalidOAuthState()
    return pending.provider, pending.code_verifier


def complete_login(session: Session, code: str, state: str) -> Tuple[User, ProviderIdentity]:
    """Finish a login started by :func:`begin_login` and upsert the user."""

    provider, code_verifier = _redeem_state(session, state)
    endpoints, cfg = _client_config(provider)
    with get_http_client() as client:
        token = exchange_code(client, endpoints, cfg, code, code_verifier)
        identity = _IDENTITY_FETCHERS[provider](client, token)
    user, created = upsert_user_from_identity(
        session,
        identity.provider_identity,
        identity.access_token,
        identity.email,
    )
    increment_user_login(provider)
    logger.info(
        "User %s logged in via %s%s",
        user.id,
        provider,
        " (new account)" if created else "",
    )
    return user, identity
