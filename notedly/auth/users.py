"""Helpers for syncing application ``User`` rows from provider logins."""

from __future__ import annotations

import logging
from typing import Tuple

from sqlmodel import Session

from .. import store
from ..models import User, utcnow
from .credentials import hash_token


logger = logging.getLogger(__name__)


def format_provider_identity(provider: str, subject: str) -> str:
    """Return the unique identity key for ``subject`` at ``provider``."""

    provider = (provider or "").strip().lower()
    subject = str(subject or "").strip()
    if not provider or not subject:
        raise ValueError("provider and subject must both be provided")
    return f"{provider}:{subject}"


def upsert_user_from_identity(
    session: Session,
    provider_identity: str,
    raw_access_token: str,
    email: str,
) -> Tuple[User, bool]:
    """Create or update the :class:`User` keyed on ``provider_identity``.

    The stored credential hash is always replaced, so only the token from the
    most recent login remains valid. Returns ``(user, created)``.
    """

    if not provider_identity:
        raise ValueError("provider_identity must be provided")
    if not raw_access_token:
        raise ValueError("raw_access_token must be provided")

    now = utcnow()
    credential_hash = hash_token(raw_access_token)

    user = store.get_user_by_provider_identity(session, provider_identity)
    if user is None:
        user = store.insert_user(
            session,
            provider_identity=provider_identity,
            credential_hash=credential_hash,
            email=email or "",
            last_login_at=now,
        )
        logger.info("Registered user %s (%s)", user.id, provider_identity)
        return user, True

    user = store.update_user_credential(
        session,
        user,
        credential_hash=credential_hash,
        email=email or None,
        last_login_at=now,
    )
    logger.info("Rotated session credential for user %s", user.id)
    return user, False
