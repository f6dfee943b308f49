"""One-way hashing of bearer credentials and generation of random secrets."""

from __future__ import annotations

import base64
import hashlib
import secrets
from typing import Tuple


def hash_token(token: str) -> str:
    """Return the SHA3-256 hex digest stored in place of ``token``.

    The digest is deterministic, so the value persisted at login compares
    equal to the value computed from the same raw token on later requests.
    """

    return hashlib.sha3_256(token.encode("utf-8")).hexdigest()


def generate_state() -> str:
    return secrets.token_urlsafe(32)


def generate_pkce_pair() -> Tuple[str, str]:
    """Return ``(code_verifier, code_challenge)`` for the S256 PKCE method."""

    verifier = secrets.token_urlsafe(64)
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return verifier, challenge
