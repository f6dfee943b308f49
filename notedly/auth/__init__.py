"""Authentication and board authorization helpers.

:mod:`notedly.auth.identity` turns a bearer token into a :class:`~notedly.models.User`,
:mod:`notedly.auth.permissions` decides what that user may do on a board and
:mod:`notedly.auth.oauth` issues the tokens in the first place.
"""

from .credentials import hash_token
from .identity import get_current_user, resolve_user
from .permissions import (
    Decision,
    Requirement,
    authorize,
    decide,
    ensure_authorized,
    load_board_for,
    load_note_for,
)
from .users import format_provider_identity, upsert_user_from_identity


__all__ = [
    "Decision",
    "Requirement",
    "authorize",
    "decide",
    "ensure_authorized",
    "format_provider_identity",
    "get_current_user",
    "hash_token",
    "load_board_for",
    "load_note_for",
    "resolve_user",
    "upsert_user_from_identity",
]
