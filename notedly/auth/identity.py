import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from .. import store
from ..db import get_session
from ..errors import MissingCredential, UnknownUser
from ..models import User
from ..observability.logging import bind_user_id
from .credentials import hash_token


security = HTTPBearer(auto_error=False)

logger = logging.getLogger(__name__)


def resolve_user(session: Session, token: Optional[str]) -> User:
    """Return the :class:`User` whose stored credential hash matches ``token``.

    Raises :class:`MissingCredential` when no token was presented and
    :class:`UnknownUser` when the digest matches nobody.
    """

    if not token:
        logger.debug("No bearer token supplied")
        raise MissingCredential()
    user = store.get_user_by_credential_hash(session, hash_token(token))
    if user is None:
        logger.debug("Bearer token did not match any stored credential")
        raise UnknownUser()
    return user


def get_authenticated_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: Session = Depends(get_session),
) -> User:
    return resolve_user(session, creds.credentials if creds else None)


async def get_current_user(user: User = Depends(get_authenticated_user)) -> User:
    """Resolve the caller and tag the request's log context with their id.

    Sync dependencies and endpoints run in worker threads on a copy of the
    request context, so the bind has to happen here on the event loop.
    """

    bind_user_id(user.id)
    return user
