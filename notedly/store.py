"""Named data-access functions over the users, boards, notes and permissions tables.

Every function takes the caller's :class:`~sqlmodel.Session` explicitly. Lookups
return ``None`` when the row does not exist; connectivity or transaction
failures surface as :class:`~notedly.errors.StoreUnavailable` and uniqueness
violations as :class:`~notedly.errors.Conflict`, with the session rolled back.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Iterator, List, Optional

from sqlalchemy import delete, exists, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from .errors import Conflict, StoreUnavailable
from .models import Board, BoardVisibility, Note, OAuthState, Permission, User, utcnow


logger = logging.getLogger(__name__)

__all__ = [
    "get_user",
    "get_user_by_credential_hash",
    "get_user_by_provider_identity",
    "list_user_ids",
    "insert_user",
    "update_user_credential",
    "get_board",
    "list_visible_board_ids",
    "list_owned_board_ids",
    "insert_board",
    "update_board",
    "delete_board_cascade",
    "get_permission",
    "list_permissions_for_board",
    "list_permissions_for_user",
    "insert_permission",
    "delete_permission",
    "get_note",
    "list_note_ids_for_board",
    "list_note_ids_for_author",
    "insert_note",
    "update_note",
    "delete_note",
    "insert_oauth_state",
    "pop_oauth_state",
    "purge_expired_oauth_states",
]


@contextmanager
def _store_call(session: Session, action: str) -> Iterator[None]:
    try:
        yield
    except IntegrityError as exc:
        session.rollback()
        logger.debug("Integrity violation during %s", action, exc_info=True)
        raise Conflict(f"Conflicting {action}") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.warning("Store failure during %s", action, exc_info=True)
        raise StoreUnavailable() from exc


# Users


def get_user(session: Session, user_id: int) -> Optional[User]:
    with _store_call(session, "user lookup"):
        return session.get(User, user_id)


def get_user_by_credential_hash(session: Session, credential_hash: str) -> Optional[User]:
    with _store_call(session, "credential lookup"):
        stmt = select(User).where(User.credential_hash == credential_hash)
        return session.exec(stmt).first()


def get_user_by_provider_identity(session: Session, provider_identity: str) -> Optional[User]:
    with _store_call(session, "provider identity lookup"):
        stmt = select(User).where(User.provider_identity == provider_identity)
        return session.exec(stmt).first()


def list_user_ids(session: Session) -> List[int]:
    with _store_call(session, "user listing"):
        return list(session.exec(select(User.id).order_by(User.id)).all())


def insert_user(
    session: Session,
    *,
    provider_identity: str,
    credential_hash: str,
    email: str,
    last_login_at: Optional[datetime] = None,
) -> User:
    with _store_call(session, "user insert"):
        user = User(
            provider_identity=provider_identity,
            credential_hash=credential_hash,
            email=email,
            last_login_at=last_login_at,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user


def update_user_credential(
    session: Session,
    user: User,
    *,
    credential_hash: str,
    email: Optional[str] = None,
    last_login_at: Optional[datetime] = None,
) -> User:
    with _store_call(session, "user update"):
        user.credential_hash = credential_hash
        if email:
            user.email = email
        if last_login_at is not None:
            user.last_login_at = last_login_at
        session.add(user)
        session.commit()
        session.refresh(user)
        return user


# Boards


def get_board(session: Session, board_id: int) -> Optional[Board]:
    with _store_call(session, "board lookup"):
        return session.get(Board, board_id)


def list_visible_board_ids(session: Session, user_id: int) -> List[int]:
    """Return ids of boards ``user_id`` owns or holds any grant row on."""

    with _store_call(session, "board listing"):
        has_grant = (
            exists()
            .where(Permission.user_id == user_id)
            .where(Permission.board_id == Board.id)
        )
        stmt = (
            select(Board.id)
            .where(or_(Board.owner_id == user_id, has_grant))
            .order_by(Board.id)
        )
        return list(session.exec(stmt).all())


def list_owned_board_ids(session: Session, user_id: int) -> List[int]:
    with _store_call(session, "board listing"):
        stmt = select(Board.id).where(Board.owner_id == user_id).order_by(Board.id)
        return list(session.exec(stmt).all())


def insert_board(
    session: Session,
    *,
    owner_id: int,
    title: str,
    visibility: BoardVisibility = BoardVisibility.PRIVATE,
) -> Board:
    """Insert a board together with its owner's full grant in one transaction."""

    with _store_call(session, "board insert"):
        board = Board(owner_id=owner_id, title=title, visibility=visibility)
        session.add(board)
        session.flush()
        session.add(
            Permission(
                user_id=owner_id,
                board_id=board.id,
                can_read=True,
                can_write=True,
            )
        )
        session.commit()
        session.refresh(board)
        return board


def update_board(
    session: Session,
    board: Board,
    *,
    title: Optional[str] = None,
    visibility: Optional[BoardVisibility] = None,
) -> Board:
    with _store_call(session, "board update"):
        if title is not None:
            board.title = title
        if visibility is not None:
            board.visibility = visibility
        board.updated_at = utcnow()
        session.add(board)
        session.commit()
        session.refresh(board)
        return board


def delete_board_cascade(session: Session, board_id: int) -> bool:
    """Delete a board with all of its notes and permission rows atomically.

    Returns ``False`` when the board did not exist. Nothing is committed
    unless every delete succeeds.
    """

    with _store_call(session, "board delete"):
        board = session.get(Board, board_id)
        if board is None:
            return False
        session.exec(delete(Note).where(Note.board_id == board_id))
        session.exec(delete(Permission).where(Permission.board_id == board_id))
        session.delete(board)
        session.commit()
        return True


# Permissions


def get_permission(session: Session, user_id: int, board_id: int) -> Optional[Permission]:
    with _store_call(session, "permission lookup"):
        stmt = select(Permission).where(
            Permission.user_id == user_id,
            Permission.board_id == board_id,
        )
        return session.exec(stmt).first()


def list_permissions_for_board(session: Session, board_id: int) -> List[Permission]:
    with _store_call(session, "permission listing"):
        stmt = (
            select(Permission)
            .where(Permission.board_id == board_id)
            .order_by(Permission.user_id)
        )
        return list(session.exec(stmt).all())


def list_permissions_for_user(session: Session, user_id: int) -> List[Permission]:
    with _store_call(session, "permission listing"):
        stmt = (
            select(Permission)
            .where(Permission.user_id == user_id)
            .order_by(Permission.board_id)
        )
        return list(session.exec(stmt).all())


def insert_permission(
    session: Session,
    *,
    user_id: int,
    board_id: int,
    can_read: bool,
    can_write: bool,
) -> Permission:
    with _store_call(session, "permission grant"):
        grant = Permission(
            user_id=user_id,
            board_id=board_id,
            can_read=can_read,
            can_write=can_write,
        )
        session.add(grant)
        session.commit()
        session.refresh(grant)
        return grant


def delete_permission(session: Session, grant: Permission) -> None:
    with _store_call(session, "permission revoke"):
        session.delete(grant)
        session.commit()


# Notes


def get_note(session: Session, note_id: int) -> Optional[Note]:
    with _store_call(session, "note lookup"):
        return session.get(Note, note_id)


def list_note_ids_for_board(session: Session, board_id: int) -> List[int]:
    with _store_call(session, "note listing"):
        stmt = select(Note.id).where(Note.board_id == board_id).order_by(Note.id)
        return list(session.exec(stmt).all())


def list_note_ids_for_author(session: Session, author_id: int) -> List[int]:
    with _store_call(session, "note listing"):
        stmt = select(Note.id).where(Note.author_id == author_id).order_by(Note.id)
        return list(session.exec(stmt).all())


def insert_note(
    session: Session,
    *,
    author_id: int,
    board_id: int,
    title: str,
    body: str,
) -> Note:
    with _store_call(session, "note insert"):
        note = Note(author_id=author_id, board_id=board_id, title=title, body=body)
        session.add(note)
        session.commit()
        session.refresh(note)
        return note


def update_note(
    session: Session,
    note: Note,
    *,
    title: Optional[str] = None,
    body: Optional[str] = None,
) -> Note:
    with _store_call(session, "note update"):
        if title is not None:
            note.title = title
        if body is not None:
            note.body = body
        note.updated_at = utcnow()
        session.add(note)
        session.commit()
        session.refresh(note)
        return note


def delete_note(session: Session, note: Note) -> None:
    with _store_call(session, "note delete"):
        session.delete(note)
        session.commit()


# Pending OAuth logins


def insert_oauth_state(session: Session, *, state: str, provider: str, code_verifier: str) -> OAuthState:
    with _store_call(session, "login state insert"):
        pending = OAuthState(state=state, provider=provider, code_verifier=code_verifier)
        session.add(pending)
        session.commit()
        session.refresh(pending)
        return pending


def pop_oauth_state(session: Session, state: str) -> Optional[OAuthState]:
    """Remove and return the pending login for ``state`` (single use)."""

    with _store_call(session, "login state redeem"):
        pending = session.get(OAuthState, state)
        if pending is None:
            return None
        snapshot = OAuthState(
            state=pending.state,
            provider=pending.provider,
            code_verifier=pending.code_verifier,
            created_at=pending.created_at,
        )
        session.delete(pending)
        session.commit()
        return snapshot


def purge_expired_oauth_states(session: Session, ttl_seconds: int) -> int:
    with _store_call(session, "login state purge"):
        cutoff = utcnow() - timedelta(seconds=ttl_seconds)
        stale = session.exec(select(OAuthState).where(OAuthState.created_at < cutoff)).all()
        for pending in stale:
            session.delete(pending)
        if stale:
            session.commit()
        return len(stale)
