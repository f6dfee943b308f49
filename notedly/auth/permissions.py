"""Board-scoped permission evaluation.

Every board operation names a :class:`Requirement` and asks :func:`authorize`
whether the caller satisfies it. Rules run in a fixed order and stop at the
first match:

1. a missing board is ``NOT_FOUND``;
2. the board owner is always allowed, whatever the requirement;
3. a caller with no grant row on the board is ``NOT_INVITED``;
4. an owner-only requirement is ``OWNER_REQUIRED`` for everyone else;
5. ``need_write`` without ``can_write`` is ``WRITE_DENIED``;
6. ``need_read`` without ``can_read`` is ``READ_DENIED``;
7. otherwise ``ALLOW``.

Read and write are independent: a write-only grant may create notes but not
view the board. Notes carry no grants of their own; they are authorized
through the board they belong to.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Type

from sqlmodel import Session

from .. import store
from ..errors import (
    NotFound,
    NotInvited,
    NotedlyError,
    OwnerRequired,
    ReadDenied,
    WriteDenied,
)
from ..models import Board, Note, Permission, User
from ..observability.metrics import increment_authz_decision


logger = logging.getLogger(__name__)


class Decision(str, Enum):
    ALLOW = "allow"
    NOT_FOUND = "not_found"
    NOT_INVITED = "not_invited"
    OWNER_REQUIRED = "owner_required"
    WRITE_DENIED = "write_denied"
    READ_DENIED = "read_denied"


@dataclass(frozen=True)
class Requirement:
    need_owner: bool = False
    need_read: bool = False
    need_write: bool = False


REQUIRE_RELATIONSHIP = Requirement()
REQUIRE_READ = Requirement(need_read=True)
REQUIRE_WRITE = Requirement(need_write=True)
REQUIRE_OWNER = Requirement(need_owner=True)

# Capability each board/note operation demands.
VIEW_BOARD = REQUIRE_READ
UPDATE_BOARD = REQUIRE_OWNER
DELETE_BOARD = REQUIRE_OWNER
MANAGE_BOARD_PERMISSIONS = REQUIRE_OWNER
LIST_BOARD_PERMISSIONS = REQUIRE_READ
LIST_BOARD_NOTES = REQUIRE_READ
LIST_BOARD_USERS = REQUIRE_READ
VIEW_NOTE = REQUIRE_READ
CREATE_NOTE = REQUIRE_WRITE
UPDATE_NOTE = REQUIRE_WRITE
DELETE_NOTE = REQUIRE_WRITE

_DENY_ERRORS: Dict[Decision, Type[NotedlyError]] = {
    Decision.NOT_FOUND: NotFound,
    Decision.NOT_INVITED: NotInvited,
    Decision.OWNER_REQUIRED: OwnerRequired,
    Decision.WRITE_DENIED: WriteDenied,
    Decision.READ_DENIED: ReadDenied,
}

__all__ = [
    "Decision",
    "Requirement",
    "REQUIRE_RELATIONSHIP",
    "REQUIRE_READ",
    "REQUIRE_WRITE",
    "REQUIRE_OWNER",
    "VIEW_BOARD",
    "UPDATE_BOARD",
    "DELETE_BOARD",
    "MANAGE_BOARD_PERMISSIONS",
    "LIST_BOARD_PERMISSIONS",
    "LIST_BOARD_NOTES",
    "LIST_BOARD_USERS",
    "VIEW_NOTE",
    "CREATE_NOTE",
    "UPDATE_NOTE",
    "DELETE_NOTE",
    "decide",
    "authorize",
    "error_for",
    "ensure_authorized",
    "load_board_for",
    "load_note_for",
]


def decide(
    user: User,
    board: Optional[Board],
    grant: Optional[Permission],
    required: Requirement,
) -> Decision:
    """Return the decision for already-fetched ``user``, ``board`` and ``grant``.

    Pure: no lookups, no side effects. ``grant`` must be the row for
    ``(user.id, board.id)``; a row for any other pair counts as no row.
    """

    if board is None:
        return Decision.NOT_FOUND
    if user.id is not None and user.id == board.owner_id:
        return Decision.ALLOW
    if grant is None or grant.user_id != user.id or grant.board_id != board.id:
        return Decision.NOT_INVITED
    if required.need_owner:
        return Decision.OWNER_REQUIRED
    if required.need_write and not grant.can_write:
        return Decision.WRITE_DENIED
    if required.need_read and not grant.can_read:
        return Decision.READ_DENIED
    return Decision.ALLOW


def authorize(
    session: Session,
    user: User,
    board: Optional[Board],
    required: Requirement,
) -> Decision:
    """Decide whether ``user`` satisfies ``required`` on ``board``.

    Only the grant row is looked up here, and only for non-owners; the caller
    supplies the resolved user and board.
    """

    grant: Optional[Permission] = None
    if board is not None and user.id != board.owner_id:
        grant = store.get_permission(session, user.id, board.id)
    decision = decide(user, board, grant, required)
    increment_authz_decision(decision.value)
    if decision is not Decision.ALLOW:
        logger.debug(
            "Denied user %s on board %s (%s) for %s",
            user.id,
            board.id if board is not None else None,
            decision.value,
            required,
        )
    return decision


def error_for(decision: Decision) -> NotedlyError:
    """Return the exception that reports ``decision`` to the caller."""

    if decision is Decision.ALLOW:
        raise ValueError("ALLOW has no associated error")
    return _DENY_ERRORS[decision]()


def ensure_authorized(
    session: Session,
    user: User,
    board: Optional[Board],
    required: Requirement,
) -> Board:
    """Return ``board`` if ``user`` satisfies ``required``, otherwise raise."""

    decision = authorize(session, user, board, required)
    if decision is not Decision.ALLOW:
        raise error_for(decision)
    if board is None:
        raise NotFound()
    return board


def load_board_for(
    session: Session,
    user: User,
    board_id: int,
    required: Requirement,
) -> Board:
    board = store.get_board(session, board_id)
    if board is None:
        raise NotFound(f"No board with the id '{board_id}' exists")
    return ensure_authorized(session, user, board, required)


def load_note_for(
    session: Session,
    user: User,
    note_id: int,
    required: Requirement,
) -> Tuple[Note, Board]:
    """Resolve a note and authorize ``required`` against its owning board."""

    note = store.get_note(session, note_id)
    if note is None:
        raise NotFound(f"No note with the id '{note_id}' exists")
    board = store.get_board(session, note.board_id)
    return note, ensure_authorized(session, user, board, required)
