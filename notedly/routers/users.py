"""Account lookups. Per-user listings are only visible to the account holder."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Path
from sqlmodel import Session

from .. import store
from ..auth.identity import get_current_user
from ..db import get_session
from ..errors import NotAccountHolder, NotFound
from ..models import User
from ..schemas import PermissionOut, UserOut


router = APIRouter(prefix="/api", tags=["users"])


def _require_account_holder(session: Session, current_user: User, user_id: int) -> User:
    if user_id == current_user.id:
        return current_user
    if store.get_user(session, user_id) is None:
        raise NotFound(f"No user with the id '{user_id}' exists")
    raise NotAccountHolder()


@router.get("/user", response_model=UserOut)
def get_me(current_user: User = Depends(get_current_user)):
    return UserOut.model_validate(current_user, from_attributes=True)


@router.get("/users", response_model=List[int])
def list_users(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return store.list_user_ids(session)


@router.get("/users/{user_id}", response_model=UserOut)
def get_user(
    user_id: int = Path(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    user = _require_account_holder(session, current_user, user_id)
    return UserOut.model_validate(user, from_attributes=True)


@router.get("/users/{user_id}/boards", response_model=List[int])
def list_user_boards(
    user_id: int = Path(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    _require_account_holder(session, current_user, user_id)
    return store.list_owned_board_ids(session, user_id)


@router.get("/users/{user_id}/notes", response_model=List[int])
def list_user_notes(
    user_id: int = Path(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    _require_account_holder(session, current_user, user_id)
    return store.list_note_ids_for_author(session, user_id)


@router.get("/users/{user_id}/assignments", response_model=List[PermissionOut])
def list_user_assignments(
    user_id: int = Path(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    _require_account_holder(session, current_user, user_id)
    grants = store.list_permissions_for_user(session, user_id)
    return [PermissionOut.model_validate(grant, from_attributes=True) for grant in grants]


@router.get("/users/{user_id}/assignments/{board_id}", response_model=PermissionOut)
def get_user_assignment(
    user_id: int = Path(...),
    board_id: int = Path(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    _require_account_holder(session, current_user, user_id)
    grant = store.get_permission(session, user_id, board_id)
    if grant is None:
        raise NotFound(f"User {user_id} has no grant on board {board_id}")
    return PermissionOut.model_validate(grant, from_attributes=True)
