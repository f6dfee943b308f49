"""Board CRUD and board-level permission management."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Body, Depends, Path, Response, status
from sqlmodel import Session

from .. import store
from ..auth.identity import get_current_user
from ..auth.permissions import (
    DELETE_BOARD,
    LIST_BOARD_NOTES,
    LIST_BOARD_PERMISSIONS,
    LIST_BOARD_USERS,
    MANAGE_BOARD_PERMISSIONS,
    UPDATE_BOARD,
    VIEW_BOARD,
    load_board_for,
)
from ..db import get_session
from ..errors import Conflict, NotFound
from ..models import User
from ..schemas import BoardCreate, BoardOut, BoardUpdate, PermissionCreate, PermissionOut


router = APIRouter(prefix="/api/boards", tags=["boards"])

logger = logging.getLogger(__name__)


@router.get("", response_model=List[int])
def list_boards(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return store.list_visible_board_ids(session, current_user.id)


@router.post("", response_model=BoardOut, status_code=status.HTTP_201_CREATED)
def create_board(
    payload: BoardCreate = Body(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    board = store.insert_board(
        session,
        owner_id=current_user.id,
        title=payload.title,
        visibility=payload.visibility,
    )
    logger.info("User %s created board %s", current_user.id, board.id)
    return BoardOut.model_validate(board, from_attributes=True)


@router.get("/{board_id}", response_model=BoardOut)
def get_board(
    board_id: int = Path(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    board = load_board_for(session, current_user, board_id, VIEW_BOARD)
    return BoardOut.model_validate(board, from_attributes=True)


@router.patch("/{board_id}", response_model=BoardOut)
def update_board(
    board_id: int = Path(...),
    payload: BoardUpdate = Body(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    board = load_board_for(session, current_user, board_id, UPDATE_BOARD)
    board = store.update_board(
        session,
        board,
        title=payload.title,
        visibility=payload.visibility,
    )
    return BoardOut.model_validate(board, from_attributes=True)


@router.delete("/{board_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_board(
    board_id: int = Path(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    load_board_for(session, current_user, board_id, DELETE_BOARD)
    if not store.delete_board_cascade(session, board_id):
        raise NotFound(f"No board with the id '{board_id}' exists")
    logger.info("User %s deleted board %s", current_user.id, board_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{board_id}/permissions", response_model=List[PermissionOut])
def list_board_permissions(
    board_id: int = Path(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    load_board_for(session, current_user, board_id, LIST_BOARD_PERMISSIONS)
    grants = store.list_permissions_for_board(session, board_id)
    return [PermissionOut.model_validate(grant, from_attributes=True) for grant in grants]


@router.get("/{board_id}/notes", response_model=List[int])
def list_board_notes(
    board_id: int = Path(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    load_board_for(session, current_user, board_id, LIST_BOARD_NOTES)
    return store.list_note_ids_for_board(session, board_id)


@router.get("/{board_id}/users", response_model=List[int])
def list_board_users(
    board_id: int = Path(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    load_board_for(session, current_user, board_id, LIST_BOARD_USERS)
    return [grant.user_id for grant in store.list_permissions_for_board(session, board_id)]


@router.post(
    "/{board_id}/permissions",
    response_model=PermissionOut,
    status_code=status.HTTP_201_CREATED,
)
def grant_board_permission(
    board_id: int = Path(...),
    payload: PermissionCreate = Body(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    board = load_board_for(session, current_user, board_id, MANAGE_BOARD_PERMISSIONS)
    if store.get_user(session, payload.user_id) is None:
        raise NotFound(f"No user with the id '{payload.user_id}' exists")
    if store.get_permission(session, payload.user_id, board.id) is not None:
        raise Conflict(f"User {payload.user_id} already has a grant on board {board.id}")
    grant = store.insert_permission(
        session,
        user_id=payload.user_id,
        board_id=board.id,
        can_read=payload.can_read,
        can_write=payload.can_write,
    )
    logger.info(
        "User %s granted user %s read=%s write=%s on board %s",
        current_user.id,
        payload.user_id,
        payload.can_read,
        payload.can_write,
        board.id,
    )
    return PermissionOut.model_validate(grant, from_attributes=True)


@router.delete("/{board_id}/permissions/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_board_permission(
    board_id: int = Path(...),
    user_id: int = Path(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    board = load_board_for(session, current_user, board_id, MANAGE_BOARD_PERMISSIONS)
    if user_id == board.owner_id:
        raise Conflict("The board owner's grant cannot be revoked")
    grant = store.get_permission(session, user_id, board.id)
    if grant is None:
        raise NotFound(f"User {user_id} has no grant on board {board.id}")
    store.delete_permission(session, grant)
    logger.info("User %s revoked user %s on board %s", current_user.id, user_id, board.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
