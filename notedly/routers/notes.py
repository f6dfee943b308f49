from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, Path, Response, status
from sqlmodel import Session

from .. import store
from ..auth.identity import get_current_user
from ..auth.permissions import (
    CREATE_NOTE,
    DELETE_NOTE,
    UPDATE_NOTE,
    VIEW_NOTE,
    load_board_for,
    load_note_for,
)
from ..db import get_session
from ..models import User
from ..schemas import NoteCreate, NoteOut, NoteUpdate


router = APIRouter(prefix="/api/notes", tags=["notes"])

logger = logging.getLogger(__name__)


@router.post("", response_model=NoteOut, status_code=status.HTTP_201_CREATED)
def create_note(
    payload: NoteCreate = Body(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    board = load_board_for(session, current_user, payload.board_id, CREATE_NOTE)
    note = store.insert_note(
        session,
        author_id=current_user.id,
        board_id=board.id,
        title=payload.title,
        body=payload.body,
    )
    logger.debug("User %s created note %s on board %s", current_user.id, note.id, board.id)
    return NoteOut.model_validate(note, from_attributes=True)


@router.get("/{note_id}", response_model=NoteOut)
def get_note(
    note_id: int = Path(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    note, _ = load_note_for(session, current_user, note_id, VIEW_NOTE)
    return NoteOut.model_validate(note, from_attributes=True)


@router.patch("/{note_id}", response_model=NoteOut)
def update_note(
    note_id: int = Path(...),
    payload: NoteUpdate = Body(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    # Any board writer may edit; author_id is not consulted.
    note, _ = load_note_for(session, current_user, note_id, UPDATE_NOTE)
    note = store.update_note(session, note, title=payload.title, body=payload.body)
    return NoteOut.model_validate(note, from_attributes=True)


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_note(
    note_id: int = Path(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    note, board = load_note_for(session, current_user, note_id, DELETE_NOTE)
    store.delete_note(session, note)
    logger.debug("User %s deleted note %s on board %s", current_user.id, note_id, board.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
