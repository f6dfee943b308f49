from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import RedirectResponse
from sqlmodel import Session

from ..auth.oauth import begin_login, complete_login
from ..db import get_session
from ..schemas import LoginResponse, UserOut


router = APIRouter(prefix="/api/oauth", tags=["oauth"])


@router.get("/login/{provider}", status_code=status.HTTP_307_TEMPORARY_REDIRECT)
def login(
    provider: str = Path(...),
    session: Session = Depends(get_session),
):
    url = begin_login(session, provider.lower())
    return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.get("/cb", response_model=LoginResponse)
def callback(
    code: str = Query(..., min_length=1),
    state: str = Query(..., min_length=1),
    session: Session = Depends(get_session),
):
    user, identity = complete_login(session, code, state)
    return LoginResponse(
        user=UserOut.model_validate(user, from_attributes=True),
        access_token=identity.access_token,
    )
