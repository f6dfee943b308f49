from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import BoardVisibility


class StatusResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    providers: List[str] = Field(default_factory=list)


class UserOut(BaseModel):
    id: int
    provider_identity: str
    email: str
    created_at: datetime
    last_login_at: Optional[datetime] = None


class BoardCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1)
    visibility: BoardVisibility = BoardVisibility.PRIVATE


class BoardUpdate(BaseModel):
    # owner_id is immutable and not accepted here.
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1)
    visibility: Optional[BoardVisibility] = None


class BoardOut(BaseModel):
    id: int
    owner_id: int
    title: str
    visibility: BoardVisibility
    created_at: datetime
    updated_at: datetime


class NoteCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    board_id: int
    title: str = Field(..., min_length=1)
    body: str = ""


class NoteUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1)
    body: Optional[str] = None


class NoteOut(BaseModel):
    id: int
    author_id: int
    board_id: int
    title: str
    body: str
    created_at: datetime
    updated_at: datetime


class PermissionCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_id: int
    can_read: bool = True
    can_write: bool = False


class PermissionOut(BaseModel):
    id: int
    user_id: int
    board_id: int
    can_read: bool
    can_write: bool


class LoginResponse(BaseModel):
    user: UserOut
    access_token: str
    token_type: str = "bearer"
