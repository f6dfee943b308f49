from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlmodel import SQLModel, Field, Column
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BoardVisibility(str, Enum):
    PRIVATE = "private"
    LINK = "link"


class User(SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("provider_identity", name="uq_users_provider_identity"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    # "<provider>:<subject>", e.g. "github:583231"
    provider_identity: str = Field(index=True)
    credential_hash: str = Field(index=True)
    email: str
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    last_login_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )


class Board(SQLModel, table=True):
    __tablename__ = "boards"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("users.id"), nullable=False, index=True
        )
    )
    title: str = Field(sa_column=Column(Text, nullable=False))
    visibility: BoardVisibility = Field(
        default=BoardVisibility.PRIVATE,
        sa_column=Column(
            String(length=16),
            nullable=False,
            server_default=BoardVisibility.PRIVATE.value,
        ),
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class Note(SQLModel, table=True):
    __tablename__ = "notes"

    id: Optional[int] = Field(default=None, primary_key=True)
    author_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("users.id"), nullable=False, index=True
        )
    )
    board_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("boards.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    title: str = Field(sa_column=Column(Text, nullable=False))
    body: str = Field(default="", sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class Permission(SQLModel, table=True):
    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint("user_id", "board_id", name="uq_permissions_user_board"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("users.id"), nullable=False, index=True
        )
    )
    board_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("boards.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    can_read: bool = Field(default=False, sa_column=Column(Boolean, nullable=False))
    can_write: bool = Field(default=False, sa_column=Column(Boolean, nullable=False))


class OAuthState(SQLModel, table=True):
    __tablename__ = "oauth_states"

    state: str = Field(primary_key=True)
    provider: str = Field(sa_column=Column(String(length=32), nullable=False))
    code_verifier: str
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )


__all__ = [
    "utcnow",
    "BoardVisibility",
    "User",
    "Board",
    "Note",
    "Permission",
    "OAuthState",
]
