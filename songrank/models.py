from enum import Enum
from typing import Optional
from uuid import UUID, uuid4
from sqlmodel import SQLModel, Field
from sqlalchemy import BigInteger, CheckConstraint, Index
from passlib.context import CryptContext
from datetime import datetime, timezone

# Hashing config (global, used by core.security)
pwd_context = CryptContext(schemes=["argon2", "bcrypt"], deprecated="auto")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SongStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def values(cls) -> list:
        return [s.value for s in cls]


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    name: str = Field(max_length=100)
    email: str = Field(max_length=255, unique=True, index=True)
    password_hash: str = Field(max_length=255)
    role: str = Field(default=UserRole.USER.value, max_length=30)
    is_active: bool = Field(default=True)
    created_at: Optional[datetime] = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = Field(default=None)


class Song(SQLModel, table=True):
    """
    Plain row for a ranked song.

    Queries live in ``SongsRepository``; status changes go through
    ``SongModerationService``. ``youtube_id`` is unique across every row,
    soft-deleted ones included.
    """
    __tablename__ = "songs"
    __table_args__ = (
        Index("ix_songs_status_views", "status", "views"),
        CheckConstraint("views >= 0", name="ck_songs_views_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name="ck_songs_status"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=255)
    artist: str = Field(max_length=255, index=True)
    youtube_id: str = Field(max_length=32, unique=True, index=True)
    youtube_url: str = Field(max_length=500)
    thumbnail: str = Field(max_length=500)
    views: int = Field(default=0, sa_type=BigInteger)
    status: str = Field(default=SongStatus.PENDING.value, max_length=20, index=True)
    rejection_reason: Optional[str] = Field(default=None, max_length=500)
    created_at: Optional[datetime] = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class RevokedToken(SQLModel, table=True):
    __tablename__ = "revoked_tokens"

    jti: str = Field(primary_key=True, max_length=64)
    token_type: str = Field(max_length=20)
    expires_at: datetime
    revoked_at: Optional[datetime] = Field(default_factory=utcnow)
