from pydantic import BaseModel, HttpUrl, TypeAdapter, computed_field, field_validator
from pydantic import ValidationError as PydanticValidationError
from typing import Generic, List, Optional, TypeVar
from datetime import datetime
import math

from songrank.models import SongStatus

_url_adapter = TypeAdapter(HttpUrl)


def _validate_url(v: str) -> str:
    """Checks the URL shape but keeps the string exactly as submitted."""
    v = (v or "").strip()
    if not v:
        raise ValueError("The youtube url field is required")
    try:
        _url_adapter.validate_python(v)
    except PydanticValidationError:
        raise ValueError("The youtube url must be a valid URL")
    return v


def _validate_text(v: Optional[str], field: str) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError(f"{field} cannot be empty")
    if len(v) > 255:
        raise ValueError(f"{field} too long (max 255 chars)")
    return v


def format_views(views: int) -> str:
    """Compact view counter: 1.23B, 4.56M, 7.8K or the plain number."""
    if views >= 1_000_000_000:
        return f"{views / 1_000_000_000:,.2f}B"
    if views >= 1_000_000:
        return f"{views / 1_000_000:,.2f}M"
    if views >= 1_000:
        return f"{views / 1_000:,.1f}K"
    return str(views)


class VideoMetadata(BaseModel):
    """What the YouTube resolver knows about a video."""
    video_id: str
    title: str
    views: int = 0
    thumbnail: str


class SongSuggest(BaseModel):
    youtube_url: str

    @field_validator("youtube_url")
    @classmethod
    def validate_youtube_url(cls, v: str) -> str:
        return _validate_url(v)


class SongCreate(BaseModel):
    """Admin direct creation; missing title/artist fall back to resolved data."""
    youtube_url: str
    title: Optional[str] = None
    artist: Optional[str] = None

    @field_validator("youtube_url")
    @classmethod
    def validate_youtube_url(cls, v: str) -> str:
        return _validate_url(v)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return _validate_text(v, "Title")

    @field_validator("artist")
    @classmethod
    def validate_artist(cls, v: Optional[str]) -> Optional[str]:
        return _validate_text(v, "Artist")


class SongUpdate(BaseModel):
    title: Optional[str] = None
    artist: Optional[str] = None
    youtube_url: Optional[str] = None
    status: Optional[SongStatus] = None

    @field_validator("youtube_url")
    @classmethod
    def validate_youtube_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _validate_url(v)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return _validate_text(v, "Title")

    @field_validator("artist")
    @classmethod
    def validate_artist(cls, v: Optional[str]) -> Optional[str]:
        return _validate_text(v, "Artist")


class SongReject(BaseModel):
    reason: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if len(v) > 500:
            raise ValueError("Reason too long (max 500 chars)")
        return v or None


class SongRead(BaseModel):
    id: int
    title: str
    artist: str
    youtube_id: str
    youtube_url: str
    thumbnail: str
    views: int
    status: str
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def formatted_views(self) -> str:
        return format_views(self.views)


T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """Pagination envelope consumed verbatim by the frontend."""
    data: List[T]
    current_page: int
    per_page: int
    total: int
    last_page: int

    @classmethod
    def build(cls, items: List[T], page: int, per_page: int, total: int) -> "Page[T]":
        return cls(
            data=items,
            current_page=page,
            per_page=per_page,
            total=total,
            last_page=max(1, math.ceil(total / per_page)),
        )


class SongEnvelope(BaseModel):
    success: bool = True
    message: str
    data: SongRead


class MessageEnvelope(BaseModel):
    success: bool = True
    message: str


class SongStats(BaseModel):
    total: int
    approved: int
    pending: int
    rejected: int
