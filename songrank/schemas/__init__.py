from .users import (
    UserCreate, UserLogin, UserRead, Token, AuthResponse, RefreshRequest, LogoutRequest
)
from .songs import (
    SongSuggest, SongCreate, SongUpdate, SongReject, SongRead,
    Page, SongEnvelope, MessageEnvelope, SongStats
)

__all__ = [
    "UserCreate", "UserLogin", "UserRead", "Token", "AuthResponse",
    "RefreshRequest", "LogoutRequest",
    "SongSuggest", "SongCreate", "SongUpdate", "SongReject", "SongRead",
    "Page", "SongEnvelope", "MessageEnvelope", "SongStats",
]
