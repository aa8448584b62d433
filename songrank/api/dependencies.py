from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session
from typing import Any, Dict, Optional
from uuid import UUID
from songrank.core.context import RequestContext
from songrank.core.exceptions import Forbidden, SongRankError, Unauthenticated
from songrank.db.session import get_db
from songrank.repositories.songs import SongsRepository
from songrank.repositories.users import UsersRepository
from songrank.services.auth_service import AuthService
from songrank.services.moderation_service import SongModerationService
from songrank.services.youtube_service import VideoMetadataResolver, get_video_resolver
from songrank.models import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def require_bearer_token(token: Optional[str] = Depends(oauth2_scheme)) -> str:
    """Ensure that a Bearer token is present and return it."""
    if not token:
        raise Unauthenticated(
            "Missing or invalid access token. Include Authorization: Bearer <token>"
        )
    return token


def get_current_user(
    request: Request,
    token: str = Depends(require_bearer_token),
    db: Session = Depends(get_db)
) -> User:
    """Return the authenticated user associated with the given access token."""
    payload = AuthService(db).verify_access_token(token)
    user = _load_user_from_payload(db, payload)

    if not user.is_active:
        raise Forbidden("Inactive user")

    request.state.ctx = RequestContext.for_user(user)
    return user


def get_current_user_optional(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Optional auth dependency. Returns the user or ``None`` if missing/invalid."""
    if not token:
        return None

    try:
        payload = AuthService(db).verify_access_token(token)
        user = _load_user_from_payload(db, payload)
    except SongRankError:
        return None

    if not user.is_active:
        return None

    return user


def get_request_context(
    request: Request,
    user: Optional[User] = Depends(get_current_user_optional)
) -> RequestContext:
    """Caller identity for this request; anonymous when there is no valid token."""
    ctx = RequestContext.for_user(user) if user else RequestContext.anonymous()
    request.state.ctx = ctx
    return ctx


def get_songs_repository(db: Session = Depends(get_db)) -> SongsRepository:
    return SongsRepository(db)


def get_moderation_service(
    songs: SongsRepository = Depends(get_songs_repository),
    resolver: VideoMetadataResolver = Depends(get_video_resolver)
) -> SongModerationService:
    return SongModerationService(songs, resolver)


def _load_user_from_payload(db: Session, payload: Dict[str, Any]) -> User:
    """Resolve a user instance from the decoded JWT payload."""
    user_id_raw = payload.get("user_id") or payload.get("sub")
    if not user_id_raw:
        raise Unauthenticated("Invalid token payload: missing user_id")

    try:
        user_uuid = UUID(str(user_id_raw))
    except (TypeError, ValueError) as err:
        raise Unauthenticated("Invalid token: malformed user_id") from err

    user = UsersRepository(db).get_by_id(user_uuid)
    if not user:
        raise Unauthenticated("User not found")

    return user
