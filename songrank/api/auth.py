from fastapi import APIRouter, Depends, status
from sqlmodel import Session
from typing import Optional
from songrank.db.session import get_db
from songrank.services.auth_service import AuthService
from songrank.schemas.users import (
    AuthResponse, LogoutRequest, RefreshRequest, Token, UserCreate, UserLogin, UserRead
)
from songrank.api.dependencies import get_current_user, require_bearer_token
from songrank.models import User

router = APIRouter(prefix="/auth", tags=["Authentication"])

AUTH_RESPONSES = {
    status.HTTP_401_UNAUTHORIZED: {"description": "Missing or invalid access token"}
}


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_409_CONFLICT: {"description": "Email already registered"}},
)
def register(
    user_data: UserCreate,
    db: Session = Depends(get_db)
):
    """
    Registers a new user and logs them in.

    ✅ PUBLIC - no authentication required

    - **name**: Display name
    - **email**: Valid, unique email
    - **password**: At least 8 chars with upper, lower, digit and special char
    - **password_confirmation**: Must match password
    """
    return AuthService(db).register(user_data)


@router.post("/login", response_model=AuthResponse, responses=AUTH_RESPONSES)
def login(
    credentials: UserLogin,
    db: Session = Depends(get_db)
):
    """
    Login with email + password.

    ✅ PUBLIC - no authentication required

    Returns the user with an access token and a refresh token.
    """
    return AuthService(db).authenticate(credentials.email, credentials.password)


@router.post("/refresh", response_model=Token, responses=AUTH_RESPONSES)
def refresh(
    payload: RefreshRequest,
    db: Session = Depends(get_db)
):
    """
    Rotates tokens using a refresh token (sent in the body).

    The old refresh token is revoked.
    """
    return AuthService(db).refresh_tokens(payload.refresh_token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, responses=AUTH_RESPONSES)
def logout(
    payload: Optional[LogoutRequest] = None,
    token: str = Depends(require_bearer_token),
    _user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Revokes the current access token, and the refresh token when provided.
    """
    AuthService(db).logout(token, payload.refresh_token if payload else None)
    return None  # 204 No Content


@router.get("/me", response_model=UserRead, responses=AUTH_RESPONSES)
@router.get("/profile", response_model=UserRead, responses=AUTH_RESPONSES, include_in_schema=False)
@router.get("/user", response_model=UserRead, responses=AUTH_RESPONSES, include_in_schema=False)
def read_current_user(current_user: User = Depends(get_current_user)):
    """Profile of the authenticated user."""
    return UserRead.model_validate(current_user)
