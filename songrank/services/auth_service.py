import logging
from sqlmodel import Session
from typing import Dict, Optional
from uuid import UUID
from datetime import datetime, timezone
from songrank.repositories.users import UsersRepository
from songrank.repositories.tokens import RevokedTokensRepository
from songrank.core.exceptions import EmailAlreadyRegistered, Forbidden, Unauthenticated
from songrank.core.security import jwt_handler, hash_password, verify_password
from songrank.schemas.users import UserCreate, UserRead, AuthResponse, Token
from songrank.models import User, UserRole

logger = logging.getLogger(__name__)


class AuthService:
    """Registration, login and token lifecycle."""

    def __init__(self, session: Session):
        self.session = session
        self.users_repo = UsersRepository(session)
        self.revoked_repo = RevokedTokensRepository(session)
        self.jwt = jwt_handler

    def register(self, user_data: UserCreate) -> AuthResponse:
        """Registers a user: checks uniqueness, hashes the password, issues tokens."""
        email = user_data.email.lower()
        if self.users_repo.get_by_email(email):
            raise EmailAlreadyRegistered()

        user = self.users_repo.create(User(
            name=user_data.name,
            email=email,
            password_hash=hash_password(user_data.password),
            role=UserRole.USER.value,
            is_active=True,
        ))
        self.session.commit()

        logger.info(f"New user registered: {user.id}")
        return self._auth_response(user)

    def authenticate(self, email: str, password: str) -> AuthResponse:
        """Login: checks credentials and issues tokens."""
        user = self.users_repo.get_by_email(email)

        if not user or not verify_password(password, user.password_hash):
            logger.warning("Failed login attempt")
            raise Unauthenticated("Incorrect email or password")

        if not user.is_active:
            raise Forbidden("Inactive user")

        logger.info(f"User {user.id} logged in")
        return self._auth_response(user)

    def refresh_tokens(self, refresh_token: str) -> Token:
        """Rotates tokens: the used refresh token is revoked."""
        payload = self.jwt.verify_token(
            refresh_token,
            expected_type="refresh",
            check_revoked_fn=self.revoked_repo.is_revoked
        )
        if not payload:
            raise Unauthenticated("Invalid or expired refresh token")

        user = self._user_from_payload(payload)
        if not user or not user.is_active:
            raise Forbidden("User not found or inactive")

        self._revoke(payload)
        self.session.commit()

        return self._issue_tokens(user)

    def logout(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        """Revokes the access token and, if given, the refresh token."""
        for token, token_type in ((access_token, "access"), (refresh_token, "refresh")):
            if not token:
                continue
            payload = self.jwt.extract_claims(token)
            if payload and payload.get("type") == token_type:
                self._revoke(payload)
        self.session.commit()

    def verify_access_token(self, access_token: str) -> Dict:
        """Checks an access token (used by the route dependencies)."""
        payload = self.jwt.verify_token(
            access_token,
            expected_type="access",
            check_revoked_fn=self.revoked_repo.is_revoked
        )
        if not payload:
            raise Unauthenticated("Invalid or expired access token")
        return payload

    def purge_revoked(self) -> int:
        deleted = self.revoked_repo.purge_expired()
        self.session.commit()
        return deleted

    # Helpers

    def _auth_response(self, user: User) -> AuthResponse:
        token = self._issue_tokens(user)
        return AuthResponse(**token.model_dump(), user=UserRead.model_validate(user))

    def _issue_tokens(self, user: User) -> Token:
        return Token(
            access_token=self.jwt.create_access_token(user.id, user.email, [user.role]),
            refresh_token=self.jwt.create_refresh_token(user.id, user.email, [user.role]),
            token_type="bearer",
            expires_in=self.jwt.access_token_expire_minutes * 60
        )

    def _user_from_payload(self, payload: Dict) -> Optional[User]:
        try:
            return self.users_repo.get_by_id(UUID(str(payload.get("user_id") or payload.get("sub"))))
        except (TypeError, ValueError):
            return None

    def _revoke(self, payload: Dict) -> None:
        jti = payload.get("jti")
        if not jti:
            return
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        self.revoked_repo.revoke(jti, payload.get("type", "access"), expires_at)
