from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List, Callable
from uuid import UUID
from jose import jwt, JWTError
from songrank.core.config import settings
from songrank.models import pwd_context
import uuid

def hash_password(password: str) -> str:
    """Hash with argon2 (bcrypt hashes still verify)."""
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed: str) -> bool:
    return pwd_context.verify(plain_password, hashed)

class JWTHandler:
    """JWT handler with revocation support."""

    def __init__(
        self,
        secret_key: str = None,
        algorithm: str = None,
        access_token_expire_minutes: int = None,
        refresh_token_expire_days: int = None
    ):
        """
        Builds the handler (falls back to settings for anything not passed).

        Args:
            secret_key: Key used to sign tokens
            algorithm: JWT algorithm (default: HS256)
            access_token_expire_minutes: Access token TTL
            refresh_token_expire_days: Refresh token TTL
        """
        self.secret_key = secret_key or settings.SECRET_KEY
        self.algorithm = algorithm or settings.JWT_ALGORITHM
        self.access_token_expire_minutes = (
            access_token_expire_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
        self.refresh_token_expire_days = (
            refresh_token_expire_days or settings.REFRESH_TOKEN_EXPIRE_DAYS
        )

    def create_access_token(
        self,
        user_id: UUID,
        email: str,
        scopes: Optional[List[str]] = None,
    ) -> str:
        """Creates a signed access token.

        Args:
            user_id: User identifier (UUID).
            email: User email (useful for auditing).
            scopes: Optional roles/permissions.
        """
        expire = timedelta(minutes=self.access_token_expire_minutes)
        return self._encode(user_id, email, scopes, expire, "access")

    def create_refresh_token(
        self,
        user_id: UUID,
        email: str,
        scopes: Optional[List[str]] = None,
    ) -> str:
        """Creates a refresh token with the same claims as the access token."""
        expire = timedelta(days=self.refresh_token_expire_days)
        return self._encode(user_id, email, scopes, expire, "refresh")

    def _encode(
        self,
        user_id: UUID,
        email: str,
        scopes: Optional[List[str]],
        lifetime: timedelta,
        token_type: str,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "user_id": str(user_id),
            "email": email,
            "scopes": scopes or [],
            "exp": now + lifetime,
            "iat": now,
            "jti": str(uuid.uuid4()),
            "type": token_type
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Decodes and validates a token.

        Returns:
            The token payload, or None if invalid
        """
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm]
            )
        except JWTError:
            return None

    def verify_token(
        self,
        token: str,
        expected_type: str,
        check_revoked_fn: Optional[Callable[[str], bool]] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Full verification (decode + type + revocation).

        Args:
            token: JWT
            expected_type: "access" or "refresh"
            check_revoked_fn: Receives the JTI, returns True if revoked

        Returns:
            Payload if valid, None otherwise
        """
        payload = self.decode_token(token)
        if not payload:
            return None

        if payload.get("type") != expected_type:
            return None

        if check_revoked_fn:
            jti = payload.get("jti")
            if jti and check_revoked_fn(jti):
                return None

        return payload

    def extract_claims(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Reads the claims without checking expiration (used when revoking).
        """
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False}
            )
        except JWTError:
            return None

jwt_handler = JWTHandler()
