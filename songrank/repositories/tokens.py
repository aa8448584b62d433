from sqlmodel import select, Session
from datetime import datetime, timezone
from songrank.models import RevokedToken, utcnow


def _as_utc(value: datetime) -> datetime:
    # SQLite hands datetimes back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RevokedTokensRepository:
    def __init__(self, session: Session):
        self.session = session

    def revoke(self, jti: str, token_type: str, expires_at: datetime) -> None:
        """Marks a token id as revoked (idempotent)."""
        if self.session.get(RevokedToken, jti):
            return
        self.session.add(RevokedToken(jti=jti, token_type=token_type, expires_at=expires_at))
        self.session.flush()

    def is_revoked(self, jti: str) -> bool:
        entry = self.session.get(RevokedToken, jti)
        if not entry:
            return False
        return _as_utc(entry.expires_at) > utcnow()

    def purge_expired(self) -> int:
        """Drops entries whose token would be rejected anyway for being expired."""
        now = utcnow()
        expired = [
            entry
            for entry in self.session.exec(select(RevokedToken)).all()
            if _as_utc(entry.expires_at) <= now
        ]
        for entry in expired:
            self.session.delete(entry)
        self.session.flush()
        return len(expired)
