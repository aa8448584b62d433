from sqlmodel import select, Session
from typing import Optional
from uuid import UUID
from songrank.models import User

class UsersRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: User) -> User:
        """Creates a user (password already hashed by the service)."""
        self.session.add(user)
        self.session.flush()  # Assigns defaults without committing
        self.session.refresh(user)
        return user

    def get_by_id(self, user_id: UUID) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        """Lookup by email (login/uniqueness). Emails compare case-insensitively."""
        statement = select(User).where(User.email == email.lower())
        return self.session.exec(statement).first()
