from dataclasses import dataclass
from typing import Optional
from uuid import UUID


@dataclass(frozen=True)
class RequestContext:
    """Identity of the caller for a single request.

    Built once per request and handed explicitly to services and to the
    repository queries whose results depend on who is asking.
    """

    user_id: Optional[UUID] = None
    name: Optional[str] = None
    role: Optional[str] = None

    @classmethod
    def anonymous(cls) -> "RequestContext":
        return cls()

    @classmethod
    def for_user(cls, user) -> "RequestContext":
        return cls(user_id=user.id, name=user.name, role=user.role)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.role == "admin"

    def describe(self) -> str:
        """Short actor label for log lines."""
        if not self.is_authenticated:
            return "guest"
        return f"{self.user_id} ({self.role})"
