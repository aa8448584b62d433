from typing import Dict, List, Optional


class SongRankError(Exception):
    """Base class for errors that surface to API clients as structured JSON."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[Dict[str, List[str]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.default_message
        self.errors = errors
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"success": False, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(SongRankError):
    """Malformed input (e.g. a non-URL where a URL is expected)."""
    status_code = 422
    default_message = "Validation error"


class InvalidStatusError(SongRankError):
    status_code = 400

    def __init__(self, status: str, valid: List[str]):
        super().__init__(
            f"Invalid status '{status}'. Use one of: {', '.join(valid)}"
        )
        self.status = status
        self.valid = valid


class InvalidSubmission(SongRankError):
    """The URL is well formed but its metadata could not be resolved."""
    status_code = 400
    default_message = "Failed to process YouTube URL"


class DuplicateSong(SongRankError):
    status_code = 409
    default_message = "This song has already been suggested"


class EmailAlreadyRegistered(SongRankError):
    status_code = 409
    default_message = "Email already registered"


class Unauthenticated(SongRankError):
    status_code = 401
    default_message = "Authentication required"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(SongRankError):
    status_code = 403
    default_message = "Admin access required"


class NotFound(SongRankError):
    status_code = 404
    default_message = "Resource not found"


class InternalError(SongRankError):
    status_code = 500
