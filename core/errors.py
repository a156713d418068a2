"""
Domain exceptions raised by the service layer.

Routers translate these into HTTP responses.
"""


class PDFProcessingError(Exception):
    """Raised when a PDF cannot be read or has no usable text."""
    pass


class SessionNotFoundError(KeyError):
    """Raised when a chat session id is unknown to the current user."""

    def __init__(self, message: str = "Session not found. Please upload a PDF first."):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class StorageError(Exception):
    """Raised when a Supabase Storage call fails."""
    pass


class DocumentStoreError(Exception):
    """Raised when a Supabase table call fails."""
    pass


class AuthError(Exception):
    """Raised when a token is invalid or a Supabase auth call fails."""
    pass


class SessionConflictError(Exception):
    """Raised when a session id is already held by another user."""

    def __init__(self, message: str = "Session ID is already in use"):
        super().__init__(message)
        self.message = message
