"""Pattern Atlas exception hierarchy.

All exceptions inherit from PatternAtlasError and carry a three-part structure:
message (what happened), detail (technical context), suggestion (what to do next).
Each class also exposes a stable ``code`` used in response envelopes.
"""

from typing import Optional


class PatternAtlasError(Exception):
    """Base exception for all Pattern Atlas errors."""

    code = "PatternAtlasError"

    def __init__(
        self,
        message: str,
        detail: Optional[str] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.detail:
            parts.append(f"Detail: {self.detail}")
        if self.suggestion:
            parts.append(f"Suggestion: {self.suggestion}")
        return " | ".join(parts)


class ValidationError(PatternAtlasError):
    """Raised when request input is malformed. The caller must correct it."""

    code = "ValidationError"

    def __init__(
        self,
        message: str = "Validation error",
        field: Optional[str] = None,
        detail: Optional[str] = None,
        suggestion: Optional[str] = "Check input format and value ranges",
    ) -> None:
        self.field = field
        super().__init__(message, detail, suggestion)


class StoreUnavailable(PatternAtlasError):
    """Raised when the taxonomy store cannot be reached or times out.

    Transient: callers may retry with backoff. No retry happens internally.
    """

    code = "StoreUnavailable"

    def __init__(
        self,
        message: str = "Pattern store is unavailable",
        detail: Optional[str] = None,
        suggestion: Optional[str] = "Retry the request after a short delay",
    ) -> None:
        super().__init__(message, detail, suggestion)


class DatabaseError(PatternAtlasError):
    """Error related to engine configuration or store setup."""

    code = "DatabaseError"

    def __init__(
        self,
        message: str = "A database error occurred",
        detail: Optional[str] = None,
        suggestion: Optional[str] = "Check PATTERNATLAS_DATABASE_URL and the encryption key",
    ) -> None:
        super().__init__(message, detail, suggestion)
