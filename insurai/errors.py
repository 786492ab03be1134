"""
errors.py — InsurAI error taxonomy.

Every error a handler or service raises on purpose is an AppError subclass.
main.py registers one exception handler for AppError that renders the
standard {error: {code, message, details}} envelope with the class's
status_code — routes never build error responses by hand.

Ingestion errors may carry the per-file `results` block so the admin UI can
still show which files failed when the whole request aborts.
"""
from __future__ import annotations

from typing import Any, Optional


class AppError(Exception):
    """Base class for errors that map to a known HTTP status and error code."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[list[dict[str, Any]]] = None,
        results: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []
        self.results = results


# ---------------------------------------------------------------------------
# Request / auth errors
# ---------------------------------------------------------------------------

class BadRequestError(AppError):
    status_code = 400
    code = "BAD_REQUEST"


class InvalidStateError(BadRequestError):
    code = "INVALID_STATE"


class AuthError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"


class FileTooLargeError(AppError):
    status_code = 413
    code = "FILE_TOO_LARGE"


# ---------------------------------------------------------------------------
# Ingestion pipeline errors
# ---------------------------------------------------------------------------

class ExtractionError(AppError):
    """A single document could not be turned into text (corrupt or unreadable)."""

    status_code = 400
    code = "EXTRACTION_FAILED"


class UnsupportedFileType(ExtractionError):
    """File extension / MIME type outside the supported set. Never retried."""

    code = "UNSUPPORTED_FILE_TYPE"


class AllExtractionsFailedError(BadRequestError):
    code = "ALL_EXTRACTIONS_FAILED"


class AIExtractionError(AppError):
    """The LLM call failed or its output could not be turned into plans."""

    status_code = 500
    code = "AI_EXTRACTION_FAILED"

    def __init__(self, message: str, kind: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.kind = kind


class LLMRequestFailed(AIExtractionError):
    """Network, auth or quota failure talking to the LLM. Single attempt, no retry."""

    code = "LLM_REQUEST_FAILED"

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, kind="llm_request_failed", **kwargs)


class PersistenceError(AppError):
    status_code = 500
    code = "PERSISTENCE_FAILED"
