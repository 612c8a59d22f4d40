# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Error hierarchy for request lifecycle failures.

Every error carries a machine code and the HTTP status the API layer maps it to.
All of them are raised before any mutation is applied.
"""

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base exception for all lifecycle and member errors."""

    code = "domain_error"
    http_status = 400

    def __init__(self, message: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.code, "detail": self.message}
        if self.detail:
            body["context"] = self.detail
        return body


class ValidationError(DomainError):
    """Malformed or missing input. Safe to retry after fixing the input."""
    code = "validation_error"
    http_status = 422


class NotFoundError(DomainError):
    """Referenced request or member does not exist."""
    code = "not_found"
    http_status = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class ForbiddenError(DomainError):
    """Authenticated, but not allowed to act on this request in this role."""
    code = "forbidden"
    http_status = 403


class ConflictError(DomainError):
    """Request is not in the state the transition needs. Re-fetch and retry."""
    code = "conflict"
    http_status = 409


class InvalidCodeError(DomainError):
    """Verification code did not match. No state change, caller may guess again."""
    code = "invalid_code"
    http_status = 400
