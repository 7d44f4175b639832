"""Domain error taxonomy mapped onto HTTP responses by the app handlers."""

from __future__ import annotations


class HomeLinkError(Exception):
    """Base class for errors that translate into a client-visible status."""

    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(HomeLinkError):
    """Raised when input is missing or malformed."""

    status_code = 400
    default_detail = "Invalid request"


class AuthenticationError(HomeLinkError):
    """Raised when a token is missing, invalid, or expired."""

    status_code = 401
    default_detail = "Authentication required"


class AuthorizationError(HomeLinkError):
    """Raised when an authenticated user is not entitled to a resource."""

    status_code = 403
    default_detail = "Forbidden"


class NotFoundError(HomeLinkError):
    status_code = 404
    default_detail = "Not found"


class ConflictError(HomeLinkError):
    status_code = 409
    default_detail = "Conflict"


class SchemaMissingError(HomeLinkError):
    """Raised when an expected relation has not been migrated."""

    status_code = 500

    def __init__(self, relation: str, suggested_sql: str | None = None):
        self.relation = relation
        self.suggested_sql = suggested_sql
        super().__init__(f"Database relation '{relation}' is missing. Run migrations.")


class UpstreamError(HomeLinkError):
    """Raised when an upstream service (the MQTT broker) rejects an operation."""

    status_code = 502
    default_detail = "Upstream service error"


class UnexpectedError(HomeLinkError):
    status_code = 500
    default_detail = "Internal server error"
