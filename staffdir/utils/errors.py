"""Error taxonomy for the staff directory.

Every failure a caller can act on is an ``APIError`` subclass. The status
code and machine-readable code live on the class; the message is chosen at
the raise site and is what the user sees.
"""

from dataclasses import asdict, dataclass
from http import HTTPStatus
from typing import Any, Dict, List, Optional


@dataclass
class FieldError:
    """A problem with one request field."""

    field: str
    message: str
    code: str = "invalid"


class APIError(Exception):
    """Base class for errors rendered as ``{"error", "code", ...}`` bodies."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    error_code: str = "internal_error"
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        field_errors: Optional[List[FieldError]] = None,
    ):
        self.message = message or self.default_message
        self.details = details
        self.field_errors = field_errors or []
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message, "code": self.error_code}
        if self.details:
            body["details"] = self.details
        if self.field_errors:
            body["field_errors"] = [asdict(fe) for fe in self.field_errors]
        return body


# =============================================================================
# Client errors
# =============================================================================


class ValidationError(APIError):
    """Malformed input, or a query the actor may not run."""

    status_code = HTTPStatus.BAD_REQUEST
    error_code = "validation_error"
    default_message = "Request validation failed"


class UnauthorizedError(APIError):
    """No usable actor on the request."""

    status_code = HTTPStatus.UNAUTHORIZED
    error_code = "unauthorized"
    default_message = "Authentication required"


class ForbiddenError(APIError):
    """Actor's role or scope forbids the operation."""

    status_code = HTTPStatus.FORBIDDEN
    error_code = "forbidden"
    default_message = "Access denied"


class NotFoundError(APIError):
    status_code = HTTPStatus.NOT_FOUND
    error_code = "not_found"
    default_message = "Resource not found"


class DuplicateError(APIError):
    """Uniqueness conflict: email, employee number or department head."""

    status_code = HTTPStatus.CONFLICT
    error_code = "duplicate"
    default_message = "Resource already exists"


class InvariantViolationError(APIError):
    """
    Requested change would break a hierarchy invariant.

    Raised before any write is issued, so the change is never partially
    applied.
    """

    status_code = HTTPStatus.UNPROCESSABLE_ENTITY
    error_code = "invariant_violation"
    default_message = "Change would violate the organization hierarchy"


# =============================================================================
# Server errors
# =============================================================================


class DataIntegrityError(APIError):
    """Persisted hierarchy is corrupt (cycle or unbounded traversal)."""

    error_code = "data_integrity_fault"
    default_message = "Organization hierarchy data is inconsistent"


def duplicate_field_error(field: str, message: str) -> DuplicateError:
    """Conflict on a single unique field."""
    label = field.replace("_", " ")
    return DuplicateError(
        message,
        details={"field": field},
        field_errors=[FieldError(field, f"This {label} is already in use", "duplicate")],
    )
