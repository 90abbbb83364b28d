"""Custom exception classes for the Placement Access Engine.

Every error a workflow raises carries the HTTP status it maps to and a
machine-readable code, so route handlers never translate by message.
"""

from typing import Any, Optional


class PlacementEngineError(Exception):
    """Base exception for all workflow engine errors."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Any] = None):
        """Initialize the exception.

        Args:
            message: Human readable description, returned to the client.
            details: Optional structured context, returned to the client.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(PlacementEngineError):
    """Raised when input is malformed, missing, or not allowed in the current state."""

    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(PlacementEngineError):
    """Raised when a referenced entity does not exist."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Optional[str] = None):
        """Initialize the exception.

        Args:
            entity: Kind of entity that was looked up, e.g. "User".
            entity_id: The identifier that was not found.
        """
        self.entity = entity
        self.entity_id = entity_id
        message = f"{entity} not found"
        details = {"id": entity_id} if entity_id else None
        super().__init__(message, details)


class ConflictError(PlacementEngineError):
    """Raised when a unique key is taken or a concurrent write wins."""

    status_code = 409
    code = "CONFLICT"


class ExpiredError(PlacementEngineError):
    """Raised when an invitation is used after its expiry."""

    status_code = 410
    code = "EXPIRED"


class PreconditionError(PlacementEngineError):
    """Raised when a business-rule precondition is not met."""

    status_code = 403
    code = "PRECONDITION_FAILED"


class InternalError(PlacementEngineError):
    """Raised when the store or a transport fails."""

    status_code = 500
    code = "INTERNAL_ERROR"
