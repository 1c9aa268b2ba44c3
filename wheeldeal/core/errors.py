"""Client-facing error taxonomy.

Every error carries a stable machine-readable ``kind`` and a human-readable
message. ``status_code`` is the HTTP status the API layer renders it with.
"""


class ReservationError(Exception):
    kind = "error"
    status_code = 400

    def __init__(self, message: str, kind: str | None = None):
        super().__init__(message)
        self.message = message
        if kind:
            self.kind = kind

    def to_dict(self) -> dict:
        return {"kind": self.kind, "detail": self.message}


class ValidationError(ReservationError):
    """Malformed or contradictory input (inverted range, missing field)."""
    kind = "validation_error"
    status_code = 400


class ResourceUnavailableError(ValidationError):
    kind = "resource_unavailable"


class ConflictError(ReservationError):
    """An overlapping active reservation exists for the resource."""
    kind = "conflict"
    status_code = 409


class NotFoundError(ReservationError):
    kind = "not_found"
    status_code = 404


class ForbiddenError(ReservationError):
    kind = "forbidden"
    status_code = 403


class AlreadySettledError(ReservationError):
    """The action is illegal given the reservation's current payment state."""
    kind = "already_settled"
    status_code = 409


class UpstreamError(ReservationError):
    """The payment gateway call failed or timed out. Retrying is the caller's call."""
    kind = "upstream_error"
    status_code = 502

    def __init__(self, message: str, kind: str | None = None, retryable: bool = True):
        super().__init__(message, kind)
        self.retryable = retryable

    def to_dict(self) -> dict:
        return {**super().to_dict(), "retryable": self.retryable}


class AuthenticityError(ReservationError):
    """Webhook signature missing or invalid."""
    kind = "invalid_signature"
    status_code = 400
