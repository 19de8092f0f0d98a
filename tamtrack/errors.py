"""Error taxonomy shared by repositories, services and routes.

Nothing here knows about HTTP; ``tamtrack.main`` maps each kind to a status
code and an RFC 7807 body.
"""

from typing import Any, Dict, List, Optional


class TamTrackError(Exception):
    code = "error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(TamTrackError):
    """Malformed or missing input. ``errors`` lists every failing field."""

    code = "validation_error"

    def __init__(
        self,
        message: str = "Validation error",
        errors: Optional[List[Dict[str, Any]]] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message, code)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, msg: str) -> "ValidationError":
        return cls(msg, errors=[{"loc": [field], "msg": msg, "type": "value_error"}])


class NotFoundError(TamTrackError):
    """The entity does not exist or the caller does not own it."""

    code = "not_found"


class ConflictError(TamTrackError):
    code = "conflict"


class TransientStoreError(TamTrackError):
    code = "store_unavailable"


class QuotaExceededError(TamTrackError):
    code = "model_limit_reached"


class PermissionDeniedError(TamTrackError):
    code = "forbidden"
