"""
Error taxonomy for the HTTP API.

Every handler raises one of these; the app renders them as
``{"error": message, **payload}`` with the matching status code.
"""
from typing import Any, Dict, Optional


class ApiError(Exception):
    """Base class for errors surfaced to API clients"""
    status_code = 500

    def __init__(self, message: str, payload: Optional[Dict[str, Any]] = None):
        self.message = message
        self.payload = payload or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, **self.payload}


class ValidationFailed(ApiError):
    """Malformed or incomplete input"""
    status_code = 400


class NotAuthenticated(ApiError):
    """No credentials were presented, or they do not match a user"""
    status_code = 401


class InvalidToken(ApiError):
    """Bearer token is malformed, tampered with or expired"""
    status_code = 403


class NotFound(ApiError):
    """Record is absent or owned by somebody else"""
    status_code = 404


class Conflict(ApiError):
    """Write collides with an existing record"""
    status_code = 409


class UpstreamFailure(ApiError):
    """A dependency (model API, datastore) failed"""
    status_code = 500


class RecipeGenerationError(Exception):
    """Raised when the model call or its response cannot produce a recipe"""
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Recipe generation failed: {reason}")
