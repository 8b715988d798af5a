from typing import Any, Dict, Optional


class ScoutingError(Exception):
    """Base error. Carries the HTTP status the API boundary should answer with."""
    status_code = 500

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}

    def payload(self) -> Dict[str, Any]:
        return {"error": self.message, **self.extra}


class ConfigurationError(ScoutingError):
    """Malformed or missing field configuration. Fatal at startup."""


class SchemaSyncError(ConfigurationError):
    pass


class ValidationError(ScoutingError):
    status_code = 400


class AuthenticationError(ScoutingError):
    status_code = 401


class AuthorizationError(ScoutingError):
    status_code = 403


class NotFoundError(ScoutingError):
    status_code = 404


class ConflictError(ScoutingError):
    status_code = 409


class StorageError(ScoutingError):
    status_code = 500
