from typing import Dict, Optional


class StorefrontError(Exception):
    """Base class for everything the storefront raises on purpose."""


class ConfigurationError(StorefrontError):
    pass


class ApiError(StorefrontError):
    """The backend rejected a request (or could not be reached)."""

    def __init__(self, status_code: int, message: str, field_errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.field_errors = field_errors or {}


class NotFoundError(ApiError):
    def __init__(self, message: str = "Not found"):
        super().__init__(404, message)


class AuthExpiredError(ApiError):
    def __init__(self, message: str = "Session expired"):
        super().__init__(401, message)


class FormValidationError(StorefrontError):
    """Client-side form rejection, one message per field."""

    def __init__(self, errors: Dict[str, str]):
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors

    def first(self) -> Optional[str]:
        return next(iter(self.errors.values()), None)
