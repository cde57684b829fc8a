"""
Application exceptions, rendered centrally by the error handlers
"""

from typing import Optional, Dict, Any


class BaseAppException(Exception):
    """Base application exception"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


# === Authentication / authorization ===
class AuthenticationError(BaseAppException):
    """Missing or invalid identity"""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, 401, "AUTHENTICATION_ERROR", details)


class ForbiddenError(BaseAppException):
    """Actor does not own the resource or lacks the role"""

    def __init__(
        self, message: str = "Access denied", details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, 403, "FORBIDDEN", details)


# === Validation ===
class ValidationError(BaseAppException):
    """Malformed input"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 400, "VALIDATION_ERROR", details)


# === Resources ===
class NotFoundError(BaseAppException):
    """Referenced resource does not exist"""

    def __init__(self, resource: str, identifier: str = None):
        if identifier:
            message = f"{resource} with identifier '{identifier}' not found"
            details = {"resource": resource, "identifier": identifier}
        else:
            message = f"{resource} not found"
            details = {"resource": resource}
        super().__init__(message, 404, "NOT_FOUND", details)


class ConflictError(BaseAppException):
    """Write collides with an existing row"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 409, "CONFLICT", details)


# === Business rules ===
class InvalidStateError(BaseAppException):
    """Operation is not legal in the resource's current status"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 400, "INVALID_STATE", details)


class InvalidTransitionError(InvalidStateError):
    """Status transition rejected by a state machine"""

    def __init__(self, resource: str, current: str, requested: str):
        message = f"Cannot change {resource} status from '{current}' to '{requested}'"
        details = {"resource": resource, "from": current, "to": requested}
        super().__init__(message, details)


class CapacityExceededError(BaseAppException):
    """No remaining capacity"""

    def __init__(self, resource: str, limit: int, current: int):
        message = f"{resource} is fully booked: {current}/{limit}"
        details = {"resource": resource, "limit": limit, "current": current}
        super().__init__(message, 400, "CAPACITY_EXCEEDED", details)


# === Database ===
class DatabaseError(BaseAppException):
    """Generic database failure"""

    def __init__(
        self,
        message: str = "Database operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, 500, "DATABASE_ERROR", details)


class DatabaseConnectionError(BaseAppException):
    """Database unreachable"""

    def __init__(self, message: str = "Database connection failed"):
        super().__init__(message, 503, "DATABASE_CONNECTION_ERROR")


class DatabaseTimeoutError(BaseAppException):
    """Database operation timed out"""

    def __init__(self, operation: str, timeout: int):
        message = f"Database operation '{operation}' timed out after {timeout}s"
        details = {"operation": operation, "timeout": timeout}
        super().__init__(message, 504, "DATABASE_TIMEOUT", details)


# === Configuration ===
class ConfigurationError(BaseAppException):
    """Missing or invalid configuration"""

    def __init__(self, parameter: str, message: str = None):
        message = (
            message or f"Configuration parameter '{parameter}' is invalid or missing"
        )
        details = {"parameter": parameter}
        super().__init__(message, 500, "CONFIGURATION_ERROR", details)
