"""Base exceptions for the Auth0 actions manager."""


class Auth0ActionsException(Exception):
    """Base exception for all application errors."""
    pass


class ValidationError(Auth0ActionsException):
    """Raised when validation fails."""
    pass


class NotFoundError(Auth0ActionsException):
    """Raised when a resource is not found."""
    pass
