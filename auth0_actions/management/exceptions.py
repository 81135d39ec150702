"""Management API exceptions."""

from typing import Any, Optional

from auth0_actions.exceptions import Auth0ActionsException, NotFoundError
from auth0_actions.utils.sanitize import truncate


class ManagementError(Auth0ActionsException):
    """Base exception for Management API errors."""
    pass


class AuthenticationError(ManagementError):
    """Raised when the token endpoint rejects the client credentials."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ApiRequestError(ManagementError):
    """Raised when the Management API answers with a non-2xx status."""

    def __init__(
        self,
        method: str,
        path: str,
        status_code: int,
        body: Any = None,
    ):
        self.method = method
        self.path = path
        self.status_code = status_code
        self.body = body
        super().__init__(f"{method} {path} failed with status {status_code}: {self._describe_body()}")

    def _describe_body(self) -> str:
        if isinstance(self.body, dict):
            return truncate(str(self.body.get("message") or self.body.get("error") or self.body))
        return truncate(str(self.body)) if self.body else "no response body"

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class UnknownResourceError(ManagementError, NotFoundError):
    """Raised when a bundle is requested for an unsupported action name."""
    pass
