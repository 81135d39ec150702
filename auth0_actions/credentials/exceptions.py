"""Credential-specific exceptions."""

from auth0_actions.exceptions import Auth0ActionsException, ValidationError


class CredentialException(Auth0ActionsException):
    """Base exception for credential-related errors."""
    pass


class CredentialEncryptionError(CredentialException):
    """Raised when credential encryption/decryption fails."""
    pass


class InvalidDomainError(CredentialException, ValidationError):
    """Raised when an Auth0 domain has an invalid format."""
    pass
