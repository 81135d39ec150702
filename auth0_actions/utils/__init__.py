"""Utility helpers."""

from auth0_actions.utils.sanitize import sanitize_error_message, truncate

__all__ = ["sanitize_error_message", "truncate"]
