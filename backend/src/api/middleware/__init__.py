"""Shared API error handling."""

from .error_handlers import ErrorBody, error_body, register_error_handlers

__all__ = ["ErrorBody", "error_body", "register_error_handlers"]
