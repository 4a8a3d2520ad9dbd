"""
Domain exceptions raised by the service layer.

The app factory maps each class onto an HTTP status so routes never have to
translate them by hand.
"""

from __future__ import annotations


class PulpitError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(PulpitError):
    status_code = 404


class ConflictError(PulpitError):
    status_code = 409


class ValidationFailed(PulpitError):
    status_code = 422


class AuthenticationError(PulpitError):
    status_code = 401


class PermissionDeniedError(PulpitError):
    status_code = 403
