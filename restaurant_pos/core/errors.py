"""
Service-level exceptions.

Services raise these instead of HTTP errors so they can be reused from
scripts and tasks. The API layer translates each one to a status code.
"""

from typing import Any, Optional


class POSError(Exception):
    """Base class for business-rule failures."""

    status_code = 400

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class NotFoundError(POSError):
    """A referenced table, bill, food or account does not exist."""

    status_code = 404


class ConflictError(POSError):
    """The request clashes with current state (duplicate name, busy table)."""

    status_code = 409


class ValidationError(POSError):
    """Input is well-formed but outside the allowed range."""

    status_code = 400
