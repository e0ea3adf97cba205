"""Typed failures raised by the resolution core.

Every error carries a short machine-readable ``reason`` so a reviewer (or the
HTTP layer) can tell a bad query from a missing listing from a catalog outage.
"""

from typing import List, Optional


class ResolutionError(Exception):
    """Base class for all artisan resolution failures."""

    reason = "resolution_error"
    status_code = 500

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason

    def to_dict(self) -> dict:
        return {"error": self.message, "reason": self.reason}


class InvalidInputError(ResolutionError):
    """Query too short, malformed code, bad enum value."""

    reason = "invalid_input"
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[str]] = None, reason: Optional[str] = None):
        super().__init__(message, reason)
        self.errors = errors or [message]


class UnknownArtisanCodeError(InvalidInputError):
    """A correction named a code that is neither in the catalog nor UNKNOWN."""

    reason = "unknown_artisan_code"

    def __init__(self, code: str):
        super().__init__(f"Artisan code not found in catalog: {code}")
        self.code = code


class NotFoundError(ResolutionError):
    reason = "not_found"
    status_code = 404


class UnauthorizedError(ResolutionError):
    reason = "unauthorized"
    status_code = 401


class ForbiddenError(ResolutionError):
    reason = "forbidden"
    status_code = 403


class ConflictError(ResolutionError):
    """Raised only when a caller opts in to a version check and loses the race."""

    reason = "conflict"
    status_code = 409


class CatalogUnavailableError(ResolutionError):
    """The catalog is unprovisioned in this deployment or unreachable."""

    reason = "catalog_unavailable"
    status_code = 503
