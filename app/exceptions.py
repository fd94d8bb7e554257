"""Error taxonomy shared by the catalogue and library services."""

from __future__ import annotations


class TrackerError(Exception):
    """Base exception for all request-scoped tracker failures."""


class InvalidInput(TrackerError):
    """Raised when a query or selection is empty or malformed."""


class NotFound(TrackerError):
    """Raised when no catalogue match exists or an identifier is unknown."""

    def __init__(self, message: str, *, identifier: object | None = None) -> None:
        super().__init__(message)
        self.identifier = identifier


class UpstreamUnavailable(TrackerError):
    """Raised when the external catalogue times out or misbehaves."""


class Forbidden(TrackerError):
    """Raised when a user acts on a show outside their library."""
