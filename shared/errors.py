"""
Error taxonomy for catalog requests and playback.

Every error carries a human-readable message suitable for display; the
catalog browser publishes str(error) to its observable error slot.
"""

from typing import Optional


class CatalogError(Exception):
    """Base class for failures of a single catalog request."""


class InvalidRequest(CatalogError):
    """The request could not be built (e.g. empty query)."""


class TransportError(CatalogError):
    """Network-level failure: connection, DNS, timeout."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ServerStatusError(CatalogError):
    """The catalog answered with a non-2xx status."""

    def __init__(self, status_code: int):
        super().__init__(f"HTTP error: {status_code}")
        self.status_code = status_code


class DecodeError(CatalogError):
    """The response body was not the expected JSON payload."""


class NotFound(CatalogError):
    """A lookup returned no results."""


class PlaybackError(Exception):
    """Base class for playback errors."""


class TrackNotInQueue(PlaybackError, LookupError):
    """load_and_play() was given a queue that does not contain the track."""


class PlaybackFailure(PlaybackError):
    """
    A media source failed to load or play a track.

    Never raised across the controller boundary; the controller records it as
    the FAILED state and keeps the message in the session.
    """
