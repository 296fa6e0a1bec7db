"""
MediaSource interface.

A MediaSource turns a media reference into a MediaHandle. A handle streams a
single track and reports READY / COMPLETED / FAILED / BUFFERING events to at
most one subscriber.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional


class MediaEvent(Enum):
    READY = "ready"
    COMPLETED = "completed"
    FAILED = "failed"
    BUFFERING = "buffering"


# listener(event, detail): detail is the error text for FAILED and a bool for BUFFERING
MediaListener = Callable[[MediaEvent, object], None]


class MediaHandle(ABC):
    """One loaded track on a media source."""

    @abstractmethod
    def play(self) -> None:
        pass

    @abstractmethod
    def pause(self) -> None:
        pass

    @abstractmethod
    def seek(self, position: float) -> None:
        """Seek to an absolute position in seconds."""
        pass

    @abstractmethod
    def position(self) -> float:
        pass

    @abstractmethod
    def duration(self) -> Optional[float]:
        """Reported duration in seconds, or None while unknown."""
        pass

    @abstractmethod
    def subscribe(self, listener: MediaListener) -> Callable[[], None]:
        """
        Attach the single event listener, replacing any previous one.

        Returns an unsubscribe function. Once it has returned, the listener
        is never called again.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Stop playback and release the handle. Idempotent."""
        pass


class MediaSource(ABC):
    """Factory for media handles."""

    @abstractmethod
    def load(self, uri: str) -> MediaHandle:
        """Create a handle for uri. Raises PlaybackFailure if it cannot be opened."""
        pass
