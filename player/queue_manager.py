"""
Queue Manager for the preview player.
Provides the in-memory, navigable track queue used by the playback controller.
"""

import logging
from typing import List, Optional, Callable, Sequence
import threading

from shared.models import Track

logger = logging.getLogger(__name__)


class QueueManager:
    """
    Ordered track list plus a current index.

    Duplicates (by track id) are allowed. When the queue is non-empty the
    index always satisfies 0 <= index < size; navigation wraps around in
    both directions. Session-based, nothing is persisted.
    """

    def __init__(self):
        self._queue: List[Track] = []
        self._index = 0
        self._lock = threading.RLock()
        self._on_change_callbacks: List[Callable[[], None]] = []

    @property
    def index(self) -> int:
        return self._index

    def index_of(self, track: Track, tracks: Optional[Sequence[Track]] = None) -> Optional[int]:
        """Position of the first track with the same id, or None."""
        with self._lock:
            haystack = self._queue if tracks is None else tracks
            for i, t in enumerate(haystack):
                if t.id == track.id:
                    return i
            return None

    def replace(self, tracks: Sequence[Track], index: int) -> None:
        """Install a new queue context and point at index."""
        with self._lock:
            if tracks and not 0 <= index < len(tracks):
                raise IndexError(f"Queue index {index} out of range for {len(tracks)} tracks")
            self._queue = list(tracks)
            self._index = index if self._queue else 0
            self._notify_change()

    def current(self) -> Optional[Track]:
        with self._lock:
            return self._queue[self._index] if self._queue else None

    def advance(self) -> Optional[Track]:
        """Move to the next track, wrapping to the first past the last."""
        with self._lock:
            if not self._queue:
                return None
            self._index = (self._index + 1) % len(self._queue)
            self._notify_change()
            return self._queue[self._index]

    def retreat(self) -> Optional[Track]:
        """Move to the previous track, wrapping to the last before the first."""
        with self._lock:
            if not self._queue:
                return None
            self._index = (self._index - 1 + len(self._queue)) % len(self._queue)
            self._notify_change()
            return self._queue[self._index]

    def add(self, track: Track) -> None:
        """Add a track to the end of the queue."""
        with self._lock:
            self._queue.append(track)
            logger.debug(f"Added to queue: {track.title} by {track.artist}")
            self._notify_change()

    def get_all(self) -> List[Track]:
        """Get a copy of all queued tracks."""
        with self._lock:
            return self._queue.copy()

    def clear(self) -> None:
        """Clear all tracks and reset the index."""
        with self._lock:
            count = len(self._queue)
            self._queue.clear()
            self._index = 0
            logger.debug(f"Queue cleared ({count} tracks removed)")
            self._notify_change()

    def is_empty(self) -> bool:
        with self._lock:
            return len(self._queue) == 0

    def size(self) -> int:
        with self._lock:
            return len(self._queue)

    def add_change_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback to be called when the queue changes."""
        if callback not in self._on_change_callbacks:
            self._on_change_callbacks.append(callback)

    def _notify_change(self) -> None:
        for callback in self._on_change_callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in queue change callback: {e}")
