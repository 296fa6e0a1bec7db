"""
Periodic position/duration poller.

Runs on its own daemon thread only while a track is playing. Each tick reads
the live position and duration from the active media handle, hands them to
the controller, and reports a natural end of track when the position reaches
the duration.
"""

import logging
import threading
from typing import Callable, Optional

from player.media import MediaHandle
from shared.constants import DEFAULT_POLL_INTERVAL, END_OF_TRACK_TOLERANCE
from shared.models import usable_duration

logger = logging.getLogger(__name__)


class TimeSync:
    def __init__(
        self,
        get_handle: Callable[[], Optional[MediaHandle]],
        on_sample: Callable[[MediaHandle, float, Optional[float]], None],
        on_end: Callable[[MediaHandle], None],
        interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.interval = interval
        self._get_handle = get_handle
        self._on_sample = on_sample
        self._on_end = on_end
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop: Optional[threading.Event] = None

    @property
    def running(self) -> bool:
        with self._lock:
            return self._thread is not None

    def start(self) -> None:
        """Start polling. No-op if already running."""
        with self._lock:
            if self._thread is not None:
                return
            stop = threading.Event()
            thread = threading.Thread(target=self._run, args=(stop,), name="time-sync", daemon=True)
            self._stop, self._thread = stop, thread
        thread.start()

    def suspend(self) -> None:
        """
        Stop polling; the worker thread exits at its next wakeup.

        Does not join: suspend() is called with the controller lock held, and
        a tick in progress may be waiting on that lock. A late tick is
        harmless because the controller drops samples from stale handles.
        """
        with self._lock:
            if self._thread is None:
                return
            self._stop.set()
            self._stop = None
            self._thread = None

    def tick(self) -> None:
        """Take one sample from the active handle."""
        handle = self._get_handle()
        if handle is None:
            return
        try:
            position = handle.position()
            duration = handle.duration()
        except Exception as e:
            logger.warning(f"Could not read playback position: {e}")
            return

        self._on_sample(handle, position, duration)

        known = usable_duration(duration)
        if known is not None and position >= known - END_OF_TRACK_TOLERANCE:
            logger.debug(f"Position {position:.2f}s reached duration {known:.2f}s")
            self._on_end(handle)

    def _run(self, stop: threading.Event) -> None:
        while not stop.wait(self.interval):
            try:
                self.tick()
            except Exception:
                logger.exception("Time sync tick failed")
