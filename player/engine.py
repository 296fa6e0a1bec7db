"""
MediaSource backed by python-mpv.
Streams preview URLs through a single audio-only mpv instance.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Optional

import mpv

from player.media import MediaEvent, MediaHandle, MediaListener, MediaSource
from shared.errors import PlaybackFailure

logger = logging.getLogger(__name__)


class MpvMediaSource(MediaSource):
    """
    Wrapper around one MPV player shared by all handles.

    Only one handle is active at a time: loading a new handle replaces the
    file mpv is playing. Property callbacks arrive on mpv's event thread and
    are forwarded to listeners through a single worker thread, so listeners
    may call back into mpv (e.g. load the next track) safely.
    """

    def __init__(self, volume: int = 100):
        # vo='null' because we are audio-only; keep_open so end of file
        # is reported through eof-reached instead of going idle.
        self.player = mpv.MPV(
            vo='null',
            video=False,
            ytdl=False,
            keep_open='yes',
            cache='yes',
        )
        self.player.volume = max(0, min(100, volume))
        self._dispatcher = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mpv-events")

    def load(self, uri: str) -> 'MpvHandle':
        if not uri:
            raise PlaybackFailure("Empty media reference")
        return MpvHandle(self, uri)

    def set_volume(self, level: int):
        """Set volume (0-100)."""
        self.player.volume = max(0, min(100, level))

    def dispatch(self, fn: Callable[[], None]) -> None:
        try:
            self._dispatcher.submit(fn)
        except RuntimeError:
            # Executor already shut down.
            logger.debug("Dropping mpv event after shutdown")

    def shutdown(self) -> None:
        self._dispatcher.shutdown(wait=False, cancel_futures=True)
        self.player.terminate()


class MpvHandle(MediaHandle):
    """One preview URL on the shared mpv player."""

    def __init__(self, source: MpvMediaSource, uri: str):
        self._source = source
        self._player = source.player
        self.uri = uri
        self._lock = threading.Lock()
        self._listener: Optional[MediaListener] = None
        self._observers: Dict[str, Callable] = {}
        self._started = False
        self._ready = False
        self._busy = False
        self._closed = False

    # Playback commands

    def play(self) -> None:
        with self._lock:
            if self._closed:
                return
            first = not self._started
            self._started = True
        if first:
            self._observe()
            try:
                self._player.pause = True
                self._player.loadfile(self.uri, 'replace')
            except Exception as e:
                raise PlaybackFailure(f"mpv could not open {self.uri}: {e}") from e
        self._player.pause = False

    def pause(self) -> None:
        if not self._closed:
            self._player.pause = True

    def seek(self, position: float) -> None:
        if not self._closed and self._started:
            self._player.seek(position, reference='absolute', precision='exact')

    def position(self) -> float:
        if self._closed:
            return 0.0
        return self._player.time_pos or 0.0

    def duration(self) -> Optional[float]:
        if self._closed:
            return None
        return self._player.duration

    # Events

    def subscribe(self, listener: MediaListener) -> Callable[[], None]:
        with self._lock:
            self._listener = listener

        def unsubscribe():
            with self._lock:
                if self._listener is listener:
                    self._listener = None
        return unsubscribe

    def _emit(self, event: MediaEvent, detail: object = None) -> None:
        def deliver():
            with self._lock:
                listener = None if self._closed else self._listener
            if listener is not None:
                listener(event, detail)
        self._source.dispatch(deliver)

    def _observe(self) -> None:
        def on_duration(_name, value):
            if value is not None and not self._ready:
                self._ready = True
                self._emit(MediaEvent.READY)

        def on_eof(_name, value):
            if value and self._ready:
                self._emit(MediaEvent.COMPLETED)

        def on_idle(_name, value):
            # Observing reports the current value first, so only a
            # busy -> idle transition before READY means the open failed.
            if not value:
                self._busy = True
            elif self._busy and not self._ready:
                self._emit(MediaEvent.FAILED, f"mpv could not play {self.uri}")

        def on_cache_pause(_name, value):
            if value is not None:
                self._emit(MediaEvent.BUFFERING, bool(value))

        self._observers = {
            'duration': on_duration,
            'eof-reached': on_eof,
            'idle-active': on_idle,
            'paused-for-cache': on_cache_pause,
        }
        for name, handler in self._observers.items():
            self._player.observe_property(name, handler)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._listener = None
            observers, self._observers = self._observers, {}
        for name, handler in observers.items():
            try:
                self._player.unobserve_property(name, handler)
            except Exception as e:
                logger.debug(f"unobserve {name} failed: {e}")
        if self._started:
            try:
                self._player.stop()
            except Exception as e:
                logger.warning(f"Error stopping mpv: {e}")
