"""
Playback controller.
Owns the playback session, the track queue and the active media handle.
"""

import logging
import threading
from typing import Callable, Iterable, List, Optional

from player.media import MediaEvent, MediaHandle, MediaSource
from player.queue_manager import QueueManager
from player.time_sync import TimeSync
from shared.constants import DEFAULT_POLL_INTERVAL, RESTART_THRESHOLD
from shared.errors import PlaybackFailure, TrackNotInQueue
from shared.models import PlaybackSession, PlaybackState, Track, usable_duration
from shared.util import clamp, format_time

logger = logging.getLogger(__name__)

SessionListener = Callable[[PlaybackSession], None]


class PlaybackController:
    """
    State machine over a MediaSource: IDLE -> LOADING -> PLAYING <-> PAUSED,
    with FAILED reachable from any active state.

    All operations, media events and poller samples are serialized on one
    re-entrant lock. Loading a track always unsubscribes from and closes the
    previous handle before the new one is created, and every media callback
    is bound to the handle it came from, so a late event from an old track
    can never touch the session.

    Playback errors are never raised to callers; they leave the controller in
    FAILED with session.error set. Only an explicit load_and_play(), next()
    or previous() leaves FAILED.
    """

    def __init__(self, media_source: MediaSource, queue: Optional[QueueManager] = None,
                 poll_interval: float = DEFAULT_POLL_INTERVAL):
        self._source = media_source
        self._queue = queue or QueueManager()
        self._session = PlaybackSession()
        self._lock = threading.RLock()

        self._handle: Optional[MediaHandle] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._ready = False
        self._listeners: List[SessionListener] = []

        self.time_sync = TimeSync(
            self._active_handle, self._apply_sample, self._on_natural_end, interval=poll_interval
        )
        self._queue.add_change_callback(self._notify)

    # Observable state

    @property
    def session(self) -> PlaybackSession:
        """A copy of the current session."""
        with self._lock:
            return self._session.snapshot()

    @property
    def state(self) -> PlaybackState:
        return self._session.state

    @property
    def is_playing(self) -> bool:
        return self._session.state in (PlaybackState.LOADING, PlaybackState.PLAYING)

    @property
    def queue(self) -> List[Track]:
        return self._queue.get_all()

    @property
    def current_index(self) -> int:
        return self._queue.index

    @property
    def position_formatted(self) -> str:
        return format_time(self._session.position)

    @property
    def duration_formatted(self) -> str:
        return format_time(self._session.duration)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a session listener. Returns a function that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        with self._lock:
            snapshot = self._session.snapshot()
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Error in playback listener")

    # Commands

    def load_and_play(self, track: Track, queue: Iterable[Track]) -> None:
        """
        Make queue the current queue and start playing track from it.

        Raises TrackNotInQueue (before touching any state) if no entry of
        queue has track's id.
        """
        tracks = list(queue)
        with self._lock:
            index = self._queue.index_of(track, tracks)
            if index is None:
                raise TrackNotInQueue(f"'{track.title}' is not in the given queue")
            self._teardown()
            self._queue.replace(tracks, index)
            self._start(tracks[index])

    def toggle_play_pause(self) -> None:
        with self._lock:
            if self._handle is None:
                return
            if self._session.state is PlaybackState.PAUSED:
                self.resume()
            else:
                self.pause()

    def pause(self) -> None:
        with self._lock:
            if self._handle is None or self._session.state is PlaybackState.PAUSED:
                return
            try:
                self._handle.pause()
            except Exception as e:
                self._fail(f"Pause failed: {e}")
                return
            self._session.state = PlaybackState.PAUSED
            self.time_sync.suspend()
            self._notify()

    def resume(self) -> None:
        with self._lock:
            if self._handle is None or self._session.state is not PlaybackState.PAUSED:
                return
            try:
                self._handle.play()
            except Exception as e:
                self._fail(f"Resume failed: {e}")
                return
            self._session.state = PlaybackState.PLAYING if self._ready else PlaybackState.LOADING
            self.time_sync.start()
            self._notify()

    def seek(self, position: float) -> None:
        """
        Seek to position (seconds), clamped to [0, duration] when known.

        The session position is updated at once; the next poll corrects it
        if the source lands elsewhere. Ignored without an active handle
        (IDLE or FAILED).
        """
        with self._lock:
            if self._handle is None:
                logger.debug("Ignoring seek, no active track")
                return
            target = max(0.0, float(position))
            if self._session.duration is not None:
                target = min(target, self._session.duration)
            try:
                self._handle.seek(target)
            except Exception as e:
                logger.warning(f"Error seeking to {target:.2f}s: {e}")
            self._session.position = target
            self._notify()

    def seek_to_fraction(self, fraction: float) -> None:
        with self._lock:
            duration = self._session.duration
            if duration is None:
                logger.debug("Ignoring fractional seek, duration unknown")
                return
            self.seek(duration * clamp(float(fraction), 0.0, 1.0))

    def next(self) -> None:
        """Play the following track, wrapping to the first after the last."""
        with self._lock:
            track = self._queue.advance()
            if track is None:
                return
            self._teardown()
            self._start(track)

    def previous(self) -> None:
        """
        Restart the current track if more than 3 seconds in, otherwise play
        the preceding track (wrapping to the last before the first).
        """
        with self._lock:
            if self._queue.is_empty():
                return
            if self._session.position > RESTART_THRESHOLD:
                if self._handle is not None:
                    self.seek(0)
                    return
                # Released handle (FAILED): reload the current track.
                track = self._queue.current()
                self._teardown()
                self._start(track)
                return
            track = self._queue.retreat()
            self._teardown()
            self._start(track)

    def stop(self) -> None:
        """Release the media handle and go IDLE. The queue is kept."""
        with self._lock:
            self._teardown()
            self._session.position = 0.0
            self._session.buffering = False
            self._session.state = PlaybackState.IDLE
            self._notify()

    def append_to_queue(self, track: Track) -> None:
        self._queue.add(track)

    def clear_queue(self) -> None:
        """
        Empty the queue and reset the index.

        A track already playing keeps playing until it ends or stop() is
        called; call stop() first to avoid that.
        """
        self._queue.clear()

    # Internals

    def _active_handle(self) -> Optional[MediaHandle]:
        with self._lock:
            return self._handle

    def _teardown(self) -> None:
        self.time_sync.suspend()
        if self._unsubscribe is not None:
            unsubscribe, self._unsubscribe = self._unsubscribe, None
            unsubscribe()
        if self._handle is not None:
            handle, self._handle = self._handle, None
            try:
                handle.close()
            except Exception as e:
                logger.warning(f"Error closing media handle: {e}")
        self._ready = False

    def _start(self, track: Track) -> None:
        session = self._session
        session.current_track = track
        session.position = 0.0
        session.duration = track.duration
        session.buffering = True
        session.error = None
        session.state = PlaybackState.LOADING
        logger.info(f"Loading: {track.title} by {track.artist}")

        if not track.is_playable:
            self._fail(f"No stream URL available for song: {track.title}")
            return

        try:
            handle = self._source.load(track.media_url)
        except PlaybackFailure as e:
            self._fail(str(e))
            return
        except Exception as e:
            logger.exception(f"Media source could not load {track.media_url}")
            self._fail(f"Could not load track: {e}")
            return

        self._handle = handle
        self._unsubscribe = handle.subscribe(
            lambda event, detail: self._on_media_event(handle, event, detail)
        )
        try:
            handle.play()
        except Exception as e:
            self._fail(f"Could not start playback: {e}")
            return

        # play() may already have delivered FAILED synchronously.
        if self._handle is handle:
            self.time_sync.start()
        self._notify()

    def _fail(self, reason: str) -> None:
        logger.warning(f"Player failed: {reason}")
        self._teardown()
        self._session.state = PlaybackState.FAILED
        self._session.buffering = False
        self._session.error = reason
        self._notify()

    def _on_media_event(self, handle: MediaHandle, event: MediaEvent, detail: object) -> None:
        with self._lock:
            if handle is not self._handle:
                logger.debug(f"Ignoring {event.value} from a released handle")
                return
            session = self._session
            if event is MediaEvent.READY:
                self._ready = True
                session.buffering = False
                reported = usable_duration(handle.duration())
                if reported is not None:
                    session.duration = reported
                if session.state is PlaybackState.LOADING:
                    session.state = PlaybackState.PLAYING
                self._notify()
            elif event is MediaEvent.BUFFERING:
                session.buffering = bool(detail)
                self._notify()
            elif event is MediaEvent.COMPLETED:
                self._on_natural_end(handle)
            elif event is MediaEvent.FAILED:
                self._fail(str(detail) if detail else "Playback failed")

    def _apply_sample(self, handle: MediaHandle, position: float, duration: Optional[float]) -> None:
        with self._lock:
            if handle is not self._handle:
                return
            session = self._session
            session.position = max(0.0, float(position or 0.0))
            reported = usable_duration(duration)
            if reported is not None:
                session.duration = reported
            self._notify()

    def _on_natural_end(self, handle: MediaHandle) -> None:
        with self._lock:
            # A second end signal for the same track finds a new handle here.
            if handle is not self._handle:
                return
            logger.debug("Track finished, advancing")
            if self._queue.is_empty():
                self.stop()
                return
            self.next()
