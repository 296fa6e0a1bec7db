import pytest

from player.controller import PlaybackController
from player.media import MediaHandle, MediaSource
from shared.errors import PlaybackFailure
from shared.models import Track


class FakeHandle(MediaHandle):
    def __init__(self, source, uri):
        self.source = source
        self.uri = uri
        self.listener = None
        self.playing = False
        self.closed = False
        self.pos = 0.0
        self.dur = None
        self.seeks = []

    def play(self):
        self.source.log.append(f"play {self.uri}")
        self.playing = True

    def pause(self):
        self.source.log.append(f"pause {self.uri}")
        self.playing = False

    def seek(self, position):
        self.seeks.append(position)
        self.pos = position

    def position(self):
        return self.pos

    def duration(self):
        return self.dur

    def subscribe(self, listener):
        self.listener = listener
        self.source.log.append(f"subscribe {self.uri}")

        def unsubscribe():
            self.source.log.append(f"unsubscribe {self.uri}")
            if self.listener is listener:
                self.listener = None
        return unsubscribe

    def close(self):
        self.source.log.append(f"close {self.uri}")
        self.closed = True
        self.playing = False

    def emit(self, event, detail=None):
        if self.listener is not None:
            self.listener(event, detail)


class FakeMediaSource(MediaSource):
    def __init__(self):
        self.handles = []
        self.log = []
        self.fail_uris = set()

    def load(self, uri):
        if uri in self.fail_uris:
            raise PlaybackFailure(f"cannot open {uri}")
        self.log.append(f"load {uri}")
        handle = FakeHandle(self, uri)
        self.handles.append(handle)
        return handle

    @property
    def last(self):
        return self.handles[-1]


def make_track(track_id, title=None, playable=True, duration=30.0, artist="Artist"):
    return Track(
        id=track_id,
        title=title or f"Song {track_id}",
        artist=artist,
        album="Album",
        artwork_url=f"https://is1.example.com/{track_id}/100x100bb.jpg",
        media_url=f"https://audio.example.com/{track_id}.m4a" if playable else None,
        duration=duration,
    )


@pytest.fixture
def tracks():
    return [make_track(i) for i in range(1, 5)]


@pytest.fixture
def source():
    return FakeMediaSource()


@pytest.fixture
def controller(source):
    # Long poll interval: the poller thread never ticks during a test.
    ctrl = PlaybackController(source, poll_interval=60)
    yield ctrl
    ctrl.stop()
