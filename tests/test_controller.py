import math

import pytest

from conftest import make_track
from player.media import MediaEvent
from shared.errors import TrackNotInQueue
from shared.models import PlaybackState


def test_new_controller_is_idle(controller):
    session = controller.session
    assert session.state is PlaybackState.IDLE
    assert session.current_track is None
    assert session.position == 0
    assert controller.queue == []


def test_load_and_play_enters_loading_with_nominal_duration(controller, source, tracks):
    controller.load_and_play(tracks[2], tracks)

    session = controller.session
    assert session.state is PlaybackState.LOADING
    assert session.current_track == tracks[2]
    assert session.duration == 30.0
    assert session.buffering is True
    assert controller.current_index == 2
    assert source.last.uri == tracks[2].media_url
    assert source.last.playing
    assert source.log[-2:] == [f"subscribe {tracks[2].media_url}", f"play {tracks[2].media_url}"]


def test_ready_switches_to_playing_and_takes_reported_duration(controller, source, tracks):
    controller.load_and_play(tracks[0], tracks)
    source.last.dur = 29.7
    source.last.emit(MediaEvent.READY)

    session = controller.session
    assert session.state is PlaybackState.PLAYING
    assert session.duration == 29.7
    assert session.buffering is False


@pytest.mark.parametrize("reported", [None, 0.0, -5.0, math.nan, math.inf])
def test_ready_keeps_nominal_duration_when_report_is_unusable(controller, source, tracks, reported):
    controller.load_and_play(tracks[0], tracks)
    source.last.dur = reported
    source.last.emit(MediaEvent.READY)

    assert controller.session.duration == 30.0
    assert controller.state is PlaybackState.PLAYING


def test_previous_handle_is_released_before_next_is_created(controller, source, tracks):
    controller.load_and_play(tracks[0], tracks)
    first = source.last
    source.log.clear()

    controller.load_and_play(tracks[1], tracks)

    a, b = tracks[0].media_url, tracks[1].media_url
    assert source.log[:3] == [f"unsubscribe {a}", f"close {a}", f"load {b}"]
    assert first.closed
    assert first.listener is None


def test_track_not_in_queue_raises_without_side_effects(controller, source, tracks):
    controller.load_and_play(tracks[0], tracks)
    handle = source.last

    with pytest.raises(TrackNotInQueue):
        controller.load_and_play(make_track(99), tracks[1:])

    assert not handle.closed
    assert controller.current_index == 0
    assert controller.queue == tracks
    assert len(source.handles) == 1


def test_duplicate_ids_pick_first_occurrence(controller, tracks):
    queue = [tracks[0], tracks[1], tracks[0]]
    controller.load_and_play(tracks[0], queue)
    assert controller.current_index == 0


def test_toggle_without_handle_is_noop(controller):
    controller.toggle_play_pause()
    assert controller.state is PlaybackState.IDLE


def test_toggle_flips_between_playing_and_paused(controller, source, tracks):
    controller.load_and_play(tracks[0], tracks)
    source.last.emit(MediaEvent.READY)
    assert controller.time_sync.running

    controller.toggle_play_pause()
    assert controller.state is PlaybackState.PAUSED
    assert not source.last.playing
    assert not controller.time_sync.running

    controller.toggle_play_pause()
    assert controller.state is PlaybackState.PLAYING
    assert source.last.playing
    assert controller.time_sync.running


def test_pause_during_loading_then_ready_stays_paused(controller, source, tracks):
    controller.load_and_play(tracks[0], tracks)
    controller.toggle_play_pause()
    source.last.dur = 28.0
    source.last.emit(MediaEvent.READY)

    assert controller.state is PlaybackState.PAUSED
    assert controller.session.duration == 28.0

    controller.toggle_play_pause()
    assert controller.state is PlaybackState.PLAYING


def test_seek_clamps_to_known_duration(controller, source, tracks):
    controller.load_and_play(tracks[0], tracks)

    controller.seek(45)
    assert controller.session.position == 30.0
    assert source.last.seeks[-1] == 30.0

    controller.seek(-3)
    assert controller.session.position == 0.0
    assert source.last.seeks[-1] == 0.0


def test_seek_to_fraction_uses_duration(controller, source, tracks):
    controller.load_and_play(tracks[0], tracks)
    source.last.dur = 200.0
    source.last.emit(MediaEvent.READY)

    controller.seek_to_fraction(0.5)
    assert controller.session.position == 100.0
    assert source.last.seeks[-1] == 100.0

    controller.seek_to_fraction(1.7)
    assert controller.session.position == 200.0


def test_next_is_circular(controller, tracks):
    controller.load_and_play(tracks[1], tracks)
    for _ in range(len(tracks)):
        controller.next()
    assert controller.current_index == 1
    assert controller.session.current_track == tracks[1]


def test_next_is_circular_with_duplicates(controller, tracks):
    queue = [tracks[0], tracks[1], tracks[0]]
    controller.load_and_play(tracks[1], queue)
    controller.next()
    assert controller.current_index == 2
    controller.next()
    controller.next()
    assert controller.current_index == 1


def test_next_and_previous_on_empty_queue_are_noops(controller, source):
    controller.next()
    controller.previous()
    assert controller.state is PlaybackState.IDLE
    assert source.handles == []


def test_previous_after_three_seconds_restarts_track(controller, source, tracks):
    controller.load_and_play(tracks[2], tracks)
    handle = source.last
    controller.seek(12.0)

    controller.previous()

    assert controller.current_index == 2
    assert controller.session.position == 0
    assert handle.seeks[-1] == 0
    assert source.last is handle


def test_previous_at_start_of_first_track_wraps_to_last(controller, tracks):
    controller.load_and_play(tracks[0], tracks)
    controller.seek(3.0)

    controller.previous()

    assert controller.current_index == len(tracks) - 1
    assert controller.session.current_track == tracks[-1]


def test_previous_after_late_failure_reloads_same_track(controller, source, tracks):
    controller.load_and_play(tracks[2], tracks)
    failed = source.last
    failed.emit(MediaEvent.READY)
    failed.pos = 12.0
    controller.time_sync.tick()
    failed.emit(MediaEvent.FAILED, "stream dropped")
    assert controller.state is PlaybackState.FAILED

    controller.previous()

    assert controller.state is PlaybackState.LOADING
    assert controller.session.error is None
    assert controller.session.position == 0
    assert controller.current_index == 2
    assert len(source.handles) == 2
    assert source.last is not failed
    assert source.last.uri == tracks[2].media_url


def test_seek_without_active_track_is_ignored(controller, source, tracks):
    controller.load_and_play(tracks[1], tracks)
    released = source.last
    controller.stop()

    controller.seek(20)
    controller.seek_to_fraction(0.5)

    assert controller.state is PlaybackState.IDLE
    assert controller.session.position == 0
    assert released.seeks == []


def test_completion_of_last_track_wraps_to_first(controller, source, tracks):
    controller.load_and_play(tracks[-1], tracks)
    source.last.emit(MediaEvent.READY)

    source.last.emit(MediaEvent.COMPLETED)

    assert controller.current_index == 0
    assert controller.state is PlaybackState.LOADING
    assert source.last.uri == tracks[0].media_url


def test_late_event_from_released_handle_is_ignored(controller, source, tracks):
    controller.load_and_play(tracks[0], tracks)
    old_listener = source.last.listener

    controller.next()
    assert controller.current_index == 1

    old_listener(MediaEvent.COMPLETED, None)
    old_listener(MediaEvent.FAILED, "boom")

    assert controller.current_index == 1
    assert controller.state is PlaybackState.LOADING


def test_failure_while_playing_keeps_index(controller, source, tracks):
    controller.load_and_play(tracks[2], tracks)
    source.last.emit(MediaEvent.READY)

    source.last.emit(MediaEvent.FAILED, "decoder error")

    session = controller.session
    assert session.state is PlaybackState.FAILED
    assert session.error == "decoder error"
    assert controller.current_index == 2
    assert source.last.closed
    assert not controller.time_sync.running


def test_failed_state_recovers_only_through_navigation(controller, source, tracks):
    controller.load_and_play(tracks[0], tracks)
    source.last.emit(MediaEvent.FAILED, "bad stream")

    controller.toggle_play_pause()
    assert controller.state is PlaybackState.FAILED

    controller.next()
    assert controller.state is PlaybackState.LOADING
    assert controller.session.error is None
    assert controller.current_index == 1


def test_track_without_media_reference_fails(controller, source):
    silent = make_track(7, playable=False)
    controller.load_and_play(silent, [silent])

    assert controller.state is PlaybackState.FAILED
    assert "No stream URL" in controller.session.error
    assert source.handles == []


def test_media_source_load_failure_sets_failed(controller, source, tracks):
    source.fail_uris.add(tracks[1].media_url)
    controller.load_and_play(tracks[1], tracks)

    assert controller.state is PlaybackState.FAILED
    assert controller.current_index == 1


def test_stop_resets_position_and_keeps_queue(controller, source, tracks):
    controller.load_and_play(tracks[1], tracks)
    controller.seek(10)

    controller.stop()

    assert controller.state is PlaybackState.IDLE
    assert controller.session.position == 0
    assert controller.queue == tracks
    assert source.last.closed
    assert not controller.time_sync.running


def test_append_and_clear_queue(controller, source, tracks):
    controller.load_and_play(tracks[0], tracks[:2])
    controller.append_to_queue(tracks[0])
    assert [t.id for t in controller.queue] == [1, 2, 1]

    controller.clear_queue()
    assert controller.queue == []
    assert controller.current_index == 0
    # clearing does not stop the current track
    assert controller.state is PlaybackState.LOADING
    assert not source.last.closed


def test_completion_after_queue_cleared_stops(controller, source, tracks):
    controller.load_and_play(tracks[0], tracks)
    controller.clear_queue()

    source.last.emit(MediaEvent.COMPLETED)

    assert controller.state is PlaybackState.IDLE


def test_buffering_events_update_flag(controller, source, tracks):
    controller.load_and_play(tracks[0], tracks)
    source.last.emit(MediaEvent.READY)
    source.last.emit(MediaEvent.BUFFERING, True)
    assert controller.session.buffering is True
    source.last.emit(MediaEvent.BUFFERING, False)
    assert controller.session.buffering is False


def test_listeners_receive_snapshots_until_unsubscribed(controller, source, tracks):
    seen = []
    unsubscribe = controller.subscribe(lambda s: seen.append(s.state))

    controller.load_and_play(tracks[0], tracks)
    source.last.emit(MediaEvent.READY)
    assert seen[-1] is PlaybackState.PLAYING

    unsubscribe()
    count = len(seen)
    controller.stop()
    assert len(seen) == count


def test_listener_errors_do_not_escape(controller, tracks):
    def broken(_session):
        raise RuntimeError("listener bug")

    controller.subscribe(broken)
    controller.load_and_play(tracks[0], tracks)
    assert controller.state is PlaybackState.LOADING


def test_formatted_times(controller, source, tracks):
    controller.load_and_play(tracks[0], tracks)
    source.last.dur = 125.0
    source.last.emit(MediaEvent.READY)
    controller.seek(61)
    assert controller.position_formatted == "1:01"
    assert controller.duration_formatted == "2:05"
