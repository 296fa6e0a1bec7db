"""Playback: controller state machine, queue, position poller and media backends."""
