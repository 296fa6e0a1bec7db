"""
TunePeek

A terminal player for short song previews from the iTunes catalog: search,
browse albums, build a shuffled "For You" feed from curated artists, and
play the results through mpv.

Repository Structure:
- shared/: Models, errors, configuration and constants
- catalog/: iTunes Search API client and observable browse state
- curated/: Fan-out aggregator for the curated feed
- player/: Playback controller, queue, position poller, mpv backend and CLI
- tests/: Unit tests

License: MIT
"""
