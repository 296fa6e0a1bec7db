"""
Shared constants used across the player.
"""

# Catalog
DEFAULT_CATALOG_URL = "https://itunes.apple.com"
DEFAULT_COUNTRY = "US"
DEFAULT_SEARCH_LIMIT = 50
DEFAULT_ALBUM_SEARCH_LIMIT = 25

# Network Settings
DEFAULT_CONNECT_TIMEOUT = 30  # seconds
DEFAULT_READ_TIMEOUT = 60  # seconds
DEFAULT_POOL_SIZE = 20

# Track metadata
DEFAULT_PREVIEW_DURATION = 30.0  # seconds, used when the catalog omits a length
ARTWORK_THUMB_SIZE = "100x100"
ARTWORK_LARGE_SIZE = "500x500"

# Playback
DEFAULT_POLL_INTERVAL = 0.5  # seconds
RESTART_THRESHOLD = 3.0  # previous() restarts the track past this position
END_OF_TRACK_TOLERANCE = 0.05  # seconds

# Curated aggregation
DEFAULT_FETCH_CAP = 3
DEFAULT_TAKE_CAP = 2
DEFAULT_AGGREGATE_WORKERS = 8

CURATED_ARTISTS = [
    "Royal Blood",
    "Architecture In Helsinki",
    "Superhumanoids",
    "Gengahr",
    "Father John Misty",
    "Daft Punk",
    "Scissor Sisters",
    "Thom Yorke",
    "Pink Floyd",
    "Radiohead",
]

# Browse tabs
TAB_FOR_YOU = "For You"
TAB_QUERIES = {
    "Library": "indie rock alternative",
    "Playlist": "chill electronic ambient",
    "Radio": "popular hits 2024",
}
DEFAULT_TAB_QUERY = "top songs"
