"""
Data models for catalog records, playback state, and curated results.

This module defines the core data structures shared by the catalog client,
the curated aggregator and the playback controller.
"""

from dataclasses import dataclass, field, replace
from typing import List, Dict, Optional, Any, Tuple, Iterable
from enum import Enum
import math

from shared.constants import DEFAULT_PREVIEW_DURATION, ARTWORK_THUMB_SIZE, ARTWORK_LARGE_SIZE
from shared.util import format_time


def _large_artwork(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    return url.replace(ARTWORK_THUMB_SIZE, ARTWORK_LARGE_SIZE)


@dataclass(frozen=True)
class Track:
    """
    Represents a single previewable catalog track.

    Attributes:
        id: Catalog track identifier
        title: Song title
        artist: Artist name
        album: Album (collection) name (optional)
        artwork_url: 100x100 artwork thumbnail URL (optional)
        media_url: Preview stream URL playable by a MediaSource (optional)
        duration: Nominal duration in seconds. Catalog records without a
            length get DEFAULT_PREVIEW_DURATION when built with from_api().
        release_date: ISO release date string (optional)
        genre: Primary genre name (optional)
        price: Track price (optional)
        currency: Currency code for price (optional)
    """
    id: int
    title: str
    artist: str
    album: Optional[str] = None
    artwork_url: Optional[str] = None
    media_url: Optional[str] = None
    duration: float = DEFAULT_PREVIEW_DURATION
    release_date: Optional[str] = None
    genre: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None

    @property
    def album_name(self) -> str:
        return self.album or "Unknown Album"

    @property
    def artwork_url_large(self) -> Optional[str]:
        """High resolution artwork (500x500 variant of the thumbnail)."""
        return _large_artwork(self.artwork_url)

    @property
    def is_playable(self) -> bool:
        """Whether the track carries a usable media reference."""
        return bool(self.media_url and self.media_url.strip())

    @property
    def duration_formatted(self) -> str:
        return format_time(self.duration)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Track':
        """
        Build a Track from an iTunes result item.

        Raises KeyError/TypeError/ValueError on items missing the required
        id, name or artist fields; callers translate those into DecodeError.
        """
        millis = data.get("trackTimeMillis")
        duration = DEFAULT_PREVIEW_DURATION if millis is None else float(millis) / 1000.0
        price = data.get("trackPrice")
        return cls(
            id=int(data["trackId"]),
            title=str(data["trackName"]),
            artist=str(data.get("artistName") or "Unknown Artist"),
            album=data.get("collectionName"),
            artwork_url=data.get("artworkUrl100"),
            media_url=data.get("previewUrl"),
            duration=duration,
            release_date=data.get("releaseDate"),
            genre=data.get("primaryGenreName"),
            price=float(price) if price is not None else None,
            currency=data.get("currency"),
        )


def playable(tracks: Iterable[Track]) -> List[Track]:
    """Keep only tracks that carry a media reference."""
    return [t for t in tracks if t.is_playable]


@dataclass(frozen=True)
class Album:
    """A catalog collection (album) header."""
    id: int
    title: str
    artist: str
    artwork_url: Optional[str] = None
    track_count: Optional[int] = None
    release_date: Optional[str] = None
    genre: Optional[str] = None

    @property
    def artwork_url_large(self) -> Optional[str]:
        return _large_artwork(self.artwork_url)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Album':
        return cls(
            id=int(data["collectionId"]),
            title=str(data["collectionName"]),
            artist=str(data.get("artistName") or "Unknown Artist"),
            artwork_url=data.get("artworkUrl100"),
            track_count=data.get("trackCount"),
            release_date=data.get("releaseDate"),
            genre=data.get("primaryGenreName"),
        )


class PlaybackState(Enum):
    """State of the playback controller."""
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    FAILED = "failed"


@dataclass
class PlaybackSession:
    """
    Observable playback state owned by the PlaybackController.

    duration is None while unknown. error holds the reason of the last
    failure and is cleared on the next load.
    """
    state: PlaybackState = PlaybackState.IDLE
    current_track: Optional[Track] = None
    position: float = 0.0
    duration: Optional[float] = None
    buffering: bool = False
    error: Optional[str] = None

    def snapshot(self) -> 'PlaybackSession':
        return replace(self)


def usable_duration(value: Optional[float]) -> Optional[float]:
    """Return value if it is a finite, positive duration, else None."""
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


@dataclass(frozen=True)
class AggregationResult:
    """
    Outcome of one curated aggregate fetch.

    failed_seeds lists the seeds whose fetch failed, so an all-failed load can
    be told apart from an empty seed list even when no error is reported.
    """
    tracks: Tuple[Track, ...] = ()
    loading: bool = False
    error: Optional[str] = None
    failed_seeds: Tuple[str, ...] = field(default_factory=tuple)
