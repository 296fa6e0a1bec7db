"""
iTunes Search API client.
Performs single search/lookup requests and returns typed records.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from shared.config import CatalogConfig
from shared.constants import DEFAULT_POOL_SIZE, DEFAULT_SEARCH_LIMIT, DEFAULT_ALBUM_SEARCH_LIMIT
from shared.errors import InvalidRequest, TransportError, ServerStatusError, DecodeError, NotFound
from shared.models import Track, Album, playable

logger = logging.getLogger(__name__)

WRAPPER_TRACK = "track"


def _make_session() -> requests.Session:
    session = requests.Session()
    adapter = requests.adapters.HTTPAdapter(
        pool_connections=DEFAULT_POOL_SIZE, pool_maxsize=DEFAULT_POOL_SIZE, max_retries=0
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class ITunesClient:
    """
    Thin client over the iTunes /search and /lookup endpoints.

    Every method issues exactly one request and either returns typed records
    or raises a CatalogError subclass. The client keeps no observable state;
    see catalog.browser for the UI-facing layer.
    """

    def __init__(self, config: Optional[CatalogConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or CatalogConfig()
        self._session = session or _make_session()

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.config.base_url}/{path}"
        logger.debug(f"GET {url} params={params}")
        try:
            response = self._session.get(url, params=params, timeout=self.config.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Network error: {e}", cause=e) from e

        if not 200 <= response.status_code < 300:
            raise ServerStatusError(response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise DecodeError(f"Failed to parse response: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("results"), list):
            raise DecodeError("Failed to parse response: missing results")
        return data

    @staticmethod
    def _decode_tracks(items: List[Any]) -> List[Track]:
        try:
            return [Track.from_api(item) for item in items]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(f"Failed to parse response: bad track record ({e})") from e

    def search_tracks(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT, playable_only: bool = False) -> List[Track]:
        """
        Search songs matching query.

        Returns every track in the response unless playable_only is set, in
        which case tracks without a preview URL are dropped.
        """
        if not query or not query.strip():
            raise InvalidRequest("Search query is empty")

        params = {
            "term": query,
            "country": self.config.country,
            "media": "music",
            "entity": "song",
            "limit": max(1, int(limit)),
        }
        data = self._get("search", params)
        tracks = self._decode_tracks(data["results"])
        logger.debug(f"search '{query}': {len(tracks)} tracks")
        return playable(tracks) if playable_only else tracks

    def search_albums(self, query: str, limit: int = DEFAULT_ALBUM_SEARCH_LIMIT) -> List[Album]:
        if not query or not query.strip():
            raise InvalidRequest("Search query is empty")

        params = {
            "term": query,
            "country": self.config.country,
            "media": "music",
            "entity": "album",
            "limit": max(1, int(limit)),
        }
        data = self._get("search", params)
        try:
            return [Album.from_api(item) for item in data["results"]]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(f"Failed to parse response: bad album record ({e})") from e

    def lookup_collection_tracks(self, collection_id: int, playable_only: bool = False) -> List[Track]:
        """
        Resolve a collection (album) id to its member tracks.

        The lookup response mixes the collection header with its songs;
        only items whose wrapperType is "track" are kept.
        """
        params = {"id": collection_id, "entity": "song", "country": self.config.country}
        data = self._get("lookup", params)
        items = [
            item for item in data["results"]
            if isinstance(item, dict) and item.get("wrapperType") == WRAPPER_TRACK
            and item.get("trackId") is not None and item.get("trackName")
        ]
        tracks = self._decode_tracks(items)
        return playable(tracks) if playable_only else tracks

    def lookup_track(self, track_id: int) -> Track:
        """Fetch a single track by id. Raises NotFound on an empty result."""
        params = {"id": track_id, "country": self.config.country}
        data = self._get("lookup", params)
        if not data["results"]:
            raise NotFound("Song not found")
        return self._decode_tracks(data["results"][:1])[0]
