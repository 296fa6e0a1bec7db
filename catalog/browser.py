"""
Observable browse state over the catalog client.

Holds the result list, loading flag and error message a front end renders,
and decides which query feeds each browse tab.
"""

import logging
import threading
from typing import Callable, List, Optional, Sequence

from curated.aggregator import CuratedAggregator
from shared.constants import TAB_FOR_YOU, TAB_QUERIES, DEFAULT_TAB_QUERY, CURATED_ARTISTS
from shared.errors import CatalogError
from shared.models import Track

logger = logging.getLogger(__name__)


class CatalogBrowser:
    """
    Single-query search/lookup paths plus the curated feed, with observable state.

    Failed single-query calls publish a readable message to error_message and
    re-raise the typed error. Loads may overlap; only the most recently
    started one is allowed to publish, older results are dropped.
    """

    def __init__(self, client, aggregator: Optional[CuratedAggregator] = None,
                 curated_seeds: Optional[Sequence[str]] = None):
        self.client = client
        self.aggregator = aggregator or CuratedAggregator(client)
        self.curated_seeds = list(curated_seeds) if curated_seeds is not None else list(CURATED_ARTISTS)

        self.results: List[Track] = []
        self.is_loading = False
        self.error_message: Optional[str] = None

        self._lock = threading.Lock()
        self._generation = 0
        self._listeners: List[Callable[[], None]] = []

    # Observers

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a change callback. Returns a function that unregisters it."""
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)
        return unsubscribe

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for callback in listeners:
            try:
                callback()
            except Exception:
                logger.exception("Error in browser change callback")

    # Generation bookkeeping

    def _begin(self) -> int:
        with self._lock:
            self._generation += 1
            self.is_loading = True
            self.error_message = None
            generation = self._generation
        self._notify()
        return generation

    def _finish(self, generation: int, results: Optional[List[Track]] = None,
                error: Optional[str] = None) -> bool:
        with self._lock:
            if generation != self._generation:
                logger.debug(f"Discarding stale result (generation {generation}, current {self._generation})")
                return False
            if results is not None:
                self.results = results
            self.error_message = error
            self.is_loading = False
        self._notify()
        return True

    def _run(self, fetch: Callable[[], List[Track]]) -> List[Track]:
        generation = self._begin()
        try:
            tracks = fetch()
        except CatalogError as e:
            self._finish(generation, error=str(e))
            raise
        except Exception as e:
            logger.exception("Unexpected error loading catalog results")
            self._finish(generation, error=f"Unexpected error: {e}")
            raise
        self._finish(generation, results=tracks)
        return tracks

    # Single-query paths

    def search(self, query: str, limit: Optional[int] = None) -> List[Track]:
        """Search songs, keeping only tracks that have a preview."""
        if limit is None:
            return self._run(lambda: self.client.search_tracks(query, playable_only=True))
        return self._run(lambda: self.client.search_tracks(query, limit, playable_only=True))

    def open_album(self, collection_id: int) -> List[Track]:
        """Show the playable tracks of one album."""
        return self._run(lambda: self.client.lookup_collection_tracks(collection_id, playable_only=True))

    # Curated feed

    def load_curated(self, seeds: Optional[Sequence[str]] = None) -> List[Track]:
        generation = self._begin()
        result = self.aggregator.aggregate(seeds if seeds is not None else self.curated_seeds)
        tracks = list(result.tracks)
        self._finish(generation, results=tracks, error=result.error)
        return tracks

    def load_tab(self, tab: str) -> List[Track]:
        """Load the feed behind a browse tab."""
        if tab == TAB_FOR_YOU:
            return self.load_curated()
        return self.search(TAB_QUERIES.get(tab, DEFAULT_TAB_QUERY))

    def clear(self) -> None:
        with self._lock:
            self.results = []
            self.error_message = None
        self._notify()
