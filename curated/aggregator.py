"""Curated feed: fan out one catalog search per seed and merge the results."""

import logging
import random
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, Iterable, List, Optional, Tuple

from shared.constants import DEFAULT_FETCH_CAP, DEFAULT_TAKE_CAP, DEFAULT_AGGREGATE_WORKERS
from shared.errors import CatalogError
from shared.models import AggregationResult, Track, playable

logger = logging.getLogger(__name__)

ALL_SEEDS_FAILED = "Could not load curated tracks"


class CuratedAggregator:
    """
    Builds a shuffled track list from many independent seed queries.

    A failing seed is logged and contributes nothing; it never aborts the
    aggregate. Each seed contributes at most take_cap playable tracks out of
    the fetch_cap it asked for.
    """

    def __init__(
        self,
        client: Any,
        fetch_cap: int = DEFAULT_FETCH_CAP,
        take_cap: int = DEFAULT_TAKE_CAP,
        max_workers: int = DEFAULT_AGGREGATE_WORKERS,
        error_when_empty: bool = False,
        rng: Optional[random.Random] = None,
    ):
        if fetch_cap < 1 or take_cap < 0:
            raise ValueError("fetch_cap must be >= 1 and take_cap >= 0")
        self._client = client
        self.fetch_cap = fetch_cap
        self.take_cap = take_cap
        self.max_workers = max(1, max_workers)
        self.error_when_empty = error_when_empty
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._in_flight = 0

    @property
    def loading(self) -> bool:
        """True while any aggregate() call has seeds outstanding."""
        with self._lock:
            return self._in_flight > 0

    def _fetch_seed(self, seed: str) -> List[Track]:
        tracks = self._client.search_tracks(seed, self.fetch_cap)
        return playable(tracks)[:self.take_cap]

    def aggregate(self, seeds: Iterable[str]) -> AggregationResult:
        """
        Fetch every seed, merge the contributions and shuffle them.

        The returned result is final: loading is False and no seed is still
        outstanding.
        """
        seed_list = list(seeds)
        if not seed_list:
            return AggregationResult()

        with self._lock:
            self._in_flight += 1
        try:
            slices, failed = self._collect(seed_list)
        finally:
            with self._lock:
                self._in_flight -= 1

        merged: List[Track] = []
        for i in sorted(slices.keys()):
            merged.extend(slices[i])
        self._rng.shuffle(merged)

        error = None
        if failed and len(failed) == len(seed_list):
            logger.warning(f"All {len(seed_list)} curated seeds failed")
            if self.error_when_empty:
                error = ALL_SEEDS_FAILED
        logger.info(f"Curated feed: {len(merged)} tracks from {len(seed_list) - len(failed)}/{len(seed_list)} seeds")
        return AggregationResult(tracks=tuple(merged), loading=False, error=error, failed_seeds=tuple(failed))

    def _collect(self, seed_list: List[str]) -> Tuple[Dict[int, List[Track]], List[str]]:
        slices: Dict[int, List[Track]] = {}
        failed_idx: List[int] = []
        workers = min(self.max_workers, len(seed_list))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="curated") as executor:
            futures = {executor.submit(self._fetch_seed, seed): i for i, seed in enumerate(seed_list)}
            for future in as_completed(futures):
                i = futures[future]
                try:
                    slices[i] = future.result()
                except CatalogError as e:
                    logger.warning(f"Failed to fetch songs for {seed_list[i]!r}: {e}")
                    failed_idx.append(i)
                except Exception:
                    logger.exception(f"Unexpected error fetching songs for {seed_list[i]!r}")
                    failed_idx.append(i)
        return slices, [seed_list[i] for i in sorted(failed_idx)]
