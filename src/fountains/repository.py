"""
Fountain repository: a two-tier read-through cache over the Overpass client.

    fetch_fountains  -> cache if fresh, else remote fetch + save
    refresh_fountains -> invalidate, then fetch
    add/update/delete -> edit the working set and save it back (kept in
                         memory until a collection has been fetched)
"""

import logging
from datetime import timedelta
from typing import List, Optional, Tuple

from src.data.schema import Coordinate, FountainRecord
from src.fountains.cache import CacheStore
from src.fountains.config import DEFAULT_RADIUS_M, FinderConfig
from src.fountains.errors import DuplicateFountainError, FountainNotFoundError
from src.fountains.overpass import OverpassClient

logger = logging.getLogger(__name__)


class FountainRepository:
    """
    Single fetch contract for consumers, backed by a query client and a
    cache store passed in by the caller.

    Usage:
        repo = FountainRepository(OverpassClient(), CacheStore(path))
        fountains = repo.fetch_fountains(Coordinate(latitude=40.71, longitude=-74.0))
    """

    def __init__(self, client: OverpassClient, store: CacheStore):
        self.client = client
        self.store = store
        self._fountains: Optional[List[FountainRecord]] = None
        # False while the working set holds only local edits made with no
        # fetched or cached collection behind them
        self._backed = False

    def fetch_fountains(
        self,
        center: Coordinate,
        radius_m: float = DEFAULT_RADIUS_M,
    ) -> List[FountainRecord]:
        """
        Return fountains around center, from cache when it is still valid.

        Local fountains added before any collection was available are merged
        into the result and cached with it.

        Raises:
            NetworkError, EmptyResponseError, ParseError: From the query
                client, unchanged. A failed cache write does not raise.
        """
        envelope = self.store.load()
        if envelope is not None:
            logger.info("Cache hit: %d fountains", len(envelope.records))
            fountains, merged = self._merge_local(envelope.records)
            if merged:
                self._save(fountains)
        else:
            logger.info("Cache miss; fetching from remote")
            fountains, _ = self._merge_local(self.client.fetch(center, radius_m))
            if not self.store.save(fountains):
                logger.warning("Fetched %d fountains but could not cache them", len(fountains))
        self._fountains = fountains
        self._backed = True
        return list(self._fountains)

    def invalidate(self) -> None:
        """Drop the cached envelope so the next fetch goes to the remote service."""
        self.store.clear()
        self._fountains = None
        self._backed = False

    def refresh_fountains(
        self,
        center: Coordinate,
        radius_m: float = DEFAULT_RADIUS_M,
    ) -> List[FountainRecord]:
        """Force a remote fetch regardless of cache freshness."""
        self.invalidate()
        return self.fetch_fountains(center, radius_m)

    # ---- CRUD over the working set ----

    def _merge_local(self, records) -> Tuple[List[FountainRecord], bool]:
        """Append unbacked local fountains whose ids the collection lacks."""
        fountains = list(records)
        if self._backed or not self._fountains:
            return fountains, False
        known = {f.id for f in fountains}
        extra = [f for f in self._fountains if f.id not in known]
        if extra:
            logger.info("Merging %d local fountains into the collection", len(extra))
        return fountains + extra, bool(extra)

    def _working_set(self) -> List[FountainRecord]:
        if self._fountains is None:
            envelope = self.store.load()
            self._fountains = list(envelope.records) if envelope else []
            self._backed = envelope is not None
        return self._fountains

    def _save(self, fountains: List[FountainRecord]) -> None:
        if not self.store.save(fountains):
            logger.warning("Collection changed but could not be cached")

    def _commit(self, fountains: List[FountainRecord]) -> None:
        self._fountains = fountains
        if not self._backed:
            logger.info("No fountain collection loaded yet; keeping change in memory")
            return
        self._save(fountains)

    def add_fountain(self, fountain: FountainRecord) -> FountainRecord:
        """
        Append a user-authored fountain.

        Raises:
            DuplicateFountainError: If the id is already present.
        """
        current = self._working_set()
        if any(f.id == fountain.id for f in current):
            raise DuplicateFountainError(f"Fountain '{fountain.id}' already exists")
        self._commit(current + [fountain])
        logger.info("Added fountain %s (%s)", fountain.id, fountain.name)
        return fountain

    def update_fountain(self, fountain: FountainRecord) -> FountainRecord:
        """
        Replace the fountain with the same id, keeping its position.

        Raises:
            FountainNotFoundError: If no fountain has that id.
        """
        current = self._working_set()
        for index, existing in enumerate(current):
            if existing.id == fountain.id:
                updated = current[:index] + [fountain] + current[index + 1:]
                self._commit(updated)
                logger.info("Updated fountain %s", fountain.id)
                return fountain
        raise FountainNotFoundError(f"Fountain '{fountain.id}' not found")

    def delete_fountain(self, fountain_id: str) -> None:
        """Remove a fountain by id. Unknown ids are a no-op."""
        current = self._working_set()
        remaining = [f for f in current if f.id != fountain_id]
        if len(remaining) == len(current):
            logger.debug("Delete of unknown fountain %s ignored", fountain_id)
            return
        self._commit(remaining)
        logger.info("Deleted fountain %s", fountain_id)

    def get_fountain(self, fountain_id: str) -> Optional[FountainRecord]:
        return next((f for f in self._working_set() if f.id == fountain_id), None)


def build_repository(config: Optional[FinderConfig] = None) -> FountainRepository:
    """Wire a repository from config (environment when not given)."""
    config = config or FinderConfig.from_env()

    client = OverpassClient(
        url=config.overpass_url,
        timeout=config.request_timeout,
        user_agent=config.user_agent,
    )
    store = CacheStore(config.cache_path, ttl=timedelta(hours=config.cache_ttl_hours))
    return FountainRepository(client, store)
