"""
Per-project cache for computed analytics and community partitions.

Backed by diskcache: every entry is pickled as one value and written in a
single transaction, so a reader sees either the old entry or the new one,
never a mix, and callers always get their own copy of the payload.
Expiry uses diskcache's per-entry ``expire``.
"""
import logging
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from diskcache import Cache

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60

ANALYTICS = "analytics"
COMMUNITIES = "communities"


@dataclass(frozen=True)
class CachedEntry:
    """Whole cached value for one project; replaced, never merged."""
    project_id: str
    computed_at: datetime
    payload: Any


class CacheNamespace:
    """One kind of cached analytics, keyed by project id."""

    def __init__(self, name: str, cache: Cache, ttl_seconds: float):
        self.name = name
        self._cache = cache
        self.ttl_seconds = ttl_seconds

    def get(self, project_id: str) -> CachedEntry | None:
        """Cached entry, or None when absent or expired."""
        entry = self._cache.get(project_id)
        if entry is None:
            logger.debug(f"Cache miss: {self.name}/{project_id}")
            return None
        logger.debug(f"Cache hit: {self.name}/{project_id}")
        return entry

    def set(self, project_id: str, payload: Any) -> CachedEntry:
        entry = CachedEntry(
            project_id=project_id,
            computed_at=datetime.now(timezone.utc),
            payload=payload,
        )
        self._cache.set(project_id, entry, expire=self.ttl_seconds)
        logger.debug(f"Cached {self.name}/{project_id} with TTL={self.ttl_seconds}s")
        return entry

    def invalidate(self, project_id: str) -> bool:
        return self._cache.delete(project_id)

    def clear(self) -> int:
        return self._cache.clear()

    def project_ids(self) -> list[str]:
        self._cache.expire()
        return sorted(self._cache.iterkeys())

    def __len__(self) -> int:
        return len(self.project_ids())

    def close(self):
        self._cache.close()


class AnalyticsCache:
    """
    Two independent namespaces: full analytics and communities.

    Args:
        directory: Base directory for the cache files. When None, a temporary
            directory is created and removed again on close()
        ttl_seconds: Lifetime of each entry
    """

    def __init__(
        self,
        directory: str | Path | None = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS
    ):
        self._temporary = directory is None
        if self._temporary:
            directory = tempfile.mkdtemp(prefix="insightgraph-cache-")
        self.directory = Path(directory)
        self.ttl_seconds = ttl_seconds

        self.analytics = CacheNamespace(ANALYTICS, self._open(ANALYTICS), ttl_seconds)
        self.communities = CacheNamespace(COMMUNITIES, self._open(COMMUNITIES), ttl_seconds)

        logger.info(
            f"AnalyticsCache initialized "
            f"(dir={self.directory}{' (temporary)' if self._temporary else ''}, ttl={ttl_seconds}s)"
        )

    def _open(self, name: str) -> Cache:
        return Cache(str(self.directory / name))

    def invalidate(self, project_id: str):
        """Drop both cached kinds for a project (e.g. after a graph rebuild)."""
        self.analytics.invalidate(project_id)
        self.communities.invalidate(project_id)
        logger.info(f"Invalidated cached analytics for project {project_id}")

    def invalidate_all(self):
        self.analytics.clear()
        self.communities.clear()
        logger.info("Invalidated all cached analytics")

    def stats(self) -> dict:
        analytics_ids = self.analytics.project_ids()
        community_ids = self.communities.project_ids()
        return {
            "analytics_count": len(analytics_ids),
            "community_count": len(community_ids),
            "project_ids": sorted(set(analytics_ids) | set(community_ids)),
        }

    def close(self):
        self.analytics.close()
        self.communities.close()
        if self._temporary:
            shutil.rmtree(self.directory, ignore_errors=True)
            logger.debug(f"Removed temporary cache directory {self.directory}")
