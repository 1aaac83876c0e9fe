"""
Similarity index - memoized cosine similarity over the sigil store.
Linear scan per query; not an approximate nearest-neighbour index.
"""

from collections import OrderedDict
from typing import Iterable, List, Optional, Tuple

import numpy as np

from .types import SimilarityMatch
from ..core.schema import Sigil, SimilarityEdge
from ..core.store import SigilStore
from ..util.logging import logger


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity clamped to [0, 1]; 0 when either vector is zero or lengths differ."""
    if a.shape != b.shape:
        return 0.0

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    score = float(np.dot(a, b) / (norm_a * norm_b))
    return min(1.0, max(0.0, score))


def cache_key(id_a: str, id_b: str) -> Tuple[str, str]:
    """Canonical sorted-id key for an unordered pair."""
    return (id_a, id_b) if id_a <= id_b else (id_b, id_a)


class SimilarityIndex:
    """Cosine similarity over stored sigils, cached by sorted-id pair.

    The cache shares the store's lock. Eviction purges cache entries while the
    store lock is held, and cache writes re-check liveness under the same lock,
    so an evicted id can never be repopulated.
    """

    def __init__(self, store: SigilStore):
        self.store = store
        self._cache: "OrderedDict[Tuple[str, str], float]" = OrderedDict()
        self._stats = {
            "hits": 0,
            "misses": 0,
            "invalidated": 0
        }
        store.add_eviction_listener(self.invalidate)

    def similarity(self, a: Sigil, b: Sigil) -> float:
        """Cached cosine similarity of two sigils; 1.0 for a sigil with itself."""
        if a is b or (a.id is not None and a.id == b.id):
            return 1.0
        if a.id is None or b.id is None:
            return cosine_similarity(a.vector, b.vector)

        key = cache_key(a.id, b.id)
        with self.store.lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._stats["hits"] += 1
                return cached

        score = cosine_similarity(a.vector, b.vector)
        self._remember(key, score)
        return score

    def similarity_by_id(self, id_a: str, id_b: str) -> float:
        """Similarity of two stored sigils by id (raises LookupNotFound)."""
        return self.similarity(self.store.require(id_a), self.store.require(id_b))

    def _remember(self, key: Tuple[str, str], score: float) -> None:
        with self.store.lock:
            self._stats["misses"] += 1
            if key[0] in self.store and key[1] in self.store:
                self._cache[key] = score

    def find_similar(self, target_id: str, threshold: float = 0.7) -> List[SimilarityMatch]:
        """
        Find every other stored sigil scoring at least ``threshold`` against the target.

        Args:
            target_id: Id of the stored sigil to compare against
            threshold: Minimum score to include (0 returns all other sigils)

        Returns:
            Matches sorted by score descending, ties by most recent timestamp
            first, then by id. Empty when the target is not stored.
        """
        with self.store.lock:
            target = self.store.get(target_id)
            candidates = self.store.list()

        if target is None:
            return []

        matches = []
        for sigil in candidates:
            if sigil.id == target_id:
                continue
            score = self.similarity(target, sigil)
            if score >= threshold:
                matches.append(SimilarityMatch(sigil=sigil, score=score))

        # Stable sorts, least significant key first
        matches.sort(key=lambda m: m.sigil.id)
        matches.sort(key=lambda m: m.sigil.timestamp, reverse=True)
        matches.sort(key=lambda m: m.score, reverse=True)

        logger.log_similarity_query(target_id, threshold, len(matches), len(candidates) - 1)
        return matches

    def invalidate(self, sigil_id: str) -> int:
        """Purge every cache entry referencing the id. Returns the number purged."""
        with self.store.lock:
            stale = [key for key in self._cache if sigil_id in key]
            for key in stale:
                del self._cache[key]
            self._stats["invalidated"] += len(stale)
        return len(stale)

    def cached_score(self, id_a: str, id_b: str) -> Optional[float]:
        """Cached score for a pair, None when not cached."""
        with self.store.lock:
            return self._cache.get(cache_key(id_a, id_b))

    def edges(self, limit: Optional[int] = None) -> List[SimilarityEdge]:
        """Export cached scores as edges, most recently computed last."""
        with self.store.lock:
            items = list(self._cache.items())
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return [SimilarityEdge(id_a=key[0], id_b=key[1], score=score) for key, score in items]

    def load_edges(self, edges: Iterable[SimilarityEdge]) -> int:
        """Seed the cache from persisted edges whose ids are both stored."""
        loaded = 0
        with self.store.lock:
            for edge in edges:
                if edge.id_a in self.store and edge.id_b in self.store:
                    self._cache[cache_key(edge.id_a, edge.id_b)] = edge.score
                    loaded += 1
        return loaded

    def clear(self) -> None:
        """Clear all cached scores."""
        with self.store.lock:
            self._cache.clear()

    def get_stats(self):
        """Get cache statistics."""
        with self.store.lock:
            stats = self._stats.copy()
            stats["size"] = len(self._cache)
        return stats

    def __len__(self) -> int:
        with self.store.lock:
            return len(self._cache)
