"""
Sigil store - append-only repository with bounded, oldest-first retention.
Sole owner of sigil lifetime; other components receive read-only views.
"""

import dataclasses
import threading
import uuid
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from .errors import LookupNotFound
from .schema import Category, Sigil, SourceType
from ..util.logging import logger

EvictionListener = Callable[[str], None]


def new_sigil_id() -> str:
    return f"sigil_{uuid.uuid4().hex[:12]}"


class SigilStore:
    """In-memory sigil repository.

    Appends and trims are serialized by ``lock``. Reads return copies taken
    under the lock so callers never observe a partially evicted store.
    """

    def __init__(self, dimension: int = 64, retention: int = 500):
        if retention < 1:
            raise ValueError("retention must be at least 1")
        self.dimension = dimension
        self.retention = retention
        self.lock = threading.RLock()
        self._sigils: Dict[str, Sigil] = {}  # insertion ordered
        self._listeners: List[EvictionListener] = []
        self._stats = {
            "appended": 0,
            "evicted": 0
        }

    def add_eviction_listener(self, listener: EvictionListener) -> None:
        """Register a callback run synchronously for every evicted id."""
        self._listeners.append(listener)

    def append(self, sigil: Sigil) -> Sigil:
        """Store a sigil, assigning an id if absent, then enforce retention."""
        if sigil.dimension != self.dimension:
            raise ValueError(f"Vector dimension {sigil.dimension} does not match expected dimension {self.dimension}")

        if not sigil.id:
            sigil = dataclasses.replace(sigil, id=new_sigil_id())

        with self.lock:
            if sigil.id in self._sigils:
                raise ValueError(f"Sigil id already stored: {sigil.id}")

            self._sigils[sigil.id] = sigil
            self._stats["appended"] += 1
            self._trim()

        logger.log_sigil_operation("append", sigil.id, {
            "category": sigil.category.value,
            "source_type": sigil.source_type.value
        })
        return sigil

    def extend(self, sigils: Iterable[Sigil]) -> List[Sigil]:
        """Append several sigils in order."""
        return [self.append(sigil) for sigil in sigils]

    def _trim(self) -> List[str]:
        """Evict oldest-by-timestamp sigils beyond the retention bound. Caller holds the lock."""
        evicted = []
        overflow = len(self._sigils) - self.retention
        if overflow <= 0:
            return evicted

        # sorted() is stable, so equal timestamps fall back to insertion order
        oldest = sorted(self._sigils.values(), key=lambda s: s.timestamp)[:overflow]
        for sigil in oldest:
            del self._sigils[sigil.id]
            for listener in self._listeners:
                listener(sigil.id)
            self._stats["evicted"] += 1
            evicted.append(sigil.id)
            logger.log_sigil_operation("evict", sigil.id, {"retention": self.retention}, status="evicted")

        return evicted

    def get(self, sigil_id: str) -> Optional[Sigil]:
        """Get a sigil by id, None when absent."""
        with self.lock:
            return self._sigils.get(sigil_id)

    def require(self, sigil_id: str) -> Sigil:
        """Get a sigil by id, raising LookupNotFound when absent."""
        sigil = self.get(sigil_id)
        if sigil is None:
            raise LookupNotFound(sigil_id)
        return sigil

    def list(self,
             source_type: Optional[SourceType] = None,
             category: Optional[Category] = None,
             start: Optional[datetime] = None,
             end: Optional[datetime] = None,
             user_id: Optional[str] = None) -> List[Sigil]:
        """List sigils ordered by timestamp, optionally filtered.

        Args:
            source_type: Keep only this source type
            category: Keep only this category
            start: Inclusive lower timestamp bound
            end: Exclusive upper timestamp bound
            user_id: Keep only sigils tagged with this user

        Returns:
            Matching sigils, oldest first
        """
        with self.lock:
            sigils = list(self._sigils.values())

        if source_type is not None:
            sigils = [s for s in sigils if s.source_type == SourceType(source_type)]
        if category is not None:
            sigils = [s for s in sigils if s.category == Category(category)]
        if start is not None:
            sigils = [s for s in sigils if s.timestamp >= start]
        if end is not None:
            sigils = [s for s in sigils if s.timestamp < end]
        if user_id is not None:
            sigils = [s for s in sigils if s.metadata.user_id == user_id]

        return sorted(sigils, key=lambda s: s.timestamp)

    def ids(self) -> List[str]:
        with self.lock:
            return list(self._sigils.keys())

    def clear(self) -> None:
        """Drop every sigil, notifying listeners."""
        with self.lock:
            for sigil_id in list(self._sigils.keys()):
                del self._sigils[sigil_id]
                for listener in self._listeners:
                    listener(sigil_id)

    def get_stats(self) -> Dict[str, int]:
        """Get usage statistics."""
        with self.lock:
            stats = self._stats.copy()
            stats["size"] = len(self._sigils)
        return stats

    def __contains__(self, sigil_id: str) -> bool:
        with self.lock:
            return sigil_id in self._sigils

    def __len__(self) -> int:
        with self.lock:
            return len(self._sigils)
