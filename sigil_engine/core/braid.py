"""
Braid builder - weighted connection graph over a caller-chosen set of sigils.
"""

import threading
import uuid
from typing import Iterable, List, Optional, Sequence

from .errors import InsufficientMembers
from .schema import Braid, BraidConnection, ConnectionType, Sigil, utcnow
from .store import SigilStore
from ..vector.index import SimilarityIndex
from ..util.logging import logger


def classify_connection(a: Sigil, b: Sigil) -> ConnectionType:
    """Neural for a shared category, else temporal for a shared breath phase, else symbolic."""
    if a.category == b.category:
        return ConnectionType.NEURAL
    phase = a.metadata.breath_phase
    if phase is not None and phase == b.metadata.breath_phase:
        return ConnectionType.TEMPORAL
    return ConnectionType.SYMBOLIC


def _distinct(values: Iterable) -> tuple:
    seen = []
    for value in values:
        if value is not None and value not in seen:
            seen.append(value)
    return tuple(seen)


class BraidBuilder:
    """Builds braids from stored sigils and keeps the append-only braid collection."""

    def __init__(self, store: SigilStore, index: SimilarityIndex, connection_threshold: float = 0.6):
        self.store = store
        self.index = index
        self.connection_threshold = connection_threshold
        self._braids: List[Braid] = []
        self._lock = threading.Lock()

    def resolve(self, ids: Sequence[str]) -> List[Sigil]:
        """Stored sigils for the ids, in request order, without duplicates."""
        members = []
        seen = set()
        with self.store.lock:
            for sigil_id in ids:
                if sigil_id in seen:
                    continue
                seen.add(sigil_id)
                sigil = self.store.get(sigil_id)
                if sigil is not None:
                    members.append(sigil)
        return members

    def braid(self, ids: Sequence[str]) -> Braid:
        """
        Build a braid over the given sigil ids.

        Args:
            ids: Sigil ids; unknown ids and duplicates are dropped

        Returns:
            The new braid, also appended to the braid collection

        Raises:
            InsufficientMembers: If fewer than 2 ids resolve to stored sigils
        """
        members = self.resolve(ids)
        if len(members) < 2:
            raise InsufficientMembers(ids, [s.id for s in members])

        connections = []
        for i in range(len(members) - 1):
            for j in range(i + 1, len(members)):
                score = self.index.similarity(members[i], members[j])
                if score >= self.connection_threshold:
                    connections.append(BraidConnection(
                        source_id=members[i].id,
                        target_id=members[j].id,
                        score=score,
                        type=classify_connection(members[i], members[j])
                    ))

        strength = sum(c.score for c in connections) / len(connections) if connections else 0.0

        braid = Braid(
            id=f"braid_{uuid.uuid4().hex[:12]}",
            member_ids=tuple(s.id for s in members),
            connections=tuple(connections),
            strength=strength,
            created_at=utcnow(),
            categories=_distinct(s.category for s in members),
            breath_phases=_distinct(s.metadata.breath_phase for s in members),
            neurochemistry=_distinct(s.metadata.neurochemistry for s in members)
        )

        with self._lock:
            self._braids.append(braid)

        logger.log_braid(braid.id, len(members), len(connections), strength)
        return braid

    def braids(self, limit: Optional[int] = None) -> List[Braid]:
        """Braids in creation order; with a limit, the most recent ones."""
        with self._lock:
            braids = list(self._braids)
        if limit is not None:
            braids = braids[-limit:] if limit > 0 else []
        return braids

    def get(self, braid_id: str) -> Optional[Braid]:
        with self._lock:
            for braid in self._braids:
                if braid.id == braid_id:
                    return braid
        return None

    def load(self, braids: Iterable[Braid]) -> None:
        """Append persisted braids, skipping ids already present."""
        with self._lock:
            known = {b.id for b in self._braids}
            for braid in braids:
                if braid.id not in known:
                    self._braids.append(braid)
                    known.add(braid.id)
