"""
Domain records for sigils, braids and similarity edges.
Records are frozen; vectors are read-only numpy arrays.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Tuple

import numpy as np


class SourceType(str, Enum):
    DREAM = "dream"
    MEDITATION = "meditation"
    BREATH = "breath"
    COMPOSITE = "composite"


class Category(str, Enum):
    """Semantic region label attached to a sigil."""
    CORTICAL = "cortical"
    LIMBIC = "limbic"
    BRAINSTEM = "brainstem"
    THALAMIC = "thalamic"


class BreathPhase(str, Enum):
    INHALE = "inhale"
    HOLD1 = "hold1"
    HOLD2 = "hold2"
    EXHALE = "exhale"
    PAUSE = "pause"


class ConnectionType(str, Enum):
    TEMPORAL = "temporal"
    NEURAL = "neural"
    SYMBOLIC = "symbolic"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def freeze_vector(vector) -> np.ndarray:
    """Copy into a read-only float64 array."""
    frozen = np.array(vector, dtype=np.float64)
    frozen.flags.writeable = False
    return frozen


@dataclass(frozen=True)
class SigilMetadata:
    """Known optional tags plus one opaque bag for forward compatibility."""

    breath_phase: Optional[BreathPhase] = None
    neurochemistry: Optional[str] = None
    dream_id: Optional[str] = None
    user_id: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        # Detached from the caller's dict and read-only afterwards
        object.__setattr__(self, "extra", MappingProxyType(copy.deepcopy(dict(self.extra))))


@dataclass(frozen=True, eq=False)
class Sigil:
    """One text or experience snapshot encoded as a fixed-length vector."""

    id: Optional[str]
    vector: np.ndarray
    category: Category
    source_type: SourceType
    timestamp: datetime
    strength: float
    hash: int
    metadata: SigilMetadata = field(default_factory=SigilMetadata)

    def __post_init__(self):
        vector = self.vector
        owned = (isinstance(vector, np.ndarray) and vector.dtype == np.float64
                 and vector.base is None and not vector.flags.writeable)
        if not owned:
            object.__setattr__(self, "vector", freeze_vector(self.vector))

    @property
    def dimension(self) -> int:
        return int(self.vector.shape[0])


@dataclass(frozen=True)
class SimilarityEdge:
    """Cached score for an unordered sigil pair, stored with sorted ids."""

    id_a: str
    id_b: str
    score: float

    @classmethod
    def canonical(cls, first: str, second: str, score: float) -> 'SimilarityEdge':
        id_a, id_b = sorted((first, second))
        return cls(id_a=id_a, id_b=id_b, score=score)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.id_a, self.id_b)


@dataclass(frozen=True)
class BraidConnection:
    source_id: str
    target_id: str
    score: float
    type: ConnectionType


@dataclass(frozen=True)
class Braid:
    """Weighted connection graph over two or more sigils."""

    id: str
    member_ids: Tuple[str, ...]
    connections: Tuple[BraidConnection, ...]
    strength: float
    created_at: datetime
    categories: Tuple[Category, ...] = ()
    breath_phases: Tuple[BreathPhase, ...] = ()
    neurochemistry: Tuple[str, ...] = ()


@dataclass
class EngineSnapshot:
    """Serializable engine state handed to a persistence port."""

    sigils: List[Sigil] = field(default_factory=list)
    braids: List[Braid] = field(default_factory=list)
    similarity_edges: List[SimilarityEdge] = field(default_factory=list)
