"""
Neural sigil pattern engine - deterministic text fingerprints, similarity
search, braids and clusters over a small in-memory sigil store.
"""

from .core.config import EngineConfig, VERSION
from .core.engine import PatternEvolution, SigilEngine
from .core.errors import (
    EncodingDegenerate,
    InsufficientMembers,
    LookupNotFound,
    PersistenceFailure,
    SigilEngineError
)
from .core.persistence import InMemorySnapshotPort, IPersistencePort, JsonFileSnapshotPort
from .core.schema import (
    Braid,
    BraidConnection,
    BreathPhase,
    Category,
    ConnectionType,
    EngineSnapshot,
    Sigil,
    SigilMetadata,
    SimilarityEdge,
    SourceType
)

__version__ = VERSION

__all__ = [
    'SigilEngine',
    'EngineConfig',
    'PatternEvolution',
    'SigilEngineError',
    'EncodingDegenerate',
    'LookupNotFound',
    'InsufficientMembers',
    'PersistenceFailure',
    'IPersistencePort',
    'InMemorySnapshotPort',
    'JsonFileSnapshotPort',
    'Sigil',
    'SigilMetadata',
    'SimilarityEdge',
    'Braid',
    'BraidConnection',
    'EngineSnapshot',
    'SourceType',
    'Category',
    'BreathPhase',
    'ConnectionType'
]
