"""
Snapshot wire schema - pydantic models that validate persisted engine state
and convert to and from the domain records.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from .schema import (
    Braid, BraidConnection, BreathPhase, Category, ConnectionType, EngineSnapshot,
    Sigil, SigilMetadata, SimilarityEdge, SourceType, freeze_vector
)

SNAPSHOT_VERSION = 1


class SigilMetadataModel(BaseModel):
    model_config = ConfigDict(extra='forbid')

    breath_phase: Optional[BreathPhase] = None
    neurochemistry: Optional[str] = None
    dream_id: Optional[str] = None
    user_id: Optional[str] = None
    extra: Dict[str, Any] = {}


class SigilModel(BaseModel):
    id: str
    vector: List[float]
    category: Category
    source_type: SourceType
    timestamp: datetime
    strength: float
    hash: int
    metadata: SigilMetadataModel = SigilMetadataModel()

    @field_validator('id')
    @classmethod
    def id_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('id cannot be empty')
        return v

    @field_validator('vector')
    @classmethod
    def vector_must_not_be_empty(cls, v):
        if not v:
            raise ValueError('vector cannot be empty')
        return v

    @field_validator('strength')
    @classmethod
    def strength_must_be_unit_range(cls, v):
        if not 0.0 <= v <= 1.0:
            raise ValueError('strength must be within [0, 1]')
        return v

    @field_validator('hash')
    @classmethod
    def hash_must_be_non_negative(cls, v):
        if v < 0:
            raise ValueError('hash must be non-negative')
        return v

    @classmethod
    def from_domain(cls, sigil: Sigil) -> 'SigilModel':
        meta = sigil.metadata
        return cls(
            id=sigil.id,
            vector=[float(x) for x in sigil.vector],
            category=sigil.category,
            source_type=sigil.source_type,
            timestamp=sigil.timestamp,
            strength=sigil.strength,
            hash=sigil.hash,
            metadata=SigilMetadataModel(
                breath_phase=meta.breath_phase,
                neurochemistry=meta.neurochemistry,
                dream_id=meta.dream_id,
                user_id=meta.user_id,
                extra=dict(meta.extra)
            )
        )

    def to_domain(self) -> Sigil:
        return Sigil(
            id=self.id,
            vector=freeze_vector(self.vector),
            category=self.category,
            source_type=self.source_type,
            timestamp=self.timestamp,
            strength=self.strength,
            hash=self.hash,
            metadata=SigilMetadata(
                breath_phase=self.metadata.breath_phase,
                neurochemistry=self.metadata.neurochemistry,
                dream_id=self.metadata.dream_id,
                user_id=self.metadata.user_id,
                extra=dict(self.metadata.extra)
            )
        )


class SimilarityEdgeModel(BaseModel):
    id_a: str
    id_b: str
    score: float

    @field_validator('score')
    @classmethod
    def score_must_be_unit_range(cls, v):
        if not 0.0 <= v <= 1.0:
            raise ValueError('score must be within [0, 1]')
        return v

    @model_validator(mode='after')
    def ids_must_be_canonical(self):
        if self.id_a > self.id_b:
            self.id_a, self.id_b = self.id_b, self.id_a
        return self


class BraidConnectionModel(BaseModel):
    source_id: str
    target_id: str
    score: float
    type: ConnectionType


class BraidModel(BaseModel):
    id: str
    member_ids: List[str]
    connections: List[BraidConnectionModel] = []
    strength: float
    created_at: datetime
    categories: List[Category] = []
    breath_phases: List[BreathPhase] = []
    neurochemistry: List[str] = []

    @field_validator('member_ids')
    @classmethod
    def braid_needs_two_members(cls, v):
        if len(v) < 2:
            raise ValueError('braid must have at least 2 members')
        return v

    @classmethod
    def from_domain(cls, braid: Braid) -> 'BraidModel':
        return cls(
            id=braid.id,
            member_ids=list(braid.member_ids),
            connections=[
                BraidConnectionModel(source_id=c.source_id, target_id=c.target_id, score=c.score, type=c.type)
                for c in braid.connections
            ],
            strength=braid.strength,
            created_at=braid.created_at,
            categories=list(braid.categories),
            breath_phases=list(braid.breath_phases),
            neurochemistry=list(braid.neurochemistry)
        )

    def to_domain(self) -> Braid:
        return Braid(
            id=self.id,
            member_ids=tuple(self.member_ids),
            connections=tuple(
                BraidConnection(source_id=c.source_id, target_id=c.target_id, score=c.score, type=c.type)
                for c in self.connections
            ),
            strength=self.strength,
            created_at=self.created_at,
            categories=tuple(self.categories),
            breath_phases=tuple(self.breath_phases),
            neurochemistry=tuple(self.neurochemistry)
        )


class SnapshotModel(BaseModel):
    version: int = SNAPSHOT_VERSION
    sigils: List[SigilModel] = []
    braids: List[BraidModel] = []
    similarity_edges: List[SimilarityEdgeModel] = []

    @model_validator(mode='after')
    def vectors_share_length(self):
        lengths = {len(s.vector) for s in self.sigils}
        if len(lengths) > 1:
            raise ValueError(f'sigil vectors must share one length, found {sorted(lengths)}')
        return self

    @classmethod
    def from_domain(cls, snapshot: EngineSnapshot) -> 'SnapshotModel':
        return cls(
            sigils=[SigilModel.from_domain(s) for s in snapshot.sigils],
            braids=[BraidModel.from_domain(b) for b in snapshot.braids],
            similarity_edges=[
                SimilarityEdgeModel(id_a=e.id_a, id_b=e.id_b, score=e.score)
                for e in snapshot.similarity_edges
            ]
        )

    def to_domain(self) -> EngineSnapshot:
        return EngineSnapshot(
            sigils=[s.to_domain() for s in self.sigils],
            braids=[b.to_domain() for b in self.braids],
            similarity_edges=[SimilarityEdge(id_a=e.id_a, id_b=e.id_b, score=e.score) for e in self.similarity_edges]
        )
