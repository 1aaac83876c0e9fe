"""
Sigil engine - one explicit instance owning the store, similarity index,
pattern recognizer, braid builder and reporter. Constructed once and passed
by reference to consumers.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

from .braid import BraidBuilder
from .catalog import (
    CatalogEntry, filter_by_category, get_entry_by_decimal, get_entry_by_ternary, search_catalog, CATALOG
)
from .config import EngineConfig, debug_enabled
from .errors import PersistenceFailure
from .generation import Clock, SigilGenerator
from .persistence import IPersistencePort
from .reporter import ConnectionAnalysis, EvolutionSummary, PatternEvolutionReporter
from .schema import Braid, BreathPhase, Category, EngineSnapshot, Sigil, SigilMetadata, SourceType
from .store import SigilStore
from ..vector.clustering import ClusterResult, PatternRecognizer
from ..vector.encoder import KeywordBandEncoder
from ..vector.index import SimilarityIndex
from ..vector.types import PatternMatch, SimilarityMatch
from ..util.logging import logger


@dataclass
class PatternEvolution:
    clusters: ClusterResult
    summary: EvolutionSummary


class SigilEngine:
    """Neural sigil pattern engine.

    Generation never raises: failures produce a stored fallback sigil.
    Braid, cluster-by-id and recognize-by-id raise typed errors when their
    preconditions fail. Reads are idempotent for an unchanged store.
    """

    def __init__(self, config: Optional[EngineConfig] = None,
                 persistence: Optional[IPersistencePort] = None,
                 clock: Optional[Clock] = None,
                 seed_catalog_patterns: bool = True):
        self.config = config or EngineConfig()
        self.persistence = persistence

        self.encoder = KeywordBandEncoder(self.config.vector_length, strict=self.config.strict_encoding)
        self.generator = SigilGenerator(self.encoder, clock)
        self.store = SigilStore(self.config.vector_length, self.config.sigil_retention)
        self.index = SimilarityIndex(self.store)
        self.recognizer = PatternRecognizer(
            cluster_threshold=self.config.cluster_threshold,
            recognition_threshold=self.config.recognition_threshold,
            min_cluster_size=self.config.cluster_min_size,
            similarity=self.index.similarity
        )
        self.braider = BraidBuilder(self.store, self.index, self.config.braid_connection_threshold)
        self.reporter = PatternEvolutionReporter()

        if seed_catalog_patterns:
            self._seed_pattern_library()

    def _seed_pattern_library(self) -> None:
        for entry in CATALOG:
            vector = self.encoder.encode(entry.as_text(), SourceType.COMPOSITE)
            self.recognizer.library.add_pattern(
                vector, label=entry.category, pattern_id=f"catalog_{entry.ternary_code}", origin="catalog"
            )

    # Generation

    def _store_generated(self, build, source_type, metadata, **details) -> Sigil:
        try:
            if metadata is not None and not isinstance(metadata, SigilMetadata):
                raise TypeError(f"metadata must be SigilMetadata, got {type(metadata).__name__}")
            sigil = self.store.append(build())
            if debug_enabled():
                logger.debug(f"Generated {sigil.id} via {details.get('strategy')}: "
                             f"category={sigil.category.value}, strength={sigil.strength:.2f}")
            return sigil
        except Exception as e:
            logger.log_operation("sigil.generate", "fallback", {"error": str(e), **details})
            sigil = self.generator.fallback(f"{type(e).__name__}: {e}", source_type, metadata)
            return self.store.append(sigil)

    def generate(self, text: str, source_type: Union[SourceType, str],
                 metadata: Optional[SigilMetadata] = None) -> Sigil:
        """Encode text into a stored sigil. Never raises."""
        return self._store_generated(
            lambda: self.generator.from_text(text, source_type, metadata),
            source_type, metadata, strategy="text"
        )

    def generate_from_breath_phase(self, phase: Union[BreathPhase, str],
                                   source_type: Union[SourceType, str] = SourceType.BREATH,
                                   metadata: Optional[SigilMetadata] = None) -> Sigil:
        """Generate a stored sigil from a breath phase. Never raises."""
        return self._store_generated(
            lambda: self.generator.from_breath_phase(phase, source_type, metadata),
            source_type, metadata, strategy="breath_phase"
        )

    def generate_from_catalog(self, entry: Union[CatalogEntry, str, int],
                              source_type: Union[SourceType, str] = SourceType.COMPOSITE,
                              metadata: Optional[SigilMetadata] = None) -> Sigil:
        """Generate a stored sigil from a catalog entry, ternary code or decimal value. Never raises."""
        def build():
            resolved = self._resolve_catalog_entry(entry)
            if resolved is None:
                raise LookupError(f"No catalog entry for {entry!r}")
            return self.generator.from_catalog_entry(resolved, source_type, metadata)

        return self._store_generated(build, source_type, metadata, strategy="catalog")

    @staticmethod
    def _resolve_catalog_entry(entry) -> Optional[CatalogEntry]:
        if isinstance(entry, CatalogEntry):
            return entry
        if isinstance(entry, int) and not isinstance(entry, bool):
            return get_entry_by_decimal(entry)
        if isinstance(entry, str):
            return get_entry_by_ternary(entry)
        return None

    # Catalog lookup

    def lookup_ternary(self, code: str) -> Optional[CatalogEntry]:
        return get_entry_by_ternary(code)

    def lookup_decimal(self, value: int) -> Optional[CatalogEntry]:
        return get_entry_by_decimal(value)

    def search_catalog(self, query: str) -> List[CatalogEntry]:
        return search_catalog(query)

    def filter_catalog(self, category: Optional[Union[Category, str]] = None) -> List[CatalogEntry]:
        return filter_by_category(category)

    # Store views

    def get(self, sigil_id: str) -> Optional[Sigil]:
        return self.store.get(sigil_id)

    def list_sigils(self, **filters) -> List[Sigil]:
        """Stored sigils oldest first; accepts SigilStore.list filters."""
        return self.store.list(**filters)

    # Similarity, braids, clusters

    def find_similar(self, sigil_id: str, threshold: Optional[float] = None) -> List[SimilarityMatch]:
        """Other stored sigils scoring at least the threshold, best first. Unknown id gives []."""
        threshold = self.config.similarity_threshold if threshold is None else threshold
        return self.index.find_similar(sigil_id, threshold)

    def similarity(self, id_a: str, id_b: str) -> float:
        """Cached similarity of two stored sigils (raises LookupNotFound)."""
        return self.index.similarity_by_id(id_a, id_b)

    def braid(self, sigil_ids: Sequence[str]) -> Braid:
        """Build and record a braid (raises InsufficientMembers)."""
        return self.braider.braid(sigil_ids)

    def braids(self) -> List[Braid]:
        return self.braider.braids()

    def _select(self, ids: Optional[Sequence[str]], user_id: Optional[str]) -> List[Sigil]:
        if ids is None:
            return self.store.list(user_id=user_id)

        with self.store.lock:
            sigils = [self.store.require(sigil_id) for sigil_id in dict.fromkeys(ids)]
        if user_id is not None:
            sigils = [s for s in sigils if s.metadata.user_id == user_id]
        return sigils

    def cluster(self, ids: Optional[Sequence[str]] = None, user_id: Optional[str] = None) -> ClusterResult:
        """Cluster all stored sigils, or the given ids (raises LookupNotFound for unknown ids)."""
        return self.recognizer.cluster_sigils(self._select(ids, user_id))

    def learn_patterns(self, user_id: Optional[str] = None) -> int:
        """Cluster the store and fold the clusters into the pattern library. Returns new patterns."""
        sigils = self.store.list(user_id=user_id)
        result = self.recognizer.cluster_sigils(sigils)
        return self.recognizer.library.learn(result, {s.id: s for s in sigils})

    def recognize_pattern(self, sigil: Union[Sigil, str], absorb: bool = False) -> List[PatternMatch]:
        """Match against the pattern library (raises LookupNotFound for an unknown id)."""
        if isinstance(sigil, str):
            sigil = self.store.require(sigil)
        return self.recognizer.recognize_pattern(sigil, absorb=absorb)

    # Reporting

    def summarize(self, ids: Optional[Sequence[str]] = None, user_id: Optional[str] = None) -> EvolutionSummary:
        return self.reporter.summarize(self._select(ids, user_id))

    def pattern_evolution(self, user_id: Optional[str] = None) -> PatternEvolution:
        sigils = self.store.list(user_id=user_id)
        return PatternEvolution(
            clusters=self.recognizer.cluster_sigils(sigils),
            summary=self.reporter.summarize(sigils)
        )

    def describe_similar(self, sigil_id: str, threshold: Optional[float] = None) -> ConnectionAnalysis:
        return self.reporter.describe_matches(self.find_similar(sigil_id, threshold))

    # Persistence

    def snapshot(self) -> EngineSnapshot:
        """Consistent copy of state bounded by the configured retention limits."""
        with self.store.lock:
            sigils = self.store.list()[-self.config.sigil_retention:]
            edges = self.index.edges(self.config.edge_retention)
        return EngineSnapshot(
            sigils=sigils,
            braids=self.braider.braids(self.config.braid_retention),
            similarity_edges=edges
        )

    def restore(self, snapshot: EngineSnapshot) -> Dict[str, int]:
        """
        Load a snapshot into this engine; sigils already stored are skipped.

        Raises:
            PersistenceFailure: If any sigil's vector length differs from the
                configured one. Nothing is restored in that case.
        """
        mismatched = [s.id for s in snapshot.sigils if s.dimension != self.config.vector_length]
        if mismatched:
            logger.log_persistence("restore", "failed", {
                "expected_dimension": self.config.vector_length,
                "mismatched": len(mismatched)
            })
            raise PersistenceFailure(
                f"Snapshot vector dimension does not match expected dimension "
                f"{self.config.vector_length} for {len(mismatched)} sigil(s)"
            )

        restored = 0
        for sigil in sorted(snapshot.sigils, key=lambda s: s.timestamp):
            if sigil.id in self.store:
                continue
            self.store.append(sigil)
            restored += 1
        self.braider.load(snapshot.braids)
        edges = self.index.load_edges(snapshot.similarity_edges)

        counts = {"sigils": restored, "braids": len(snapshot.braids), "edges": edges}
        logger.log_persistence("restore", "success", counts)
        return counts

    def load(self) -> Dict[str, int]:
        """Restore from the persistence port, if one is attached."""
        if self.persistence is None:
            return {"sigils": 0, "braids": 0, "edges": 0}
        try:
            snapshot = self.persistence.load()
        except PersistenceFailure:
            raise
        except Exception as e:
            raise PersistenceFailure(f"Snapshot load failed: {e}") from e
        if snapshot is None:
            return {"sigils": 0, "braids": 0, "edges": 0}
        return self.restore(snapshot)

    async def flush(self) -> EngineSnapshot:
        """
        Write a snapshot through the persistence port off the compute path.

        The snapshot is taken synchronously; the write runs in a worker thread.
        In-memory state is never rolled back on failure.

        Raises:
            PersistenceFailure: If no port is attached or the adapter rejects the write
        """
        if self.persistence is None:
            raise PersistenceFailure("No persistence port attached")

        snapshot = self.snapshot()
        try:
            await asyncio.to_thread(self.persistence.save, snapshot)
        except PersistenceFailure:
            raise
        except Exception as e:
            logger.log_persistence("flush", "failed", {"error": str(e)})
            raise PersistenceFailure(f"Snapshot save failed: {e}") from e
        return snapshot

    def get_stats(self) -> Dict[str, Any]:
        return {
            "store": self.store.get_stats(),
            "similarity_cache": self.index.get_stats(),
            "braids": len(self.braider.braids()),
            "patterns": len(self.recognizer.library)
        }
