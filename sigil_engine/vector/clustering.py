"""
Pattern recognition - single-linkage clustering of sigils and a pattern
library matched with its own recognition threshold.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple
import uuid

import numpy as np

from .encoder import normalize
from .index import cosine_similarity
from .types import PatternMatch
from ..core.schema import Category, Sigil
from ..util.logging import logger

SimilarityFn = Callable[[Sigil, Sigil], float]

TIME_WINDOW_COUNT = 5


@dataclass(frozen=True)
class PatternCluster:
    """Sigils linked by pairwise similarity at or above the clustering threshold."""
    id: str
    member_ids: Tuple[str, ...]
    label: Category
    frequency: int
    centroid: np.ndarray = field(compare=False)
    strength: float


@dataclass(frozen=True)
class DominantPattern:
    cluster_id: str
    label: Category
    frequency: int


@dataclass(frozen=True)
class TemporalFlowEntry:
    sigil_id: str
    cluster_id: Optional[str]
    timestamp: datetime
    category: Category


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime
    dominant_category: Category
    average_strength: float
    count: int


@dataclass
class ClusterResult:
    clusters: List[PatternCluster] = field(default_factory=list)
    dominant_patterns: List[DominantPattern] = field(default_factory=list)
    temporal_flow: List[TemporalFlowEntry] = field(default_factory=list)
    time_windows: List[TimeWindow] = field(default_factory=list)


class _DisjointSet:
    """Union-find with path halving."""

    def __init__(self, size: int):
        self.parent = list(range(size))

    def find(self, i: int) -> int:
        while self.parent[i] != i:
            self.parent[i] = self.parent[self.parent[i]]
            i = self.parent[i]
        return i

    def union(self, i: int, j: int) -> None:
        root_i, root_j = self.find(i), self.find(j)
        if root_i != root_j:
            # Lower index stays root so groups are keyed by their earliest member
            if root_i < root_j:
                self.parent[root_j] = root_i
            else:
                self.parent[root_i] = root_j


def dominant_category(sigils: Sequence[Sigil]) -> Category:
    """Most frequent category; ties go to the category seen first."""
    return Counter(s.category for s in sigils).most_common(1)[0][0]


@dataclass
class LibraryPattern:
    id: str
    vector_sum: np.ndarray
    label: Optional[Category]
    instances: int = 0
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None
    origin: str = "learned"

    @property
    def centroid(self) -> np.ndarray:
        return normalize(self.vector_sum)


class PatternLibrary:
    """Known patterns, each a running centroid of the sigils absorbed into it."""

    def __init__(self, threshold: float = 0.65):
        self.threshold = threshold
        self._patterns: Dict[str, LibraryPattern] = {}

    def add_pattern(self, vector: np.ndarray, label: Optional[Category] = None,
                    pattern_id: Optional[str] = None, origin: str = "learned") -> LibraryPattern:
        """Register a pattern seeded with one vector (zero instances)."""
        pattern_id = pattern_id or f"pattern_{uuid.uuid4().hex[:8]}"
        pattern = LibraryPattern(
            id=pattern_id,
            vector_sum=normalize(vector),
            label=label,
            origin=origin
        )
        self._patterns[pattern_id] = pattern
        return pattern

    def get(self, pattern_id: str) -> Optional[LibraryPattern]:
        return self._patterns.get(pattern_id)

    def match(self, sigil: Sigil, threshold: Optional[float] = None) -> List[PatternMatch]:
        """
        Compare a sigil against every pattern centroid.

        Args:
            sigil: Sigil to recognize
            threshold: Override of the library's recognition threshold

        Returns:
            Matches at or above the threshold, by similarity descending then pattern id
        """
        return self.match_vector(sigil.vector, sigil.id, threshold)

    def match_vector(self, vector: np.ndarray, sigil_id: Optional[str] = None,
                     threshold: Optional[float] = None) -> List[PatternMatch]:
        threshold = self.threshold if threshold is None else threshold
        matches = []
        for pattern in self._patterns.values():
            similarity = cosine_similarity(vector, pattern.centroid)
            if similarity >= threshold:
                matches.append(PatternMatch(
                    sigil_id=sigil_id,
                    pattern_id=pattern.id,
                    similarity=similarity,
                    instances=pattern.instances,
                    last_seen=pattern.last_seen,
                    label=pattern.label
                ))

        matches.sort(key=lambda m: (-m.similarity, m.pattern_id))
        return matches

    def absorb(self, pattern_id: str, sigil: Sigil) -> LibraryPattern:
        """Fold a sigil into a pattern's running centroid."""
        pattern = self._patterns[pattern_id]
        pattern.vector_sum = pattern.vector_sum + sigil.vector
        pattern.instances += 1
        if pattern.first_seen is None or sigil.timestamp < pattern.first_seen:
            pattern.first_seen = sigil.timestamp
        if pattern.last_seen is None or sigil.timestamp > pattern.last_seen:
            pattern.last_seen = sigil.timestamp
        return pattern

    def learn(self, result: ClusterResult, sigils: Dict[str, Sigil]) -> int:
        """Absorb each cluster into its best matching pattern or a new one. Returns patterns created."""
        created = 0
        for cluster in result.clusters:
            members = [sigils[i] for i in cluster.member_ids if i in sigils]
            if not members:
                continue

            matches = self.match_vector(cluster.centroid)
            if matches:
                pattern_id = matches[0].pattern_id
            else:
                pattern_id = self.add_pattern(cluster.centroid, label=cluster.label).id
                created += 1

            for member in members:
                self.absorb(pattern_id, member)

        return created

    def patterns(self) -> List[LibraryPattern]:
        return list(self._patterns.values())

    def __len__(self) -> int:
        return len(self._patterns)


class PatternRecognizer:
    """Single-linkage clustering plus pattern-library recognition."""

    def __init__(self, cluster_threshold: float = 0.65, recognition_threshold: float = 0.65,
                 min_cluster_size: int = 2, similarity: Optional[SimilarityFn] = None):
        self.cluster_threshold = cluster_threshold
        self.min_cluster_size = min_cluster_size
        self.similarity = similarity or (lambda a, b: cosine_similarity(a.vector, b.vector))
        self.library = PatternLibrary(recognition_threshold)

    def cluster_sigils(self, sigils: Sequence[Sigil]) -> ClusterResult:
        """
        Group sigils by single linkage with transitive closure.

        Args:
            sigils: Sigils to cluster (any order)

        Returns:
            ClusterResult with clusters, dominant patterns, temporal flow and time windows
        """
        ordered = sorted(sigils, key=lambda s: s.timestamp)
        groups = self._link(ordered)

        clusters = []
        membership: Dict[str, str] = {}
        for members in groups:
            if len(members) < self.min_cluster_size:
                continue
            cluster = self._build_cluster(f"cluster_{len(clusters)}", members)
            clusters.append(cluster)
            for member_id in cluster.member_ids:
                membership[member_id] = cluster.id

        result = ClusterResult(
            clusters=clusters,
            dominant_patterns=self.extract_dominant_patterns(clusters),
            temporal_flow=[
                TemporalFlowEntry(
                    sigil_id=s.id,
                    cluster_id=membership.get(s.id),
                    timestamp=s.timestamp,
                    category=s.category
                ) for s in ordered
            ],
            time_windows=self.analyze_time_windows(ordered)
        )

        logger.log_cluster(len(ordered), len(clusters), self.cluster_threshold)
        return result

    def _link(self, ordered: Sequence[Sigil]) -> List[List[Sigil]]:
        links = _DisjointSet(len(ordered))
        for i in range(len(ordered) - 1):
            for j in range(i + 1, len(ordered)):
                if self.similarity(ordered[i], ordered[j]) >= self.cluster_threshold:
                    links.union(i, j)

        groups: Dict[int, List[Sigil]] = {}
        for i, sigil in enumerate(ordered):
            groups.setdefault(links.find(i), []).append(sigil)
        return [groups[root] for root in sorted(groups)]

    def _build_cluster(self, cluster_id: str, members: List[Sigil]) -> PatternCluster:
        if len(members) > 1:
            scores = [
                self.similarity(members[i], members[j])
                for i in range(len(members) - 1)
                for j in range(i + 1, len(members))
            ]
            strength = float(sum(scores) / len(scores))
        else:
            strength = 1.0

        return PatternCluster(
            id=cluster_id,
            member_ids=tuple(s.id for s in members),
            label=dominant_category(members),
            frequency=len(members),
            centroid=normalize(np.mean([s.vector for s in members], axis=0)),
            strength=strength
        )

    @staticmethod
    def extract_dominant_patterns(clusters: Sequence[PatternCluster]) -> List[DominantPattern]:
        """Clusters ranked by member count; clusters are built in time order, so sort stability keeps earliest first on ties."""
        ranked = sorted(clusters, key=lambda c: c.frequency, reverse=True)
        return [DominantPattern(cluster_id=c.id, label=c.label, frequency=c.frequency) for c in ranked]

    @staticmethod
    def analyze_time_windows(ordered: Sequence[Sigil]) -> List[TimeWindow]:
        """Split the time span into equal windows and describe each non-empty one."""
        if len(ordered) < 2:
            return []

        first, last = ordered[0].timestamp, ordered[-1].timestamp
        width = (last - first) / TIME_WINDOW_COUNT
        if not width:
            return [TimeWindow(first, last, dominant_category(ordered),
                               sum(s.strength for s in ordered) / len(ordered), len(ordered))]

        windows = []
        for i in range(TIME_WINDOW_COUNT):
            start = first + width * i
            end = last if i == TIME_WINDOW_COUNT - 1 else start + width
            inside = [
                s for s in ordered
                if start <= s.timestamp < end or (i == TIME_WINDOW_COUNT - 1 and s.timestamp == last)
            ]
            if inside:
                windows.append(TimeWindow(
                    start=start,
                    end=end,
                    dominant_category=dominant_category(inside),
                    average_strength=sum(s.strength for s in inside) / len(inside),
                    count=len(inside)
                ))
        return windows

    def recognize_pattern(self, sigil: Sigil, absorb: bool = False) -> List[PatternMatch]:
        """Match a sigil against the pattern library, optionally absorbing it into the best match."""
        matches = self.library.match(sigil)
        if absorb and matches:
            self.library.absorb(matches[0].pattern_id, sigil)
        return matches
