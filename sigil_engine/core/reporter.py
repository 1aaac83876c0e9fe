"""
Pattern evolution reporter - distributions and insights over a set of sigils.
Never raises on empty input; unknowns are reported with "unknown" sentinels.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .schema import BreathPhase, Category, Sigil, SourceType
from ..vector.types import SimilarityMatch

UNKNOWN = "unknown"


@dataclass
class EvolutionSummary:
    total_sigils: int
    category_distribution: Dict[str, int]
    source_type_distribution: Dict[str, int]
    breath_phase_distribution: Dict[str, int]
    average_strength: float
    insights: Dict[str, str] = field(default_factory=dict)


@dataclass
class ConnectionAnalysis:
    """Readable description of a set of find-similar matches."""
    match_count: int
    dominant_category: str
    average_resonance: float
    span_days: int
    coherence: str


def _most_frequent(distribution: Dict[str, int], skip: Sequence[str] = ()) -> str:
    best, best_count = UNKNOWN, 0
    for key, count in distribution.items():
        if key in skip:
            continue
        if count > best_count:
            best, best_count = key, count
    return best


def coherence_label(average: float) -> str:
    if average > 0.8:
        return "very high"
    if average > 0.6:
        return "high"
    return "moderate"


class PatternEvolutionReporter:
    """Aggregates category, source and breath-phase statistics."""

    def summarize(self, sigils: Sequence[Sigil]) -> EvolutionSummary:
        categories = {c.value: 0 for c in Category}
        sources = {s.value: 0 for s in SourceType}
        phases = {p.value: 0 for p in BreathPhase}
        phases[UNKNOWN] = 0

        for sigil in sigils:
            categories[sigil.category.value] += 1
            sources[sigil.source_type.value] += 1
            phase = sigil.metadata.breath_phase
            phases[phase.value if phase is not None else UNKNOWN] += 1

        total = len(sigils)
        average_strength = sum(s.strength for s in sigils) / total if total else 0.0

        insights = {
            "most_active_category": _most_frequent(categories),
            "dominant_source_type": _most_frequent(sources),
            "dominant_breath_phase": _most_frequent(phases, skip=(UNKNOWN,)),
            "strength_trend": self._strength_trend(sigils),
        }

        return EvolutionSummary(
            total_sigils=total,
            category_distribution=categories,
            source_type_distribution=sources,
            breath_phase_distribution=phases,
            average_strength=average_strength,
            insights=insights
        )

    @staticmethod
    def _strength_trend(sigils: Sequence[Sigil]) -> str:
        """Compare mean strength of the older and newer halves."""
        if len(sigils) < 2:
            return UNKNOWN

        ordered = sorted(sigils, key=lambda s: s.timestamp)
        half = len(ordered) // 2
        older = sum(s.strength for s in ordered[:half]) / half
        newer = sum(s.strength for s in ordered[half:]) / (len(ordered) - half)

        if newer - older > 0.05:
            return "rising"
        if older - newer > 0.05:
            return "falling"
        return "steady"

    def describe_matches(self, matches: List[SimilarityMatch]) -> ConnectionAnalysis:
        """Dominant category, mean resonance and day span of find-similar results."""
        if not matches:
            return ConnectionAnalysis(0, UNKNOWN, 0.0, 0, UNKNOWN)

        categories: Dict[str, int] = {}
        for match in matches:
            key = match.sigil.category.value
            categories[key] = categories.get(key, 0) + 1

        average = sum(m.score for m in matches) / len(matches)
        timestamps = [m.sigil.timestamp for m in matches]
        span = max(timestamps) - min(timestamps)
        span_days = span.days + (1 if span.seconds or span.microseconds else 0)

        return ConnectionAnalysis(
            match_count=len(matches),
            dominant_category=_most_frequent(categories),
            average_resonance=average,
            span_days=span_days,
            coherence=coherence_label(average)
        )
