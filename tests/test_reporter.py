"""
Tests for the pattern evolution reporter.
"""

import pytest

from sigil_engine.core.reporter import PatternEvolutionReporter, UNKNOWN, coherence_label
from sigil_engine.core.schema import BreathPhase, Category, SourceType
from sigil_engine.vector.types import SimilarityMatch

from conftest import build_sigil, unit


@pytest.fixture
def reporter():
    return PatternEvolutionReporter()


def test_summarize_empty_input(reporter):
    """Empty input yields zero totals and unknown sentinels, never an error."""
    summary = reporter.summarize([])

    assert summary.total_sigils == 0
    assert summary.average_strength == 0.0
    assert set(summary.category_distribution.values()) == {0}
    assert summary.insights == {
        "most_active_category": UNKNOWN,
        "dominant_source_type": UNKNOWN,
        "dominant_breath_phase": UNKNOWN,
        "strength_trend": UNKNOWN,
    }


def test_summarize_distributions(reporter):
    sigils = [
        build_sigil("1", unit(1.0), minutes=0, category=Category.LIMBIC, strength=0.2,
                    breath_phase=BreathPhase.INHALE),
        build_sigil("2", unit(1.0), minutes=1, category=Category.LIMBIC, strength=0.4,
                    source_type=SourceType.MEDITATION, breath_phase=BreathPhase.INHALE),
        build_sigil("3", unit(1.0), minutes=2, category=Category.CORTICAL, strength=0.8,
                    source_type=SourceType.MEDITATION),
        build_sigil("4", unit(1.0), minutes=3, category=Category.BRAINSTEM, strength=0.8,
                    source_type=SourceType.MEDITATION),
    ]

    summary = reporter.summarize(sigils)

    assert summary.total_sigils == 4
    assert summary.category_distribution == {
        "cortical": 1, "limbic": 2, "brainstem": 1, "thalamic": 0
    }
    assert summary.source_type_distribution["meditation"] == 3
    assert summary.breath_phase_distribution["inhale"] == 2
    assert summary.breath_phase_distribution[UNKNOWN] == 2
    assert summary.average_strength == pytest.approx(0.55)
    assert summary.insights["most_active_category"] == "limbic"
    assert summary.insights["dominant_source_type"] == "meditation"
    assert summary.insights["dominant_breath_phase"] == "inhale"
    assert summary.insights["strength_trend"] == "rising"


def test_strength_trend(reporter):
    falling = [
        build_sigil("a", unit(1.0), minutes=0, strength=0.9),
        build_sigil("b", unit(1.0), minutes=1, strength=0.1),
    ]
    steady = [
        build_sigil("c", unit(1.0), minutes=0, strength=0.5),
        build_sigil("d", unit(1.0), minutes=1, strength=0.52),
    ]

    assert reporter.summarize(falling).insights["strength_trend"] == "falling"
    assert reporter.summarize(steady).insights["strength_trend"] == "steady"


def test_breath_phase_insight_skips_unknown(reporter):
    sigils = [build_sigil(str(i), unit(1.0), minutes=i) for i in range(3)]
    sigils.append(build_sigil("p", unit(1.0), minutes=5, breath_phase=BreathPhase.EXHALE))

    insights = reporter.summarize(sigils).insights

    assert insights["dominant_breath_phase"] == "exhale"


def test_describe_matches(reporter):
    matches = [
        SimilarityMatch(build_sigil("a", unit(1.0), minutes=0, category=Category.LIMBIC), 0.75),
        SimilarityMatch(build_sigil("b", unit(1.0), minutes=60 * 24 + 30, category=Category.LIMBIC), 0.7),
        SimilarityMatch(build_sigil("c", unit(1.0), minutes=5, category=Category.CORTICAL), 0.65),
    ]

    analysis = reporter.describe_matches(matches)

    assert analysis.match_count == 3
    assert analysis.dominant_category == "limbic"
    assert analysis.average_resonance == pytest.approx(0.7)
    assert analysis.span_days == 2
    assert analysis.coherence == "high"


def test_describe_no_matches(reporter):
    analysis = reporter.describe_matches([])

    assert analysis.match_count == 0
    assert analysis.dominant_category == UNKNOWN
    assert analysis.coherence == UNKNOWN


@pytest.mark.parametrize("average,label", [
    (0.95, "very high"),
    (0.81, "very high"),
    (0.8, "high"),
    (0.61, "high"),
    (0.6, "moderate"),
    (0.1, "moderate"),
])
def test_coherence_label(average, label):
    assert coherence_label(average) == label


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
