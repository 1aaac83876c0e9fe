"""
Tests for the sigil engine facade: generation strategies, fallback
handling, lookups and the views built on the store.
"""

import numpy as np
import pytest

from sigil_engine import SigilEngine
from sigil_engine.core.config import EngineConfig
from sigil_engine.core.errors import InsufficientMembers, LookupNotFound
from sigil_engine.core.schema import BreathPhase, Category, SigilMetadata, SourceType

from conftest import StepClock


def assert_fallback(sigil, dimension=64):
    assert sigil.category == Category.THALAMIC
    assert sigil.strength == 0.0
    assert sigil.hash == 0
    assert "failure" in sigil.metadata.extra
    assert np.allclose(sigil.vector, 1.0 / np.sqrt(dimension))


def test_generate_stores_sigil(engine):
    sigil = engine.generate("A peaceful ocean of light", SourceType.MEDITATION)

    assert sigil.id.startswith("sigil_")
    assert engine.get(sigil.id) is sigil
    assert sigil.source_type == SourceType.MEDITATION
    assert sigil.dimension == 64
    assert 0.5 < sigil.strength <= 1.0
    assert sigil.hash >= 0
    assert abs(np.linalg.norm(sigil.vector) - 1.0) < 1e-6


def test_generate_is_deterministic_across_engines():
    text = "I flew over a mountain and suddenly I was aware"
    first = SigilEngine(clock=StepClock()).generate(text, "dream")
    second = SigilEngine(clock=StepClock()).generate(text, "dream")

    assert first.vector.tobytes() == second.vector.tobytes()
    assert first.hash == second.hash
    assert first.category == second.category
    assert first.id != second.id


def test_generate_never_raises_on_bad_text(engine):
    sigil = engine.generate(None, SourceType.DREAM)

    assert_fallback(sigil)
    assert sigil.metadata.extra["failure"].startswith("TypeError")
    assert engine.get(sigil.id) is sigil


def test_generate_never_raises_on_bad_metadata(engine):
    sigil = engine.generate("calm", SourceType.DREAM, metadata={"user_id": "u1"})

    assert_fallback(sigil)
    assert sigil.source_type == SourceType.DREAM
    assert sigil.metadata.user_id is None


def test_generate_never_raises_on_bad_source_type(engine):
    sigil = engine.generate("calm", "nightmare")

    assert_fallback(sigil)
    assert sigil.source_type == SourceType.COMPOSITE


def test_empty_text_stores_zero_vector(engine):
    sigil = engine.generate("", SourceType.BREATH)

    assert not sigil.vector.any()
    assert sigil.strength == 0.0
    assert sigil.category == Category.THALAMIC
    assert "failure" not in sigil.metadata.extra


def test_strict_encoding_falls_back_on_empty_text(clock):
    engine = SigilEngine(EngineConfig(strict_encoding=True), clock=clock)
    sigil = engine.generate("", SourceType.BREATH)

    assert_fallback(sigil)
    assert sigil.metadata.extra["failure"].startswith("EncodingDegenerate")
    assert sigil.source_type == SourceType.BREATH


def test_generate_keeps_metadata(engine):
    metadata = SigilMetadata(dream_id="d1", user_id="u1", extra={"lucid": True})
    sigil = engine.generate("a lucid dream of water", SourceType.DREAM, metadata)

    assert sigil.metadata == metadata


def test_generate_isolates_caller_metadata(engine):
    extra = {"lucid": True, "tags": ["flight"]}
    metadata = SigilMetadata(user_id="u1", extra=extra)
    sigil = engine.generate("a lucid dream of water", SourceType.DREAM, metadata)

    extra["lucid"] = False
    extra["tags"].append("falling")
    assert sigil.metadata.extra == {"lucid": True, "tags": ["flight"]}

    with pytest.raises(TypeError):
        sigil.metadata.extra["lucid"] = False
    assert engine.get(sigil.id).metadata.extra["lucid"] is True


def test_generate_from_breath_phase(engine):
    sigil = engine.generate_from_breath_phase("inhale")

    assert sigil.source_type == SourceType.BREATH
    assert sigil.category == Category.CORTICAL
    assert sigil.strength == 0.85
    assert sigil.metadata.breath_phase == BreathPhase.INHALE


def test_generate_from_unknown_breath_phase_falls_back(engine):
    sigil = engine.generate_from_breath_phase("hold3")
    assert_fallback(sigil)
    assert sigil.source_type == SourceType.BREATH


def test_generate_from_catalog(engine):
    by_code = engine.generate_from_catalog("00000")
    by_decimal = engine.generate_from_catalog(-121)

    assert by_code.category == Category.THALAMIC
    assert by_code.metadata.breath_phase == BreathPhase.PAUSE
    assert by_code.metadata.neurochemistry is None
    assert by_code.metadata.extra["ternary_code"] == "00000"

    assert by_decimal.category == Category.BRAINSTEM
    assert by_decimal.metadata.neurochemistry == "gaba"
    assert by_decimal.metadata.extra["ternary_code"] == "TTTTT"


def test_generate_from_unassigned_catalog_code_falls_back(engine):
    sigil = engine.generate_from_catalog("0000T")

    assert_fallback(sigil)
    assert sigil.metadata.extra["failure"].startswith("LookupError")


def test_catalog_lookups(engine):
    assert engine.lookup_ternary("11111").name == "Crown Light"
    assert engine.lookup_decimal(121).name == "Crown Light"
    assert engine.lookup_ternary("xxxxx") is None
    assert [e.name for e in engine.search_catalog("mirror")] == ["Mirror Lake"]
    assert len(engine.filter_catalog("brainstem")) == 2


def test_find_similar_defaults_to_configured_threshold(engine):
    anchor = engine.generate("calm ocean light", SourceType.MEDITATION)
    twin = engine.generate("calm ocean light", SourceType.DREAM)
    engine.generate("because therefore I analyze the system", SourceType.DREAM)

    matches = engine.find_similar(anchor.id)

    assert [m.sigil.id for m in matches] == [twin.id]
    assert engine.find_similar("sigil_missing") == []


def test_find_similar_is_idempotent(engine):
    anchor = engine.generate("water and fire and light", SourceType.DREAM)
    for text in ["water and light", "fire in the dark", "light on the water", "a door"]:
        engine.generate(text, SourceType.DREAM)

    first = engine.find_similar(anchor.id, threshold=0.0)
    second = engine.find_similar(anchor.id, threshold=0.0)

    assert [(m.sigil.id, m.score) for m in first] == [(m.sigil.id, m.score) for m in second]
    assert len(first) == 4


def test_similarity_by_id(engine):
    a = engine.generate("calm water", SourceType.DREAM)
    b = engine.generate("calm water", SourceType.DREAM)

    assert engine.similarity(a.id, a.id) == 1.0
    assert engine.similarity(a.id, b.id) == pytest.approx(1.0)
    with pytest.raises(LookupNotFound):
        engine.similarity(a.id, "sigil_missing")


def test_braid_through_engine(engine):
    a = engine.generate("calm water", SourceType.DREAM)
    b = engine.generate("calm water and light", SourceType.DREAM)

    braid = engine.braid([a.id, b.id])

    assert engine.braids() == [braid]
    with pytest.raises(InsufficientMembers):
        engine.braid([a.id, "sigil_missing"])


def test_cluster_and_pattern_evolution(engine):
    first = engine.generate("calm ocean light", SourceType.MEDITATION)
    second = engine.generate("calm ocean light", SourceType.MEDITATION)
    engine.generate("hunt chase escape", SourceType.DREAM)

    result = engine.cluster()
    assert [c.member_ids for c in result.clusters] == [(first.id, second.id)]

    evolution = engine.pattern_evolution()
    assert evolution.summary.total_sigils == 3
    assert evolution.clusters.clusters[0].frequency == 2


def test_cluster_unknown_id_raises(engine):
    with pytest.raises(LookupNotFound):
        engine.cluster(ids=["sigil_missing"])


def test_user_scoped_views(engine):
    mine = engine.generate("calm water", SourceType.DREAM, SigilMetadata(user_id="u1"))
    engine.generate("calm water", SourceType.DREAM, SigilMetadata(user_id="u2"))

    assert [s.id for s in engine.list_sigils(user_id="u1")] == [mine.id]
    assert engine.summarize(user_id="u1").total_sigils == 1
    assert engine.summarize(user_id="nobody").total_sigils == 0


def test_recognize_catalog_sigil(engine):
    sigil = engine.generate_from_catalog("00000")

    matches = engine.recognize_pattern(sigil.id)

    assert matches[0].pattern_id == "catalog_00000"
    assert matches[0].similarity == pytest.approx(1.0)
    assert engine.recognize_pattern(sigil.id) == matches

    with pytest.raises(LookupNotFound):
        engine.recognize_pattern("sigil_missing")


def test_learn_patterns(clock):
    engine = SigilEngine(clock=clock, seed_catalog_patterns=False)
    engine.generate("calm ocean light", SourceType.MEDITATION)
    engine.generate("calm ocean light", SourceType.MEDITATION)

    assert engine.learn_patterns() == 1
    assert engine.get_stats()["patterns"] == 1


def test_describe_similar(engine):
    anchor = engine.generate("calm ocean light", SourceType.MEDITATION)
    engine.generate("calm ocean light", SourceType.DREAM)

    analysis = engine.describe_similar(anchor.id)

    assert analysis.match_count == 1
    assert analysis.coherence == "very high"


def test_empty_engine_summary(engine):
    summary = engine.summarize()

    assert summary.total_sigils == 0
    assert summary.insights["most_active_category"] == "unknown"


def test_get_stats(engine):
    engine.generate("calm", SourceType.DREAM)
    stats = engine.get_stats()

    assert stats["store"]["size"] == 1
    assert stats["braids"] == 0
    assert stats["patterns"] == 12


def test_restore_skips_existing_sigils(engine):
    engine.generate("calm water", SourceType.DREAM)
    snapshot = engine.snapshot()

    assert engine.restore(snapshot)["sigils"] == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
