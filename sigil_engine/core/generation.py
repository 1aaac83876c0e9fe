"""
Sigil generation strategies over one feature encoder: free text, breath
phase and curated catalog entries, plus the fallback sigil used when
generation fails.
"""

import dataclasses
import math
from datetime import datetime
from typing import Callable, Optional, Union

import numpy as np

from .catalog import CatalogEntry
from .schema import BreathPhase, Category, Sigil, SigilMetadata, SourceType, utcnow
from ..vector.encoder import IFeatureEncoder, KeywordBandEncoder, detect_category, score_strength, text_hash

Clock = Callable[[], datetime]

FALLBACK_CATEGORY = Category.THALAMIC

# Seed text, category and strength for breath-phase generation
BREATH_PHASE_PROFILES = {
    BreathPhase.INHALE: ("inhale draw in light and sky, aware and awake", Category.CORTICAL, 0.85),
    BreathPhase.HOLD1: ("hold the first stillness, sense the spiral of breath", Category.THALAMIC, 0.75),
    BreathPhase.HOLD2: ("hold the second stillness, feel oneness before release", Category.THALAMIC, 0.7),
    BreathPhase.EXHALE: ("exhale release grief and fear like water, calm returns", Category.LIMBIC, 0.65),
    BreathPhase.PAUSE: ("pause rest on the earth, instinct quiet and safe", Category.BRAINSTEM, 0.6),
}


class SigilGenerator:
    """Builds unsaved sigils (id None); the store assigns ids on append."""

    def __init__(self, encoder: Optional[IFeatureEncoder] = None, clock: Optional[Clock] = None):
        self.encoder = encoder or KeywordBandEncoder()
        self.clock = clock or utcnow

    def from_text(self, text: str, source_type: Union[SourceType, str],
                  metadata: Optional[SigilMetadata] = None) -> Sigil:
        """Encode free text."""
        source_type = SourceType(source_type)
        vector = self.encoder.encode(text, source_type)
        return Sigil(
            id=None,
            vector=vector,
            category=detect_category(text),
            source_type=source_type,
            timestamp=self.clock(),
            strength=score_strength(text),
            hash=text_hash(text),
            metadata=metadata or SigilMetadata()
        )

    def from_breath_phase(self, phase: Union[BreathPhase, str],
                          source_type: Union[SourceType, str] = SourceType.BREATH,
                          metadata: Optional[SigilMetadata] = None) -> Sigil:
        """Encode a breath phase's seed text and tag the sigil with the phase."""
        phase = BreathPhase(phase)
        text, category, strength = BREATH_PHASE_PROFILES[phase]
        sigil = self.from_text(text, source_type, metadata)
        return dataclasses.replace(
            sigil,
            category=category,
            strength=strength,
            metadata=dataclasses.replace(sigil.metadata, breath_phase=phase)
        )

    def from_catalog_entry(self, entry: CatalogEntry,
                           source_type: Union[SourceType, str] = SourceType.COMPOSITE,
                           metadata: Optional[SigilMetadata] = None) -> Sigil:
        """Encode a curated catalog entry, carrying its phase, category and neurochemistry."""
        sigil = self.from_text(entry.as_text(), source_type, metadata)
        base = sigil.metadata
        extra = dict(base.extra)
        extra["ternary_code"] = entry.ternary_code
        return dataclasses.replace(
            sigil,
            category=entry.category,
            metadata=dataclasses.replace(
                base,
                breath_phase=entry.breath_phase,
                neurochemistry=entry.neurochemistry,
                extra=extra
            )
        )

    def fallback(self, reason: str, source_type: Union[SourceType, str, None] = None,
                 metadata: Optional[SigilMetadata] = None) -> Sigil:
        """Uniform unit vector, default category, failure note in metadata.extra."""
        try:
            source_type = SourceType(source_type)
        except ValueError:
            source_type = SourceType.COMPOSITE

        dimension = self.encoder.get_dimension()
        base = metadata if isinstance(metadata, SigilMetadata) else SigilMetadata()
        extra = dict(base.extra)
        extra["failure"] = reason

        return Sigil(
            id=None,
            vector=np.full(dimension, 1.0 / math.sqrt(dimension)),
            category=FALLBACK_CATEGORY,
            source_type=source_type,
            timestamp=self.clock(),
            strength=0.0,
            hash=0,
            metadata=dataclasses.replace(base, extra=extra)
        )
