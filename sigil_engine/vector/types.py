"""
Result records returned by the similarity index and the pattern library.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.schema import Category, Sigil


@dataclass(frozen=True)
class SimilarityMatch:
    """Represents a find-similar hit."""

    sigil: Sigil
    """The matching stored sigil"""

    score: float
    """Cosine similarity to the target (0-1)"""


@dataclass(frozen=True)
class PatternMatch:
    """Represents a pattern library hit."""

    sigil_id: Optional[str]
    """Sigil that was recognized, None for an unsaved vector"""

    pattern_id: str
    """Library pattern it matched"""

    similarity: float
    """Cosine similarity to the pattern centroid (0-1)"""

    instances: int
    """Sigils absorbed into the pattern so far"""

    last_seen: Optional[datetime]
    """Timestamp of the newest absorbed sigil"""

    label: Optional[Category] = None
    """Dominant category of the pattern"""
