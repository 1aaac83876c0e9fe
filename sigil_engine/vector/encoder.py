"""
Feature encoder - text plus source tag to a fixed-length, L2-normalized vector.

The vector is split into four equal bands (emotional tone, symbolic content,
narrative structure, depth/awareness). Each band position scores one curated
keyword; a bounded hash scatter over all tokens keeps novel text off the
zero vector.
"""

from abc import ABC, abstractmethod
import re
from typing import List, Sequence, Union

import numpy as np

from ..core.errors import EncodingDegenerate
from ..core.schema import Category, SourceType
from ..util.logging import logger

EMOTIONAL_KEYWORDS = [
    'peace', 'joy', 'love', 'fear', 'anger', 'anxiety', 'wonder', 'awe',
    'calm', 'grief', 'bliss', 'sad', 'hope', 'serene', 'rage', 'tender'
]
SYMBOLIC_KEYWORDS = [
    'water', 'fire', 'earth', 'air', 'light', 'dark', 'spiral', 'circle',
    'tree', 'mountain', 'ocean', 'sky', 'door', 'bridge', 'mirror', 'key'
]
NARRATIVE_KEYWORDS = [
    'then', 'suddenly', 'after', 'before', 'while', 'during', 'next', 'finally',
    'when', 'because', 'until', 'again', 'first', 'later', 'once', 'meanwhile'
]
DEPTH_KEYWORDS = [
    'aware', 'lucid', 'conscious', 'realize', 'understand', 'know', 'feel', 'sense',
    'perceive', 'experience', 'transcend', 'unity', 'oneness', 'infinite', 'eternal', 'divine'
]

# (keywords, weight per occurrence) in band order
BANDS = [
    (EMOTIONAL_KEYWORDS, 0.3),
    (SYMBOLIC_KEYWORDS, 0.4),
    (NARRATIVE_KEYWORDS, 0.2),
    (DEPTH_KEYWORDS, 0.5),
]
SCATTER_WEIGHT = 0.1

# Lexicons used only for category detection
AFFECT_LEXICON = EMOTIONAL_KEYWORDS + [
    'scared', 'afraid', 'terror', 'panic', 'happy', 'elated', 'ecstasy',
    'fury', 'affection', 'compassion', 'sorrow', 'despair', 'worry', 'tranquil'
]
LOGICAL_LEXICON = [
    'because', 'therefore', 'thus', 'hence', 'consequently', 'analyze',
    'calculate', 'reason', 'logic', 'structure', 'system', 'conclude', 'deduce'
]
PRIMAL_LEXICON = [
    'survival', 'death', 'birth', 'hunger', 'thirst', 'chase', 'escape', 'hide',
    'hunt', 'predator', 'danger', 'instinct', 'primitive', 'primal', 'territory'
]

_TOKEN_PATTERN = re.compile(r"[a-z0-9']+")


# Inflections a token may add to a keyword and still count as that keyword
INFLECTIONS = ('', 's', 'es', 'd', 'ed', 'ing', 'er', 'ers', 'ly', 'ful', 'fully', 'ness')


def tokenize(text: str) -> List[str]:
    """Lowercase word tokens."""
    return _TOKEN_PATTERN.findall(text.lower())


def matches_keyword(token: str, keyword: str) -> bool:
    """
    Whole-word match allowing a common inflection ("peaceful" counts for
    "peace", "realizing" for "realize"). Unrelated words that merely share a
    prefix ("keyboard", "afternoon") do not match.
    """
    if not token.startswith(keyword[:-1]):
        return False
    suffix = token[len(keyword):]
    if token.startswith(keyword) and suffix in INFLECTIONS:
        return True
    # Silent final "e" dropped before -ing/-ed
    return keyword.endswith('e') and token in (keyword[:-1] + 'ing', keyword[:-1] + 'ed')


def count_keyword(tokens: Sequence[str], keyword: str) -> int:
    """Number of tokens matching keyword or one of its inflections."""
    return sum(1 for token in tokens if matches_keyword(token, keyword))


def count_lexicon(tokens: Sequence[str], lexicon: Sequence[str]) -> int:
    return sum(1 for token in tokens if any(matches_keyword(token, word) for word in lexicon))


def token_scatter_index(token: str, dimension: int) -> int:
    """Sum of character codes modulo the vector length."""
    return sum(ord(c) for c in token) % dimension


def text_hash(text: str) -> int:
    """Non-negative 32-bit rolling checksum of the text (h * 31 + code)."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def normalize(vector: np.ndarray) -> np.ndarray:
    """L2-normalize; the zero vector is returned unchanged."""
    vector = np.asarray(vector, dtype=np.float64)
    norm = np.linalg.norm(vector)
    if norm == 0:
        return vector.copy()
    return vector / norm


def detect_category(text: str) -> Category:
    """Pick the semantic region that dominates the text."""
    tokens = tokenize(text)
    if not tokens:
        return Category.THALAMIC

    affect = count_lexicon(tokens, AFFECT_LEXICON)
    logical = count_lexicon(tokens, LOGICAL_LEXICON)
    primal = count_lexicon(tokens, PRIMAL_LEXICON)

    if primal / len(tokens) > 0.1:
        return Category.BRAINSTEM
    if affect > logical:
        return Category.LIMBIC
    if logical > affect * 1.5:
        return Category.CORTICAL
    return Category.THALAMIC  # integration state


def score_strength(text: str) -> float:
    """Share of tokens that hit a band keyword, mapped into [0.5, 1]; 0 for empty text."""
    tokens = tokenize(text)
    if not tokens:
        return 0.0

    hits = 0
    for keywords, _ in BANDS:
        hits += count_lexicon(tokens, keywords)
    return 0.5 + 0.5 * min(1.0, hits / len(tokens))


class IFeatureEncoder(ABC):
    """Abstract interface for feature encoders."""

    @abstractmethod
    def encode(self, text: str, source_type: Union[SourceType, str]) -> np.ndarray:
        """Generate a normalized feature vector for the given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the feature vectors."""
        pass


class KeywordBandEncoder(IFeatureEncoder):
    """Deterministic keyword-band encoder.

    Identical input always yields a bit-identical vector. Empty input yields
    the zero vector, the documented degenerate case.
    """

    def __init__(self, dimension: int = 64, strict: bool = False):
        if dimension <= 0 or dimension % 4 != 0:
            raise ValueError(f"dimension must be a positive multiple of 4, got {dimension}")
        self.dimension = dimension
        self.band_width = dimension // 4
        self.strict = strict

    def raw_features(self, text: str) -> np.ndarray:
        """Band scores plus hash scatter, before normalization."""
        if not isinstance(text, str):
            raise TypeError(f"text must be a string, got {type(text).__name__}")

        tokens = tokenize(text)
        vector = np.zeros(self.dimension, dtype=np.float64)

        for band_index, (keywords, weight) in enumerate(BANDS):
            offset = band_index * self.band_width
            for position, keyword in enumerate(keywords[:self.band_width]):
                occurrences = count_keyword(tokens, keyword)
                if occurrences:
                    vector[offset + position] = min(1.0, occurrences * weight)

        for token in tokens:
            index = token_scatter_index(token, self.dimension)
            vector[index] = min(1.0, vector[index] + SCATTER_WEIGHT)

        return vector

    def encode(self, text: str, source_type: Union[SourceType, str] = SourceType.COMPOSITE) -> np.ndarray:
        """Generate the normalized feature vector.

        Raises:
            EncodingDegenerate: In strict mode, when the text yields no features
        """
        source_type = SourceType(source_type)
        vector = normalize(self.raw_features(text))

        if not vector.any():
            if self.strict:
                raise EncodingDegenerate(f"No features in {source_type.value} text")
            logger.log_encoding_fallback("zero magnitude, returning zero vector", text, source_type.value)

        return vector

    def band_slices(self) -> List[slice]:
        """Index ranges of the four bands, in band order."""
        return [slice(i * self.band_width, (i + 1) * self.band_width) for i in range(4)]

    def get_dimension(self) -> int:
        """Get the dimension of the feature vectors."""
        return self.dimension
