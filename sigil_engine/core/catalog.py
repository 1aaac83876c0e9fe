"""
Curated sigil catalog - reference sigils addressed by 5-digit balanced
ternary codes (digits T=-1, 0, 1), i.e. decimal values -121..121.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from .schema import BreathPhase, Category

TERNARY_DIGITS = {"T": -1, "0": 0, "1": 1}
TERNARY_WIDTH = 5
MAX_DECIMAL = (3 ** TERNARY_WIDTH - 1) // 2  # 121


def validate_ternary_code(code: str) -> Tuple[bool, Optional[str]]:
    """Check a ternary code, returning (is_valid, error message)."""
    if not isinstance(code, str) or not code.strip():
        return False, "Ternary code cannot be empty"

    code = code.strip().upper()
    if len(code) != TERNARY_WIDTH:
        return False, f"Ternary code must be {TERNARY_WIDTH} digits, got {len(code)}"

    invalid = sorted(set(c for c in code if c not in TERNARY_DIGITS))
    if invalid:
        return False, f"Invalid ternary digits: {''.join(invalid)} (use T, 0, 1)"

    return True, None


def balanced_ternary_to_decimal(code: str) -> int:
    """Decode a balanced ternary code, most significant digit first."""
    is_valid, error = validate_ternary_code(code)
    if not is_valid:
        raise ValueError(error)

    value = 0
    for digit in code.strip().upper():
        value = value * 3 + TERNARY_DIGITS[digit]
    return value


def decimal_to_balanced_ternary(value: int) -> str:
    """Encode a decimal in [-121, 121] as a 5-digit balanced ternary code."""
    if not -MAX_DECIMAL <= value <= MAX_DECIMAL:
        raise ValueError(f"Decimal must be between {-MAX_DECIMAL} and {MAX_DECIMAL}")

    digits = []
    n = value
    while n != 0:
        remainder = n % 3
        if remainder == 2:
            remainder = -1
        digits.append({-1: "T", 0: "0", 1: "1"}[remainder])
        n = (n - remainder) // 3

    return "".join(reversed(digits)).rjust(TERNARY_WIDTH, "0")


@dataclass(frozen=True)
class CatalogEntry:
    ternary_code: str
    name: str
    symbol: str
    description: str
    function: str
    breath_phase: BreathPhase
    category: Category
    phrase: str
    neurochemistry: Optional[str] = None

    @property
    def decimal_value(self) -> int:
        return balanced_ternary_to_decimal(self.ternary_code)

    def as_text(self) -> str:
        """Text handed to the feature encoder."""
        return " ".join([self.name, self.description, self.function, self.phrase])


CATALOG: List[CatalogEntry] = [
    CatalogEntry("TTTTT", "Root Stillness", "◼",
                 "The deepest floor of awareness, instinct held still",
                 "grounding survival instinct into safety",
                 BreathPhase.PAUSE, Category.BRAINSTEM,
                 "I rest on the earth and the earth holds me", "gaba"),
    CatalogEntry("TTTT0", "Ember Watch", "▲",
                 "A small fire kept alive through the dark",
                 "alertness without fear",
                 BreathPhase.INHALE, Category.BRAINSTEM,
                 "the fire knows when to rise", "norepinephrine"),
    CatalogEntry("TT0T1", "Tide Heart", "≈",
                 "Grief and love moving like water",
                 "emotional release and tender acceptance",
                 BreathPhase.EXHALE, Category.LIMBIC,
                 "I let the ocean carry what I cannot", "oxytocin"),
    CatalogEntry("T0T01", "Quiet Bloom", "✿",
                 "Joy opening slowly after a long calm",
                 "cultivating serene joy",
                 BreathPhase.HOLD1, Category.LIMBIC,
                 "peace opens like a flower in light", "serotonin"),
    CatalogEntry("T0000", "Mirror Lake", "◎",
                 "Seeing the self reflected without judgement",
                 "compassion turned inward",
                 BreathPhase.HOLD2, Category.LIMBIC,
                 "the mirror shows only what is", "oxytocin"),
    CatalogEntry("00000", "Still Point", "·",
                 "The balanced center between breaths",
                 "integration and unity of the senses",
                 BreathPhase.PAUSE, Category.THALAMIC,
                 "in the stillness I sense oneness", None),
    CatalogEntry("01T10", "Spiral Gate", "@",
                 "A spiral path turning inward then outward",
                 "transition between states of awareness",
                 BreathPhase.INHALE, Category.THALAMIC,
                 "I walk the spiral and become aware", "dopamine"),
    CatalogEntry("0110T", "Bridge of Sky", "⌒",
                 "A bridge across the sky joining distant thoughts",
                 "synthesis and connection",
                 BreathPhase.HOLD1, Category.THALAMIC,
                 "every bridge is a breath between worlds", "acetylcholine"),
    CatalogEntry("1T0T1", "Clear Lens", "◇",
                 "Analysis held lightly, reason without strain",
                 "structure and understanding",
                 BreathPhase.EXHALE, Category.CORTICAL,
                 "because I observe, I understand", "acetylcholine"),
    CatalogEntry("10101", "Lucid Key", "⚷",
                 "The key of lucid knowing inside the dream",
                 "conscious recognition within dreams",
                 BreathPhase.HOLD2, Category.CORTICAL,
                 "I know I am dreaming and I am awake", "dopamine"),
    CatalogEntry("11110", "Open Door", "▯",
                 "A door opening onto the infinite",
                 "expanding perception beyond the self",
                 BreathPhase.INHALE, Category.CORTICAL,
                 "I perceive the infinite through an open door", "serotonin"),
    CatalogEntry("11111", "Crown Light", "☼",
                 "Radiant light at the summit of experience",
                 "transcendence and eternal presence",
                 BreathPhase.EXHALE, Category.CORTICAL,
                 "divine light moves through me", "anandamide"),
]

_BY_CODE: Dict[str, CatalogEntry] = {entry.ternary_code: entry for entry in CATALOG}


def get_entry_by_ternary(code: str) -> Optional[CatalogEntry]:
    """Catalog entry for a ternary code, None when invalid or unassigned."""
    is_valid, _ = validate_ternary_code(code)
    if not is_valid:
        return None
    return _BY_CODE.get(code.strip().upper())


def get_entry_by_decimal(value: int) -> Optional[CatalogEntry]:
    """Catalog entry for a decimal value, None when out of range or unassigned."""
    try:
        code = decimal_to_balanced_ternary(value)
    except ValueError:
        return None
    return _BY_CODE.get(code)


def search_catalog(query: str) -> List[CatalogEntry]:
    """Case-insensitive substring search over names, descriptions, functions and phrases."""
    query = (query or "").strip().lower()
    if not query:
        return []

    results = []
    for entry in CATALOG:
        haystack = " ".join([
            entry.name, entry.description, entry.function, entry.phrase,
            entry.neurochemistry or ""
        ]).lower()
        if query in haystack:
            results.append(entry)
    return results


def filter_by_category(category: Optional[Union[Category, str]]) -> List[CatalogEntry]:
    """Entries in a category; the whole catalog when category is None."""
    if category is None:
        return list(CATALOG)
    category = Category(category)
    return [entry for entry in CATALOG if entry.category == category]
