"""
Shared fixtures: hand-built sigils with controlled vectors and timestamps.
"""

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from sigil_engine.core.config import EngineConfig
from sigil_engine.core.engine import SigilEngine
from sigil_engine.core.schema import Category, Sigil, SigilMetadata, SourceType

DIM = 64
BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def unit(*components, dim=DIM):
    """Unit vector with the given leading components, zero-padded."""
    vector = np.zeros(dim)
    vector[:len(components)] = components
    return vector / np.linalg.norm(vector)


def at(minutes):
    return BASE_TIME + timedelta(minutes=minutes)


def build_sigil(sigil_id, vector, minutes=0, category=Category.LIMBIC,
                source_type=SourceType.DREAM, strength=0.5, breath_phase=None,
                user_id=None, neurochemistry=None):
    return Sigil(
        id=sigil_id,
        vector=vector,
        category=category,
        source_type=source_type,
        timestamp=at(minutes),
        strength=strength,
        hash=0,
        metadata=SigilMetadata(breath_phase=breath_phase, user_id=user_id, neurochemistry=neurochemistry)
    )


class StepClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return at(self.calls)


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def engine(clock):
    return SigilEngine(EngineConfig(), clock=clock)


@pytest.fixture
def abc_vectors():
    """A, B, C with sim(A,B)=0.8, sim(B,C)=0.75, sim(A,C)=0.3."""
    a = unit(1.0)
    b = unit(0.8, 0.6)
    c = unit(0.3, 0.85, float(np.sqrt(1 - 0.3 ** 2 - 0.85 ** 2)))
    return a, b, c
