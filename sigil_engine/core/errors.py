"""
Error taxonomy for the sigil engine.
"""

from typing import Sequence


class SigilEngineError(Exception):
    """Base class for engine errors."""
    pass


class EncodingDegenerate(SigilEngineError):
    """Encoding produced a zero or unusable vector. The engine recovers with a fallback sigil."""
    pass


class LookupNotFound(SigilEngineError):
    """A referenced sigil id is not in the store."""

    def __init__(self, sigil_id: str):
        self.sigil_id = sigil_id
        super().__init__(f"Sigil not found: {sigil_id}")


class InsufficientMembers(SigilEngineError):
    """A braid was requested with fewer than two resolvable sigils."""

    def __init__(self, requested: Sequence[str], resolved: Sequence[str]):
        self.requested = list(requested)
        self.resolved = list(resolved)
        super().__init__(
            f"Need at least 2 stored sigils to braid, resolved {len(self.resolved)} of {len(self.requested)}"
        )


class PersistenceFailure(SigilEngineError):
    """The persistence adapter rejected a load or save. In-memory state is left as is."""
    pass
