"""
Engine configuration - environment driven, with an explicit EngineConfig
handed to each SigilEngine instance so thresholds stay independently tunable.
"""

import os
from dataclasses import dataclass
from typing import Optional

# Snapshot persistence
SNAPSHOT_PATH = os.getenv("SNAPSHOT_PATH", "./data/sigils.json")
SNAPSHOT_ENCRYPTION_ENABLED = os.getenv("SNAPSHOT_ENCRYPTION_ENABLED", "false").lower() == "true"

# Debug flag
DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Vector layout
DEFAULT_VECTOR_LENGTH = 64

# Retention bounds (sigils / braids / cached similarity edges)
DEFAULT_SIGIL_RETENTION = 500
DEFAULT_BRAID_RETENTION = 50
DEFAULT_EDGE_RETENTION = 200

# Thresholds - kept separate, each matches a different legacy call site
DEFAULT_SIMILARITY_THRESHOLD = 0.7       # ad hoc find_similar
DEFAULT_RECOGNITION_THRESHOLD = 0.65     # pattern library recognition
DEFAULT_BRAID_CONNECTION_THRESHOLD = 0.6  # braid edges
DEFAULT_CLUSTER_THRESHOLD = 0.65         # single-linkage clustering
DEFAULT_CLUSTER_MIN_SIZE = 2

# Version string
VERSION = "1.0.0"


def debug_enabled() -> bool:
    """Check if debug mode is enabled (dynamic check)."""
    return os.getenv("DEBUG", "false").lower() == "true"


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


@dataclass(frozen=True)
class EngineConfig:
    """Tunables for one engine instance."""

    vector_length: int = DEFAULT_VECTOR_LENGTH
    sigil_retention: int = DEFAULT_SIGIL_RETENTION
    braid_retention: int = DEFAULT_BRAID_RETENTION
    edge_retention: int = DEFAULT_EDGE_RETENTION
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    recognition_threshold: float = DEFAULT_RECOGNITION_THRESHOLD
    braid_connection_threshold: float = DEFAULT_BRAID_CONNECTION_THRESHOLD
    cluster_threshold: float = DEFAULT_CLUSTER_THRESHOLD
    cluster_min_size: int = DEFAULT_CLUSTER_MIN_SIZE
    strict_encoding: bool = False

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raise ValueError when a setting is out of range."""
        if self.vector_length <= 0 or self.vector_length % 4 != 0:
            raise ValueError(f"vector_length must be a positive multiple of 4, got {self.vector_length}")

        for name in ("sigil_retention", "braid_retention", "edge_retention", "cluster_min_size"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")

        for name in ("similarity_threshold", "recognition_threshold",
                     "braid_connection_threshold", "cluster_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")

    @classmethod
    def from_env(cls) -> 'EngineConfig':
        """Build a config from the current environment."""
        return cls(
            vector_length=_env_int("SIGIL_VECTOR_LENGTH", DEFAULT_VECTOR_LENGTH),
            sigil_retention=_env_int("SIGIL_RETENTION_LIMIT", DEFAULT_SIGIL_RETENTION),
            braid_retention=_env_int("BRAID_RETENTION_LIMIT", DEFAULT_BRAID_RETENTION),
            edge_retention=_env_int("SIMILARITY_EDGE_LIMIT", DEFAULT_EDGE_RETENTION),
            similarity_threshold=_env_float("SIMILARITY_THRESHOLD", DEFAULT_SIMILARITY_THRESHOLD),
            recognition_threshold=_env_float("RECOGNITION_THRESHOLD", DEFAULT_RECOGNITION_THRESHOLD),
            braid_connection_threshold=_env_float("BRAID_CONNECTION_THRESHOLD", DEFAULT_BRAID_CONNECTION_THRESHOLD),
            cluster_threshold=_env_float("CLUSTER_THRESHOLD", DEFAULT_CLUSTER_THRESHOLD),
            cluster_min_size=_env_int("CLUSTER_MIN_SIZE", DEFAULT_CLUSTER_MIN_SIZE),
            strict_encoding=os.getenv("SIGIL_STRICT_ENCODING", "false").lower() == "true",
        )


def get_snapshot_path() -> str:
    """Get snapshot path (dynamic check)."""
    return os.getenv("SNAPSHOT_PATH", SNAPSHOT_PATH)


def get_master_password() -> Optional[str]:
    """Get the snapshot encryption password, None when unset."""
    return os.getenv("SNAPSHOT_MASTER_PASSWORD")


def is_snapshot_encryption_enabled() -> bool:
    """Check if snapshot encryption is enabled (dynamic check)."""
    return os.getenv("SNAPSHOT_ENCRYPTION_ENABLED", "false").lower() == "true"


def get_persistence_port():
    """Get configured persistence adapter for the snapshot file."""
    from .persistence import JsonFileSnapshotPort

    if is_snapshot_encryption_enabled():
        password = get_master_password()
        if not password:
            raise ValueError("SNAPSHOT_MASTER_PASSWORD must be set when SNAPSHOT_ENCRYPTION_ENABLED is true")
        return JsonFileSnapshotPort(get_snapshot_path(), password=password)
    return JsonFileSnapshotPort(get_snapshot_path())
