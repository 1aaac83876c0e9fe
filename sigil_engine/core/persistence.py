"""
Persistence port and adapters. The engine only sees load()/save() of one
EngineSnapshot; adapters own the storage technology.
"""

from abc import ABC, abstractmethod
import copy
import json
import os
from pathlib import Path
import secrets
import tempfile
import threading
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import ValidationError

from .errors import PersistenceFailure
from .schema import EngineSnapshot
from .snapshot import SnapshotModel
from ..util.logging import logger

ENCRYPTED_MAGIC = b"SIGL1"
SALT_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16
KDF_ITERATIONS = 100000


class IPersistencePort(ABC):
    """Abstract interface for snapshot storage."""

    @abstractmethod
    def load(self) -> Optional[EngineSnapshot]:
        """Load the last saved snapshot, None when nothing was saved."""
        pass

    @abstractmethod
    def save(self, snapshot: EngineSnapshot) -> None:
        """Persist a snapshot, raising PersistenceFailure when the write is rejected."""
        pass


class InMemorySnapshotPort(IPersistencePort):
    """Keeps the last snapshot in process memory."""

    def __init__(self):
        self._snapshot: Optional[EngineSnapshot] = None
        self._lock = threading.Lock()
        self.save_count = 0

    def load(self) -> Optional[EngineSnapshot]:
        with self._lock:
            return copy.copy(self._snapshot)

    def save(self, snapshot: EngineSnapshot) -> None:
        with self._lock:
            self._snapshot = EngineSnapshot(
                sigils=list(snapshot.sigils),
                braids=list(snapshot.braids),
                similarity_edges=list(snapshot.similarity_edges)
            )
            self.save_count += 1


def _derive_key(password: str, salt: bytes) -> bytes:
    """Derive encryption key from password using PBKDF2."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(password.encode())


def _encrypt_data(data: bytes, password: str) -> bytes:
    """Encrypt data using AES-256-GCM; output is magic + salt + nonce + tag + ciphertext."""
    salt = secrets.token_bytes(SALT_SIZE)
    nonce = os.urandom(NONCE_SIZE)
    cipher = Cipher(algorithms.AES(_derive_key(password, salt)), modes.GCM(nonce))
    encryptor = cipher.encryptor()
    ciphertext = encryptor.update(data) + encryptor.finalize()
    return ENCRYPTED_MAGIC + salt + nonce + encryptor.tag + ciphertext


def _decrypt_data(blob: bytes, password: str) -> bytes:
    """Decrypt data produced by _encrypt_data."""
    header = len(ENCRYPTED_MAGIC) + SALT_SIZE + NONCE_SIZE + TAG_SIZE
    if not blob.startswith(ENCRYPTED_MAGIC) or len(blob) < header:
        raise PersistenceFailure("Snapshot is not an encrypted sigil snapshot")

    offset = len(ENCRYPTED_MAGIC)
    salt = blob[offset:offset + SALT_SIZE]
    offset += SALT_SIZE
    nonce = blob[offset:offset + NONCE_SIZE]
    offset += NONCE_SIZE
    tag = blob[offset:offset + TAG_SIZE]
    ciphertext = blob[offset + TAG_SIZE:]

    cipher = Cipher(algorithms.AES(_derive_key(password, salt)), modes.GCM(nonce, tag))
    decryptor = cipher.decryptor()
    try:
        return decryptor.update(ciphertext) + decryptor.finalize()
    except InvalidTag:
        raise PersistenceFailure("Snapshot decryption failed - wrong password or corrupted file")


class JsonFileSnapshotPort(IPersistencePort):
    """JSON document on disk, optionally AES-256-GCM encrypted.

    Writes go to a temporary file in the target directory and are moved into
    place with os.replace, so a failed write never leaves a partial snapshot.
    """

    def __init__(self, path: str, password: Optional[str] = None):
        self.path = Path(path)
        self.password = password
        self._lock = threading.Lock()

    @property
    def encrypted(self) -> bool:
        return bool(self.password)

    def load(self) -> Optional[EngineSnapshot]:
        if not self.path.exists():
            return None

        try:
            with self._lock:
                raw = self.path.read_bytes()
            if self.encrypted:
                raw = _decrypt_data(raw, self.password)
            model = SnapshotModel.model_validate(json.loads(raw.decode('utf-8')))
        except PersistenceFailure:
            logger.log_persistence("load", "failed", {"path": str(self.path), "reason": "decryption"})
            raise
        except (OSError, ValueError, ValidationError) as e:
            logger.log_persistence("load", "failed", {"path": str(self.path), "error": str(e)})
            raise PersistenceFailure(f"Failed to load snapshot from {self.path}: {e}") from e

        snapshot = model.to_domain()
        logger.log_persistence("load", "success", {
            "path": str(self.path),
            "sigils": len(snapshot.sigils),
            "braids": len(snapshot.braids),
            "edges": len(snapshot.similarity_edges)
        })
        return snapshot

    def save(self, snapshot: EngineSnapshot) -> None:
        try:
            payload = SnapshotModel.from_domain(snapshot).model_dump_json(indent=2).encode('utf-8')
            if self.encrypted:
                payload = _encrypt_data(payload, self.password)

            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), prefix=".snapshot_", suffix=".tmp")
                try:
                    with os.fdopen(fd, 'wb') as f:
                        f.write(payload)
                    os.replace(tmp_name, self.path)
                except BaseException:
                    if os.path.exists(tmp_name):
                        os.unlink(tmp_name)
                    raise
        except (OSError, ValueError, ValidationError) as e:
            logger.log_persistence("save", "failed", {"path": str(self.path), "error": str(e)})
            raise PersistenceFailure(f"Failed to save snapshot to {self.path}: {e}") from e

        logger.log_persistence("save", "success", {
            "path": str(self.path),
            "sigils": len(snapshot.sigils),
            "encrypted": self.encrypted
        })
