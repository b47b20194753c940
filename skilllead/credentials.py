"""Runtime lifecycle of the provider API key.

The key lives in exactly one of two slots: an in-memory session slot that
disappears with the process, or a persistent file encrypted with Fernet under
a key derived from the user's passphrase. It is never written to the record
store, so a backup export cannot leak it.
"""

from __future__ import annotations

import base64
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import CredentialError
from .records import KeyStorage

logger = logging.getLogger(__name__)

SALT_BYTES = 16
KDF_ITERATIONS = 390_000


def derive_fernet_key(passphrase: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=salt, iterations=KDF_ITERATIONS)
    return base64.urlsafe_b64encode(kdf.derive(passphrase.encode("utf-8")))


def encrypt(value: str, passphrase: str) -> bytes:
    """Encrypt ``value``; the random salt is stored in front of the token."""
    salt = os.urandom(SALT_BYTES)
    token = Fernet(derive_fernet_key(passphrase, salt)).encrypt(value.encode("utf-8"))
    return salt + token


def decrypt(blob: bytes, passphrase: str) -> str:
    salt, token = blob[:SALT_BYTES], blob[SALT_BYTES:]
    try:
        return Fernet(derive_fernet_key(passphrase, salt)).decrypt(token).decode("utf-8")
    except InvalidToken as exc:
        raise CredentialError("Unable to decrypt the stored API key; check the passphrase.") from exc


class CredentialHolder:
    """Owns the provider key: populated on save, cleared on clear, never expired implicitly."""

    def __init__(self, path: Path, passphrase: Optional[str] = None) -> None:
        self.path = Path(path)
        self._passphrase = passphrase
        self._session_key: Optional[str] = None
        self._lock = threading.RLock()

    @property
    def location(self) -> KeyStorage:
        with self._lock:
            if self._session_key:
                return "session"
            if self.path.exists():
                return "encrypted_local"
            return "none"

    def unlock(self, passphrase: str) -> None:
        """Provide the passphrase used to read and write the persistent slot."""
        with self._lock:
            self._passphrase = passphrase

    def save(self, key: str, persistent: bool = False, *, passphrase: Optional[str] = None) -> KeyStorage:
        key = key.strip()
        if not key:
            raise CredentialError("API key cannot be empty.")
        with self._lock:
            if passphrase is not None:
                self._passphrase = passphrase
            if persistent:
                if not self._passphrase:
                    raise CredentialError("A passphrase is required to store the API key on disk.")
                self._write_slot(encrypt(key, self._passphrase))
                self._session_key = None
                logger.info("Provider key stored in encrypted slot at %s", self.path)
                return "encrypted_local"
            self._session_key = key
            self._remove_file()
            logger.info("Provider key stored for this session only")
            return "session"

    def read(self) -> Optional[str]:
        with self._lock:
            if self._session_key:
                return self._session_key
            if not self.path.exists():
                return None
            if not self._passphrase:
                logger.debug("Encrypted provider key present but locked")
                return None
            return decrypt(self.path.read_bytes(), self._passphrase)

    def clear(self) -> None:
        with self._lock:
            self._session_key = None
            self._remove_file()
            logger.info("Provider key cleared")

    def _write_slot(self, token: bytes) -> None:
        """Replace the slot file atomically; the new file is owner-only."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(token)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(temp_name, 0o600)
            os.replace(temp_name, self.path)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise

    def _remove_file(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


__all__ = ["CredentialHolder", "decrypt", "derive_fernet_key", "encrypt"]
