"""
Encryption of provider credentials stored in the database.
"""
import base64
from typing import Protocol

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

_KDF_SALT = b"socialconnect_user_connections"
_KDF_ITERATIONS = 100000


class TextEncryptor(Protocol):
    """Two-way codec applied to credential columns."""

    def encrypt(self, text: str) -> str:
        ...

    def decrypt(self, encrypted_text: str) -> str:
        ...


class NoOpTextEncryptor:
    """Stores credentials as plain text. For tests and local development."""

    def encrypt(self, text: str) -> str:
        return text

    def decrypt(self, encrypted_text: str) -> str:
        return encrypted_text


class FernetTextEncryptor:
    """
    Fernet (AES-128-CBC + HMAC) encryption.
    
    The key may be a urlsafe-base64 Fernet key or any passphrase, in which
    case a key is derived from it with PBKDF2-SHA256.
    """

    def __init__(self, key: str):
        if not key:
            raise ValueError("An encryption key is required")
        self._fernet = Fernet(self._derive_key(key))

    @staticmethod
    def _derive_key(key: str) -> bytes:
        try:
            raw = base64.urlsafe_b64decode(key.encode())
        except ValueError:
            raw = b""
        if len(raw) == 32:
            return key.encode()
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=_KDF_SALT,
            iterations=_KDF_ITERATIONS,
        )
        return base64.urlsafe_b64encode(kdf.derive(key.encode()))

    def encrypt(self, text: str) -> str:
        return self._fernet.encrypt(text.encode()).decode()

    def decrypt(self, encrypted_text: str) -> str:
        try:
            return self._fernet.decrypt(encrypted_text.encode()).decode()
        except InvalidToken as e:
            raise ValueError("Stored credential could not be decrypted") from e


def build_text_encryptor(key: str) -> TextEncryptor:
    """Return a Fernet encryptor for ``key``, or a no-op one when it is empty."""
    if not key:
        return NoOpTextEncryptor()
    return FernetTextEncryptor(key)


def generate_encryption_key() -> str:
    """Generate a new random key for the .env file."""
    return Fernet.generate_key().decode()
