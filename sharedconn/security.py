"""Password encryption used for remembered shared-database credentials."""

from __future__ import annotations

import base64
import hashlib
from typing import Protocol, runtime_checkable

from cryptography.fernet import Fernet, InvalidToken


class DecryptionError(ValueError):
    """Raised when a stored password cannot be decoded or decrypted."""


@runtime_checkable
class Decryptor(Protocol):
    """Turns a stored ciphertext back into a plaintext password."""

    def decrypt(self, ciphertext: str | bytes, context: str) -> str:
        """Decrypt ``ciphertext`` bound to ``context`` (the user name)."""


class PasswordCipher:
    """Fernet cipher keyed on a hash of the context string.

    Tokens are authenticated, so a corrupted or foreign ciphertext fails to
    decrypt instead of yielding a different password.
    """

    def encrypt(self, plaintext: str, context: str) -> str:
        return self._fernet(context).encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str | bytes, context: str) -> str:
        try:
            data = self._fernet(context).decrypt(ciphertext)
            return data.decode("utf-8")
        except InvalidToken as exc:
            raise DecryptionError("Stored password could not be decrypted") from exc
        except ValueError as exc:
            raise DecryptionError("Stored password is not validly encoded") from exc

    @staticmethod
    def _fernet(context: str) -> Fernet:
        digest = hashlib.sha256(context.encode("utf-8")).digest()
        return Fernet(base64.urlsafe_b64encode(digest))


__all__ = ["DecryptionError", "Decryptor", "PasswordCipher"]
