from __future__ import annotations

from typing import Protocol

import bcrypt

from .errors import ValidationError

# bcrypt only looks at the first 72 bytes of its input.
_BCRYPT_MAX_BYTES = 72


# PUBLIC_INTERFACE
class PasswordHasher(Protocol):
    """Salted password hashing strategy injected into AuthService."""

    def hash(self, plaintext: str) -> str:
        """Return a self-describing salted hash of plaintext."""
        ...

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Return True if plaintext matches hashed, using a constant-time check."""
        ...


class BcryptPasswordHasher:
    """
    bcrypt implementation of PasswordHasher.

    The salt and cost factor are embedded in the produced hash, so verify()
    needs nothing but the stored string.
    """

    def __init__(self, rounds: int = 12) -> None:
        if not (4 <= rounds <= 31):
            raise ValueError("bcrypt rounds must be between 4 and 31")
        self._rounds = rounds

    def hash(self, plaintext: str) -> str:
        secret = plaintext.encode("utf-8")
        if len(secret) > _BCRYPT_MAX_BYTES:
            raise ValidationError(f"Password must be at most {_BCRYPT_MAX_BYTES} bytes")
        return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=self._rounds)).decode("ascii")

    def verify(self, plaintext: str, hashed: str) -> bool:
        secret = plaintext.encode("utf-8")
        if len(secret) > _BCRYPT_MAX_BYTES:
            return False
        try:
            return bcrypt.checkpw(secret, hashed.encode("ascii"))
        except ValueError:
            # Stored value is not a bcrypt hash.
            return False
