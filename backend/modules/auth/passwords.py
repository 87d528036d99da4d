"""
Password hashing with bcrypt.

The digest embeds a per-call random salt and the cost factor, so two
hashes of the same password differ while both verify.
"""

import logging

import bcrypt

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS = 10


class PasswordHasher:
    """bcrypt-backed implementation of IPasswordHasher."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS):
        self._rounds = rounds

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, plaintext: str) -> str:
        """Hash a password. bcrypt only reads the first 72 bytes."""
        if not plaintext:
            raise ValueError("Password must not be empty")
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(plaintext.encode("utf-8")[:72], salt).decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        """Check a password against a stored digest; malformed digests never match."""
        if not plaintext or not digest:
            return False
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8")[:72], digest.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False
