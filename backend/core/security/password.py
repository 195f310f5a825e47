"""
Password hashing utilities using bcrypt.
"""

from passlib.context import CryptContext

from infrastructure.config.settings import settings

# bcrypt ignores everything past 72 bytes; longer passwords are rejected at the schema layer
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Password hashing and verification using bcrypt."""

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password to hash

        Returns:
            Hashed password string
        """
        return self._context.hash(password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against a hash.

        Malformed hashes count as a mismatch rather than an error.
        """
        try:
            return self._context.verify(plain_password, hashed_password)
        except ValueError:
            return False

    def needs_rehash(self, hashed_password: str) -> bool:
        """Check if a stored hash was produced with outdated parameters."""
        return self._context.needs_update(hashed_password)


password_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
