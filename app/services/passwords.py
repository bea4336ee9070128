"""Password hashing using bcrypt."""

import bcrypt

from app.config import Settings
from app.exceptions import WeakPasswordError

# bcrypt only looks at the first 72 bytes and newer releases reject longer input
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Salted one-way hashing with a configurable work factor.

    >>> hasher = PasswordHasher(settings)
    >>> digest = hasher.hash("correct horse")
    >>> hasher.verify("correct horse", digest)
    True
    """

    def __init__(self, settings: Settings) -> None:
        self._rounds = settings.BCRYPT_ROUNDS
        self.min_length = settings.MIN_PASSWORD_LENGTH

    def validate_strength(self, password: str) -> None:
        """Raise WeakPasswordError when the password breaks the length policy."""
        if len(password) < self.min_length:
            raise WeakPasswordError(f"Password must be at least {self.min_length} characters")
        if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise WeakPasswordError(f"Password cannot exceed {BCRYPT_MAX_BYTES} bytes")

    def hash(self, password: str) -> str:
        self.validate_strength(password)
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a password against a stored hash. Malformed input never matches."""
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except (ValueError, TypeError):
            return False
