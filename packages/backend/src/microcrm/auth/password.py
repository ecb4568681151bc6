"""Password hashing.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting (the salt is embedded in the "$2b$..." digest, so no
separate salt column) and is resistant to rainbow table attacks.
The work factor comes from settings.bcrypt_rounds (10 → ~60ms per hash).
"""

import bcrypt

from microcrm.errors import EncodingError

# bcrypt only looks at the first 72 bytes of the password.
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """bcrypt hash/verify with a fixed work factor."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self._dummy_hash: str | None = None

    def hash(self, password: str) -> str:
        """Hash a password with a fresh random salt.

        Raises EncodingError if the password cannot be UTF-8 encoded
        or contains bytes bcrypt refuses (NUL).
        """
        try:
            pw_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
            salt = bcrypt.gensalt(rounds=self.rounds)
            return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")
        except (UnicodeEncodeError, ValueError, TypeError) as e:
            raise EncodingError() from e

    def verify(self, password: str, password_hash: str | None) -> bool:
        """Check a password against a digest in constant time.

        Never raises: malformed digests, missing digests and unencodable
        input all verify as False.
        """
        if not password_hash:
            return False
        try:
            pw_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
            hash_bytes = password_hash.encode("utf-8")
            return bcrypt.checkpw(pw_bytes, hash_bytes)
        except (UnicodeEncodeError, ValueError, TypeError, AttributeError):
            return False

    def verify_dummy(self, password: str) -> None:
        """Spend the same time as verify() when there is no digest to check."""
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("microcrm-timing-equalizer")
        self.verify(password, self._dummy_hash)
