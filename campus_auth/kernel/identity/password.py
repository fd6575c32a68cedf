"""
Password hashing utilities using bcrypt.
"""

import anyio
import bcrypt

# Cost factor for bcrypt hashing; each increment doubles the work
DEFAULT_BCRYPT_ROUNDS = 10

# bcrypt only reads the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """
    Password hashing service.

    The work factor is fixed at construction. The salt is generated per hash
    and embedded in the digest, so callers never manage salts.
    """

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS):
        if not 4 <= rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {rounds}")
        self.rounds = rounds

    @staticmethod
    def _truncate_password(password: str) -> bytes:
        """Encode and truncate to the bcrypt input limit."""
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string, e.g. ``$2b$10$...``
        """
        pwd_bytes = self._truncate_password(password)
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(pwd_bytes, salt).decode("utf-8")

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        ``bcrypt.checkpw`` compares digests in constant time.

        Args:
            plain_password: Plain text password to verify
            hashed_password: Stored hashed password

        Returns:
            True if password matches, False otherwise

        Raises:
            ValueError: If the stored hash is not a bcrypt digest
        """
        pwd_bytes = self._truncate_password(plain_password)
        try:
            hash_bytes = hashed_password.encode("utf-8")
        except AttributeError as exc:
            raise ValueError("Stored password hash must be a string") from exc
        return bcrypt.checkpw(pwd_bytes, hash_bytes)

    def needs_rehash(self, hashed_password: str) -> bool:
        """
        Check if a password hash was produced with a different cost.

        bcrypt digests have the form ``$2b$XX$...`` where XX is the cost.
        """
        parts = hashed_password.split("$")
        if len(parts) < 4 or not parts[2].isdigit():
            return True
        return int(parts[2]) != self.rounds

    async def hash_async(self, password: str) -> str:
        """Hash on a worker thread so the event loop keeps serving requests."""
        return await anyio.to_thread.run_sync(self.hash, password)

    async def verify_async(self, plain_password: str, hashed_password: str) -> bool:
        """Verify on a worker thread."""
        return await anyio.to_thread.run_sync(self.verify, plain_password, hashed_password)
