"""
Salted, slow password hashing on top of hashlib.pbkdf2_hmac.

Stored format (one string, safe for a TEXT column):

    pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>

The iteration count travels with the hash, so raising the cost later
doesn't invalidate existing passwords.
"""

import hashlib
import hmac
import secrets


ALGORITHM = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 260_000
SALT_BYTES = 16


class PasswordHasher:
    """
    Hash and verify passwords.

        hasher = PasswordHasher(iterations=1_000)   # cheap cost for tests
        stored = hasher.hash("correct horse")
        hasher.verify("correct horse", stored)      # True
    """

    def __init__(self, iterations: int = DEFAULT_ITERATIONS):
        if iterations < 1:
            raise ValueError("iterations must be positive")
        self.iterations = iterations

    def hash(self, password: str) -> str:
        salt = secrets.token_bytes(SALT_BYTES)
        digest = self._derive(password, salt, self.iterations)
        return f"{ALGORITHM}${self.iterations}${salt.hex()}${digest.hex()}"

    def verify(self, password: str, stored: str) -> bool:
        """Constant-time check of `password` against a stored hash."""
        try:
            algorithm, iterations, salt_hex, digest_hex = stored.split("$")
            if algorithm != ALGORITHM:
                return False
            salt = bytes.fromhex(salt_hex)
            expected = bytes.fromhex(digest_hex)
            rounds = int(iterations)
        except (ValueError, AttributeError):
            return False

        return hmac.compare_digest(self._derive(password, salt, rounds), expected)

    @staticmethod
    def _derive(password: str, salt: bytes, iterations: int) -> bytes:
        return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
