"""Magic link token generation.

Tokens are 32 bytes from the OS CSPRNG, hex encoded (64 characters,
256 bits of entropy). Only the SHA-256 digest is persisted; the plain
token exists in the emailed link and nowhere else.
"""

import hashlib
import secrets

TOKEN_BYTES = 32
TOKEN_LENGTH = TOKEN_BYTES * 2


class TokenGenerator:
    """Stateless source of opaque, unguessable magic link tokens."""

    def generate(self) -> str:
        """Return a fresh 64-character hex token."""
        return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a plain token, as stored in users.magic_link_token."""
    return hashlib.sha256(token.encode()).hexdigest()
