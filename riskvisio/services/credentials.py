"""Client credential generation, hashing and verification.

Credential format:
    client id:      ``key_`` + 16 alphanumerics (public, stored as-is)
    client secret:  ``secret_`` + 32 alphanumerics (stored only as SHA-256)
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import string

CLIENT_ID_PREFIX = "key_"
CLIENT_SECRET_PREFIX = "secret_"

_CLIENT_ID_RANDOM_LEN = 16
_CLIENT_SECRET_RANDOM_LEN = 32
_ALPHABET = string.ascii_letters + string.digits


def _random_string(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_client_id() -> str:
    """Generate a new public client identifier."""
    return f"{CLIENT_ID_PREFIX}{_random_string(_CLIENT_ID_RANDOM_LEN)}"


def generate_client_secret() -> str:
    """Generate a new client secret. Returned to the caller exactly once."""
    return f"{CLIENT_SECRET_PREFIX}{_random_string(_CLIENT_SECRET_RANDOM_LEN)}"


def hash_secret(secret: str) -> str:
    """Hash a client secret using SHA-256.

    Args:
        secret: The plaintext client secret

    Returns:
        SHA-256 hex digest
    """
    return hashlib.sha256(secret.encode()).hexdigest()


def verify_secret(secret: str, secret_hash: str) -> bool:
    """Verify a plaintext secret against a stored hash.

    Digests are compared, never plaintext, and in constant time.

    Args:
        secret: The plaintext secret to verify
        secret_hash: The stored SHA-256 hash

    Returns:
        True if the secret matches
    """
    return hmac.compare_digest(hash_secret(secret), secret_hash)


def keys_equal(provided: str | None, expected: str) -> bool:
    """Exact, constant-time comparison of a static key (legacy or admin)."""
    if provided is None:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())
