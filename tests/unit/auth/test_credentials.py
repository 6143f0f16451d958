"""Unit tests for credential generation, hashing and verification."""

from __future__ import annotations

import hashlib
import string

from riskvisio.services.credentials import (
    generate_client_id,
    generate_client_secret,
    hash_secret,
    keys_equal,
    verify_secret,
)

ALPHANUMERIC = set(string.ascii_letters + string.digits)


class TestGenerate:
    """Test credential generation."""

    def test_client_id_format(self):
        client_id = generate_client_id()

        assert client_id.startswith("key_")
        assert len(client_id) == len("key_") + 16
        assert set(client_id[len("key_"):]) <= ALPHANUMERIC

    def test_client_secret_format(self):
        secret = generate_client_secret()

        assert secret.startswith("secret_")
        assert len(secret) == len("secret_") + 32
        assert set(secret[len("secret_"):]) <= ALPHANUMERIC

    def test_uniqueness(self):
        ids = {generate_client_id() for _ in range(50)}
        secrets = {generate_client_secret() for _ in range(50)}

        assert len(ids) == 50
        assert len(secrets) == 50


class TestHashAndVerify:
    """Test secret hashing and verification."""

    def test_hash_is_sha256_hex(self):
        digest = hash_secret("secret_abc")

        assert digest == hashlib.sha256(b"secret_abc").hexdigest()
        assert len(digest) == 64

    def test_hash_deterministic(self):
        assert hash_secret("secret_same") == hash_secret("secret_same")

    def test_hash_different_inputs(self):
        corpus = [generate_client_secret() for _ in range(200)]
        digests = {hash_secret(s) for s in corpus}

        assert len(digests) == len(set(corpus))

    def test_verify_correct(self):
        secret = generate_client_secret()
        assert verify_secret(secret, hash_secret(secret)) is True

    def test_verify_incorrect(self):
        assert verify_secret("secret_wrong", hash_secret("secret_right")) is False


class TestKeysEqual:
    """Static key comparison (legacy and admin keys)."""

    def test_exact_match(self):
        assert keys_equal("legacy-key", "legacy-key") is True

    def test_mismatch(self):
        assert keys_equal("legacy-kez", "legacy-key") is False

    def test_prefix_is_not_a_match(self):
        assert keys_equal("legacy", "legacy-key") is False

    def test_missing(self):
        assert keys_equal(None, "legacy-key") is False
