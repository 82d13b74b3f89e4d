"""Unit tests for auth/keys.py -- public/private key derivation.

Covers:
- Public keys are 64 hex chars and unique across calls
- Private key derivation is deterministic and secret-dependent
- verify() accepts the derived key and rejects anything else
"""

import pytest

from auth.keys import KeyDeriver

from conftest import TEST_SECRET


class TestGeneratePublic:
    def test_public_key_is_64_hex_chars(self, keys):
        public_key = keys.generate_public()
        assert len(public_key) == 64
        int(public_key, 16)  # raises if not hex

    def test_public_keys_do_not_repeat(self, keys):
        generated = {keys.generate_public() for _ in range(200)}
        assert len(generated) == 200


class TestDerivePrivate:
    def test_same_input_same_output(self, keys):
        assert keys.derive_private("abc") == keys.derive_private("abc")

    def test_output_depends_on_secret(self, keys):
        other = KeyDeriver("a-completely-different-secret-of-enough-length")
        assert keys.derive_private("abc") != other.derive_private("abc")

    def test_private_differs_from_public(self, keys):
        public_key, private_key = keys.generate_pair()
        assert public_key != private_key
        assert private_key == keys.derive_private(public_key)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            KeyDeriver("")


class TestVerify:
    def test_derived_key_verifies(self, keys):
        for _ in range(20):
            public_key, private_key = keys.generate_pair()
            assert keys.verify(public_key, private_key) is True

    def test_other_value_rejected(self, keys):
        public_key, private_key = keys.generate_pair()
        assert keys.verify(public_key, keys.generate_public()) is False
        assert keys.verify(public_key, private_key[:-1]) is False
        assert keys.verify(public_key, "") is False

    def test_key_from_other_secret_rejected(self, keys):
        other = KeyDeriver(TEST_SECRET + "-rotated")
        public_key = keys.generate_public()
        assert keys.verify(public_key, other.derive_private(public_key)) is False

    def test_non_string_input_rejected(self, keys):
        public_key = keys.generate_public()
        assert keys.verify(public_key, None) is False
        assert keys.verify(None, "abc") is False
