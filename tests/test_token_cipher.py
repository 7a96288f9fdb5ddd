"""
Tests for TokenCipher - AES-256-GCM encryption of stored Meta tokens.

Run with: pytest tests/test_token_cipher.py -v
"""

import base64
import logging

import pytest

from adpulse.core.token_cipher import TOKEN_PREFIX, TokenCipher, parse_key


KEY_BYTES = bytes(range(32))
KEY_B64 = base64.b64encode(KEY_BYTES).decode("ascii")


@pytest.fixture
def cipher():
    return TokenCipher(KEY_BYTES)


class TestParseKey:

    def test_base64_key(self):
        assert parse_key(KEY_B64) == KEY_BYTES

    def test_raw_32_char_key(self):
        raw = "k" * 32
        assert parse_key(raw) == raw.encode("utf-8")

    def test_surrounding_whitespace_ignored(self):
        assert parse_key(f"  {KEY_B64}\n") == KEY_BYTES

    def test_wrong_length_is_rejected(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert parse_key("too-short") is None
        assert "32 bytes" in caplog.text

    def test_empty_is_none(self):
        assert parse_key("") is None
        assert parse_key(None) is None


class TestRoundTrip:

    def test_encrypt_then_decrypt(self, cipher):
        token = "EAAGm0PX4ZCpsBAKZCZAbc123"
        encrypted = cipher.encrypt(token)

        assert encrypted.startswith(f"{TOKEN_PREFIX}:")
        assert token not in encrypted
        assert cipher.decrypt(encrypted) == token

    def test_unicode_token(self, cipher):
        token = "tøken-✓"
        assert cipher.decrypt(cipher.encrypt(token)) == token

    def test_fresh_iv_per_encryption(self, cipher):
        assert cipher.encrypt("same") != cipher.encrypt("same")

    def test_format_has_iv_tag_and_payload(self, cipher):
        prefix, iv, tag, payload = cipher.encrypt("abc").split(":")
        assert prefix == TOKEN_PREFIX
        assert len(base64.b64decode(iv)) == 12
        assert len(base64.b64decode(tag)) == 16
        assert len(base64.b64decode(payload)) == 3

    def test_key_from_config(self, monkeypatch):
        from adpulse.core.config import Config
        monkeypatch.setattr(Config, "META_TOKEN_ENC_KEY", KEY_B64)
        configured = TokenCipher.from_config()
        assert configured.has_key
        assert TokenCipher(KEY_BYTES).decrypt(configured.encrypt("tok")) == "tok"


class TestPassThrough:

    def test_plaintext_token_is_returned_unchanged(self, cipher):
        assert cipher.decrypt("EAAlegacyplaintext") == "EAAlegacyplaintext"

    def test_empty_decrypts_to_none(self, cipher):
        assert cipher.decrypt("") is None
        assert cipher.decrypt(None) is None

    def test_encrypt_without_key_returns_token(self):
        assert TokenCipher().encrypt("plain") == "plain"

    def test_encrypt_empty_returns_empty(self, cipher):
        assert cipher.encrypt("") == ""

    def test_invalid_key_length_raises(self):
        with pytest.raises(ValueError):
            TokenCipher(b"short")


class TestDecryptFailures:

    def test_encrypted_token_without_key(self, cipher, caplog):
        encrypted = cipher.encrypt("secret")
        with caplog.at_level(logging.ERROR):
            assert TokenCipher().decrypt(encrypted) is None
        assert "META_TOKEN_ENC_KEY" in caplog.text

    def test_wrong_key(self, cipher):
        encrypted = cipher.encrypt("secret")
        assert TokenCipher(b"x" * 32).decrypt(encrypted) is None

    def test_tampered_payload(self, cipher):
        prefix, iv, tag, payload = cipher.encrypt("secret").split(":")
        raw = bytearray(base64.b64decode(payload))
        raw[0] ^= 0xFF
        tampered = ":".join([prefix, iv, tag, base64.b64encode(bytes(raw)).decode("ascii")])
        assert cipher.decrypt(tampered) is None

    @pytest.mark.parametrize("token", [
        "enc.v1:",
        "enc.v1:abc",
        "enc.v1:abc:def",
        "enc.v1:::",
        "enc.v1:!!!:###:$$$",
    ])
    def test_malformed(self, cipher, token):
        assert cipher.decrypt(token) is None
