"""
Unit Tests: Text Encryption
"""

import base64

import pytest

from intentions_bot.core.exceptions import ConfigurationError, EncryptionError
from intentions_bot.crypto import EncryptedPayload, TextCipher


@pytest.fixture
def cipher():
    return TextCipher(TextCipher.generate_key())


def test_encrypt_then_decrypt_returns_plaintext(cipher):
    payload = cipher.encrypt("Learn Spanish 🇪🇸")
    assert cipher.decrypt(payload) == "Learn Spanish 🇪🇸"


def test_payload_fields_have_expected_sizes(cipher):
    payload = cipher.encrypt("hello")
    assert len(base64.b64decode(payload.iv_b64)) == 12
    assert len(base64.b64decode(payload.auth_tag_b64)) == 16
    assert len(base64.b64decode(payload.ciphertext_b64)) == len("hello")


def test_same_text_gets_fresh_iv(cipher):
    first = cipher.encrypt("same")
    second = cipher.encrypt("same")
    assert first.iv_b64 != second.iv_b64
    assert first.ciphertext_b64 != second.ciphertext_b64


def test_tampered_ciphertext_is_detected(cipher):
    payload = cipher.encrypt("secret")
    raw = bytearray(base64.b64decode(payload.ciphertext_b64))
    raw[0] ^= 0x01
    tampered = EncryptedPayload(
        ciphertext_b64=base64.b64encode(bytes(raw)).decode(),
        iv_b64=payload.iv_b64,
        auth_tag_b64=payload.auth_tag_b64,
    )

    with pytest.raises(EncryptionError):
        cipher.decrypt(tampered)


def test_wrong_key_gives_failed_result_instead_of_raising(cipher):
    payload = cipher.encrypt("secret")
    other = TextCipher(TextCipher.generate_key())

    result = other.try_decrypt(payload)

    assert not result.ok
    assert result.text_or("[unable to decrypt]") == "[unable to decrypt]"


def test_broken_base64_in_row_gives_failed_result(cipher):
    row = {"ciphertext_b64": "%%%", "iv_b64": "AAAA", "auth_tag_b64": "AAAA"}
    result = cipher.try_decrypt(EncryptedPayload.from_row(row))
    assert not result.ok


def test_empty_text_round_trip(cipher):
    assert cipher.try_decrypt(cipher.encrypt("")).text_or("x") == ""


@pytest.mark.parametrize("key", ["", "not-base64!!", base64.b64encode(b"short").decode()])
def test_invalid_key_is_a_configuration_error(key):
    with pytest.raises(ConfigurationError):
        TextCipher(key)
