"""Tests for the AES-256-GCM envelope."""

from dataclasses import replace

import pytest

from skillsync.crypto.aead import b64decode, b64encode, decrypt, decrypt_string, encrypt, encrypt_string
from skillsync.crypto.secure_bytes import SecureBytes
from skillsync.exceptions import CryptoError, IntegrityError
from skillsync.models.crypto import IV_SIZE, TAG_SIZE, EncryptedEnvelope


def test_encrypt_then_decrypt_returns_plaintext(master_key: bytes) -> None:
    envelope = encrypt(b"hello skills", master_key)

    assert decrypt(envelope, master_key) == b"hello skills"


def test_encrypt_produces_sized_iv_and_tag(master_key: bytes) -> None:
    envelope = encrypt(b"payload", master_key)

    assert len(envelope.iv) == IV_SIZE
    assert len(envelope.tag) == TAG_SIZE
    assert len(envelope.ciphertext) == len(b"payload")


def test_encrypt_uses_fresh_iv_each_time(master_key: bytes) -> None:
    first = encrypt(b"same", master_key)
    second = encrypt(b"same", master_key)

    assert first.iv != second.iv
    assert first.ciphertext != second.ciphertext


def test_encrypt_empty_plaintext(master_key: bytes) -> None:
    envelope = encrypt(b"", master_key)

    assert envelope.ciphertext == b""
    assert decrypt(envelope, master_key) == b""


def test_encrypt_accepts_secure_bytes_key(master_key: bytes) -> None:
    key = SecureBytes(master_key)

    envelope = encrypt(b"data", key)

    assert decrypt(envelope, master_key) == b"data"


def test_decrypt_with_wrong_key_raises_integrity_error(master_key: bytes) -> None:
    envelope = encrypt(b"secret", master_key)

    with pytest.raises(IntegrityError):
        decrypt(envelope, bytes(32))


def test_decrypt_with_tampered_ciphertext_raises(master_key: bytes) -> None:
    envelope = encrypt(b"secret", master_key)
    flipped = bytes([envelope.ciphertext[0] ^ 0x01]) + envelope.ciphertext[1:]
    tampered = EncryptedEnvelope(ciphertext=flipped, iv=envelope.iv, tag=envelope.tag)

    with pytest.raises(IntegrityError):
        decrypt(tampered, master_key)


def test_decrypt_with_tampered_tag_raises(master_key: bytes) -> None:
    envelope = encrypt(b"secret", master_key)
    tag = bytes([envelope.tag[0] ^ 0x80]) + envelope.tag[1:]
    tampered = EncryptedEnvelope(ciphertext=envelope.ciphertext, iv=envelope.iv, tag=tag)

    with pytest.raises(IntegrityError):
        decrypt(tampered, master_key)


@pytest.mark.parametrize("field", ["ciphertext", "iv", "tag"])
@pytest.mark.parametrize("position", ["first", "middle", "last"])
def test_any_flipped_bit_raises_integrity_error(
    master_key: bytes, field: str, position: str
) -> None:
    envelope = encrypt(b"a skill body long enough to have a middle", master_key)
    data = bytearray(getattr(envelope, field))
    index = {"first": 0, "middle": len(data) // 2, "last": len(data) - 1}[position]
    data[index] ^= 0x01
    tampered = replace(envelope, **{field: bytes(data)})

    with pytest.raises(IntegrityError):
        decrypt(tampered, master_key)


@pytest.mark.parametrize("size", [0, 16, 31, 33])
def test_wrong_key_size_raises_crypto_error(size: int) -> None:
    with pytest.raises(CryptoError):
        encrypt(b"data", bytes(size))


def test_string_helpers_use_base64_wire_fields(master_key: bytes) -> None:
    fields = encrypt_string("héllo wörld", master_key)

    assert set(fields) == {"encryptedData", "iv", "tag"}
    assert decrypt_string(fields, master_key) == "héllo wörld"


def test_decrypt_string_with_malformed_fields_raises(master_key: bytes) -> None:
    with pytest.raises(IntegrityError):
        decrypt_string({"encryptedData": "AAAA", "iv": "not base64!"}, master_key)


def test_b64decode_rejects_invalid_input() -> None:
    assert b64decode(b64encode(b"\x00\xff")) == b"\x00\xff"

    with pytest.raises(CryptoError):
        b64decode("***")
