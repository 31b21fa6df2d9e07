"""
AES-256-GCM envelope used for every stored object.

The iv is generated here from the OS random source and never supplied by
callers. Decryption verifies the tag before any plaintext is returned.
"""

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from skillsync.crypto.secure_bytes import SecureBytes
from skillsync.exceptions import CryptoError, IntegrityError
from skillsync.models.crypto import IV_SIZE, KEY_SIZE, TAG_SIZE, EncryptedEnvelope

KeyLike = bytes | bytearray | SecureBytes


def _load_key(key: KeyLike) -> AESGCM:
    if len(key) != KEY_SIZE:
        raise CryptoError(f"Key must be {KEY_SIZE} bytes, got {len(key)}")
    return AESGCM(bytes(key))


def encrypt(plaintext: bytes, key: KeyLike) -> EncryptedEnvelope:
    """
    Encrypt bytes under a 256-bit key.

    Args:
        plaintext: Data to encrypt.
        key: 32-byte symmetric key.

    Returns:
        Envelope with ciphertext, fresh iv and tag.

    Raises:
        CryptoError: If the key has the wrong size.
    """
    aesgcm = _load_key(key)
    iv = os.urandom(IV_SIZE)
    sealed = aesgcm.encrypt(iv, plaintext, None)
    return EncryptedEnvelope(ciphertext=sealed[:-TAG_SIZE], iv=iv, tag=sealed[-TAG_SIZE:])


def decrypt(envelope: EncryptedEnvelope, key: KeyLike) -> bytes:
    """
    Verify and decrypt an envelope.

    Args:
        envelope: Output of :func:`encrypt`.
        key: The key used for encryption.

    Returns:
        The original plaintext.

    Raises:
        IntegrityError: If the tag does not verify (wrong key, tampered data).
        CryptoError: If the key has the wrong size.
    """
    aesgcm = _load_key(key)
    try:
        return aesgcm.decrypt(envelope.iv, envelope.ciphertext + envelope.tag, None)
    except InvalidTag as e:
        raise IntegrityError("Authentication tag mismatch") from e


def encrypt_string(plaintext: str, key: KeyLike) -> dict[str, str]:
    """Encrypt UTF-8 text; returns base64 ``encryptedData``/``iv``/``tag`` fields."""
    return encrypt(plaintext.encode("utf-8"), key).to_wire()


def decrypt_string(fields: dict[str, str], key: KeyLike) -> str:
    """
    Decrypt base64 fields produced by :func:`encrypt_string`.

    Raises:
        IntegrityError: If the fields are malformed or the tag does not verify.
    """
    try:
        envelope = EncryptedEnvelope.from_wire(fields)
    except ValueError as e:
        raise IntegrityError(f"Malformed envelope: {e}") from e
    plaintext = decrypt(envelope, key)
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise IntegrityError("Decrypted payload is not valid UTF-8") from e


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(text: str) -> bytes:
    """
    Raises:
        CryptoError: If the text is not valid base64.
    """
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CryptoError(f"Invalid base64 data: {e}") from e
