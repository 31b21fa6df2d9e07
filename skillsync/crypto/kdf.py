"""
Passphrase and recovery-key derivation with Argon2id.

The same function serves both secret sources: a passphrase is UTF-8 encoded,
a recovery key contributes its raw bytes.
"""

import asyncio
import os
from dataclasses import dataclass

from argon2.low_level import Type, hash_secret_raw

from skillsync.crypto.secure_bytes import SecureBytes
from skillsync.exceptions import CryptoError
from skillsync.models.crypto import KEY_SIZE

SALT_SIZE = 16


@dataclass(frozen=True, kw_only=True)
class KdfParams:
    """
    Argon2id cost parameters.

    Attributes:
        memory_cost: Memory in KiB.
        time_cost: Number of iterations.
        parallelism: Number of lanes.
    """

    memory_cost: int = 65536
    time_cost: int = 3
    parallelism: int = 4

    def __post_init__(self) -> None:
        if self.memory_cost < 8 * self.parallelism:
            msg = "memory_cost must be at least 8 KiB per lane"
            raise ValueError(msg)
        if self.time_cost < 1:
            msg = "time_cost must be positive"
            raise ValueError(msg)
        if self.parallelism < 1:
            msg = "parallelism must be positive"
            raise ValueError(msg)


DEFAULT_KDF_PARAMS = KdfParams()


@dataclass(frozen=True, kw_only=True)
class DerivedKey:
    """Key derived from a secret and a salt. Held in memory only."""

    key: SecureBytes
    salt: bytes

    def clear(self) -> None:
        self.key.clear()


def generate_salt() -> bytes:
    """Per-account salt. Not secret."""
    return os.urandom(SALT_SIZE)


def derive_key(
    secret: str | bytes | SecureBytes,
    salt: bytes,
    params: KdfParams = DEFAULT_KDF_PARAMS,
) -> DerivedKey:
    """
    Derive a 256-bit key from a passphrase or recovery-key bytes.

    Deterministic: the same (secret, salt, params) always yields the same key.

    Args:
        secret: Passphrase text or raw secret bytes.
        salt: 16-byte account salt.
        params: Argon2id cost parameters.

    Returns:
        DerivedKey with the key in a SecureBytes.

    Raises:
        CryptoError: If the salt has the wrong size.
    """
    if len(salt) != SALT_SIZE:
        raise CryptoError(f"Salt must be {SALT_SIZE} bytes, got {len(salt)}")

    if isinstance(secret, str):
        secret_bytes = SecureBytes.from_string(secret)
    elif isinstance(secret, SecureBytes):
        secret_bytes = secret.copy()
    else:
        secret_bytes = SecureBytes(secret)

    with secret_bytes:
        raw = hash_secret_raw(
            secret=bytes(secret_bytes),
            salt=salt,
            time_cost=params.time_cost,
            memory_cost=params.memory_cost,
            parallelism=params.parallelism,
            hash_len=KEY_SIZE,
            type=Type.ID,
        )
    return DerivedKey(key=SecureBytes(raw), salt=salt)


async def derive_key_async(
    secret: str | bytes | SecureBytes,
    salt: bytes,
    params: KdfParams = DEFAULT_KDF_PARAMS,
) -> DerivedKey:
    """Run :func:`derive_key` in a worker thread; the KDF is deliberately slow."""
    return await asyncio.to_thread(derive_key, secret, salt, params)
