"""Tests for Argon2id key derivation."""

import pytest

from skillsync.crypto.kdf import KdfParams, derive_key, derive_key_async, generate_salt
from skillsync.crypto.secure_bytes import SecureBytes
from skillsync.exceptions import CryptoError

SALT = bytes(range(16))


def test_derive_key_is_deterministic(fast_kdf: KdfParams) -> None:
    first = derive_key("correct horse", SALT, fast_kdf)
    second = derive_key("correct horse", SALT, fast_kdf)

    assert first.key == second.key
    assert len(first.key) == 32


def test_different_salts_give_different_keys(fast_kdf: KdfParams) -> None:
    first = derive_key("correct horse", SALT, fast_kdf)
    second = derive_key("correct horse", bytes(16), fast_kdf)

    assert first.key != second.key


def test_different_passphrases_give_different_keys(fast_kdf: KdfParams) -> None:
    first = derive_key("correct horse", SALT, fast_kdf)
    second = derive_key("correct horse!", SALT, fast_kdf)

    assert first.key != second.key


def test_text_and_its_utf8_bytes_derive_the_same_key(fast_kdf: KdfParams) -> None:
    from_text = derive_key("pässword", SALT, fast_kdf)
    from_bytes = derive_key("pässword".encode(), SALT, fast_kdf)
    from_secure = derive_key(SecureBytes("pässword".encode()), SALT, fast_kdf)

    assert from_text.key == from_bytes.key
    assert from_text.key == from_secure.key


def test_derive_key_does_not_clear_caller_secure_bytes(fast_kdf: KdfParams) -> None:
    secret = SecureBytes(b"recovery bytes")

    derive_key(secret, SALT, fast_kdf)

    assert not secret.is_cleared


def test_derive_key_rejects_wrong_salt_size(fast_kdf: KdfParams) -> None:
    with pytest.raises(CryptoError):
        derive_key("passphrase", b"short", fast_kdf)


def test_derived_key_clear_wipes_key(fast_kdf: KdfParams) -> None:
    derived = derive_key("passphrase", SALT, fast_kdf)

    derived.clear()

    assert derived.key.is_cleared
    assert derived.salt == SALT


def test_generate_salt_is_random_and_sized() -> None:
    assert len(generate_salt()) == 16
    assert generate_salt() != generate_salt()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"memory_cost": 4, "time_cost": 1, "parallelism": 1},
        {"memory_cost": 64, "time_cost": 0, "parallelism": 1},
        {"memory_cost": 64, "time_cost": 1, "parallelism": 0},
    ],
)
def test_kdf_params_validation(kwargs: dict[str, int]) -> None:
    with pytest.raises(ValueError):
        KdfParams(**kwargs)


@pytest.mark.asyncio
async def test_derive_key_async_matches_sync(fast_kdf: KdfParams) -> None:
    derived = await derive_key_async("passphrase", SALT, fast_kdf)

    assert derived.key == derive_key("passphrase", SALT, fast_kdf).key
