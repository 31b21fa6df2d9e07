"""Tests for the key vault (passphrase and recovery key hierarchy)."""

import pytest

from skillsync.crypto.aead import decrypt, encrypt
from skillsync.crypto.kdf import KdfParams, derive_key
from skillsync.crypto.recovery import format_recovery_key, parse_recovery_key
from skillsync.crypto.vault import KeyVault, unwrap_master_key, wrap_master_key
from skillsync.exceptions import (
    IntegrityError,
    InvalidPassphraseError,
    InvalidRecoveryKeyError,
    MalformedRecoveryInputError,
)

PASSPHRASE = "correct horse battery staple"


@pytest.fixture
def vault(fast_kdf: KdfParams) -> KeyVault:
    return KeyVault(fast_kdf)


def test_wrapped_blob_layout(fast_kdf: KdfParams, master_key: bytes) -> None:
    derived = derive_key(PASSPHRASE, bytes(16), fast_kdf)

    blob = wrap_master_key(master_key, derived)

    # iv (12) + tag (16) + 32-byte key
    assert len(blob) == 60
    assert bytes(unwrap_master_key(blob, derived)) == master_key


def test_unwrap_rejects_truncated_blob(fast_kdf: KdfParams) -> None:
    derived = derive_key(PASSPHRASE, bytes(16), fast_kdf)

    with pytest.raises(IntegrityError):
        unwrap_master_key(bytes(28), derived)


def test_setup_then_unlock_returns_same_master_key(vault: KeyVault) -> None:
    setup = vault.setup(PASSPHRASE)

    master_key = vault.unlock(PASSPHRASE, setup.salt, setup.wrapped_master_key)

    assert master_key == setup.master_key
    assert len(setup.salt) == 16


def test_setup_rejects_empty_passphrase(vault: KeyVault) -> None:
    with pytest.raises(ValueError):
        vault.setup("")


def test_unlock_with_wrong_passphrase_raises(vault: KeyVault) -> None:
    setup = vault.setup(PASSPHRASE)

    with pytest.raises(InvalidPassphraseError):
        vault.unlock("wrong passphrase", setup.salt, setup.wrapped_master_key)


def test_unlock_with_corrupted_blob_reports_invalid_passphrase(vault: KeyVault) -> None:
    setup = vault.setup(PASSPHRASE)
    blob = bytearray(setup.wrapped_master_key)
    blob[-1] ^= 0xFF

    with pytest.raises(InvalidPassphraseError):
        vault.unlock(PASSPHRASE, setup.salt, bytes(blob))


def test_recovery_key_unlocks_same_master_key(vault: KeyVault) -> None:
    setup = vault.setup(PASSPHRASE)
    text = format_recovery_key(setup.recovery_key).lower().replace("-", " ")

    master_key = vault.unlock_with_recovery(text, setup.salt, setup.recovery_wrapped_master_key)

    assert master_key == setup.master_key


def test_wrong_recovery_key_raises(vault: KeyVault) -> None:
    setup = vault.setup(PASSPHRASE)
    words = list(setup.recovery_key.words)
    words[0] = "maple" if words[0] != "maple" else "apple"

    with pytest.raises(InvalidRecoveryKeyError):
        vault.unlock_with_recovery(
            parse_recovery_key(" ".join(words)), setup.salt, setup.recovery_wrapped_master_key
        )


def test_malformed_recovery_text_is_reported_before_unwrapping(vault: KeyVault) -> None:
    setup = vault.setup(PASSPHRASE)

    with pytest.raises(MalformedRecoveryInputError):
        vault.unlock_with_recovery("apple armor", setup.salt, setup.recovery_wrapped_master_key)


def test_change_passphrase_keeps_existing_ciphertext_readable(vault: KeyVault) -> None:
    setup = vault.setup(PASSPHRASE)
    envelope = encrypt(b"skill content", setup.master_key)

    rewrapped = vault.change_passphrase(
        PASSPHRASE, "new passphrase", setup.salt, setup.wrapped_master_key
    )

    master_key = vault.unlock("new passphrase", setup.salt, rewrapped)
    assert decrypt(envelope, master_key) == b"skill content"
    with pytest.raises(InvalidPassphraseError):
        vault.unlock(PASSPHRASE, setup.salt, rewrapped)


def test_change_passphrase_with_wrong_old_passphrase_raises(vault: KeyVault) -> None:
    setup = vault.setup(PASSPHRASE)

    with pytest.raises(InvalidPassphraseError):
        vault.change_passphrase("nope", "new", setup.salt, setup.wrapped_master_key)


def test_recovery_blob_still_works_after_passphrase_change(vault: KeyVault) -> None:
    setup = vault.setup(PASSPHRASE)
    vault.change_passphrase(PASSPHRASE, "new passphrase", setup.salt, setup.wrapped_master_key)

    master_key = vault.unlock_with_recovery(
        setup.recovery_key, setup.salt, setup.recovery_wrapped_master_key
    )

    assert master_key == setup.master_key


@pytest.mark.asyncio
async def test_async_variants(vault: KeyVault) -> None:
    setup = await vault.setup_async(PASSPHRASE)

    master_key = await vault.unlock_async(PASSPHRASE, setup.salt, setup.wrapped_master_key)
    rewrapped = await vault.rewrap_async(master_key, "other", setup.salt)

    assert await vault.unlock_async("other", setup.salt, rewrapped) == setup.master_key
