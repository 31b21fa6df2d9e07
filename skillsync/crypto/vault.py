"""
Key hierarchy management.

Handles the chain of keys:
Passphrase (or recovery key) → Derived Key → Master Key → Skill content

The master key is random and encrypts every skill. It is only ever stored
wrapped by a derived key, so changing the passphrase re-wraps one 32-byte key
and never touches skill content.

Wrapped master key layout (compatibility contract with the server):
    bytes [0, 12)  iv
    bytes [12, 28) tag
    bytes [28, …)  ciphertext
"""

import asyncio
import os
from dataclasses import dataclass

import structlog

from skillsync.crypto.aead import decrypt, encrypt
from skillsync.crypto.kdf import DEFAULT_KDF_PARAMS, DerivedKey, KdfParams, derive_key, generate_salt
from skillsync.crypto.recovery import generate_recovery_key, parse_recovery_key
from skillsync.crypto.secure_bytes import SecureBytes
from skillsync.exceptions import (
    CryptoError,
    IntegrityError,
    InvalidPassphraseError,
    InvalidRecoveryKeyError,
)
from skillsync.models.crypto import IV_SIZE, KEY_SIZE, TAG_SIZE, EncryptedEnvelope, RecoveryKey

logger = structlog.get_logger(__name__)

_HEADER_SIZE = IV_SIZE + TAG_SIZE


@dataclass(frozen=True, kw_only=True)
class VaultSetup:
    """
    Everything produced when an account vault is first created.

    ``recovery_key`` must be shown to the user once and then forgotten.
    ``salt``, ``wrapped_master_key`` and ``recovery_wrapped_master_key`` are
    safe to store server-side.
    """

    master_key: SecureBytes
    salt: bytes
    wrapped_master_key: bytes
    recovery_key: RecoveryKey
    recovery_wrapped_master_key: bytes


def generate_master_key() -> SecureBytes:
    return SecureBytes(os.urandom(KEY_SIZE))


def wrap_master_key(master_key: SecureBytes | bytes, derived_key: DerivedKey) -> bytes:
    """Encrypt the master key under a derived key into the iv‖tag‖ciphertext blob."""
    envelope = encrypt(bytes(master_key), derived_key.key)
    return envelope.iv + envelope.tag + envelope.ciphertext


def unwrap_master_key(blob: bytes, derived_key: DerivedKey) -> SecureBytes:
    """
    Slice and decrypt a wrapped master key blob.

    Raises:
        IntegrityError: If the blob is truncated, fails tag verification or
            does not hold a 32-byte key.
    """
    if len(blob) <= _HEADER_SIZE:
        raise IntegrityError(f"Wrapped master key too short: {len(blob)} bytes")

    envelope = EncryptedEnvelope(
        iv=blob[:IV_SIZE],
        tag=blob[IV_SIZE:_HEADER_SIZE],
        ciphertext=blob[_HEADER_SIZE:],
    )
    master_key = SecureBytes(decrypt(envelope, derived_key.key))
    if len(master_key) != KEY_SIZE:
        master_key.clear()
        raise IntegrityError("Unwrapped master key has the wrong size")
    return master_key


class KeyVault:
    """
    Creates, unlocks and re-wraps the account master key.

    Every unlock failure collapses into a single error type per secret
    source, so callers cannot tell a wrong passphrase from a corrupted blob.
    """

    def __init__(self, kdf_params: KdfParams = DEFAULT_KDF_PARAMS) -> None:
        """
        Args:
            kdf_params: Argon2id cost parameters. Changing them changes every
                derived key; all clients of an account must agree.
        """
        self._kdf_params = kdf_params

    def setup(self, passphrase: str) -> VaultSetup:
        """
        Create a new vault for an account.

        Args:
            passphrase: User-chosen passphrase.

        Returns:
            VaultSetup with the master key, its wrapped forms, salt and recovery key.
        """
        if not passphrase:
            msg = "Passphrase must not be empty"
            raise ValueError(msg)

        salt = generate_salt()
        master_key = generate_master_key()
        recovery_key = generate_recovery_key()

        derived = derive_key(passphrase, salt, self._kdf_params)
        recovery_derived = derive_key(recovery_key.data, salt, self._kdf_params)
        try:
            wrapped = wrap_master_key(master_key, derived)
            recovery_wrapped = wrap_master_key(master_key, recovery_derived)
        finally:
            derived.clear()
            recovery_derived.clear()

        logger.debug("Vault created")
        return VaultSetup(
            master_key=master_key,
            salt=salt,
            wrapped_master_key=wrapped,
            recovery_key=recovery_key,
            recovery_wrapped_master_key=recovery_wrapped,
        )

    def unlock(self, passphrase: str, salt: bytes, wrapped_master_key: bytes) -> SecureBytes:
        """
        Unwrap the master key with a passphrase.

        Raises:
            InvalidPassphraseError: On any failure.
        """
        try:
            derived = derive_key(passphrase, salt, self._kdf_params)
        except CryptoError:
            raise InvalidPassphraseError() from None
        try:
            master_key = unwrap_master_key(wrapped_master_key, derived)
        except CryptoError:
            # Wrong passphrase and corrupted blob are reported identically.
            raise InvalidPassphraseError() from None
        finally:
            derived.clear()

        logger.debug("Vault unlocked", source="passphrase")
        return master_key

    def unlock_with_recovery(
        self,
        recovery_key: str | RecoveryKey,
        salt: bytes,
        wrapped_master_key: bytes,
    ) -> SecureBytes:
        """
        Unwrap the master key with a recovery key.

        Args:
            recovery_key: Recovery key text (any case, hyphen or space separated)
                or an already parsed RecoveryKey.
            salt: Account salt.
            wrapped_master_key: Master key blob wrapped by the recovery-derived key.

        Raises:
            MalformedRecoveryInputError: If the text is not 8 known words.
            InvalidRecoveryKeyError: If unwrapping fails.
        """
        if isinstance(recovery_key, str):
            recovery_key = parse_recovery_key(recovery_key)

        try:
            derived = derive_key(recovery_key.data, salt, self._kdf_params)
        except CryptoError:
            raise InvalidRecoveryKeyError() from None
        try:
            master_key = unwrap_master_key(wrapped_master_key, derived)
        except CryptoError:
            raise InvalidRecoveryKeyError() from None
        finally:
            derived.clear()

        logger.debug("Vault unlocked", source="recovery_key")
        return master_key

    def rewrap(self, master_key: SecureBytes, new_passphrase: str, salt: bytes) -> bytes:
        """
        Wrap an unlocked master key under a new passphrase.

        Skill content stays valid: only the wrapped blob changes.
        """
        if not new_passphrase:
            msg = "Passphrase must not be empty"
            raise ValueError(msg)

        derived = derive_key(new_passphrase, salt, self._kdf_params)
        try:
            return wrap_master_key(master_key, derived)
        finally:
            derived.clear()

    def change_passphrase(
        self,
        old_passphrase: str,
        new_passphrase: str,
        salt: bytes,
        wrapped_master_key: bytes,
    ) -> bytes:
        """
        Re-wrap the master key under a new passphrase.

        Raises:
            InvalidPassphraseError: If the old passphrase does not unlock the vault.
        """
        with self.unlock(old_passphrase, salt, wrapped_master_key) as master_key:
            return self.rewrap(master_key, new_passphrase, salt)

    async def setup_async(self, passphrase: str) -> VaultSetup:
        return await asyncio.to_thread(self.setup, passphrase)

    async def unlock_async(
        self, passphrase: str, salt: bytes, wrapped_master_key: bytes
    ) -> SecureBytes:
        return await asyncio.to_thread(self.unlock, passphrase, salt, wrapped_master_key)

    async def unlock_with_recovery_async(
        self,
        recovery_key: str | RecoveryKey,
        salt: bytes,
        wrapped_master_key: bytes,
    ) -> SecureBytes:
        return await asyncio.to_thread(
            self.unlock_with_recovery, recovery_key, salt, wrapped_master_key
        )

    async def rewrap_async(
        self, master_key: SecureBytes, new_passphrase: str, salt: bytes
    ) -> bytes:
        return await asyncio.to_thread(self.rewrap, master_key, new_passphrase, salt)
