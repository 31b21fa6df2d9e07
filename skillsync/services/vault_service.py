"""
Vault service: key material of the account and the unlocked master key.

The salt, the passphrase-wrapped master key and the recovery-wrapped master
key live on the server; the first two are cached in the local credentials
and used only when the server cannot be reached.
The unlocked master key lives only in memory, in a SecureBytes wiped by
:meth:`VaultService.lock`.
"""

import asyncio

import structlog

from skillsync.api.endpoints import account as account_api
from skillsync.api.http_client import AsyncHttpClient
from skillsync.credentials import Credentials, CredentialStore
from skillsync.crypto.secure_bytes import SecureBytes
from skillsync.crypto.vault import KeyVault
from skillsync.exceptions import NetworkError, NotFoundError, VaultError, VaultNotInitializedError
from skillsync.models.crypto import RecoveryKey

logger = structlog.get_logger(__name__)


class VaultService:
    """
    Creates, unlocks and re-keys the account vault.

    Concurrency:
    - Methods changing the held master key are serialized by an internal lock
    """

    def __init__(
        self,
        http_client: AsyncHttpClient,
        credential_store: CredentialStore,
        vault: KeyVault,
    ) -> None:
        """
        Args:
            http_client: HTTP client for API requests.
            credential_store: Local cache of the wrapped key and salt.
            vault: Key hierarchy operations.
        """
        self._http = http_client
        self._store = credential_store
        self._vault = vault
        self._master_key: SecureBytes | None = None
        self._lock = asyncio.Lock()

    @property
    def is_unlocked(self) -> bool:
        return self._master_key is not None and not self._master_key.is_cleared

    @property
    def master_key(self) -> SecureBytes:
        """
        Raises:
            VaultError: If the vault is locked.
        """
        if self._master_key is None or self._master_key.is_cleared:
            msg = "Vault is locked. Call unlock() first."
            raise VaultError(msg)
        return self._master_key

    async def setup(self, passphrase: str) -> RecoveryKey:
        """
        Create the account vault and leave it unlocked.

        Uploads the salt, the wrapped master key and the recovery blob.

        Returns:
            The recovery key. It is not stored anywhere; show it to the user once.

        Raises:
            VaultError: If the account already has a vault.
        """
        async with self._lock:
            account = await account_api.get_account(self._http)
            if account.has_salt:
                msg = "Vault already exists for this account"
                raise VaultError(msg)

            setup = await self._vault.setup_async(passphrase)
            await account_api.set_salt(self._http, setup.salt)
            await account_api.set_master_key(self._http, setup.wrapped_master_key)
            await account_api.set_recovery_blob(self._http, setup.recovery_wrapped_master_key)
            self._save_material(setup.wrapped_master_key, setup.salt)
            self._replace_key(setup.master_key)

        logger.info("Vault created")
        return setup.recovery_key

    async def unlock(self, passphrase: str) -> None:
        """
        Raises:
            VaultNotInitializedError: If the account has no vault.
            InvalidPassphraseError: If the passphrase is wrong.
        """
        async with self._lock:
            wrapped, salt = await self._load_material()
            master_key = await self._vault.unlock_async(passphrase, salt, wrapped)
            self._replace_key(master_key)
        logger.info("Vault unlocked")

    async def unlock_with_recovery(
        self, recovery_key: str | RecoveryKey, new_passphrase: str | None = None
    ) -> None:
        """
        Unlock with the recovery key, optionally setting a new passphrase.

        Raises:
            VaultNotInitializedError: If the account has no recovery blob.
            MalformedRecoveryInputError: If the recovery text is not 8 known words.
            InvalidRecoveryKeyError: If the recovery key is wrong.
        """
        async with self._lock:
            _, salt = await self._load_material()
            try:
                blob = await account_api.get_recovery_blob(self._http)
            except NotFoundError as e:
                msg = "No recovery key is registered for this account"
                raise VaultNotInitializedError(msg) from e

            master_key = await self._vault.unlock_with_recovery_async(recovery_key, salt, blob)
            self._replace_key(master_key)
            if new_passphrase is not None:
                await self._rewrap(master_key, new_passphrase, salt)
        logger.info("Vault unlocked with recovery key", passphrase_reset=new_passphrase is not None)

    async def change_passphrase(self, old_passphrase: str, new_passphrase: str) -> None:
        """
        Re-wrap the master key under a new passphrase. Skill content is untouched.

        Raises:
            InvalidPassphraseError: If the old passphrase is wrong.
        """
        async with self._lock:
            wrapped, salt = await self._load_material()
            master_key = await self._vault.unlock_async(old_passphrase, salt, wrapped)
            self._replace_key(master_key)
            await self._rewrap(master_key, new_passphrase, salt)
        logger.info("Passphrase changed")

    def lock(self) -> None:
        """Wipe the master key from memory."""
        if self._master_key is not None:
            self._master_key.clear()
            self._master_key = None
            logger.debug("Vault locked")

    async def _rewrap(self, master_key: SecureBytes, new_passphrase: str, salt: bytes) -> None:
        wrapped = await self._vault.rewrap_async(master_key, new_passphrase, salt)
        await account_api.set_master_key(self._http, wrapped)
        self._save_material(wrapped, salt)

    def _replace_key(self, master_key: SecureBytes) -> None:
        if self._master_key is not None and self._master_key is not master_key:
            self._master_key.clear()
        self._master_key = master_key

    async def _load_material(self) -> tuple[bytes, bytes]:
        """
        Wrapped master key and salt, from the server or, when it cannot be
        reached, from the local cache.

        The cache is refreshed whenever the server copy differs, so a
        passphrase changed on another device takes effect here too.
        """
        try:
            stored = await account_api.get_master_key(self._http)
            salt = stored.salt if stored.salt is not None else await account_api.get_salt(self._http)
        except NotFoundError as e:
            msg = "No vault exists for this account. Call setup_vault() first."
            raise VaultNotInitializedError(msg) from e
        except NetworkError as e:
            credentials = self._store.load()
            if credentials is None or not credentials.has_vault:
                raise
            logger.warning("Server unreachable, using cached key material", error=str(e))
            return credentials.wrapped_master_key, credentials.salt  # type: ignore[return-value]

        cached = self._store.load()
        if cached is None or cached.wrapped_master_key != stored.blob or cached.salt != salt:
            self._save_material(stored.blob, salt)
            logger.debug("Cached key material updated")
        return stored.blob, salt

    def _save_material(self, wrapped: bytes, salt: bytes) -> None:
        credentials = self._store.load() or Credentials()
        self._store.save(
            Credentials(
                access_token=credentials.access_token,
                refresh_token=credentials.refresh_token,
                email=credentials.email,
                wrapped_master_key=wrapped,
                salt=salt,
            )
        )
