"""
skillsync client facade.

This is the main entry point for users of the library. It wires the HTTP
client, the vault and the sync services together behind one async API.
"""

import asyncio
from collections.abc import Callable
from typing import Self

import httpx
import structlog

from skillsync.api.http_client import AsyncHttpClient, Session
from skillsync.config import SkillSyncConfig
from skillsync.core.rate_limit import RateLimiter
from skillsync.credentials import CredentialStore
from skillsync.crypto.kdf import DEFAULT_KDF_PARAMS, KdfParams
from skillsync.crypto.vault import KeyVault
from skillsync.models.auth import AuthTokens
from skillsync.models.crypto import RecoveryKey
from skillsync.models.skill import Skill
from skillsync.models.sync import BatchResult, SkillDiff, SkillHistory, SyncStatus
from skillsync.services.auth_service import AuthService
from skillsync.services.remote import HttpSkillRemote, SkillRemote
from skillsync.services.sync_index import SyncIndexStore
from skillsync.services.sync_service import SyncService
from skillsync.services.vault_service import VaultService
from skillsync.skills.dependencies import DependencyNode, build_dependency_graph
from skillsync.skills.library import SkillLibrary

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[str], None]


class SkillSyncClient:
    """
    Async client for end-to-end encrypted skill sync.

    Example:
        ```python
        async with SkillSyncClient() as client:
            await client.request_otp("me@example.com")
            await client.verify_otp("me@example.com", input("Code: "))

            recovery = await client.setup_vault("correct horse battery staple")
            print("Write this down:", format_recovery_key(recovery))

            result = await client.push(message="initial import")
            print(result.succeeded_count, "skills pushed")
        ```

    Args:
        config: Client configuration. Uses defaults if not provided.
        transport: Optional httpx transport for testing (mock transport).
        remote: Remote skill store to use instead of the HTTP API.
        kdf_params: Argon2id parameters; every client of an account must agree.
    """

    def __init__(
        self,
        config: SkillSyncConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        remote: SkillRemote | None = None,
        kdf_params: KdfParams = DEFAULT_KDF_PARAMS,
    ) -> None:
        self._config = config or SkillSyncConfig()
        self._transport = transport
        self._custom_remote = remote
        self._kdf_params = kdf_params

        self._http: AsyncHttpClient | None = None
        self._auth_service: AuthService | None = None
        self._vault_service: VaultService | None = None
        self._sync_service: SyncService | None = None
        self._library = SkillLibrary(self._config.claude_dir)

        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def __aenter__(self) -> Self:
        await self._ensure_initialized()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        await self.close()

    async def _ensure_initialized(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return

            credential_store = CredentialStore(self._config.credentials_path)
            self._http = AsyncHttpClient(
                self._config,
                transport=self._transport,
                on_session_refreshed=self._persist_session,
            )
            await self._http.__aenter__()

            otp_limiter = RateLimiter(self._config.otp_rate_limit, self._config.otp_rate_window)
            self._auth_service = AuthService(self._http, credential_store, otp_limiter)
            self._vault_service = VaultService(
                self._http, credential_store, KeyVault(self._kdf_params)
            )
            remote = self._custom_remote or HttpSkillRemote(
                self._http, cache_size=self._config.cache_size
            )
            self._sync_service = SyncService(
                self._config,
                remote,
                self._library,
                SyncIndexStore(self._config.sync_index_path),
            )

            await self._auth_service.restore_session()
            self._initialized = True
            logger.debug("Client initialized")

    async def close(self) -> None:
        """Lock the vault, close the HTTP client and release resources."""
        async with self._init_lock:
            if self._vault_service:
                self._vault_service.lock()
                self._vault_service = None

            if self._http:
                await self._http.__aexit__(None, None, None)
                self._http = None

            self._auth_service = None
            self._sync_service = None
            self._initialized = False
            logger.debug("Client closed")

    def _persist_session(self, session: Session) -> None:
        if self._auth_service is not None:
            self._auth_service.persist_session(session)

    async def _auth(self) -> AuthService:
        await self._ensure_initialized()
        if self._auth_service is None:
            raise RuntimeError("Client not initialized")
        return self._auth_service

    async def _vault(self) -> VaultService:
        await self._ensure_initialized()
        if self._vault_service is None:
            raise RuntimeError("Client not initialized")
        return self._vault_service

    async def _sync(self) -> SyncService:
        await self._ensure_initialized()
        if self._sync_service is None:
            raise RuntimeError("Client not initialized")
        return self._sync_service

    # Authentication

    async def request_otp(self, email: str) -> None:
        """
        Email a one-time login code.

        Raises:
            RateLimitError: If too many codes were requested for this email.
        """
        await (await self._auth()).request_otp(email)

    async def verify_otp(self, email: str, code: str) -> AuthTokens:
        """
        Log in with a one-time code. The session is saved for later runs.

        Raises:
            AuthenticationError: If the code is wrong or expired.
        """
        return await (await self._auth()).verify_otp(email, code)

    async def logout(self) -> None:
        """Lock the vault, end the session and forget saved credentials."""
        if self._vault_service:
            self._vault_service.lock()
        if self._auth_service:
            await self._auth_service.logout()

    @property
    def is_authenticated(self) -> bool:
        return self._auth_service is not None and self._auth_service.is_authenticated

    # Vault

    async def setup_vault(self, passphrase: str) -> RecoveryKey:
        """
        Create the account vault and unlock it.

        Returns:
            The recovery key. Show it once; it cannot be retrieved later.

        Raises:
            VaultError: If the account already has a vault.
        """
        (await self._auth()).require_authenticated()
        return await (await self._vault()).setup(passphrase)

    async def unlock(self, passphrase: str) -> None:
        """
        Raises:
            VaultNotInitializedError: If the account has no vault yet.
            InvalidPassphraseError: If the passphrase is wrong.
        """
        (await self._auth()).require_authenticated()
        await (await self._vault()).unlock(passphrase)

    async def unlock_with_recovery(
        self, recovery_key: str | RecoveryKey, new_passphrase: str | None = None
    ) -> None:
        """
        Unlock with the recovery key, optionally setting a new passphrase.

        Raises:
            MalformedRecoveryInputError: If the text is not 8 known words.
            InvalidRecoveryKeyError: If the recovery key is wrong.
        """
        (await self._auth()).require_authenticated()
        await (await self._vault()).unlock_with_recovery(recovery_key, new_passphrase)

    async def change_passphrase(self, old_passphrase: str, new_passphrase: str) -> None:
        """
        Raises:
            InvalidPassphraseError: If the old passphrase is wrong.
        """
        (await self._auth()).require_authenticated()
        await (await self._vault()).change_passphrase(old_passphrase, new_passphrase)

    def lock(self) -> None:
        """Wipe the master key from memory."""
        if self._vault_service:
            self._vault_service.lock()

    @property
    def is_unlocked(self) -> bool:
        return self._vault_service is not None and self._vault_service.is_unlocked

    # Sync

    async def status(self) -> SyncStatus:
        return await (await self._sync()).status()

    async def push(
        self, message: str | None = None, on_progress: ProgressCallback | None = None
    ) -> BatchResult:
        """
        Push every changed local skill.

        Raises:
            VaultError: If the vault is locked.
            NetworkError: If the server is unreachable.
        """
        master_key = (await self._vault()).master_key
        return await (await self._sync()).push(master_key, message, on_progress)

    async def pull(self, on_progress: ProgressCallback | None = None) -> BatchResult:
        """
        Pull every skill whose remote version changed. Local files are overwritten.

        Raises:
            VaultError: If the vault is locked.
            NetworkError: If the server is unreachable.
        """
        master_key = (await self._vault()).master_key
        return await (await self._sync()).pull(master_key, on_progress)

    async def log(self, skill_key: str, limit: int | None = None) -> SkillHistory:
        return await (await self._sync()).log(skill_key, limit)

    async def checkout(self, skill_key: str, version_hash: str) -> Skill:
        """
        Restore one version of a skill into the local tree.

        Raises:
            VaultError: If the vault is locked.
            NotFoundError: If the version does not exist.
        """
        master_key = (await self._vault()).master_key
        return await (await self._sync()).checkout(master_key, skill_key, version_hash)

    async def diff(self, skill_key: str, old_hash: str, new_hash: str) -> SkillDiff:
        master_key = (await self._vault()).master_key
        return await (await self._sync()).diff(master_key, skill_key, old_hash, new_hash)

    async def delete_skill(self, skill_key: str) -> None:
        """Delete a skill and all its versions from the server. Local files are kept."""
        await (await self._sync()).delete_remote(skill_key)

    # Local library

    def list_local(self) -> list[Skill]:
        return self._library.list_all()

    def dependency_graph(self) -> dict[str, DependencyNode]:
        return build_dependency_graph(self._library.list_all())
