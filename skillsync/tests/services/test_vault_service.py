"""Tests for VaultService against the fake server."""

from collections.abc import AsyncIterator, Callable
from pathlib import Path

import pytest
import pytest_asyncio

from skillsync.api.http_client import AsyncHttpClient
from skillsync.config import SkillSyncConfig
from skillsync.credentials import CredentialStore
from skillsync.crypto.kdf import KdfParams
from skillsync.crypto.recovery import format_recovery_key
from skillsync.crypto.vault import KeyVault
from skillsync.exceptions import (
    InvalidPassphraseError,
    InvalidRecoveryKeyError,
    NetworkError,
    VaultError,
    VaultNotInitializedError,
)
from skillsync.services.vault_service import VaultService
from skillsync.tests.fake_server import FakeSyncServer

PASSPHRASE = "correct horse battery staple"
WRONG_RECOVERY = "apple apple apple apple apple apple apple apple"

MakeService = Callable[[], VaultService]


@pytest.fixture
def server() -> FakeSyncServer:
    return FakeSyncServer()


@pytest.fixture
def store(config: SkillSyncConfig) -> CredentialStore:
    return CredentialStore(config.credentials_path)


@pytest_asyncio.fixture
async def http(config: SkillSyncConfig, server: FakeSyncServer) -> AsyncIterator[AsyncHttpClient]:
    async with AsyncHttpClient(config, transport=server) as client:
        tokens = server.issue_tokens()
        await client.set_session(tokens["accessToken"], tokens["refreshToken"])
        yield client


@pytest.fixture
def make_service(
    http: AsyncHttpClient, store: CredentialStore, fast_kdf: KdfParams
) -> MakeService:
    def _make() -> VaultService:
        return VaultService(http, store, KeyVault(fast_kdf))

    return _make


@pytest.fixture
def vault_service(make_service: MakeService) -> VaultService:
    return make_service()


@pytest.mark.asyncio
async def test_setup_uploads_material_and_unlocks(
    vault_service: VaultService, server: FakeSyncServer, store: CredentialStore
) -> None:
    recovery = await vault_service.setup(PASSPHRASE)

    assert vault_service.is_unlocked
    assert len(recovery.words) == 8
    assert server.salt is not None and len(server.salt) == 16
    assert server.master_key is not None and len(server.master_key) == 60
    assert server.recovery_blob is not None
    saved = store.load()
    assert saved is not None
    assert saved.wrapped_master_key == server.master_key
    assert saved.salt == server.salt


@pytest.mark.asyncio
async def test_setup_twice_is_refused(vault_service: VaultService) -> None:
    await vault_service.setup(PASSPHRASE)

    with pytest.raises(VaultError, match="already exists"):
        await vault_service.setup(PASSPHRASE)


@pytest.mark.asyncio
async def test_unlock_on_new_device_fetches_material(
    vault_service: VaultService, make_service: MakeService, store: CredentialStore
) -> None:
    await vault_service.setup(PASSPHRASE)
    expected = bytes(vault_service.master_key)
    store.delete()

    other_device = make_service()
    await other_device.unlock(PASSPHRASE)

    assert bytes(other_device.master_key) == expected
    saved = store.load()
    assert saved is not None and saved.has_vault


@pytest.mark.asyncio
async def test_unlock_falls_back_to_cache_when_server_unreachable(
    vault_service: VaultService, make_service: MakeService, server: FakeSyncServer
) -> None:
    await vault_service.setup(PASSPHRASE)
    expected = bytes(vault_service.master_key)
    server.reachable = False

    service = make_service()
    await service.unlock(PASSPHRASE)

    assert bytes(service.master_key) == expected


@pytest.mark.asyncio
async def test_unlock_without_cache_needs_server(
    vault_service: VaultService,
    make_service: MakeService,
    server: FakeSyncServer,
    store: CredentialStore,
) -> None:
    await vault_service.setup(PASSPHRASE)
    store.delete()
    server.reachable = False

    with pytest.raises(NetworkError):
        await make_service().unlock(PASSPHRASE)


@pytest.mark.asyncio
async def test_passphrase_change_reaches_other_device(
    vault_service: VaultService,
    http: AsyncHttpClient,
    server: FakeSyncServer,
    fast_kdf: KdfParams,
    tmp_path: Path,
) -> None:
    await vault_service.setup(PASSPHRASE)
    expected = bytes(vault_service.master_key)
    desktop_store = CredentialStore(tmp_path / "desktop" / "credentials.json")
    await VaultService(http, desktop_store, KeyVault(fast_kdf)).unlock(PASSPHRASE)

    await vault_service.change_passphrase(PASSPHRASE, "new passphrase")

    desktop = VaultService(http, desktop_store, KeyVault(fast_kdf))
    with pytest.raises(InvalidPassphraseError):
        await desktop.unlock(PASSPHRASE)
    await desktop.unlock("new passphrase")
    assert bytes(desktop.master_key) == expected
    saved = desktop_store.load()
    assert saved is not None
    assert saved.wrapped_master_key == server.master_key


@pytest.mark.asyncio
async def test_unlock_without_vault_raises(vault_service: VaultService) -> None:
    with pytest.raises(VaultNotInitializedError):
        await vault_service.unlock(PASSPHRASE)


@pytest.mark.asyncio
async def test_unlock_with_wrong_passphrase(
    vault_service: VaultService, make_service: MakeService
) -> None:
    await vault_service.setup(PASSPHRASE)

    service = make_service()
    with pytest.raises(InvalidPassphraseError):
        await service.unlock("wrong")
    assert not service.is_unlocked


@pytest.mark.asyncio
async def test_master_key_requires_unlock(vault_service: VaultService) -> None:
    with pytest.raises(VaultError, match="locked"):
        _ = vault_service.master_key


@pytest.mark.asyncio
async def test_lock_wipes_key(vault_service: VaultService) -> None:
    await vault_service.setup(PASSPHRASE)
    key = vault_service.master_key

    vault_service.lock()

    assert key.is_cleared
    assert not vault_service.is_unlocked


@pytest.mark.asyncio
async def test_change_passphrase(
    vault_service: VaultService, make_service: MakeService, store: CredentialStore
) -> None:
    await vault_service.setup(PASSPHRASE)
    expected = bytes(vault_service.master_key)

    await vault_service.change_passphrase(PASSPHRASE, "new passphrase")
    store.delete()

    service = make_service()
    with pytest.raises(InvalidPassphraseError):
        await service.unlock(PASSPHRASE)
    await service.unlock("new passphrase")
    assert bytes(service.master_key) == expected


@pytest.mark.asyncio
async def test_recovery_resets_passphrase(
    vault_service: VaultService, make_service: MakeService, store: CredentialStore
) -> None:
    recovery = await vault_service.setup(PASSPHRASE)
    expected = bytes(vault_service.master_key)

    service = make_service()
    await service.unlock_with_recovery(format_recovery_key(recovery), new_passphrase="fresh start")

    assert bytes(service.master_key) == expected
    store.delete()
    fresh = make_service()
    await fresh.unlock("fresh start")
    assert bytes(fresh.master_key) == expected


@pytest.mark.asyncio
async def test_wrong_recovery_key(
    vault_service: VaultService, make_service: MakeService
) -> None:
    await vault_service.setup(PASSPHRASE)

    with pytest.raises(InvalidRecoveryKeyError):
        await make_service().unlock_with_recovery(WRONG_RECOVERY)


@pytest.mark.asyncio
async def test_recovery_without_blob(
    vault_service: VaultService, server: FakeSyncServer
) -> None:
    await vault_service.setup(PASSPHRASE)
    server.recovery_blob = None

    with pytest.raises(VaultNotInitializedError):
        await vault_service.unlock_with_recovery(WRONG_RECOVERY)
