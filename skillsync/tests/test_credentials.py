import json
import stat
from pathlib import Path

import pytest

from skillsync.credentials import Credentials, CredentialStore


@pytest.fixture
def store(tmp_path: Path) -> CredentialStore:
    return CredentialStore(tmp_path / "config" / "credentials.json")


def test_load_returns_none_when_missing(store: CredentialStore) -> None:
    assert store.load() is None


def test_save_and_load(store: CredentialStore) -> None:
    credentials = Credentials(
        access_token="access",
        refresh_token="refresh",
        email="me@example.com",
        wrapped_master_key=b"\x01" * 60,
        salt=b"\x02" * 16,
    )

    store.save(credentials)

    assert store.load() == credentials


def test_file_is_owner_only(store: CredentialStore) -> None:
    store.save(Credentials(access_token="access"))

    assert stat.S_IMODE(store.path.stat().st_mode) == 0o600


def test_file_uses_base64_fields(store: CredentialStore) -> None:
    store.save(Credentials(access_token="a", refresh_token="r", salt=b"\x00" * 16))

    data = json.loads(store.path.read_text())
    assert data == {"accessToken": "a", "refreshToken": "r", "salt": "AAAAAAAAAAAAAAAAAAAAAA=="}


def test_unreadable_file_is_ignored(store: CredentialStore) -> None:
    store.path.parent.mkdir(parents=True)
    store.path.write_text('{"accessToken": "a", "salt": "not base64!"}')

    assert store.load() is None


def test_delete_is_idempotent(store: CredentialStore) -> None:
    store.save(Credentials(access_token="a"))

    store.delete()
    store.delete()

    assert store.load() is None


def test_repr_hides_tokens() -> None:
    credentials = Credentials(access_token="secret-access", refresh_token="secret-refresh")

    assert "secret" not in repr(credentials)
    assert credentials.is_logged_in
    assert not credentials.has_vault


def test_with_tokens_keeps_vault_material() -> None:
    credentials = Credentials(access_token="a", wrapped_master_key=b"w", salt=b"s")

    updated = credentials.with_tokens("a2", "r2")

    assert (updated.access_token, updated.refresh_token) == ("a2", "r2")
    assert updated.wrapped_master_key == b"w"
    assert updated.salt == b"s"
