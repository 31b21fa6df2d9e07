"""Account key-material endpoints (salt, wrapped master key, recovery blob)."""

from skillsync.api.http_client import AsyncHttpClient, reading_response
from skillsync.api.timestamps import parse_timestamp
from skillsync.crypto.aead import b64decode, b64encode
from skillsync.models.auth import AccountInfo, WrappedMasterKey


async def get_account(http: AsyncHttpClient) -> AccountInfo:
    response = await http.request("GET", "/account")
    with reading_response("/account"):
        return AccountInfo(
            user_id=response["id"],
            email=response["email"],
            has_salt=bool(response.get("hasSalt")),
            has_recovery_blob=bool(response.get("hasRecoveryBlob")),
            created_at=parse_timestamp(response.get("createdAt")),
        )


async def get_salt(http: AsyncHttpClient) -> bytes:
    """
    Raises:
        NotFoundError: If the account has no salt yet.
    """
    response = await http.request("GET", "/account/salt")
    with reading_response("/account/salt"):
        return b64decode(response["salt"])


async def set_salt(http: AsyncHttpClient, salt: bytes) -> None:
    """Store the account salt. The server refuses to overwrite an existing one."""
    await http.request("PUT", "/account/salt", json={"salt": b64encode(salt)})


async def get_master_key(http: AsyncHttpClient) -> WrappedMasterKey:
    """
    Raises:
        NotFoundError: If no wrapped master key is stored.
    """
    response = await http.request("GET", "/account/master-key")
    with reading_response("/account/master-key"):
        salt = response.get("salt")
        return WrappedMasterKey(
            blob=b64decode(response["encryptedMasterKey"]),
            salt=b64decode(salt) if salt else None,
        )


async def set_master_key(http: AsyncHttpClient, blob: bytes) -> None:
    await http.request(
        "PUT",
        "/account/master-key",
        json={"encryptedMasterKey": b64encode(blob)},
    )


async def get_recovery_blob(http: AsyncHttpClient) -> bytes:
    """
    Master key wrapped under the recovery-derived key.

    Raises:
        NotFoundError: If no recovery blob is stored.
    """
    response = await http.request("GET", "/account/recovery")
    with reading_response("/account/recovery"):
        return b64decode(response["recoveryBlob"])


async def set_recovery_blob(http: AsyncHttpClient, blob: bytes) -> None:
    await http.request("PUT", "/account/recovery", json={"recoveryBlob": b64encode(blob)})
