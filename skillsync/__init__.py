"""
skillsync: end-to-end encrypted sync for Claude skills, commands and agents.

The server only ever stores ciphertext. Skills are encrypted with a random
master key, which is itself wrapped by a key derived from the user's
passphrase (or the eight-word recovery key).

Example:
    ```python
    from skillsync import SkillSyncClient

    async with SkillSyncClient() as client:
        await client.unlock("correct horse battery staple")

        status = await client.status()
        print(len(status.pending_push), "skills to push")

        await client.push(message="tweak reviewer prompt")
        await client.pull()
    ```
"""

from skillsync.client import SkillSyncClient
from skillsync.config import SkillSyncConfig
from skillsync.exceptions import (
    APIError,
    AuthenticationError,
    CryptoError,
    IntegrityError,
    InvalidPassphraseError,
    InvalidRecoveryKeyError,
    InvalidSkillError,
    MalformedRecoveryInputError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
    SessionExpiredError,
    SkillError,
    SkillSyncError,
    VaultError,
    VaultNotInitializedError,
)
from skillsync.models.skill import Skill, SkillFile, SkillType
from skillsync.models.sync import BatchResult, SkillHistory, SkillVersion, SyncStatus

__version__ = "0.1.0"

__all__ = [
    # Main client
    "SkillSyncClient",
    "SkillSyncConfig",
    # Models
    "Skill",
    "SkillFile",
    "SkillType",
    "BatchResult",
    "SkillHistory",
    "SkillVersion",
    "SyncStatus",
    # Exceptions
    "SkillSyncError",
    "AuthenticationError",
    "SessionExpiredError",
    "VaultError",
    "VaultNotInitializedError",
    "InvalidPassphraseError",
    "InvalidRecoveryKeyError",
    "CryptoError",
    "IntegrityError",
    "MalformedRecoveryInputError",
    "APIError",
    "NotFoundError",
    "RateLimitError",
    "ServerError",
    "NetworkError",
    "SkillError",
    "InvalidSkillError",
]
