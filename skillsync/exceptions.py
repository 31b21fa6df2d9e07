"""
skillsync exception hierarchy.

All exceptions inherit from SkillSyncError for easy catching. The subclasses
tell a caller what to do next: ask for another passphrase (VaultError), try
again later (NetworkError, APIError) or give up on a piece of data
(IntegrityError).
"""

from typing import Any


class SkillSyncError(Exception):
    """Base exception for all skillsync errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class AuthenticationError(SkillSyncError):
    """Authentication with the sync server failed."""


class SessionExpiredError(AuthenticationError):
    """Access token expired and refresh failed."""


class VaultError(SkillSyncError):
    """The key vault could not be opened."""


class VaultNotInitializedError(VaultError):
    """No salt or wrapped master key is available for this account."""


class InvalidPassphraseError(VaultError):
    """Unlock with a passphrase failed (wrong passphrase or corrupted vault)."""

    def __init__(self, message: str = "Invalid passphrase or corrupted vault") -> None:
        super().__init__(message)


class InvalidRecoveryKeyError(VaultError):
    """Unlock with a recovery key failed (wrong key or corrupted vault)."""

    def __init__(self, message: str = "Invalid recovery key or corrupted vault") -> None:
        super().__init__(message)


class CryptoError(SkillSyncError):
    """Cryptographic operation failed."""


class IntegrityError(CryptoError):
    """Authentication tag verification failed (wrong key, tampered data)."""


class MalformedRecoveryInputError(CryptoError):
    """Recovery key text does not resolve to exactly 8 known words."""

    def __init__(self, message: str, *, word_count: int | None = None) -> None:
        super().__init__(message, word_count=word_count)
        self.word_count = word_count


class APIError(SkillSyncError):
    """API request failed."""

    def __init__(self, message: str, *, code: int, endpoint: str | None = None) -> None:
        super().__init__(message, code=code, endpoint=endpoint)
        self.code = code
        self.endpoint = endpoint


class NotFoundError(APIError):
    """Resource not found (skill, version)."""

    def __init__(self, message: str, *, endpoint: str | None = None) -> None:
        super().__init__(message, code=404, endpoint=endpoint)


class RateLimitError(APIError):
    """Rate limited, either by the server or by the local request limiter."""

    def __init__(
        self, message: str = "Rate limit exceeded", *, retry_after: float | None = None
    ) -> None:
        super().__init__(message, code=429)
        self.retry_after = retry_after


class ServerError(APIError):
    """Server-side error (5xx)."""

    def __init__(self, message: str, *, code: int = 500, endpoint: str | None = None) -> None:
        super().__init__(message, code=code, endpoint=endpoint)


class NetworkError(SkillSyncError):
    """Network-level error (connection failed, timeout, server unreachable)."""


class SkillError(SkillSyncError):
    """Local skill could not be read or written."""


class InvalidSkillError(SkillError):
    """Skill data is not acceptable (bad name, unsafe file path)."""

    def __init__(self, message: str, *, skill_key: str | None = None) -> None:
        super().__init__(message, skill_key=skill_key)
        self.skill_key = skill_key
