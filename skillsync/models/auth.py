"""
Authentication and account models.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, kw_only=True)
class AuthTokens:
    """
    Result of a successful one-time-code verification.

    Attributes:
        access_token: Short-lived bearer token.
        refresh_token: Long-lived token used to obtain new access tokens.
        user_id: Server-side account id.
        email: Account email address.
        is_new_user: True when the account was created by this verification.
    """

    access_token: str
    refresh_token: str
    user_id: str
    email: str
    is_new_user: bool = False

    def __repr__(self) -> str:
        return f"AuthTokens(user_id={self.user_id!r}, email={self.email!r}, is_new_user={self.is_new_user})"


@dataclass(frozen=True, kw_only=True)
class AccountInfo:
    """Account summary returned by the server."""

    user_id: str
    email: str
    has_salt: bool
    has_recovery_blob: bool
    created_at: datetime | None = None


@dataclass(frozen=True, kw_only=True)
class WrappedMasterKey:
    """
    Server-stored wrapped master key.

    ``salt`` is None when the account has no salt yet.
    """

    blob: bytes
    salt: bytes | None = None
