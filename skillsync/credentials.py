"""
Local credential storage.

``credentials.json`` holds the session tokens and the account's wrapped
master key and salt (base64). The master key itself is never written. The
file is created with owner-only permissions.
"""

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Self

import structlog

from skillsync.crypto.aead import b64decode, b64encode
from skillsync.exceptions import CryptoError

logger = structlog.get_logger(__name__)

_FILE_MODE = 0o600


@dataclass(frozen=True, kw_only=True)
class Credentials:
    """
    Attributes:
        access_token: Bearer token.
        refresh_token: Token used to obtain new access tokens.
        email: Account email, if known.
        wrapped_master_key: Master key wrapped under the passphrase-derived key.
        salt: Account salt.
    """

    access_token: str = ""
    refresh_token: str = ""
    email: str | None = None
    wrapped_master_key: bytes | None = None
    salt: bytes | None = None

    @property
    def is_logged_in(self) -> bool:
        return bool(self.access_token)

    @property
    def has_vault(self) -> bool:
        return self.wrapped_master_key is not None and self.salt is not None

    def with_tokens(self, access_token: str, refresh_token: str) -> Self:
        return replace(self, access_token=access_token, refresh_token=refresh_token)

    def __repr__(self) -> str:
        return f"Credentials(email={self.email!r}, logged_in={self.is_logged_in}, vault={self.has_vault})"

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
        }
        if self.email is not None:
            data["email"] = self.email
        if self.wrapped_master_key is not None:
            data["encryptedMasterKey"] = b64encode(self.wrapped_master_key)
        if self.salt is not None:
            data["salt"] = b64encode(self.salt)
        return data

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Self:
        """
        Raises:
            ValueError: If a field has the wrong type or is not valid base64.
        """
        try:
            wrapped = data.get("encryptedMasterKey")
            salt = data.get("salt")
            return cls(
                access_token=str(data.get("accessToken") or ""),
                refresh_token=str(data.get("refreshToken") or ""),
                email=data.get("email"),
                wrapped_master_key=b64decode(wrapped) if wrapped else None,
                salt=b64decode(salt) if salt else None,
            )
        except (CryptoError, TypeError) as e:
            msg = f"Malformed credentials: {e}"
            raise ValueError(msg) from e


class CredentialStore:
    """Reads and writes :class:`Credentials` at a fixed path."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Credentials | None:
        """Saved credentials, or None when missing or unreadable."""
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                msg = "expected a JSON object"
                raise ValueError(msg)
            return Credentials.from_json(data)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable credentials", path=str(self._path), error=str(e))
            return None

    def save(self, credentials: Credentials) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, _FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(credentials.to_json(), f, indent=2)
        # The mode passed to open() only applies when the file is created.
        os.chmod(self._path, _FILE_MODE)
        logger.debug("Saved credentials", path=str(self._path))

    def delete(self) -> None:
        self._path.unlink(missing_ok=True)
