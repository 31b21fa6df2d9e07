"""
Cryptographic domain models.
"""

import base64
import binascii
from dataclasses import dataclass
from typing import Self

IV_SIZE = 12
TAG_SIZE = 16
KEY_SIZE = 32


@dataclass(frozen=True, kw_only=True)
class EncryptedEnvelope:
    """
    AES-GCM output for one encrypted object.

    Attributes:
        ciphertext: Encrypted payload without the tag.
        iv: 96-bit nonce, fresh for every encryption.
        tag: 128-bit authentication tag.
    """

    ciphertext: bytes
    iv: bytes
    tag: bytes

    def __post_init__(self) -> None:
        if len(self.iv) != IV_SIZE:
            msg = f"iv must be {IV_SIZE} bytes, got {len(self.iv)}"
            raise ValueError(msg)
        if len(self.tag) != TAG_SIZE:
            msg = f"tag must be {TAG_SIZE} bytes, got {len(self.tag)}"
            raise ValueError(msg)

    def to_wire(self) -> dict[str, str]:
        """Base64 text fields as sent to the server."""
        return {
            "encryptedData": base64.b64encode(self.ciphertext).decode("ascii"),
            "iv": base64.b64encode(self.iv).decode("ascii"),
            "tag": base64.b64encode(self.tag).decode("ascii"),
        }

    @classmethod
    def from_wire(cls, data: dict[str, str]) -> Self:
        """
        Parse the base64 text fields returned by the server.

        Raises:
            ValueError: If a field is missing or not valid base64, or has the wrong size.
        """
        try:
            return cls(
                ciphertext=base64.b64decode(data["encryptedData"], validate=True),
                iv=base64.b64decode(data["iv"], validate=True),
                tag=base64.b64decode(data["tag"], validate=True),
            )
        except (KeyError, binascii.Error) as e:
            msg = f"Malformed envelope: {e}"
            raise ValueError(msg) from e


@dataclass(frozen=True, kw_only=True)
class RecoveryKey:
    """
    Eight-word recovery secret.

    Each word encodes one byte: its index in the fixed 256-entry wordlist.

    Attributes:
        words: Lower-case words.
        data: Raw bytes fed to the key derivation function.
    """

    words: tuple[str, ...]
    data: bytes

    def __post_init__(self) -> None:
        if len(self.words) != len(self.data):
            msg = "words and data must have the same length"
            raise ValueError(msg)

    def __repr__(self) -> str:
        return f"RecoveryKey(<{len(self.words)} words>)"
