"""Zeroizable container for keys and passphrases held in process memory."""

import ctypes
import hmac
from typing import Self


def _secure_zero(data: bytearray) -> None:
    if not data:
        return
    buffer = (ctypes.c_char * len(data)).from_buffer(data)
    ctypes.memset(ctypes.addressof(buffer), 0, len(data))
    del buffer


class SecureBytes:
    """
    Mutable byte buffer that is wiped when cleared, garbage collected or
    used as a context manager.

    Conversions to ``bytes``/``str`` create copies Python cannot wipe; keep
    them short-lived.
    """

    __slots__ = ("_data", "_cleared")

    def __init__(self, data: bytes | bytearray) -> None:
        self._data = bytearray(data)
        self._cleared = False

    def __del__(self) -> None:
        self.clear()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *_: object) -> None:
        self.clear()

    def clear(self) -> None:
        """Zero the buffer. Idempotent."""
        if self._cleared:
            return
        _secure_zero(self._data)
        self._cleared = True

    @property
    def is_cleared(self) -> bool:
        return self._cleared

    def __bytes__(self) -> bytes:
        self._check_cleared()
        return bytes(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return not self._cleared and len(self._data) > 0

    def __repr__(self) -> str:
        if self._cleared:
            return "SecureBytes(<cleared>)"
        return f"SecureBytes(<{len(self._data)} bytes>)"

    def __eq__(self, other: object) -> bool:
        """Constant-time comparison."""
        if isinstance(other, SecureBytes):
            if self._cleared or other._cleared:
                return False
            return hmac.compare_digest(self._data, other._data)
        if isinstance(other, (bytes, bytearray)):
            if self._cleared:
                return False
            return hmac.compare_digest(self._data, other)
        return NotImplemented

    def __hash__(self) -> int:
        raise TypeError("SecureBytes is not hashable")

    def copy(self) -> "SecureBytes":
        self._check_cleared()
        return SecureBytes(self._data)

    def _check_cleared(self) -> None:
        if self._cleared:
            raise RuntimeError("SecureBytes has been cleared")

    @classmethod
    def from_string(cls, s: str, encoding: str = "utf-8") -> Self:
        """Encode a string, wiping the intermediate buffer."""
        encoded = bytearray(s, encoding)
        try:
            return cls(encoded)
        finally:
            _secure_zero(encoded)
