"""
Cryptographic operations for skillsync.

This module provides:
- AES-256-GCM envelopes for skill content and wrapped keys
- Argon2id key derivation from passphrases and recovery keys
- Key hierarchy management (Passphrase → Derived Key → Master Key)
- Eight-word recovery keys
- Secure memory handling
"""

from skillsync.crypto.aead import decrypt, decrypt_string, encrypt, encrypt_string
from skillsync.crypto.kdf import (
    DEFAULT_KDF_PARAMS,
    DerivedKey,
    KdfParams,
    derive_key,
    derive_key_async,
    generate_salt,
)
from skillsync.crypto.recovery import (
    format_recovery_key,
    generate_recovery_key,
    parse_recovery_key,
)
from skillsync.crypto.secure_bytes import SecureBytes
from skillsync.crypto.vault import KeyVault, VaultSetup, unwrap_master_key, wrap_master_key

__all__ = [
    "SecureBytes",
    "KeyVault",
    "VaultSetup",
    "DerivedKey",
    "KdfParams",
    "DEFAULT_KDF_PARAMS",
    "encrypt",
    "decrypt",
    "encrypt_string",
    "decrypt_string",
    "derive_key",
    "derive_key_async",
    "generate_salt",
    "generate_recovery_key",
    "format_recovery_key",
    "parse_recovery_key",
    "wrap_master_key",
    "unwrap_master_key",
]
