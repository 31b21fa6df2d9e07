"""
Domain models for skillsync.

These are immutable (frozen) dataclasses representing the core domain concepts.
"""

from skillsync.models.auth import AccountInfo, AuthTokens, WrappedMasterKey
from skillsync.models.crypto import EncryptedEnvelope, RecoveryKey
from skillsync.models.skill import Skill, SkillFile, SkillMetadata, SkillType
from skillsync.models.sync import (
    BatchResult,
    ErrorKind,
    PushReceipt,
    RemoteSkill,
    SkillDiff,
    SkillFailure,
    SkillHistory,
    SkillVersion,
    SyncIndex,
    SyncIndexEntry,
    SyncStatus,
)

__all__ = [
    # Auth
    "AccountInfo",
    "AuthTokens",
    "WrappedMasterKey",
    # Crypto
    "EncryptedEnvelope",
    "RecoveryKey",
    # Skills
    "Skill",
    "SkillFile",
    "SkillMetadata",
    "SkillType",
    # Sync
    "BatchResult",
    "ErrorKind",
    "PushReceipt",
    "RemoteSkill",
    "SkillDiff",
    "SkillFailure",
    "SkillHistory",
    "SkillVersion",
    "SyncIndex",
    "SyncIndexEntry",
    "SyncStatus",
]
