"""
Version-chain and sync domain models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from skillsync.models.crypto import EncryptedEnvelope


@dataclass(frozen=True, kw_only=True)
class RemoteSkill:
    """Entry of the server's skill list."""

    skill_key: str
    current_hash: str | None
    updated_at: datetime | None = None


@dataclass(frozen=True, kw_only=True)
class SkillVersion:
    """
    One content-addressed version of a skill.

    ``envelope`` is None when the version comes from a history listing, which
    carries no ciphertext.
    """

    skill_key: str
    hash: str
    parent_hash: str | None
    created_at: datetime | None
    envelope: EncryptedEnvelope | None = None
    message: str | None = None


@dataclass(frozen=True, kw_only=True)
class PushReceipt:
    """Server acknowledgement of a pushed version."""

    skill_key: str
    hash: str
    parent_hash: str | None
    created_at: datetime | None


@dataclass(frozen=True, kw_only=True)
class SkillHistory:
    """Version listing of one skill, newest first."""

    skill_key: str
    current_hash: str | None
    versions: tuple[SkillVersion, ...]


@dataclass(frozen=True, kw_only=True)
class SyncIndexEntry:
    """
    Local record of the last synchronized state of one skill.

    Attributes:
        skill_key: ``type:name``.
        last_synced_hash: Short content hash pushed or pulled last.
        local_fingerprint: Full content hash of the local copy at that time.
        remote_updated_at: Server timestamp of that version.
    """

    skill_key: str
    last_synced_hash: str
    local_fingerprint: str
    remote_updated_at: datetime | None = None


@dataclass(kw_only=True)
class SyncIndex:
    """Local-only change-detection index. Not a source of truth."""

    entries: dict[str, SyncIndexEntry] = field(default_factory=dict)
    last_sync_at: datetime | None = None

    def get(self, skill_key: str) -> SyncIndexEntry | None:
        return self.entries.get(skill_key)

    def last_synced_hash(self, skill_key: str) -> str | None:
        entry = self.entries.get(skill_key)
        return entry.last_synced_hash if entry else None

    def update(self, entries: list[SyncIndexEntry]) -> None:
        for entry in entries:
            self.entries[entry.skill_key] = entry

    def remove(self, skill_key: str) -> bool:
        return self.entries.pop(skill_key, None) is not None


@dataclass(frozen=True, kw_only=True)
class SyncStatus:
    """
    Result of comparing local skills, the sync index and the remote list.

    ``diverged`` skills changed locally while the remote head also moved away
    from the last-synced hash. They are also counted as pending push: a push
    overwrites the remote head, a pull overwrites local files.

    ``remote_available`` is False when the remote list could not be fetched;
    pending pull and diverged are then empty.
    """

    local: int
    synced: tuple[str, ...] = ()
    pending_push: tuple[str, ...] = ()
    pending_pull: tuple[str, ...] = ()
    diverged: tuple[str, ...] = ()
    last_sync_at: datetime | None = None
    remote_available: bool = True

    @property
    def is_clean(self) -> bool:
        return not (self.pending_push or self.pending_pull)


class ErrorKind(StrEnum):
    """What a caller should do about a failed skill."""

    NETWORK = "network"
    INTEGRITY = "integrity"
    LOCAL = "local"


@dataclass(frozen=True, kw_only=True)
class SkillFailure:
    """Per-skill failure inside a batch."""

    skill_key: str
    message: str
    kind: ErrorKind


@dataclass(frozen=True, kw_only=True)
class BatchResult:
    """
    Outcome of a push or pull batch.

    One skill's failure never aborts the batch; failures are listed here.
    """

    succeeded: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()
    errors: tuple[SkillFailure, ...] = ()

    @property
    def succeeded_count(self) -> int:
        return len(self.succeeded)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def is_partial(self) -> bool:
        return bool(self.errors) and bool(self.succeeded)

    @property
    def error_messages(self) -> list[str]:
        return [f"{e.skill_key}: {e.message}" for e in self.errors]


@dataclass(frozen=True, kw_only=True)
class SkillDiff:
    """Line diff between two versions of one skill."""

    skill_key: str
    old_hash: str
    new_hash: str
    lines: tuple[str, ...]
    added_files: tuple[str, ...] = ()
    removed_files: tuple[str, ...] = ()

    @property
    def has_changes(self) -> bool:
        return bool(self.lines or self.added_files or self.removed_files)
