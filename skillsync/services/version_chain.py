"""
Per-skill linear version history with a current-hash pointer.

Versions are content addressed: the pair (skill key, hash) identifies one
version, and writing it again replaces its envelope instead of duplicating
it. Creating a version and moving the pointer are two separate writes; when a
crash leaves them out of step, :func:`resolve_current_hash` recomputes the
pointer from the history on read.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol

import structlog

from skillsync.exceptions import NotFoundError
from skillsync.models.crypto import EncryptedEnvelope
from skillsync.models.sync import PushReceipt, RemoteSkill, SkillVersion

logger = structlog.get_logger(__name__)

DEFAULT_VERSION_LIMIT = 50


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, kw_only=True)
class PointerRecord:
    """Current-hash pointer of one skill and when it last moved."""

    skill_key: str
    current_hash: str | None
    updated_at: datetime | None


class VersionStore(Protocol):
    """Persistence used by :class:`VersionChain`. A relational store fits the same shape."""

    def get_pointer(self, skill_key: str) -> PointerRecord | None: ...

    def set_pointer(self, record: PointerRecord) -> None: ...

    def get_version(self, skill_key: str, content_hash: str) -> SkillVersion | None: ...

    def put_version(self, version: SkillVersion) -> None: ...

    def versions(self, skill_key: str) -> list[SkillVersion]:
        """All versions of a skill in insertion order."""
        ...

    def pointers(self) -> list[PointerRecord]: ...

    def delete(self, skill_key: str) -> bool: ...


class InMemoryVersionStore:
    """Dict-backed :class:`VersionStore`."""

    def __init__(self) -> None:
        self._pointers: dict[str, PointerRecord] = {}
        self._versions: dict[str, dict[str, SkillVersion]] = {}

    def get_pointer(self, skill_key: str) -> PointerRecord | None:
        return self._pointers.get(skill_key)

    def set_pointer(self, record: PointerRecord) -> None:
        self._pointers[record.skill_key] = record

    def get_version(self, skill_key: str, content_hash: str) -> SkillVersion | None:
        return self._versions.get(skill_key, {}).get(content_hash)

    def put_version(self, version: SkillVersion) -> None:
        # Replacing a key keeps its original insertion position.
        self._versions.setdefault(version.skill_key, {})[version.hash] = version

    def versions(self, skill_key: str) -> list[SkillVersion]:
        return list(self._versions.get(skill_key, {}).values())

    def pointers(self) -> list[PointerRecord]:
        return list(self._pointers.values())

    def delete(self, skill_key: str) -> bool:
        existed = skill_key in self._pointers
        self._pointers.pop(skill_key, None)
        self._versions.pop(skill_key, None)
        return existed


def newest_first(versions: Sequence[SkillVersion]) -> list[SkillVersion]:
    """
    Order by creation time, newest first.

    Versions with equal timestamps keep reverse insertion order; versions
    without a timestamp sort last.
    """
    floor = datetime.min.replace(tzinfo=UTC)
    return sorted(reversed(versions), key=lambda v: v.created_at or floor, reverse=True)


def resolve_current_hash(
    current_hash: str | None,
    pointer_updated_at: datetime | None,
    versions: Sequence[SkillVersion],
) -> str | None:
    """
    Decide which hash is really current when the pointer and history disagree.

    The newest version wins when it was created after the pointer last moved,
    which is what a crash between creating a version and moving the pointer
    leaves behind. A pointer deliberately moved back to an older version was
    updated after the newest version was created and is kept. When timestamps
    are missing, the newest version wins only if it was appended on top of
    the advertised pointer.

    Args:
        current_hash: Pointer as advertised by the store.
        pointer_updated_at: When the pointer last moved.
        versions: History, in any order.
    """
    if not versions:
        return current_hash

    newest = newest_first(versions)[0]
    if newest.hash == current_hash:
        return current_hash
    if current_hash is None:
        return newest.hash
    if pointer_updated_at is not None and newest.created_at is not None:
        return newest.hash if newest.created_at > pointer_updated_at else current_hash
    return newest.hash if newest.parent_hash == current_hash else current_hash


class VersionChain:
    """Content-addressed version history over a :class:`VersionStore`."""

    def __init__(
        self,
        store: VersionStore | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Args:
            store: Backing store. Defaults to an in-memory store.
            clock: Time source for creation and pointer timestamps.
        """
        self._store = store if store is not None else InMemoryVersionStore()
        self._clock = clock

    @property
    def store(self) -> VersionStore:
        return self._store

    def create_version(
        self,
        skill_key: str,
        content_hash: str,
        envelope: EncryptedEnvelope,
        parent_hash: str | None,
        message: str | None = None,
    ) -> SkillVersion:
        """
        Record a version. Idempotent on (skill_key, content_hash).

        Writing an existing hash again replaces its envelope (and its message
        when one is given) and keeps the original ``parent_hash`` and
        ``created_at``. The pointer is not moved; an unknown skill gets an
        empty pointer.
        """
        if self._store.get_pointer(skill_key) is None:
            self._store.set_pointer(
                PointerRecord(skill_key=skill_key, current_hash=None, updated_at=None)
            )

        existing = self._store.get_version(skill_key, content_hash)
        if existing is not None:
            version = replace(
                existing,
                envelope=envelope,
                message=message if message is not None else existing.message,
            )
            logger.debug("Replaced existing version", skill_key=skill_key, hash=content_hash)
        else:
            version = SkillVersion(
                skill_key=skill_key,
                hash=content_hash,
                parent_hash=parent_hash,
                created_at=self._clock(),
                envelope=envelope,
                message=message,
            )
            logger.debug(
                "Created version", skill_key=skill_key, hash=content_hash, parent=parent_hash
            )
        self._store.put_version(version)
        return version

    def update_current_pointer(self, skill_key: str, content_hash: str) -> None:
        """
        Move the skill's pointer to ``content_hash``.

        Raises:
            NotFoundError: If no such version exists.
        """
        if self._store.get_version(skill_key, content_hash) is None:
            msg = f"Version {content_hash} not found for {skill_key}"
            raise NotFoundError(msg)
        self._store.set_pointer(
            PointerRecord(skill_key=skill_key, current_hash=content_hash, updated_at=self._clock())
        )

    def append(
        self,
        skill_key: str,
        content_hash: str,
        envelope: EncryptedEnvelope,
        message: str | None = None,
    ) -> PushReceipt:
        """
        Push semantics: the parent is whatever the pointer held before this
        call, then the version is created and the pointer moved to it.

        Concurrent appends may both observe the same parent; nothing rejects
        the second one.
        """
        version = self.create_version(
            skill_key, content_hash, envelope, self.current_hash(skill_key), message
        )
        self.update_current_pointer(skill_key, content_hash)
        return PushReceipt(
            skill_key=skill_key,
            hash=version.hash,
            parent_hash=version.parent_hash,
            created_at=version.created_at,
        )

    def get_version(self, skill_key: str, content_hash: str) -> SkillVersion:
        """
        Raises:
            NotFoundError: If the version does not exist.
        """
        version = self._store.get_version(skill_key, content_hash)
        if version is None:
            msg = f"Version {content_hash} not found for {skill_key}"
            raise NotFoundError(msg)
        return version

    def list_versions(self, skill_key: str, limit: int = DEFAULT_VERSION_LIMIT) -> list[SkillVersion]:
        """Versions newest first by creation time, at most ``limit``."""
        return newest_first(self._store.versions(skill_key))[:limit]

    def current_hash(self, skill_key: str) -> str | None:
        """Pointer as stored, without self-healing."""
        pointer = self._store.get_pointer(skill_key)
        return pointer.current_hash if pointer else None

    def resolve_current(self, skill_key: str) -> str | None:
        """
        Current hash after reconciling the pointer with the history.

        A stale pointer is rewritten so the next read agrees.
        """
        pointer = self._store.get_pointer(skill_key)
        if pointer is None:
            return None

        resolved = resolve_current_hash(
            pointer.current_hash, pointer.updated_at, self._store.versions(skill_key)
        )
        if resolved != pointer.current_hash and resolved is not None:
            logger.warning(
                "Repairing stale current pointer",
                skill_key=skill_key,
                pointer=pointer.current_hash,
                resolved=resolved,
            )
            self.update_current_pointer(skill_key, resolved)
        return resolved

    def list_skills(self) -> list[RemoteSkill]:
        return [
            RemoteSkill(skill_key=p.skill_key, current_hash=p.current_hash, updated_at=p.updated_at)
            for p in sorted(self._store.pointers(), key=lambda p: p.skill_key)
        ]

    def delete_skill(self, skill_key: str) -> None:
        """
        Raises:
            NotFoundError: If the skill does not exist.
        """
        if not self._store.delete(skill_key):
            msg = f"Skill not found: {skill_key}"
            raise NotFoundError(msg)
