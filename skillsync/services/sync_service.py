"""
Sync reconciler.

Compares local skills, the local sync index and the remote skill list, then
pushes or pulls whole skills. There is no merge: when both sides changed, a
push overwrites the remote head and a pull overwrites local files.
"""

import asyncio
import difflib
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from skillsync.config import SkillSyncConfig
from skillsync.crypto.aead import KeyLike, decrypt, encrypt
from skillsync.exceptions import (
    APIError,
    AuthenticationError,
    CryptoError,
    IntegrityError,
    NetworkError,
    SkillSyncError,
)
from skillsync.models.skill import Skill, split_skill_key
from skillsync.models.sync import (
    BatchResult,
    ErrorKind,
    RemoteSkill,
    SkillDiff,
    SkillFailure,
    SkillHistory,
    SkillVersion,
    SyncIndex,
    SyncIndexEntry,
    SyncStatus,
)
from skillsync.services.remote import SkillRemote
from skillsync.services.sync_index import SyncIndexStore
from skillsync.services.version_chain import resolve_current_hash
from skillsync.skills.hashing import content_hash, full_hash
from skillsync.skills.library import SkillLibrary
from skillsync.skills.payload import decode_skill_payload, encode_skill_payload

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[str], None]


def compute_status(
    local_skills: Sequence[Skill],
    index: SyncIndex,
    remote_skills: Sequence[RemoteSkill],
    remote_available: bool = True,
) -> SyncStatus:
    """
    Classify every skill without touching the network or disk.

    - local hash equals the index's last-synced hash: synced
    - missing from the index or different: pending push
    - on the remote with a current hash but absent locally: pending pull
    - changed locally while the remote head also moved away from the
      last-synced hash (or was never synced here and differs): diverged,
      in addition to pending push
    """
    remote_by_key = {r.skill_key: r for r in remote_skills}
    local_keys = set()
    synced: list[str] = []
    pending_push: list[str] = []
    diverged: list[str] = []

    for skill in local_skills:
        key = skill.key
        local_keys.add(key)
        local_hash = content_hash(skill)
        last_synced = index.last_synced_hash(key)
        if local_hash == last_synced:
            synced.append(key)
            continue

        pending_push.append(key)
        remote = remote_by_key.get(key)
        if (
            remote is not None
            and remote.current_hash is not None
            and remote.current_hash != last_synced
            and remote.current_hash != local_hash
        ):
            diverged.append(key)

    pending_pull = [
        r.skill_key
        for r in remote_skills
        if r.current_hash is not None and r.skill_key not in local_keys
    ]

    return SyncStatus(
        local=len(local_skills),
        synced=tuple(synced),
        pending_push=tuple(pending_push),
        pending_pull=tuple(pending_pull),
        diverged=tuple(diverged),
        last_sync_at=index.last_sync_at,
        remote_available=remote_available,
    )


def classify_error(error: Exception) -> ErrorKind:
    """Map a per-skill failure to what the caller should do about it."""
    match error:
        case CryptoError():
            return ErrorKind.INTEGRITY
        case NetworkError() | APIError() | AuthenticationError():
            return ErrorKind.NETWORK
        case _:
            return ErrorKind.LOCAL


@dataclass(frozen=True, kw_only=True)
class _Skipped:
    skill_key: str
    reason: str


_Outcome = SyncIndexEntry | _Skipped | SkillFailure


def _failure(skill_key: str, action: str, error: Exception) -> SkillFailure:
    kind = classify_error(error)
    logger.warning(
        "Skill transfer failed", action=action, skill_key=skill_key, kind=kind, error=str(error)
    )
    return SkillFailure(skill_key=skill_key, message=f"Failed to {action}: {error}", kind=kind)


def _batch_result(outcomes: Sequence[_Outcome], skipped: Sequence[str] = ()) -> BatchResult:
    return BatchResult(
        succeeded=tuple(o.skill_key for o in outcomes if isinstance(o, SyncIndexEntry)),
        skipped=(*skipped, *(o.skill_key for o in outcomes if isinstance(o, _Skipped))),
        errors=tuple(o for o in outcomes if isinstance(o, SkillFailure)),
    )


def _diff_lines(old: str, new: str, old_label: str, new_label: str) -> list[str]:
    return list(
        difflib.unified_diff(
            old.splitlines(),
            new.splitlines(),
            fromfile=old_label,
            tofile=new_label,
            lineterm="",
        )
    )


class SyncService:
    """
    Push, pull and inspect skill versions.

    The master key is passed to every batch call and reused for each skill of
    the batch; it is never derived or stored here.
    """

    def __init__(
        self,
        config: SkillSyncConfig,
        remote: SkillRemote,
        library: SkillLibrary,
        index_store: SyncIndexStore,
    ) -> None:
        """
        Args:
            config: Client configuration (concurrency, version limits).
            remote: Remote skill store.
            library: Local skill tree.
            index_store: Persistence of the local sync index.
        """
        self._config = config
        self._remote = remote
        self._library = library
        self._index_store = index_store

    async def status(self) -> SyncStatus:
        """
        Local status against the index and the remote list.

        When the remote list cannot be fetched, the status is computed from
        local data only and ``remote_available`` is False.
        """
        local = self._library.list_all()
        index = self._index_store.load()
        try:
            remote = await self._remote.list_skills()
        except (NetworkError, APIError, AuthenticationError) as e:
            logger.warning("Remote skill list unavailable", error=str(e))
            return compute_status(local, index, [], remote_available=False)
        return compute_status(local, index, remote)

    async def push(
        self,
        master_key: KeyLike,
        message: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult:
        """
        Encrypt and push every local skill whose hash differs from the index.

        Unchanged skills are skipped without any network call. Each pushed
        version lands on top of the server's current head.

        Raises:
            NetworkError: If the server is unreachable before anything is pushed.
        """
        await self._remote.check_health()

        index = self._index_store.load()
        skills = self._library.list_all()
        to_push: list[tuple[Skill, str]] = []
        skipped: list[str] = []
        for skill in skills:
            skill_hash = content_hash(skill)
            if index.last_synced_hash(skill.key) == skill_hash:
                _report(on_progress, f"Skipping {skill.key} (unchanged)")
                skipped.append(skill.key)
            else:
                to_push.append((skill, skill_hash))

        semaphore = asyncio.Semaphore(self._config.max_concurrent_transfers)

        async def push_one(skill: Skill, skill_hash: str) -> _Outcome:
            async with semaphore:
                _report(on_progress, f"Pushing {skill.key} [{skill_hash}]...")
                try:
                    envelope = encrypt(encode_skill_payload(skill).encode("utf-8"), master_key)
                    receipt = await self._remote.push_version(
                        skill.key, skill_hash, envelope, message
                    )
                except SkillSyncError as e:
                    return _failure(skill.key, "push", e)

            logger.debug(
                "Pushed skill", skill_key=skill.key, hash=receipt.hash, parent=receipt.parent_hash
            )
            return SyncIndexEntry(
                skill_key=skill.key,
                last_synced_hash=skill_hash,
                local_fingerprint=full_hash(skill),
                remote_updated_at=receipt.created_at,
            )

        outcomes = await asyncio.gather(*(push_one(s, h) for s, h in to_push))
        self._commit(index, outcomes)
        result = _batch_result(outcomes, skipped)
        logger.info(
            "Push finished",
            pushed=result.succeeded_count,
            skipped=result.skipped_count,
            failed=len(result.errors),
        )
        return result

    async def pull(
        self,
        master_key: KeyLike,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult:
        """
        Fetch, decrypt and write every remote skill whose current hash
        differs from the index or which is missing locally.

        Local files are overwritten. Stale current pointers are repaired
        before deciding what is current.

        Raises:
            NetworkError: If the server is unreachable or the skill list
                cannot be fetched.
        """
        await self._remote.check_health()

        index = self._index_store.load()
        remote_skills = await self._remote.list_skills()
        semaphore = asyncio.Semaphore(self._config.max_concurrent_transfers)

        async def pull_one(remote: RemoteSkill) -> _Outcome:
            key = remote.skill_key
            async with semaphore:
                try:
                    current = await self._resolve_current(remote)
                    if current is None:
                        _report(on_progress, f"Skipping {key} (no versions)")
                        return _Skipped(skill_key=key, reason="no versions")
                    if index.last_synced_hash(key) == current and self._exists_locally(key):
                        _report(on_progress, f"Skipping {key} (unchanged)")
                        return _Skipped(skill_key=key, reason="unchanged")

                    _report(on_progress, f"Pulling {key} [{current}]...")
                    version = await self._remote.get_version(key, current)
                    skill = self._open_version(version, master_key)
                    self._library.write(skill)
                except (SkillSyncError, OSError) as e:
                    return _failure(key, "pull", e)

            _report(on_progress, f"Pulled {key} [{current}]")
            return SyncIndexEntry(
                skill_key=key,
                last_synced_hash=current,
                local_fingerprint=full_hash(skill),
                remote_updated_at=remote.updated_at,
            )

        outcomes = await asyncio.gather(*(pull_one(r) for r in remote_skills))
        self._commit(index, outcomes)
        result = _batch_result(outcomes)
        logger.info(
            "Pull finished",
            pulled=result.succeeded_count,
            skipped=result.skipped_count,
            failed=len(result.errors),
        )
        return result

    async def log(self, skill_key: str, limit: int | None = None) -> SkillHistory:
        """Version history of one skill, newest first."""
        return await self._remote.list_versions(
            skill_key, limit or self._config.version_list_limit
        )

    async def checkout(self, master_key: KeyLike, skill_key: str, version_hash: str) -> Skill:
        """
        Restore one version locally and record it as the last-synced hash.

        The remote pointer is not moved; the next push of this content makes
        it current again.

        Raises:
            NotFoundError: If the version does not exist.
            IntegrityError: If the version cannot be decrypted or does not
                match its hash.
            InvalidSkillError: If the decrypted skill cannot be written safely.
        """
        version = await self._remote.get_version(skill_key, version_hash)
        skill = self._open_version(version, master_key)
        self._library.write(skill)

        index = self._index_store.load()
        index.update(
            [
                SyncIndexEntry(
                    skill_key=skill_key,
                    last_synced_hash=version.hash,
                    local_fingerprint=full_hash(skill),
                    remote_updated_at=version.created_at,
                )
            ]
        )
        self._index_store.save(index)
        logger.info("Checked out version", skill_key=skill_key, hash=version.hash)
        return skill

    async def diff(
        self, master_key: KeyLike, skill_key: str, old_hash: str, new_hash: str
    ) -> SkillDiff:
        """
        Unified line diff between two versions, including supporting files.

        Raises:
            NotFoundError: If either version does not exist.
            IntegrityError: If either version cannot be decrypted.
        """
        old_version, new_version = await asyncio.gather(
            self._remote.get_version(skill_key, old_hash),
            self._remote.get_version(skill_key, new_hash),
        )
        old = self._open_version(old_version, master_key)
        new = self._open_version(new_version, master_key)

        lines = _diff_lines(
            old.content, new.content, f"{old.name}@{old_hash}", f"{new.name}@{new_hash}"
        )
        old_files = {f.name: f.content for f in old.files}
        new_files = {f.name: f.content for f in new.files}
        for name in sorted(old_files.keys() & new_files.keys()):
            lines.extend(
                _diff_lines(
                    old_files[name], new_files[name], f"{name}@{old_hash}", f"{name}@{new_hash}"
                )
            )

        return SkillDiff(
            skill_key=skill_key,
            old_hash=old_hash,
            new_hash=new_hash,
            lines=tuple(lines),
            added_files=tuple(sorted(new_files.keys() - old_files.keys())),
            removed_files=tuple(sorted(old_files.keys() - new_files.keys())),
        )

    async def delete_remote(self, skill_key: str) -> None:
        """
        Delete a skill and its history from the server and forget it in the index.

        Local files are left untouched, so the next push uploads the skill again
        as a fresh chain.

        Raises:
            NotFoundError: If the server has no such skill.
        """
        await self._remote.delete_skill(skill_key)
        index = self._index_store.load()
        if index.remove(skill_key):
            self._index_store.save(index)
        logger.info("Deleted remote skill", skill_key=skill_key)

    def _exists_locally(self, skill_key: str) -> bool:
        try:
            return self._library.get(*split_skill_key(skill_key)) is not None
        except ValueError:
            return False

    async def _resolve_current(self, remote: RemoteSkill) -> str | None:
        history = await self._remote.list_versions(remote.skill_key, limit=1)
        resolved = resolve_current_hash(remote.current_hash, remote.updated_at, history.versions)
        if resolved is not None and resolved != remote.current_hash:
            logger.warning(
                "Current pointer is stale, repairing",
                skill_key=remote.skill_key,
                pointer=remote.current_hash,
                newest=resolved,
            )
            await self._remote.repair_pointer(remote.skill_key, resolved)
        return resolved

    def _open_version(self, version: SkillVersion, master_key: KeyLike) -> Skill:
        """
        Decrypt a version and check it is what its key and hash claim.

        Raises:
            IntegrityError: On decryption failure, a malformed payload, or a
                payload belonging to another skill or hash.
        """
        if version.envelope is None:
            raise IntegrityError("Version has no payload", skill_key=version.skill_key)

        plaintext = decrypt(version.envelope, master_key)
        try:
            skill = decode_skill_payload(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise IntegrityError(f"Undecodable payload: {e}", skill_key=version.skill_key) from e

        try:
            skill_type, name = split_skill_key(version.skill_key)
        except ValueError as e:
            raise IntegrityError(str(e), skill_key=version.skill_key) from e
        if skill.type is not skill_type or skill.name != name:
            raise IntegrityError(
                "Payload belongs to another skill",
                skill_key=version.skill_key,
                payload_key=skill.key,
            )
        if content_hash(skill) != version.hash:
            raise IntegrityError(
                "Payload does not match its content hash",
                skill_key=version.skill_key,
                hash=version.hash,
            )
        return skill

    def _commit(self, index: SyncIndex, outcomes: Sequence[_Outcome]) -> None:
        index.update([o for o in outcomes if isinstance(o, SyncIndexEntry)])
        index.last_sync_at = datetime.now(UTC)
        self._index_store.save(index)


def _report(on_progress: ProgressCallback | None, message: str) -> None:
    if on_progress is not None:
        on_progress(message)
