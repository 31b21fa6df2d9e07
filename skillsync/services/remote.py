"""
Remote skill store used by the sync service.

Every call may fail; failures surface as SkillSyncError subclasses
(NetworkError, NotFoundError, APIError, ...) and are never assumed away.
"""

from typing import Protocol

import structlog

from skillsync.api.endpoints import health
from skillsync.api.endpoints import skills as skills_api
from skillsync.api.http_client import AsyncHttpClient
from skillsync.core.cache import LRUCache
from skillsync.exceptions import APIError, IntegrityError, NetworkError, NotFoundError
from skillsync.models.crypto import EncryptedEnvelope
from skillsync.models.sync import PushReceipt, RemoteSkill, SkillHistory, SkillVersion
from skillsync.services.version_chain import DEFAULT_VERSION_LIMIT, VersionChain

logger = structlog.get_logger(__name__)


class SkillRemote(Protocol):
    """Append and read skill versions keyed by (skill key, content hash)."""

    async def check_health(self) -> None:
        """
        Raises:
            NetworkError: If the store cannot be reached or reports itself unhealthy.
        """
        ...

    async def list_skills(self) -> list[RemoteSkill]: ...

    async def push_version(
        self,
        skill_key: str,
        content_hash: str,
        envelope: EncryptedEnvelope,
        message: str | None = None,
    ) -> PushReceipt: ...

    async def get_version(self, skill_key: str, content_hash: str) -> SkillVersion: ...

    async def get_current(self, skill_key: str) -> SkillVersion: ...

    async def list_versions(
        self, skill_key: str, limit: int = DEFAULT_VERSION_LIMIT
    ) -> SkillHistory: ...

    async def delete_skill(self, skill_key: str) -> None: ...

    async def repair_pointer(self, skill_key: str, content_hash: str) -> None:
        """Move the current pointer to an existing version."""
        ...


class HttpSkillRemote:
    """
    :class:`SkillRemote` backed by the sync server.

    Version payloads are immutable per (skill key, hash) as far as their
    plaintext goes, so fetched versions are kept in an LRU cache.
    """

    def __init__(self, http: AsyncHttpClient, *, cache_size: int = 256) -> None:
        self._http = http
        self._versions: LRUCache[tuple[str, str], SkillVersion] = LRUCache(cache_size)

    async def check_health(self) -> None:
        try:
            status = await health.check_health(self._http)
        except APIError as e:
            msg = f"Server unhealthy: {e.message}"
            raise NetworkError(msg, code=e.code) from e
        logger.debug("Server reachable", version=status.get("version"), status=status.get("status"))

    async def list_skills(self) -> list[RemoteSkill]:
        return await skills_api.list_skills(self._http)

    async def push_version(
        self,
        skill_key: str,
        content_hash: str,
        envelope: EncryptedEnvelope,
        message: str | None = None,
    ) -> PushReceipt:
        self._versions.remove((skill_key, content_hash))
        return await skills_api.push_version(
            self._http, skill_key, content_hash, envelope, message
        )

    async def get_version(self, skill_key: str, content_hash: str) -> SkillVersion:
        key = (skill_key, content_hash)
        if (cached := self._versions.get(key)) is not None:
            return cached

        version = await skills_api.get_version(self._http, skill_key, content_hash)
        if version.hash != content_hash:
            msg = f"Server returned version {version.hash} for {content_hash}"
            raise IntegrityError(msg, skill_key=skill_key)
        self._versions.put(key, version)
        return version

    async def get_current(self, skill_key: str) -> SkillVersion:
        version = await skills_api.get_current(self._http, skill_key)
        self._versions.put((skill_key, version.hash), version)
        return version

    async def list_versions(
        self, skill_key: str, limit: int = DEFAULT_VERSION_LIMIT
    ) -> SkillHistory:
        return await skills_api.list_versions(self._http, skill_key, limit)

    async def delete_skill(self, skill_key: str) -> None:
        await skills_api.delete_skill(self._http, skill_key)
        for key in [k for k in self._versions.keys() if k[0] == skill_key]:
            self._versions.remove(key)

    async def repair_pointer(self, skill_key: str, content_hash: str) -> None:
        """
        Re-push an existing version unchanged.

        The server upserts the existing row (parent and creation time kept)
        and moves the pointer to it.
        """
        version = await self.get_version(skill_key, content_hash)
        if version.envelope is None:
            msg = f"Version {content_hash} has no payload"
            raise IntegrityError(msg, skill_key=skill_key)
        await self.push_version(skill_key, content_hash, version.envelope, version.message)
        logger.info("Repaired current pointer", skill_key=skill_key, hash=content_hash)


class LocalSkillRemote:
    """:class:`SkillRemote` over an in-process :class:`VersionChain`."""

    def __init__(self, chain: VersionChain | None = None) -> None:
        self._chain = chain if chain is not None else VersionChain()

    @property
    def chain(self) -> VersionChain:
        return self._chain

    async def check_health(self) -> None:
        return None

    async def list_skills(self) -> list[RemoteSkill]:
        return self._chain.list_skills()

    async def push_version(
        self,
        skill_key: str,
        content_hash: str,
        envelope: EncryptedEnvelope,
        message: str | None = None,
    ) -> PushReceipt:
        return self._chain.append(skill_key, content_hash, envelope, message)

    async def get_version(self, skill_key: str, content_hash: str) -> SkillVersion:
        return self._chain.get_version(skill_key, content_hash)

    async def get_current(self, skill_key: str) -> SkillVersion:
        current = self._chain.current_hash(skill_key)
        if current is None:
            msg = f"Skill has no versions: {skill_key}"
            raise NotFoundError(msg)
        return self._chain.get_version(skill_key, current)

    async def list_versions(
        self, skill_key: str, limit: int = DEFAULT_VERSION_LIMIT
    ) -> SkillHistory:
        return SkillHistory(
            skill_key=skill_key,
            current_hash=self._chain.current_hash(skill_key),
            versions=tuple(self._chain.list_versions(skill_key, limit)),
        )

    async def delete_skill(self, skill_key: str) -> None:
        self._chain.delete_skill(skill_key)

    async def repair_pointer(self, skill_key: str, content_hash: str) -> None:
        self._chain.update_current_pointer(skill_key, content_hash)
