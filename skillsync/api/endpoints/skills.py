"""Versioned skill endpoints."""

from typing import Any
from urllib.parse import quote

from skillsync.api.http_client import AsyncHttpClient, reading_response
from skillsync.api.timestamps import parse_timestamp
from skillsync.exceptions import IntegrityError
from skillsync.models.crypto import EncryptedEnvelope
from skillsync.models.sync import PushReceipt, RemoteSkill, SkillHistory, SkillVersion


def _skill_path(skill_key: str) -> str:
    return f"/skills/{quote(skill_key, safe='')}"


def _parse_version(skill_key: str, data: dict[str, Any]) -> SkillVersion:
    envelope = None
    if "encryptedData" in data:
        try:
            envelope = EncryptedEnvelope.from_wire(data)
        except ValueError as e:
            raise IntegrityError(str(e), skill_key=skill_key) from e
    return SkillVersion(
        skill_key=data.get("skillKey", skill_key),
        hash=data["hash"],
        parent_hash=data.get("parentHash"),
        created_at=parse_timestamp(data.get("createdAt")),
        envelope=envelope,
        message=data.get("message"),
    )


async def list_skills(http: AsyncHttpClient) -> list[RemoteSkill]:
    """Every skill of the account with its current-hash pointer."""
    response = await http.request("GET", "/skills")
    with reading_response("/skills"):
        return [
            RemoteSkill(
                skill_key=s["skillKey"],
                current_hash=s.get("currentHash"),
                updated_at=parse_timestamp(s.get("updatedAt")),
            )
            for s in response.get("skills", [])
        ]


async def push_version(
    http: AsyncHttpClient,
    skill_key: str,
    content_hash: str,
    envelope: EncryptedEnvelope,
    message: str | None = None,
) -> PushReceipt:
    """
    Append a version and move the skill's current pointer to it.

    The server records the previous current hash as the parent. Pushing a hash
    that already exists replaces its envelope and keeps one version.
    """
    body: dict[str, Any] = {"hash": content_hash, **envelope.to_wire()}
    if message is not None:
        body["message"] = message

    path = f"{_skill_path(skill_key)}/versions"
    response = await http.request("POST", path, json=body)
    with reading_response(path):
        return PushReceipt(
            skill_key=skill_key,
            hash=response["hash"],
            parent_hash=response.get("parentHash"),
            created_at=parse_timestamp(response.get("createdAt")),
        )


async def list_versions(http: AsyncHttpClient, skill_key: str, limit: int = 50) -> SkillHistory:
    """Version metadata newest first. Carries no ciphertext."""
    path = f"{_skill_path(skill_key)}/versions"
    response = await http.request("GET", path, params={"limit": limit})
    with reading_response(path):
        return SkillHistory(
            skill_key=response.get("skillKey", skill_key),
            current_hash=response.get("currentHash"),
            versions=tuple(_parse_version(skill_key, v) for v in response.get("versions", [])),
        )


async def get_version(http: AsyncHttpClient, skill_key: str, content_hash: str) -> SkillVersion:
    """
    Raises:
        NotFoundError: If the skill or version does not exist.
    """
    path = f"{_skill_path(skill_key)}/versions/{quote(content_hash, safe='')}"
    response = await http.request("GET", path)
    with reading_response(path):
        return _parse_version(skill_key, response)


async def get_current(http: AsyncHttpClient, skill_key: str) -> SkillVersion:
    """
    Raises:
        NotFoundError: If the skill does not exist or has no versions.
    """
    path = _skill_path(skill_key)
    response = await http.request("GET", path)
    with reading_response(path):
        return _parse_version(skill_key, response)


async def delete_skill(http: AsyncHttpClient, skill_key: str) -> None:
    await http.request("DELETE", _skill_path(skill_key))
