"""
Plaintext payload encrypted for each pushed version.

JSON object with ``name``, ``type``, ``content``, ``files``, ``path`` and
``modifiedAt``. Other clients read the same object, so keys are camelCase.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from skillsync.models.skill import Skill, SkillFile, SkillType
from skillsync.skills.frontmatter import parse_frontmatter


def encode_skill_payload(skill: Skill) -> str:
    payload: dict[str, Any] = {
        "name": skill.name,
        "content": skill.content,
        "path": str(skill.path) if skill.path else None,
        "modifiedAt": skill.modified_at.isoformat() if skill.modified_at else None,
        "type": skill.type.value,
        "files": [{"name": f.name, "content": f.content} for f in skill.files] or None,
    }
    return json.dumps(payload, ensure_ascii=False)


def decode_skill_payload(text: str) -> Skill:
    """
    Rebuild a skill from a decrypted payload.

    ``path`` is the path on the device that pushed the skill and is kept only
    for information. A missing ``type`` means ``command``.

    Raises:
        ValueError: If the payload is not a JSON object with a name and content.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        msg = f"Skill payload is not valid JSON: {e}"
        raise ValueError(msg) from e
    if not isinstance(data, dict) or not isinstance(data.get("name"), str):
        msg = "Skill payload has no name"
        raise ValueError(msg)
    if not isinstance(data.get("content"), str):
        msg = "Skill payload has no content"
        raise ValueError(msg)

    try:
        files = tuple(
            SkillFile(name=f["name"], content=f["content"]) for f in data.get("files") or ()
        )
        skill_type = SkillType(data.get("type") or SkillType.COMMAND)
        modified_at = data.get("modifiedAt")
        modified = datetime.fromisoformat(modified_at) if modified_at else None
    except (KeyError, TypeError, ValueError) as e:
        msg = f"Malformed skill payload: {e}"
        raise ValueError(msg) from e

    path = data.get("path")
    content = data["content"]
    metadata, _ = parse_frontmatter(content)
    return Skill(
        name=data["name"],
        type=skill_type,
        content=content,
        files=files,
        metadata=metadata,
        path=Path(path) if path else None,
        modified_at=modified,
    )
