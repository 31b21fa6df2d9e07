"""
Skill domain models.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any, Self

MetadataValue = str | list[str] | None


class SkillType(StrEnum):
    """Kind of skill, each stored in its own directory under ~/.claude."""

    COMMAND = "command"
    SKILL = "skill"
    AGENT = "agent"

    @property
    def directory(self) -> str:
        """Directory name under the claude dir."""
        match self:
            case SkillType.COMMAND:
                return "commands"
            case SkillType.SKILL:
                return "skills"
            case SkillType.AGENT:
                return "agents"

    @property
    def sort_order(self) -> int:
        return list(SkillType).index(self)


# Frontmatter key -> SkillMetadata attribute
_METADATA_FIELDS: dict[str, str] = {
    "description": "description",
    "triggers": "triggers",
    "author": "author",
    "version": "version",
    "allowed-tools": "allowed_tools",
    "tools": "tools",
    "model": "model",
    "permissionMode": "permission_mode",
    "depends-on": "depends_on",
    "category": "category",
    "tags": "tags",
}


@dataclass(frozen=True, kw_only=True)
class SkillMetadata:
    """
    Parsed frontmatter of a skill.

    Known keys get a named attribute; anything else is kept verbatim in
    ``extra`` so that unknown fields survive a parse/serialize round trip.
    """

    description: MetadataValue = None
    triggers: MetadataValue = None
    author: MetadataValue = None
    version: MetadataValue = None
    allowed_tools: MetadataValue = None
    tools: MetadataValue = None
    model: MetadataValue = None
    permission_mode: MetadataValue = None
    depends_on: MetadataValue = None
    category: MetadataValue = None
    tags: MetadataValue = None
    extra: dict[str, MetadataValue] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: dict[str, MetadataValue]) -> Self:
        """Split a raw frontmatter mapping into named fields and extras."""
        known: dict[str, Any] = {}
        extra: dict[str, MetadataValue] = {}
        for key, value in data.items():
            if (attr := _METADATA_FIELDS.get(key)) is not None:
                known[attr] = value
            else:
                extra[key] = value
        return cls(**known, extra=extra)

    def to_mapping(self) -> dict[str, MetadataValue]:
        """Raw frontmatter mapping with None values dropped."""
        result: dict[str, MetadataValue] = {}
        for key, attr in _METADATA_FIELDS.items():
            if (value := getattr(self, attr)) is not None:
                result[key] = value
        for key, value in self.extra.items():
            if value is not None:
                result[key] = value
        return result

    def get(self, key: str) -> MetadataValue:
        """Look up a value by its frontmatter key."""
        if (attr := _METADATA_FIELDS.get(key)) is not None:
            return getattr(self, attr)
        return self.extra.get(key)


@dataclass(frozen=True, kw_only=True)
class SkillFile:
    """Supporting file of a directory-based skill."""

    name: str
    content: str


@dataclass(frozen=True, kw_only=True)
class Skill:
    """
    A command, skill or agent as found on disk.

    Attributes:
        name: File stem or directory name.
        type: Skill kind.
        content: Raw text of the main file, frontmatter included.
        files: Supporting files (directory skills only).
        metadata: Parsed frontmatter.
        path: Where the skill lives locally, if anywhere.
        modified_at: Modification time of the main file.
    """

    name: str
    type: SkillType
    content: str
    files: tuple[SkillFile, ...] = ()
    metadata: SkillMetadata = field(default_factory=SkillMetadata)
    path: Path | None = None
    modified_at: datetime | None = None

    @property
    def key(self) -> str:
        """Account-unique identifier, e.g. ``command:deploy``."""
        return skill_key(self.type, self.name)

    def with_content(self, content: str, files: tuple[SkillFile, ...] | None = None) -> Self:
        return replace(self, content=content, files=self.files if files is None else files)


def skill_key(skill_type: SkillType | str, name: str) -> str:
    return f"{SkillType(skill_type).value}:{name}"


def split_skill_key(key: str) -> tuple[SkillType, str]:
    """
    Split ``type:name`` into its parts.

    Raises:
        ValueError: If the key has no known type prefix.
    """
    type_part, sep, name = key.partition(":")
    if not sep or not name:
        msg = f"Invalid skill key: {key!r}"
        raise ValueError(msg)
    return SkillType(type_part), name
