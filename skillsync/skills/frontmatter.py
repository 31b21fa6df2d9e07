"""
Frontmatter parsing for skill files.

Skills carry a small ``---`` delimited header of ``key: value`` lines. Only
the subset actually used by skill files is supported: plain scalars, quoted
strings and single-line ``[a, b]`` lists.
"""

import re

from skillsync.models.skill import MetadataValue, Skill, SkillMetadata

_FRONTMATTER_RE = re.compile(r"^---\r?\n(.*?)\r?\n---\r?\n(.*)$", re.DOTALL)
_QUOTES = "\"'"
_MAX_DESCRIPTION_LENGTH = 100


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
        return value[1:-1]
    return value


def _parse_value(raw: str) -> MetadataValue:
    if raw.startswith("[") and raw.endswith("]"):
        items = (item.strip().strip(_QUOTES) for item in raw[1:-1].split(","))
        return [item for item in items if item]
    return _unquote(raw)


def parse_frontmatter(text: str) -> tuple[SkillMetadata, str]:
    """
    Split a skill file into metadata and body.

    Args:
        text: Full file content.

    Returns:
        Parsed metadata and the body after the header. Text without a header
        yields empty metadata and the text unchanged.
    """
    match = _FRONTMATTER_RE.match(text)
    if match is None:
        return SkillMetadata(), text

    header, body = match.groups()
    raw: dict[str, MetadataValue] = {}
    for line in header.split("\n"):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        raw[key.strip()] = _parse_value(value.strip())

    return SkillMetadata.from_mapping(raw), body


def _format_value(value: str | list[str]) -> str:
    if isinstance(value, list):
        return "[" + ", ".join(f'"{item}"' for item in value) + "]"
    if any(ch in value for ch in ':#"'):
        escaped = value.replace('"', '\\"')
        return f'"{escaped}"'
    return value


def serialize_frontmatter(metadata: SkillMetadata, body: str) -> str:
    """
    Render metadata back into a header followed by ``body``.

    Returns ``body`` unchanged when there is no metadata to write.
    """
    mapping = metadata.to_mapping()
    if not mapping:
        return body

    lines = ["---"]
    lines.extend(f"{key}: {_format_value(value)}" for key, value in mapping.items())
    lines.append("---")
    lines.append(body)
    return "\n".join(lines)


def skill_triggers(skill: Skill) -> list[str]:
    """Declared triggers plus the implicit ``/<name>`` slash trigger."""
    triggers: list[str] = []
    match skill.metadata.triggers:
        case list() as items:
            triggers.extend(str(item) for item in items)
        case str() as item if item:
            triggers.append(item)

    slash = f"/{skill.name}"
    if slash not in triggers:
        triggers.append(slash)
    return triggers


def skill_description(skill: Skill) -> str:
    """
    Description from metadata, else the first prose line of the body.

    Headings and lines of ten characters or fewer are skipped; long lines are
    truncated to 100 characters.
    """
    if skill.metadata.description:
        description = skill.metadata.description
        return ", ".join(description) if isinstance(description, list) else description

    _, body = parse_frontmatter(skill.content)
    for line in body.split("\n"):
        line = line.strip()
        if line and not line.startswith("#") and len(line) > 10:
            if len(line) > _MAX_DESCRIPTION_LENGTH:
                return line[: _MAX_DESCRIPTION_LENGTH - 3] + "..."
            return line
    return "No description"


def skill_tools(skill: Skill) -> list[str]:
    """Tools from ``allowed-tools`` (or ``tools``) as a comma-separated string or list."""
    tools = skill.metadata.allowed_tools or skill.metadata.tools
    if not tools:
        return []
    if isinstance(tools, list):
        return [t.strip() for t in tools if t.strip()]
    return [t.strip() for t in tools.split(",") if t.strip()]
