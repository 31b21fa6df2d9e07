"""
Local skill handling: reading and writing the claude directory, frontmatter,
content hashing and dependency detection.
"""

from skillsync.skills.dependencies import (
    DependencyNode,
    build_dependency_graph,
    detect_references,
    explicit_dependencies,
)
from skillsync.skills.frontmatter import (
    parse_frontmatter,
    serialize_frontmatter,
    skill_description,
    skill_tools,
    skill_triggers,
)
from skillsync.skills.hashing import canonicalize, content_hash, full_hash
from skillsync.skills.library import SkillLibrary, validate_skill
from skillsync.skills.payload import decode_skill_payload, encode_skill_payload

__all__ = [
    "SkillLibrary",
    "validate_skill",
    "canonicalize",
    "content_hash",
    "full_hash",
    "parse_frontmatter",
    "serialize_frontmatter",
    "skill_description",
    "skill_tools",
    "skill_triggers",
    "encode_skill_payload",
    "decode_skill_payload",
    "DependencyNode",
    "build_dependency_graph",
    "detect_references",
    "explicit_dependencies",
]
