"""
Skill dependency detection.

Presentation only: nothing here feeds hashing or syncing.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from skillsync.models.skill import Skill, SkillType
from skillsync.skills.frontmatter import skill_tools

_REFERENCE_PATTERNS = (
    # Markdown links to another skill: ../name/SKILL.md
    re.compile(r"\.\./([\w-]+)/(?:SKILL|skill)\.md", re.IGNORECASE),
    # Slash commands: /name
    re.compile(r"(?:^|[^/\w])/([a-z][\w-]*)", re.IGNORECASE),
    # Prose: "after name", "run /name", ...
    re.compile(r"(?:after|from|using|run|invoke)\s+/?([a-z][\w-]*)", re.IGNORECASE),
)


@dataclass(kw_only=True)
class DependencyNode:
    """One skill in a dependency graph. ``dependents`` is filled in by the graph builder."""

    name: str
    type: SkillType
    dependencies: list[str] = field(default_factory=list)
    dependents: list[str] = field(default_factory=list)
    tools: list[str] = field(default_factory=list)
    model: str | None = None


def explicit_dependencies(skill: Skill) -> list[str]:
    """Names listed in the ``depends-on`` frontmatter key."""
    match skill.metadata.depends_on:
        case list() as deps:
            return [str(d) for d in deps]
        case str() as dep if dep:
            return [dep]
        case _:
            return []


def detect_references(skill: Skill, known_names: Iterable[str]) -> list[str]:
    """
    Known skill names referenced in the content, in order of first match.

    The skill itself is never reported.
    """
    known = set(known_names)
    found: dict[str, None] = {}
    for pattern in _REFERENCE_PATTERNS:
        for match in pattern.finditer(skill.content):
            ref = match.group(1)
            if ref in known and ref != skill.name:
                found.setdefault(ref)
    return list(found)


def skill_dependencies(skill: Skill, known_names: Iterable[str]) -> tuple[list[str], list[str]]:
    """
    Returns:
        ``(explicit, implicit)`` where implicit excludes anything already explicit.
    """
    explicit = explicit_dependencies(skill)
    implicit = [d for d in detect_references(skill, known_names) if d not in explicit]
    return explicit, implicit


def build_dependency_graph(skills: Iterable[Skill]) -> dict[str, DependencyNode]:
    """Graph keyed by skill name, with reverse links in ``dependents``."""
    skills = list(skills)
    names = [s.name for s in skills]
    graph: dict[str, DependencyNode] = {}

    for skill in skills:
        explicit, implicit = skill_dependencies(skill, names)
        model = skill.metadata.model
        graph[skill.name] = DependencyNode(
            name=skill.name,
            type=skill.type,
            dependencies=explicit + implicit,
            tools=skill_tools(skill),
            model=model if isinstance(model, str) else None,
        )

    for node in graph.values():
        for dep_name in node.dependencies:
            dep = graph.get(dep_name)
            if dep is not None and node.name not in dep.dependents:
                dep.dependents.append(node.name)

    return graph
