"""Tests for skill content addressing."""

import json
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from skillsync.models.skill import Skill, SkillFile, SkillType
from skillsync.skills.hashing import SHORT_HASH_LENGTH, canonicalize, content_hash, full_hash


def test_canonical_form_is_compact_json_in_fixed_order(make_skill: Callable[..., Skill]) -> None:
    skill = make_skill(name="deploy", content="Run it")

    assert canonicalize(skill) == '{"name":"deploy","type":"command","content":"Run it","files":[]}'


def test_canonical_form_keeps_non_ascii(make_skill: Callable[..., Skill]) -> None:
    skill = make_skill(content="Déployer 🚀")

    assert "Déployer 🚀" in canonicalize(skill)


def test_files_are_sorted_by_name(make_skill: Callable[..., Skill]) -> None:
    a = SkillFile(name="a.md", content="A")
    b = SkillFile(name="b.md", content="B")

    first = make_skill(skill_type=SkillType.SKILL, files=(b, a))
    second = make_skill(skill_type=SkillType.SKILL, files=(a, b))

    assert content_hash(first) == content_hash(second)
    assert [f["name"] for f in json.loads(canonicalize(first))["files"]] == ["a.md", "b.md"]


def test_hash_ignores_path_and_timestamps(make_skill: Callable[..., Skill]) -> None:
    skill = make_skill()
    moved = Skill(
        name=skill.name,
        type=skill.type,
        content=skill.content,
        path=Path("/elsewhere/deploy.md"),
        modified_at=datetime(2020, 1, 1, tzinfo=UTC),
    )

    assert content_hash(skill) == content_hash(moved)


def test_hash_changes_with_content_name_or_type(make_skill: Callable[..., Skill]) -> None:
    base = content_hash(make_skill())

    assert content_hash(make_skill(content="other")) != base
    assert content_hash(make_skill(name="release")) != base
    assert content_hash(make_skill(skill_type=SkillType.AGENT)) != base


def test_short_hash_is_prefix_of_full_hash(make_skill: Callable[..., Skill]) -> None:
    skill = make_skill()

    assert len(full_hash(skill)) == 64
    assert len(content_hash(skill)) == SHORT_HASH_LENGTH
    assert full_hash(skill).startswith(content_hash(skill))
