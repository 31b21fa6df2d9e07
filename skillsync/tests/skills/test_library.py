"""Tests for the local skill library."""

from pathlib import Path

import pytest

from skillsync.exceptions import InvalidSkillError
from skillsync.models.skill import Skill, SkillFile, SkillType
from skillsync.skills.library import SkillLibrary, validate_skill


@pytest.fixture
def claude_dir(tmp_path: Path) -> Path:
    root = tmp_path / "claude"
    (root / "commands").mkdir(parents=True)
    (root / "agents").mkdir()
    (root / "skills" / "pdf").mkdir(parents=True)

    (root / "commands" / "deploy.md").write_text("---\ndescription: Ship\n---\nDeploy.\n")
    (root / "commands" / "notes.txt").write_text("Plain text command\n")
    (root / "commands" / "image.png").write_bytes(b"\x89PNG")
    (root / "agents" / "reviewer.md").write_text("---\nmodel: opus\n---\nReview code.\n")
    (root / "skills" / "pdf" / "SKILL.md").write_text("Handle PDFs.\n")
    (root / "skills" / "pdf" / "reference.md").write_text("Reference notes\n")
    (root / "skills" / "empty").mkdir()
    return root


@pytest.fixture
def library(claude_dir: Path) -> SkillLibrary:
    return SkillLibrary(claude_dir)


def test_list_all_sorted_by_type_then_name(library: SkillLibrary) -> None:
    skills = library.list_all()

    assert [s.key for s in skills] == [
        "command:deploy",
        "command:notes",
        "skill:pdf",
        "agent:reviewer",
    ]


def test_directory_skill_reads_supporting_files(library: SkillLibrary) -> None:
    skill = library.get(SkillType.SKILL, "pdf")

    assert skill is not None
    assert skill.content == "Handle PDFs.\n"
    assert skill.files == (SkillFile(name="reference.md", content="Reference notes\n"),)
    assert skill.modified_at is not None


def test_metadata_is_parsed(library: SkillLibrary) -> None:
    skill = library.get(SkillType.AGENT, "reviewer")

    assert skill is not None
    assert skill.metadata.model == "opus"


def test_missing_directories_are_empty(tmp_path: Path) -> None:
    assert SkillLibrary(tmp_path / "nowhere").list_all() == []


def test_unreadable_file_is_skipped(claude_dir: Path, library: SkillLibrary) -> None:
    (claude_dir / "commands" / "broken.md").write_bytes(b"\xff\xfe\x00invalid utf8")

    keys = [s.key for s in library.list_all()]

    assert "command:broken" not in keys
    assert "command:deploy" in keys


def test_get_missing_skill_returns_none(library: SkillLibrary) -> None:
    assert library.get(SkillType.COMMAND, "nope") is None
    assert library.get(SkillType.SKILL, "nope") is None


def test_write_new_command_creates_md_file(library: SkillLibrary, claude_dir: Path) -> None:
    path = library.write(Skill(name="lint", type=SkillType.COMMAND, content="Lint.\n"))

    assert path == claude_dir / "commands" / "lint.md"
    assert path.read_text() == "Lint.\n"


def test_write_overwrites_existing_file_with_its_extension(
    library: SkillLibrary, claude_dir: Path
) -> None:
    path = library.write(Skill(name="notes", type=SkillType.COMMAND, content="Updated\n"))

    assert path == claude_dir / "commands" / "notes.txt"
    assert not (claude_dir / "commands" / "notes.md").exists()


def test_write_agent_into_missing_directory(tmp_path: Path) -> None:
    library = SkillLibrary(tmp_path / "fresh")

    path = library.write(Skill(name="reviewer", type=SkillType.AGENT, content="Review.\n"))

    assert path == tmp_path / "fresh" / "agents" / "reviewer.md"


def test_write_directory_skill_with_supporting_files(
    library: SkillLibrary, claude_dir: Path
) -> None:
    skill = Skill(
        name="charts",
        type=SkillType.SKILL,
        content="Draw charts.\n",
        files=(SkillFile(name="examples.md", content="Examples\n"),),
    )

    path = library.write(skill)

    assert path == claude_dir / "skills" / "charts" / "SKILL.md"
    assert (claude_dir / "skills" / "charts" / "examples.md").read_text() == "Examples\n"
    assert library.get(SkillType.SKILL, "charts") == library.read_directory_skill(path.parent)


def test_write_directory_skill_removes_files_not_in_skill(
    library: SkillLibrary, claude_dir: Path
) -> None:
    skill_dir = claude_dir / "skills" / "pdf"
    skill = Skill(name="pdf", type=SkillType.SKILL, content="Handle PDFs better.\n")

    library.write(skill)

    assert sorted(p.name for p in skill_dir.iterdir()) == ["SKILL.md"]
    written = library.get(SkillType.SKILL, "pdf")
    assert written is not None
    assert written.files == ()
    assert written.content == "Handle PDFs better.\n"


def test_write_rejects_supporting_file_outside_skill_dir(
    library: SkillLibrary, claude_dir: Path
) -> None:
    skill = Skill(
        name="evil",
        type=SkillType.SKILL,
        content="x",
        files=(SkillFile(name="../../commands/pwned.md", content="x"),),
    )

    with pytest.raises(InvalidSkillError):
        library.write(skill)

    assert not (claude_dir / "commands" / "pwned.md").exists()
    assert not (claude_dir / "skills" / "evil").exists()


@pytest.mark.parametrize("name", ["", "has space", ".hidden", "a/b", "a\\b"])
def test_write_rejects_invalid_names(library: SkillLibrary, name: str) -> None:
    with pytest.raises(InvalidSkillError):
        library.write(Skill(name=name, type=SkillType.COMMAND, content="x"))


def test_validate_skill_reports_empty_content() -> None:
    problems = validate_skill(Skill(name="ok", type=SkillType.COMMAND, content="  "))

    assert problems == ["Skill content is empty"]
