"""
Local skill library rooted at the claude directory.

Layout:
    commands/<name>.md          command skills (also .txt or no extension)
    agents/<name>.md            agent skills
    skills/<name>/SKILL.md      directory skills, plus supporting files
"""

from datetime import UTC, datetime
from pathlib import Path

import structlog

from skillsync.exceptions import InvalidSkillError
from skillsync.models.skill import Skill, SkillFile, SkillType
from skillsync.skills.frontmatter import parse_frontmatter

logger = structlog.get_logger(__name__)

FILE_SKILL_EXTENSIONS = frozenset({".md", ".txt", ""})
DEFAULT_MAIN_FILE = "SKILL.md"
_MAIN_FILE_NAMES = frozenset({"skill.md", "index.md"})


def validate_skill(skill: Skill) -> list[str]:
    """
    Check a skill for problems that would break syncing or writing.

    Returns:
        Human-readable problems; empty when the skill is valid.
    """
    errors: list[str] = []
    if not skill.name.strip():
        errors.append("Skill name is required")
    if not skill.content.strip():
        errors.append("Skill content is empty")
    if " " in skill.name:
        errors.append("Skill name should not contain spaces")
    if skill.name.startswith("."):
        errors.append("Skill name should not start with a dot")
    if "/" in skill.name or "\\" in skill.name:
        errors.append("Skill name should not contain path separators")
    return errors


def _modified_at(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)


def _is_main_file(filename: str, skill_name: str) -> bool:
    lower = filename.lower()
    return lower in _MAIN_FILE_NAMES or lower == f"{skill_name.lower()}.md"


class SkillLibrary:
    """Reads and writes skills under a claude directory."""

    def __init__(self, claude_dir: Path) -> None:
        self._root = claude_dir

    @property
    def root(self) -> Path:
        return self._root

    def type_dir(self, skill_type: SkillType) -> Path:
        return self._root / skill_type.directory

    def list_all(self) -> list[Skill]:
        """
        Every readable skill, sorted by type (command, skill, agent) then name.

        Missing directories are treated as empty. Files that cannot be read
        are skipped with a warning.
        """
        skills: list[Skill] = []
        for skill_type in SkillType:
            if skill_type is SkillType.SKILL:
                skills.extend(self._list_directory_skills())
            else:
                skills.extend(self._list_file_skills(skill_type))
        return sorted(skills, key=lambda s: (s.type.sort_order, s.name))

    def get(self, skill_type: SkillType, name: str) -> Skill | None:
        """Read one skill by type and name, or None if it does not exist locally."""
        if skill_type is SkillType.SKILL:
            path = self.type_dir(skill_type) / name
            return self.read_directory_skill(path) if path.is_dir() else None
        for skill in self._list_file_skills(skill_type):
            if skill.name == name:
                return skill
        return None

    def read_file_skill(self, path: Path, skill_type: SkillType) -> Skill:
        """
        Raises:
            OSError: If the file cannot be read.
            UnicodeDecodeError: If the file is not UTF-8.
        """
        content = path.read_text(encoding="utf-8")
        metadata, _ = parse_frontmatter(content)
        return Skill(
            name=path.stem,
            type=skill_type,
            content=content,
            metadata=metadata,
            path=path,
            modified_at=_modified_at(path),
        )

    def read_directory_skill(self, path: Path) -> Skill | None:
        """
        Read a directory skill. Returns None if it has no main file.

        Raises:
            OSError: If a file cannot be read.
            UnicodeDecodeError: If a file is not UTF-8.
        """
        name = path.name
        files = sorted(p for p in path.iterdir() if p.is_file())
        main = next((p for p in files if _is_main_file(p.name, name)), None)
        if main is None:
            return None

        content = main.read_text(encoding="utf-8")
        metadata, _ = parse_frontmatter(content)
        supporting = tuple(
            SkillFile(name=p.name, content=p.read_text(encoding="utf-8"))
            for p in files
            if p != main
        )
        return Skill(
            name=name,
            type=SkillType.SKILL,
            content=content,
            files=supporting,
            metadata=metadata,
            path=path,
            modified_at=_modified_at(main),
        )

    def _list_file_skills(self, skill_type: SkillType) -> list[Skill]:
        directory = self.type_dir(skill_type)
        if not directory.is_dir():
            return []

        skills = []
        for path in sorted(directory.iterdir()):
            if not path.is_file() or path.suffix.lower() not in FILE_SKILL_EXTENSIONS:
                continue
            try:
                skills.append(self.read_file_skill(path, skill_type))
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable skill", path=str(path), error=str(e))
        return skills

    def _list_directory_skills(self) -> list[Skill]:
        directory = self.type_dir(SkillType.SKILL)
        if not directory.is_dir():
            return []

        skills = []
        for path in sorted(directory.iterdir()):
            if not path.is_dir() or path.name.startswith("."):
                continue
            try:
                skill = self.read_directory_skill(path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable skill", path=str(path), error=str(e))
                continue
            if skill is not None:
                skills.append(skill)
        return skills

    def write(self, skill: Skill) -> Path:
        """
        Write a skill into its type directory, creating directories as needed.

        Directory skills are written as ``skills/<name>/SKILL.md`` (or over an
        existing main file) plus their supporting files; any other file in the
        skill directory is removed. Other types are written as
        ``<type dir>/<name>.md`` (or over an existing file of that name).

        Returns:
            Path of the main file written.

        Raises:
            InvalidSkillError: If the name or a supporting file name would
                escape the target directory.
        """
        if problems := validate_skill(skill):
            raise InvalidSkillError("; ".join(problems), skill_key=skill.key)

        if skill.type is SkillType.SKILL:
            return self._write_directory_skill(skill)

        directory = self.type_dir(skill.type)
        directory.mkdir(parents=True, exist_ok=True)
        existing = self._existing_file(directory, skill.name)
        target = existing or directory / f"{skill.name}.md"
        target.write_text(skill.content, encoding="utf-8")
        logger.debug("Wrote skill", skill_key=skill.key, path=str(target))
        return target

    def _existing_file(self, directory: Path, name: str) -> Path | None:
        for suffix in (".md", ".txt", ""):
            candidate = directory / f"{name}{suffix}"
            if candidate.is_file():
                return candidate
        return None

    def _write_directory_skill(self, skill: Skill) -> Path:
        skill_dir = self.type_dir(SkillType.SKILL) / skill.name
        resolved_dir = skill_dir.resolve()
        targets = []
        for f in skill.files:
            target = (skill_dir / f.name).resolve()
            if target.parent != resolved_dir:
                raise InvalidSkillError(
                    f"Supporting file escapes skill directory: {f.name!r}",
                    skill_key=skill.key,
                )
            targets.append((target, f.content))

        skill_dir.mkdir(parents=True, exist_ok=True)
        main = next(
            (p for p in sorted(skill_dir.iterdir()) if p.is_file() and _is_main_file(p.name, skill.name)),
            skill_dir / DEFAULT_MAIN_FILE,
        )
        main.write_text(skill.content, encoding="utf-8")
        for target, content in targets:
            target.write_text(content, encoding="utf-8")

        keep = {main.resolve()} | {target for target, _ in targets}
        for stale in sorted(skill_dir.iterdir()):
            if stale.is_file() and stale.resolve() not in keep:
                stale.unlink()
                logger.debug("Removed stale skill file", skill_key=skill.key, path=str(stale))

        logger.debug("Wrote skill", skill_key=skill.key, path=str(main), files=len(targets))
        return main
