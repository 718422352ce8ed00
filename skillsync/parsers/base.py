from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Union

from skillsync.constants import SKILL_FILENAME, SKILLS_DIRNAME
from skillsync.errors import (
    DuplicateSkillNameError,
    MalformedFrontmatterError,
    PermissionDeniedError,
    SkillFileError,
)
from skillsync.models import Platform, Skill, SkillScope, SkillType, parse_skill_type, platform_metadata
from skillsync.parsers.frontmatter import read_document, validate_skill_name

logger = logging.getLogger(__name__)

KNOWN_KEYS: tuple[str, ...] = ("name", "description", "type", "trigger")

FileOutcome = Union[Skill, SkillFileError]


class IssueSeverity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class ParseIssue:
    error: SkillFileError
    severity: IssueSeverity = IssueSeverity.WARNING

    @property
    def path(self) -> Path:
        return self.error.path

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass
class ParseResult:
    skills: list[Skill] = field(default_factory=list)
    issues: list[ParseIssue] = field(default_factory=list)

    def extend(self, other: ParseResult) -> None:
        self.skills.extend(other.skills)
        self.issues.extend(other.issues)

    def warn(self, error: SkillFileError) -> None:
        self.issues.append(ParseIssue(error=error, severity=IssueSeverity.WARNING))

    def fail(self, error: SkillFileError) -> None:
        self.issues.append(ParseIssue(error=error, severity=IssueSeverity.ERROR))

    @property
    def warnings(self) -> list[ParseIssue]:
        return [issue for issue in self.issues if issue.severity == IssueSeverity.WARNING]

    @property
    def errors(self) -> list[ParseIssue]:
        return [issue for issue in self.issues if issue.severity == IssueSeverity.ERROR]

    def by_name(self) -> dict[str, Skill]:
        return {skill.name: skill for skill in self.skills}


def read_skill_file(
    path: Path,
    platform: Platform,
    *,
    default_name: str,
    default_type: SkillType = SkillType.SKILL,
    default_trigger: str = "",
    scope: SkillScope = SkillScope.USER,
    extra_metadata: dict[str, Any] | None = None,
) -> FileOutcome:
    """Parse one skill file, returning either the Skill or the typed error."""
    try:
        document = read_document(path)
        stat = path.stat()
    except PermissionError:
        return PermissionDeniedError(path)
    except UnicodeDecodeError as exc:
        return MalformedFrontmatterError(path, f"not valid UTF-8 ({exc.reason})")
    except SkillFileError as exc:
        return exc
    except OSError as exc:
        return SkillFileError(path, exc.strerror or str(exc))

    fields = document.fields
    name = fields.get("name", default_name)
    if not isinstance(name, str):
        name = str(name)
    try:
        validate_skill_name(name, path)
        skill_type = parse_skill_type(fields["type"]) if "type" in fields else default_type
    except SkillFileError as exc:
        return exc
    except ValueError as exc:
        return MalformedFrontmatterError(path, str(exc))

    description = fields.get("description", "")
    trigger = fields.get("trigger", default_trigger if skill_type == SkillType.PROMPT else "")
    metadata = {key: value for key, value in fields.items() if key not in KNOWN_KEYS}
    if extra_metadata:
        metadata.update(extra_metadata)

    return Skill(
        name=name,
        platform=platform,
        description="" if description is None else str(description),
        content=document.content,
        metadata=metadata,
        scope=scope,
        type=skill_type,
        trigger="" if trigger is None else str(trigger),
        path=path.resolve(),
        mod_time=stat.st_mtime,
        frontmatter_keys=tuple(fields),
        has_frontmatter=document.has_frontmatter,
    )


def collect(result: ParseResult, outcome: FileOutcome) -> Skill | None:
    if isinstance(outcome, Skill):
        return outcome
    if isinstance(outcome, PermissionDeniedError):
        logger.warning("%s", outcome)
        result.fail(outcome)
    else:
        logger.warning("Skipping %s", outcome)
        result.warn(outcome)
    return None


def add_unique(result: ParseResult, seen: dict[str, Skill], skill: Skill) -> None:
    """Record ``skill`` unless its name is already taken in this parse."""
    existing = seen.get(skill.name)
    if existing is not None:
        result.fail(DuplicateSkillNameError(skill.path or Path(skill.name), skill.name, existing.path or Path()))
        return
    seen[skill.name] = skill
    result.skills.append(skill)


def list_files(root: Path, result: ParseResult, pattern: str, recursive: bool = False) -> list[Path]:
    """Sorted files under ``root``; a missing root yields nothing."""
    if not root.exists():
        return []
    try:
        iterator: Iterable[Path] = root.rglob(pattern) if recursive else root.glob(pattern)
        return sorted(path for path in iterator if path.is_file())
    except PermissionError:
        result.fail(PermissionDeniedError(root))
        return []


class ISkillParser(ABC):
    platform: Platform

    def __init__(self, base: Path, scope: SkillScope = SkillScope.USER) -> None:
        self.base = base
        self.scope = scope

    @abstractmethod
    def parse(self) -> ParseResult:
        raise NotImplementedError

    def default_path(self) -> Path:
        return Path.home() / platform_metadata(self.platform).config_dir / SKILLS_DIRNAME

    @property
    def skills_dir(self) -> Path:
        return self.base

    def exists(self) -> bool:
        return self.base.exists()

    def _skill_files(self, result: ParseResult) -> list[Path]:
        return list_files(self.skills_dir, result, SKILL_FILENAME, recursive=True)
