from __future__ import annotations

import logging
import re
from pathlib import Path

from skillsync.constants import COMMANDS_DIRNAME, SKILL_FILENAME, SKILLS_DIRNAME
from skillsync.errors import DuplicateSkillNameError
from skillsync.models import Platform, Skill, SkillScope, SkillType
from skillsync.parsers.base import ISkillParser, ParseResult, add_unique, collect, list_files, read_skill_file

logger = logging.getLogger(__name__)


class ClaudeCodeParser(ISkillParser):
    """Reads ``skills/<name>/SKILL.md`` and the sibling ``commands/*.md`` tree."""

    platform = Platform.CLAUDE_CODE

    @property
    def commands_dir(self) -> Path | None:
        if self.base.name != SKILLS_DIRNAME:
            return None
        return self.base.parent / COMMANDS_DIRNAME

    def exists(self) -> bool:
        commands_dir = self.commands_dir
        return self.base.exists() or (commands_dir is not None and commands_dir.exists())

    def parse(self) -> ParseResult:
        result = ParseResult()
        skills: dict[str, Skill] = {}
        for path in self._skill_files(result):
            skill = collect(
                result,
                read_skill_file(path, self.platform, default_name=path.parent.name, scope=self.scope),
            )
            if skill is not None:
                add_unique(result, skills, skill)

        commands_dir = self.commands_dir
        if commands_dir is None:
            return result
        commands = ParseResult()
        seen: dict[str, Skill] = {}
        for path in list_files(commands_dir, result, "*.md", recursive=True):
            name = command_name(path, commands_dir)
            skill = collect(
                result,
                read_skill_file(
                    path,
                    self.platform,
                    default_name=name,
                    default_type=SkillType.PROMPT,
                    default_trigger=f"/{name}",
                    scope=self.scope,
                ),
            )
            if skill is None:
                continue
            if skill.name in skills:
                logger.debug("Skill %s overrides command %s", skills[skill.name].path, path)
                continue
            add_unique(commands, seen, skill)

        result.extend(commands)
        result.skills.sort(key=lambda item: item.name)
        return result


def command_name(path: Path, commands_dir: Path) -> str:
    """``commands/git/commit.md`` is addressed as ``git:commit``."""
    relative = path.relative_to(commands_dir).with_suffix("")
    return ":".join(relative.parts)


_VERSION_PART_RE = re.compile(r"(\d+)")


def _version_key(value: str) -> tuple:
    return tuple(
        (0, int(part), "") if part.isdigit() else (1, 0, part)
        for part in _VERSION_PART_RE.split(value)
        if part
    )


class ClaudePluginCacheParser(ISkillParser):
    """Reads ``<cache>/<marketplace>/<plugin>/<version>/**/SKILL.md``.

    Only the newest cached version of each plugin is read.
    """

    platform = Platform.CLAUDE_CODE

    def __init__(self, base: Path, scope: SkillScope = SkillScope.PLUGIN) -> None:
        super().__init__(base, scope)

    def parse(self) -> ParseResult:
        result = ParseResult()
        if not self.base.is_dir():
            return result
        seen: dict[str, Skill] = {}
        for marketplace in _subdirs(self.base):
            for plugin in _subdirs(marketplace):
                versions = _subdirs(plugin)
                if not versions:
                    continue
                version = max(versions, key=lambda item: _version_key(item.name))
                extra = {
                    "plugin": plugin.name,
                    "marketplace": marketplace.name,
                    "plugin_version": version.name,
                    "source": "plugin-cache",
                }
                for path in list_files(version, result, SKILL_FILENAME, recursive=True):
                    skill = collect(
                        result,
                        read_skill_file(
                            path,
                            self.platform,
                            default_name=path.parent.name,
                            scope=self.scope,
                            extra_metadata=extra,
                        ),
                    )
                    if skill is None:
                        continue
                    if skill.name in seen:
                        result.warn(DuplicateSkillNameError(path, skill.name, seen[skill.name].path or path))
                        continue
                    seen[skill.name] = skill
                    result.skills.append(skill)
        result.skills.sort(key=lambda item: item.name)
        return result


def _subdirs(path: Path) -> list[Path]:
    try:
        return sorted(item for item in path.iterdir() if item.is_dir() and not item.name.startswith("."))
    except OSError:
        return []
