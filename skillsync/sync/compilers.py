"""Per-platform skill writers: file layout and frontmatter emission."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from skillsync.constants import COMMANDS_DIRNAME, SKILL_FILENAME, SKILLS_DIRNAME
from skillsync.models import Platform, Skill, SkillType
from skillsync.parsers.claude import command_name
from skillsync.parsers.frontmatter import render_document


class ISkillCompiler(ABC):
    platform: Platform
    # Metadata keys the platform has no use for; dropped from skills read elsewhere.
    foreign_keys: frozenset[str] = frozenset()

    @abstractmethod
    def target_path(self, skill: Skill, root: Path) -> Path:
        """Canonical location of ``skill`` under the platform's skills ``root``."""

    def default_name(self, path: Path) -> str:
        return path.parent.name if path.name == SKILL_FILENAME else path.stem

    def default_type(self, path: Path) -> SkillType:
        return SkillType.SKILL

    def default_trigger(self, skill: Skill, path: Path) -> str:
        return ""

    def fields(self, skill: Skill, path: Path) -> dict[str, Any]:
        """Frontmatter for ``skill`` written at ``path``.

        Keys keep the order they had in the file the skill was read from;
        values the layout already implies are left out unless that file
        spelled them out.
        """
        known: dict[str, Any] = {
            "name": skill.name,
            "description": skill.description,
            "type": skill.type.value,
            "trigger": skill.trigger,
        }
        fields: dict[str, Any] = {}
        for key in skill.frontmatter_keys:
            if key in known:
                fields[key] = known[key]
            elif key in skill.metadata:
                fields[key] = skill.metadata[key]

        if "name" not in fields and skill.name != self.default_name(path):
            fields = {"name": skill.name, **fields}
        if "description" not in fields and skill.description:
            fields["description"] = skill.description
        if "type" not in fields and skill.type != self.default_type(path):
            fields["type"] = skill.type.value
        if "trigger" not in fields and skill.trigger and skill.trigger != self.default_trigger(skill, path):
            fields["trigger"] = skill.trigger
        for key, value in skill.metadata.items():
            if key not in fields:
                fields[key] = value
        if skill.platform != self.platform:
            for key in self.foreign_keys:
                fields.pop(key, None)
        return fields

    def render(self, skill: Skill, path: Path) -> str:
        return render_document(self.fields(skill, path), skill.content, fenced=skill.has_frontmatter)


def _path_segment(name: str) -> str:
    return name.replace("/", ":")


class ClaudeCodeSkillCompiler(ISkillCompiler):
    """Prompts go to ``commands/<name>.md`` next to the skills directory."""

    platform = Platform.CLAUDE_CODE
    foreign_keys = frozenset({"globs", "alwaysApply"})

    def target_path(self, skill: Skill, root: Path) -> Path:
        if skill.type == SkillType.PROMPT and root.name == SKILLS_DIRNAME:
            commands_dir = root.parent / COMMANDS_DIRNAME
            return commands_dir.joinpath(*skill.name.replace("/", ":").split(":")).with_suffix(".md")
        return root / _path_segment(skill.name) / SKILL_FILENAME

    def _commands_dir(self, path: Path) -> Path | None:
        for parent in path.parents:
            if parent.name == COMMANDS_DIRNAME:
                return parent
        return None

    def default_name(self, path: Path) -> str:
        commands_dir = self._commands_dir(path)
        if commands_dir is not None and path.name != SKILL_FILENAME:
            return command_name(path, commands_dir)
        return super().default_name(path)

    def default_type(self, path: Path) -> SkillType:
        if path.name != SKILL_FILENAME and self._commands_dir(path) is not None:
            return SkillType.PROMPT
        return SkillType.SKILL

    def default_trigger(self, skill: Skill, path: Path) -> str:
        if self.default_type(path) == SkillType.PROMPT:
            return f"/{self.default_name(path)}"
        return ""


class CursorSkillCompiler(ISkillCompiler):
    """Flat ``<name>.md`` files; rule keys (``globs``, ``alwaysApply``) pass through."""

    platform = Platform.CURSOR

    def target_path(self, skill: Skill, root: Path) -> Path:
        return root / f"{_path_segment(skill.name)}.md"


class CodexSkillCompiler(ISkillCompiler):
    platform = Platform.CODEX

    def target_path(self, skill: Skill, root: Path) -> Path:
        return root / _path_segment(skill.name) / SKILL_FILENAME


COMPILERS: dict[Platform, type[ISkillCompiler]] = {
    Platform.CLAUDE_CODE: ClaudeCodeSkillCompiler,
    Platform.CURSOR: CursorSkillCompiler,
    Platform.CODEX: CodexSkillCompiler,
}


def compiler_for(platform: Platform) -> ISkillCompiler:
    return COMPILERS[platform]()
