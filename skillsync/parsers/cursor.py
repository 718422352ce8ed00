from __future__ import annotations

from skillsync.constants import CURSOR_SUFFIXES, SKILL_FILENAME
from skillsync.models import Platform, Skill
from skillsync.parsers.base import ISkillParser, ParseResult, add_unique, collect, list_files, read_skill_file


class CursorParser(ISkillParser):
    """Reads flat ``<name>.md`` / ``<name>.mdc`` files plus ``<name>/SKILL.md`` folders.

    Rule keys such as ``globs`` and ``alwaysApply`` land in metadata untouched.
    """

    platform = Platform.CURSOR

    def parse(self) -> ParseResult:
        result = ParseResult()
        seen: dict[str, Skill] = {}
        flat = [path for path in list_files(self.skills_dir, result, "*") if path.suffix in CURSOR_SUFFIXES]
        for path in flat:
            skill = collect(result, read_skill_file(path, self.platform, default_name=path.stem, scope=self.scope))
            if skill is not None:
                add_unique(result, seen, skill)
        for path in list_files(self.skills_dir, result, f"*/{SKILL_FILENAME}"):
            skill = collect(
                result,
                read_skill_file(path, self.platform, default_name=path.parent.name, scope=self.scope),
            )
            if skill is not None:
                add_unique(result, seen, skill)
        result.skills.sort(key=lambda item: item.name)
        return result
