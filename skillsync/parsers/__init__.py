from pathlib import Path

from skillsync.models import Platform, SkillScope
from skillsync.parsers.base import ISkillParser, IssueSeverity, ParseIssue, ParseResult
from skillsync.parsers.claude import ClaudeCodeParser, ClaudePluginCacheParser
from skillsync.parsers.codex import CodexParser
from skillsync.parsers.cursor import CursorParser

PARSERS: dict[Platform, type[ISkillParser]] = {
    Platform.CLAUDE_CODE: ClaudeCodeParser,
    Platform.CURSOR: CursorParser,
    Platform.CODEX: CodexParser,
}


def parser_for(platform: Platform, base: Path, scope: SkillScope = SkillScope.USER) -> ISkillParser:
    if scope == SkillScope.PLUGIN and platform == Platform.CLAUDE_CODE:
        return ClaudePluginCacheParser(base)
    return PARSERS[platform](base, scope)


__all__ = [
    "ClaudeCodeParser",
    "ClaudePluginCacheParser",
    "CodexParser",
    "CursorParser",
    "ISkillParser",
    "IssueSeverity",
    "PARSERS",
    "ParseIssue",
    "ParseResult",
    "parser_for",
]
