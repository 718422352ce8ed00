from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from skillsync.errors import SpecError


class Platform(str, Enum):
    CLAUDE_CODE = "claude-code"
    CURSOR = "cursor"
    CODEX = "codex"


@dataclass(frozen=True)
class PlatformMetadata:
    platform: Platform
    label: str
    config_dir: str
    env_key: str
    aliases: tuple[str, ...]
    system_skills_dir: str | None = None
    has_plugin_cache: bool = False


PLATFORM_CATALOG: dict[Platform, PlatformMetadata] = {
    Platform.CLAUDE_CODE: PlatformMetadata(
        platform=Platform.CLAUDE_CODE,
        label="Claude Code",
        config_dir=".claude",
        env_key="CLAUDE_CODE",
        aliases=("claude-code", "claudecode", "claude", "claude_code"),
        has_plugin_cache=True,
    ),
    Platform.CURSOR: PlatformMetadata(
        platform=Platform.CURSOR,
        label="Cursor",
        config_dir=".cursor",
        env_key="CURSOR",
        aliases=("cursor",),
    ),
    Platform.CODEX: PlatformMetadata(
        platform=Platform.CODEX,
        label="Codex",
        config_dir=".codex",
        env_key="CODEX",
        aliases=("codex",),
        system_skills_dir="/etc/codex/skills",
    ),
}


def platform_metadata(platform: Platform | str) -> PlatformMetadata:
    return PLATFORM_CATALOG[parse_platform(platform)]


def platform_label(platform: Platform | str) -> str:
    return platform_metadata(platform).label


def parse_platform(value: Platform | str) -> Platform:
    if isinstance(value, Platform):
        return value
    normalized = value.strip().lower()
    for meta in PLATFORM_CATALOG.values():
        if normalized in meta.aliases:
            return meta.platform
    valid = ", ".join(p.value for p in Platform)
    raise SpecError(f"Unknown platform {value!r} (valid: {valid})")


class SkillScope(str, Enum):
    BUILTIN = "builtin"
    SYSTEM = "system"
    ADMIN = "admin"
    USER = "user"
    REPO = "repo"
    PLUGIN = "plugin"

    @property
    def precedence(self) -> int:
        return SCOPE_PRECEDENCE[self]

    @property
    def writable(self) -> bool:
        return self in WRITABLE_SCOPES

    def outranks(self, other: SkillScope) -> bool:
        return self.precedence > other.precedence


# Plugin sits outside the tier ladder: any installed skill shadows it.
SCOPE_PRECEDENCE: dict[SkillScope, int] = {
    SkillScope.PLUGIN: -1,
    SkillScope.BUILTIN: 0,
    SkillScope.SYSTEM: 1,
    SkillScope.ADMIN: 2,
    SkillScope.USER: 3,
    SkillScope.REPO: 4,
}

WRITABLE_SCOPES: frozenset[SkillScope] = frozenset({SkillScope.USER, SkillScope.REPO})

SCOPE_ALIASES: dict[str, SkillScope] = {
    "repository": SkillScope.REPO,
    "project": SkillScope.REPO,
    "local": SkillScope.REPO,
    "global": SkillScope.USER,
    "home": SkillScope.USER,
    "administrator": SkillScope.ADMIN,
    "sys": SkillScope.SYSTEM,
    "default": SkillScope.BUILTIN,
    "built-in": SkillScope.BUILTIN,
}


def parse_scope(value: SkillScope | str) -> SkillScope:
    if isinstance(value, SkillScope):
        return value
    normalized = value.strip().lower()
    try:
        return SkillScope(normalized)
    except ValueError:
        pass
    if normalized in SCOPE_ALIASES:
        return SCOPE_ALIASES[normalized]
    valid = ", ".join(s.value for s in SkillScope)
    raise SpecError(f"Unknown scope {value!r} (valid: {valid})")


def scopes_by_precedence(scopes: set[SkillScope] | None = None) -> list[SkillScope]:
    """Return scopes from highest to lowest precedence."""
    pool = scopes if scopes is not None else set(SkillScope)
    return sorted(pool, key=lambda scope: scope.precedence, reverse=True)


class SkillType(str, Enum):
    SKILL = "skill"
    PROMPT = "prompt"


SKILL_TYPE_ALIASES: dict[str, SkillType] = {
    "": SkillType.SKILL,
    "agent": SkillType.SKILL,
    "agent-skill": SkillType.SKILL,
    "command": SkillType.PROMPT,
    "slash-command": SkillType.PROMPT,
}


def parse_skill_type(value: SkillType | str | None) -> SkillType:
    if isinstance(value, SkillType):
        return value
    normalized = (value or "").strip().lower()
    try:
        return SkillType(normalized)
    except ValueError:
        pass
    if normalized in SKILL_TYPE_ALIASES:
        return SKILL_TYPE_ALIASES[normalized]
    raise ValueError(f"unknown skill type {value!r} (valid: skill, prompt)")


@dataclass(frozen=True)
class Skill:
    name: str
    platform: Platform
    description: str = ""
    content: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)
    scope: SkillScope = SkillScope.USER
    type: SkillType = SkillType.SKILL
    trigger: str = ""
    path: Path | None = field(default=None, compare=False)
    mod_time: float = field(default=0.0, compare=False)
    # Frontmatter keys in file order, used to re-emit the file faithfully.
    frontmatter_keys: tuple[str, ...] = field(default=(), compare=False)
    has_frontmatter: bool = field(default=False, compare=False)
    aggregate: bool = False

    def with_scope(self, scope: SkillScope) -> Skill:
        return replace(self, scope=scope)

    def comparable_metadata(self) -> dict[str, Any]:
        fields: dict[str, Any] = dict(self.metadata)
        if self.description:
            fields["description"] = self.description
        if self.type != SkillType.SKILL:
            fields["type"] = self.type.value
        if self.trigger and self.trigger != f"/{self.name}":
            fields["trigger"] = self.trigger
        return fields

    @property
    def is_prompt(self) -> bool:
        return self.type == SkillType.PROMPT


@dataclass(frozen=True)
class PlatformSpec:
    platform: Platform
    scopes: tuple[SkillScope, ...] = ()

    @classmethod
    def parse(cls, text: str) -> PlatformSpec:
        raw = text.strip()
        if not raw:
            raise SpecError("Empty platform spec")
        platform_part, sep, scope_part = raw.partition(":")
        platform = parse_platform(platform_part)
        if not sep:
            return cls(platform=platform)
        if not scope_part.strip():
            raise SpecError(f"Malformed platform spec {text!r}: missing scope after ':'")
        scopes: list[SkillScope] = []
        for item in scope_part.split(","):
            if not item.strip():
                raise SpecError(f"Malformed platform spec {text!r}: empty scope")
            scope = parse_scope(item)
            if scope not in scopes:
                scopes.append(scope)
        return cls(platform=platform, scopes=tuple(scopes))

    def target_scope(self) -> SkillScope:
        if len(self.scopes) > 1:
            raise SpecError(f"Target {self} accepts at most one scope")
        scope = self.scopes[0] if self.scopes else SkillScope.USER
        if not scope.writable:
            raise SpecError(f"Scope {scope.value!r} is read-only and cannot be a sync target")
        return scope

    def includes(self, scope: SkillScope) -> bool:
        return not self.scopes or scope in self.scopes

    def __str__(self) -> str:
        if not self.scopes:
            return self.platform.value
        return f"{self.platform.value}:{','.join(s.value for s in self.scopes)}"
