"""Scope-aware reading of a platform's skills across every tier."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Mapping

from skillsync.constants import ADMIN_PREFIXES, PLUGIN_CACHE_PARTS, SKILLS_DIRNAME, SYSTEM_PREFIXES
from skillsync.errors import DuplicateSkillNameError, ScopeCollisionError
from skillsync.models import Platform, Skill, SkillScope, platform_metadata
from skillsync.parsers import parser_for
from skillsync.parsers.base import ParseResult
from skillsync.utils import is_under

logger = logging.getLogger(__name__)

ParseFn = Callable[[Platform, Path, SkillScope], ParseResult]


@dataclass(frozen=True)
class ScopedPath:
    scope: SkillScope
    path: Path


@dataclass(frozen=True)
class SearchRoots:
    home: Path
    cwd: Path
    repo_root: Path | None = None
    overrides: Mapping[Platform, tuple[Path, ...]] = field(default_factory=dict)


def infer_scope(path: Path, home: Path, repo_root: Path | None) -> SkillScope:
    parts = path.parts
    for index in range(len(parts) - 1):
        if parts[index : index + 2] == PLUGIN_CACHE_PARTS:
            return SkillScope.PLUGIN
    if repo_root is not None and is_under(path, repo_root):
        return SkillScope.REPO
    if is_under(path, home):
        return SkillScope.USER
    text = str(path)
    if any(text == prefix or text.startswith(f"{prefix}/") for prefix in SYSTEM_PREFIXES):
        return SkillScope.SYSTEM
    if any(text == prefix or text.startswith(f"{prefix}/") for prefix in ADMIN_PREFIXES):
        return SkillScope.ADMIN
    return SkillScope.USER


def default_search_paths(platform: Platform, roots: SearchRoots) -> list[ScopedPath]:
    """Tier locations for ``platform``, highest precedence first."""
    meta = platform_metadata(platform)
    overrides = roots.overrides.get(platform)
    if overrides:
        return [ScopedPath(infer_scope(path, roots.home, roots.repo_root), path) for path in overrides]

    paths = [ScopedPath(SkillScope.REPO, roots.cwd / meta.config_dir / SKILLS_DIRNAME)]
    if roots.repo_root is not None and roots.repo_root.resolve() != roots.cwd.resolve():
        paths.append(ScopedPath(SkillScope.REPO, roots.repo_root / meta.config_dir / SKILLS_DIRNAME))
    paths.append(ScopedPath(SkillScope.USER, roots.home / meta.config_dir / SKILLS_DIRNAME))
    if meta.system_skills_dir:
        paths.append(ScopedPath(SkillScope.SYSTEM, Path(meta.system_skills_dir)))
    if meta.has_plugin_cache:
        paths.append(ScopedPath(SkillScope.PLUGIN, roots.home / meta.config_dir / Path(*PLUGIN_CACHE_PARTS)))
    return paths


def writable_root(platform: Platform, scope: SkillScope, roots: SearchRoots) -> Path:
    """Directory that receives skills written to ``platform`` at ``scope``."""
    for scoped in default_search_paths(platform, roots):
        if scoped.scope == scope:
            return scoped.path
    meta = platform_metadata(platform)
    base = (roots.repo_root or roots.cwd) if scope == SkillScope.REPO else roots.home
    return base / meta.config_dir / SKILLS_DIRNAME


def _parse_path(platform: Platform, path: Path, scope: SkillScope) -> ParseResult:
    return parser_for(platform, path, scope).parse()


def merge_by_precedence(results: Iterable[ParseResult]) -> ParseResult:
    """Keep one skill per name: the one from the highest-precedence scope.

    Readings are expected highest precedence first; on a tie inside one scope
    (two locations tagged with the same scope) the earlier reading wins and the
    clash is recorded as a warning. Duplicates inside one location are reported
    by the platform parser itself.
    """
    merged = ParseResult()
    winners: dict[str, Skill] = {}
    for result in results:
        merged.issues.extend(result.issues)
        for skill in result.skills:
            current = winners.get(skill.name)
            if current is None:
                winners[skill.name] = skill
                continue
            if current.scope == skill.scope:
                logger.warning("%s at %s is shadowed by %s", skill.name, skill.path, current.path)
                merged.warn(DuplicateSkillNameError(skill.path or Path(), skill.name, current.path or Path()))
                continue
            winner, shadowed = (skill, current) if skill.scope.outranks(current.scope) else (current, skill)
            winners[skill.name] = winner
            logger.debug("%s (%s) shadows %s (%s)", winner.name, winner.scope.value, shadowed.path, shadowed.scope.value)
            if winner.type != shadowed.type:
                merged.warn(
                    ScopeCollisionError(
                        shadowed.path or Path(),
                        skill.name,
                        f"{winner.type.value} at {winner.scope.value} shadows {shadowed.type.value} at {shadowed.scope.value}",
                    )
                )
    merged.skills = sorted(winners.values(), key=lambda item: item.name)
    return merged


class TieredParser:
    def __init__(
        self,
        platform: Platform,
        paths: list[ScopedPath],
        parse_fn: ParseFn = _parse_path,
    ) -> None:
        self.platform = platform
        self.paths = paths
        self._parse_fn = parse_fn

    @classmethod
    def for_platform(cls, platform: Platform, roots: SearchRoots) -> TieredParser:
        return cls(platform, default_search_paths(platform, roots))

    def parse(self) -> ParseResult:
        return self.parse_with_scope_filter(None)

    def parse_from_scope(self, scope: SkillScope) -> ParseResult:
        return self.parse_with_scope_filter({scope})

    def parse_with_scope_filter(self, scopes: set[SkillScope] | None) -> ParseResult:
        readings: list[ParseResult] = []
        for scoped in self.paths:
            if scopes is not None and scoped.scope not in scopes:
                continue
            reading = self._parse_fn(self.platform, scoped.path, scoped.scope)
            reading.skills = [skill.with_scope(scoped.scope) for skill in reading.skills]
            logger.debug(
                "Parsed %d %s skill(s) from %s (%s)",
                len(reading.skills),
                self.platform.value,
                scoped.path,
                scoped.scope.value,
            )
            readings.append(reading)
        return merge_by_precedence(readings)

    def existing_paths(self, scopes: set[SkillScope] | None = None) -> list[ScopedPath]:
        found: list[ScopedPath] = []
        for scoped in self.paths:
            if scopes is not None and scoped.scope not in scopes:
                continue
            if parser_for(self.platform, scoped.path, scoped.scope).exists():
                found.append(scoped)
        return found
