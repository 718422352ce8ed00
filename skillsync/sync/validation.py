from __future__ import annotations

from pathlib import Path

from skillsync.errors import SpecError
from skillsync.models import PlatformSpec, SkillScope, platform_label
from skillsync.parsers.base import ParseResult
from skillsync.parsers.tiered import TieredParser
from skillsync.utils import compact_home_path, is_writable_location


def check_direction(source: PlatformSpec, target: PlatformSpec) -> SkillScope:
    """Reject sync directions that make no sense; returns the target scope."""
    target_scope = target.target_scope()
    if source.platform == target.platform and source.includes(target_scope):
        raise SpecError(
            f"Source and target are the same ({platform_label(source.platform)} {target_scope.value} scope)"
        )
    return target_scope


class SyncValidator:
    def validate(
        self,
        source_parser: TieredParser,
        source_spec: PlatformSpec,
        source: ParseResult,
        target: ParseResult,
        target_root: Path,
    ) -> list[str]:
        issues: list[str] = []
        scopes = set(source_spec.scopes) or None
        if not source_parser.existing_paths(scopes):
            searched = ", ".join(
                compact_home_path(scoped.path)
                for scoped in source_parser.paths
                if scopes is None or scoped.scope in scopes
            )
            issues.append(f"Source path does not exist for {source_spec}: {searched or 'no locations'}")
        issues.extend(issue.message for issue in source.errors)
        for skill in source.skills:
            if skill.aggregate:
                issues.append(
                    f"{skill.name}: aggregate instructions in {compact_home_path(skill.path or '')} cannot be synced; "
                    f"move them into {skill.name}/SKILL.md"
                )
        issues.extend(issue.message for issue in target.errors)
        if not is_writable_location(target_root):
            issues.append(f"Target directory is not writable: {compact_home_path(target_root)}")
        return issues
