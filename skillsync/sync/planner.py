from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from skillsync.constants import SKILL_FILENAME
from skillsync.models import Platform, Skill
from skillsync.sync.compilers import ISkillCompiler, compiler_for
from skillsync.sync.conflicts import ConflictDetector
from skillsync.sync.merge import Merger
from skillsync.sync.models import (
    MUTATING_ACTIONS,
    Conflict,
    ConflictType,
    ResolutionChoice,
    Strategy,
    SyncAction,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SupportFile:
    """A file living next to a ``SKILL.md``; ``source`` is None when it is only removed."""

    destination: Path
    source: Optional[Path] = None


def skill_dir_files(skill_file: Path) -> list[Path]:
    """Files and symlinks beside ``skill_file`` in its skill directory, SKILL.md excluded."""
    if skill_file.name != SKILL_FILENAME or not skill_file.parent.is_dir():
        return []
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(skill_file.parent):
        base = Path(dirpath)
        # Symlinked directories are copied as links, not walked.
        for name in list(dirnames):
            if (base / name).is_symlink():
                dirnames.remove(name)
                found.append(base / name)
        found.extend(base / name for name in filenames)
    return sorted(path for path in found if path != skill_file)


@dataclass
class PlanItem:
    name: str
    action: SyncAction
    skill: Skill
    target_path: Optional[Path] = None
    content: Optional[str] = None
    message: str = ""
    conflict: Optional[Conflict] = None
    source: Optional[Skill] = None
    target: Optional[Skill] = None
    support_files: tuple[SupportFile, ...] = ()

    @property
    def mutates(self) -> bool:
        return self.action in MUTATING_ACTIONS


@dataclass
class SyncPlan:
    platform: Platform
    target_root: Path
    strategy: Strategy
    items: list[PlanItem] = field(default_factory=list)

    def mutations(self) -> list[PlanItem]:
        return [item for item in self.items if item.mutates]

    def conflicts(self) -> list[PlanItem]:
        return [item for item in self.items if item.action == SyncAction.CONFLICT]

    def backup_paths(self) -> list[Path]:
        """Existing files the plan will overwrite or delete."""
        paths: set[Path] = set()
        for item in self.mutations():
            if item.target_path is not None and item.target_path.is_file():
                paths.add(item.target_path)
            for support in item.support_files:
                if support.destination.is_file() and not support.destination.is_symlink():
                    paths.add(support.destination)
        return sorted(paths)

    def summary(self) -> dict[str, int]:
        counts = {action.value: 0 for action in SyncAction}
        for item in self.items:
            counts[item.action.value] += 1
        counts["items"] = len(self.items)
        return counts


class SyncPlanner:
    def __init__(
        self,
        source: list[Skill],
        target: list[Skill],
        platform: Platform,
        target_root: Path,
        strategy: Strategy = Strategy.OVERWRITE,
        delete: bool = False,
        detector: Optional[ConflictDetector] = None,
        merger: Optional[Merger] = None,
        compiler: Optional[ISkillCompiler] = None,
    ) -> None:
        self.source = {skill.name: skill for skill in source}
        # Aggregate target files (config.toml, AGENTS.md) are never paired or deleted.
        self.target = {skill.name: skill for skill in target if not skill.aggregate}
        self.platform = platform
        self.target_root = target_root
        self.strategy = strategy
        self.delete = delete
        self.detector = detector or ConflictDetector()
        self.merger = merger or Merger()
        self.compiler = compiler or compiler_for(platform)

        self.items: list[PlanItem] = []

    def build(self) -> SyncPlan:
        for name in sorted(set(self.source) | set(self.target)):
            source = self.source.get(name)
            target = self.target.get(name)
            if source is not None and target is None:
                self.items.append(self._plan_create(source))
            elif source is None and target is not None:
                self.items.append(self._plan_target_only(target))
            elif source is not None and target is not None:
                self.items.append(self._plan_pair(source, target))
        return SyncPlan(platform=self.platform, target_root=self.target_root, strategy=self.strategy, items=self.items)

    def _write(self, skill: Skill, action: SyncAction, path: Path, message: str, **extra) -> PlanItem:
        return PlanItem(
            name=skill.name,
            action=action,
            skill=skill,
            target_path=path,
            content=self.compiler.render(skill, path),
            message=message,
            support_files=self._support_files(skill, path),
            **extra,
        )

    def _support_files(self, skill: Skill, path: Path) -> tuple[SupportFile, ...]:
        if skill.path is None:
            return ()
        sources = skill_dir_files(skill.path)
        if not sources:
            return ()
        if path.name != SKILL_FILENAME:
            logger.warning("%s: %d supporting file(s) not copied to %s", skill.name, len(sources), path)
            return ()
        return tuple(
            SupportFile(destination=path.parent / item.relative_to(skill.path.parent), source=item) for item in sources
        )

    def _update(self, source: Skill, target: Skill, path: Path, message: str, /, **pair) -> PlanItem:
        """Source body and metadata; keys only the target has are kept."""
        updated = self.merger.with_metadata(source, target, Strategy.OVERWRITE, source.content)
        item = self._write(updated, SyncAction.UPDATED, path, message, **pair)
        if item.content == self.compiler.render(target, path) and not item.support_files:
            return PlanItem(name=source.name, action=SyncAction.SKIPPED, skill=source, target_path=path, message="up to date", **pair)
        return item

    def _plan_create(self, source: Skill) -> PlanItem:
        if source.aggregate:
            return PlanItem(
                name=source.name,
                action=SyncAction.SKIPPED,
                skill=source,
                message="aggregate instructions are read-only",
                source=source,
            )
        path = self.compiler.target_path(source, self.target_root)
        return self._write(source, SyncAction.CREATED, path, "new skill", source=source)

    def _plan_target_only(self, target: Skill) -> PlanItem:
        if self.delete:
            leftovers = skill_dir_files(target.path) if target.path is not None else []
            return PlanItem(
                name=target.name,
                action=SyncAction.DELETED,
                skill=target,
                target_path=target.path,
                message="not present in source",
                target=target,
                support_files=tuple(SupportFile(destination=item) for item in leftovers),
            )
        return PlanItem(
            name=target.name,
            action=SyncAction.SKIPPED,
            skill=target,
            target_path=target.path,
            message="only in target",
            target=target,
        )

    def _plan_pair(self, source: Skill, target: Skill) -> PlanItem:
        path = target.path or self.compiler.target_path(source, self.target_root)
        conflict = self.detector.detect(source, target)
        pair = {"source": source, "target": target, "conflict": conflict}
        if conflict.identical:
            return PlanItem(name=source.name, action=SyncAction.SKIPPED, skill=source, target_path=path, message="identical", **pair)
        if source.aggregate:
            return PlanItem(
                name=source.name,
                action=SyncAction.SKIPPED,
                skill=source,
                target_path=path,
                message="aggregate instructions are read-only",
                **pair,
            )

        if self.strategy == Strategy.OVERWRITE:
            return self._update(source, target, path, "overwritten from source", **pair)
        if self.strategy == Strategy.SKIP:
            return PlanItem(name=source.name, action=SyncAction.SKIPPED, skill=source, target_path=path, message="target kept", **pair)
        if self.strategy == Strategy.NEWER:
            if source.mod_time > target.mod_time:
                return self._update(source, target, path, "source is newer", **pair)
            return PlanItem(name=source.name, action=SyncAction.SKIPPED, skill=source, target_path=path, message="target is newer", **pair)
        if self.strategy == Strategy.MERGE:
            merged, result = self.merger.merge_skill(source, target, Strategy.MERGE)
            message = f"merged with {len(result.conflicts)} conflict region(s)" if result.conflicts else "merged"
            return self._write(merged, SyncAction.MERGED, path, message, **pair)
        if self.strategy == Strategy.THREE_WAY:
            return self._plan_three_way(source, target, path, conflict)
        return self._conflict(source, path, conflict, "awaiting resolution")

    def _plan_three_way(self, source: Skill, target: Skill, path: Path, conflict: Conflict) -> PlanItem:
        if conflict.type in (ConflictType.METADATA_ONLY, ConflictType.BOTH):
            keys = ", ".join(change.key for change in conflict.metadata_changes)
            return self._conflict(source, path, conflict, f"metadata differs ({keys})")
        merged, result = self.merger.merge_skill(source, target, Strategy.THREE_WAY)
        if result.has_conflict_markers:
            return self._conflict(source, path, conflict, f"{len(result.conflicts)} conflicting region(s)")
        return self._write(merged, SyncAction.MERGED, path, "merged cleanly", source=source, target=target, conflict=conflict)

    def _conflict(self, source: Skill, path: Path, conflict: Conflict, message: str) -> PlanItem:
        return PlanItem(
            name=source.name,
            action=SyncAction.CONFLICT,
            skill=source,
            target_path=path,
            message=message,
            conflict=conflict,
            source=source,
            target=conflict.target,
        )

    def resolve(self, item: PlanItem, choice: ResolutionChoice) -> PlanItem:
        """Turn a conflict item into the write (or no-op) the user chose."""
        if item.action != SyncAction.CONFLICT or item.source is None or item.target is None:
            return item
        path = item.target_path or self.compiler.target_path(item.source, self.target_root)
        pair = {"source": item.source, "target": item.target, "conflict": item.conflict}
        logger.debug("Resolved %s with %s", item.name, choice.value)
        if choice == ResolutionChoice.USE_SOURCE:
            return self._update(item.source, item.target, path, "resolved: use source", **pair)
        if choice == ResolutionChoice.MERGE:
            merged, result = self.merger.merge_skill(item.source, item.target, Strategy.MERGE)
            message = "resolved: merge"
            if result.conflicts:
                message = f"resolved: merge with {len(result.conflicts)} conflict region(s)"
            return self._write(merged, SyncAction.MERGED, path, message, **pair)
        message = "resolved: use target" if choice == ResolutionChoice.USE_TARGET else "resolved: skip"
        return PlanItem(name=item.name, action=SyncAction.SKIPPED, skill=item.source, target_path=path, message=message, **pair)

