from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from skillsync.errors import SpecError
from skillsync.models import Skill
from skillsync.parsers.base import ParseIssue


class Strategy(str, Enum):
    OVERWRITE = "overwrite"
    SKIP = "skip"
    NEWER = "newer"
    MERGE = "merge"
    THREE_WAY = "three-way"
    INTERACTIVE = "interactive"


def parse_strategy(value: Strategy | str) -> Strategy:
    if isinstance(value, Strategy):
        return value
    normalized = value.strip().lower().replace("_", "-")
    if normalized == "threeway":
        normalized = Strategy.THREE_WAY.value
    try:
        return Strategy(normalized)
    except ValueError:
        valid = ", ".join(s.value for s in Strategy)
        raise SpecError(f"Unknown strategy {value!r} (valid: {valid})") from None


class SyncAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    MERGED = "merged"
    CONFLICT = "conflict"
    FAILED = "failed"
    DELETED = "deleted"


WRITE_ACTIONS: frozenset[SyncAction] = frozenset({SyncAction.CREATED, SyncAction.UPDATED, SyncAction.MERGED})
MUTATING_ACTIONS: frozenset[SyncAction] = WRITE_ACTIONS | {SyncAction.DELETED}


class ConflictType(str, Enum):
    IDENTICAL = "identical"
    CONTENT_ONLY = "content-only"
    METADATA_ONLY = "metadata-only"
    BOTH = "both"


class ResolutionChoice(str, Enum):
    USE_SOURCE = "use-source"
    USE_TARGET = "use-target"
    MERGE = "merge"
    SKIP = "skip"


class LineKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    CONTEXT = "context"


LINE_PREFIX: dict[LineKind, str] = {
    LineKind.ADDED: "+",
    LineKind.REMOVED: "-",
    LineKind.CONTEXT: " ",
}


@dataclass(frozen=True)
class DiffLine:
    kind: LineKind
    text: str

    def render(self) -> str:
        return f"{LINE_PREFIX[self.kind]}{self.text}"


@dataclass(frozen=True)
class DiffHunk:
    """A changed run. Start/count describe the changed lines only; ``lines`` adds context."""

    source_start: int
    source_count: int
    target_start: int
    target_count: int
    lines: tuple[DiffLine, ...] = ()

    @property
    def header(self) -> str:
        return f"@@ -{self.target_start},{self.target_count} +{self.source_start},{self.source_count} @@"

    def render(self) -> str:
        return "\n".join([self.header, *(line.render() for line in self.lines)])


@dataclass(frozen=True)
class MetadataChange:
    key: str
    source: Any = None
    target: Any = None


@dataclass(frozen=True)
class Conflict:
    source: Skill
    target: Skill
    type: ConflictType
    hunks: tuple[DiffHunk, ...] = ()
    metadata_changes: tuple[MetadataChange, ...] = ()

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def identical(self) -> bool:
        return self.type == ConflictType.IDENTICAL

    def render_diff(self) -> str:
        return "\n".join(hunk.render() for hunk in self.hunks)


@dataclass(frozen=True)
class MergeConflictRegion:
    start_line: int
    end_line: int


@dataclass(frozen=True)
class MergeResult:
    content: str
    conflicts: tuple[MergeConflictRegion, ...] = ()

    @property
    def has_conflict_markers(self) -> bool:
        return bool(self.conflicts)

    @property
    def success(self) -> bool:
        return not self.conflicts


@dataclass
class SkillResult:
    skill: Skill
    action: SyncAction
    target_path: Optional[Path] = None
    message: str = ""
    error: Optional[Exception] = None
    conflict: Optional[Conflict] = None

    @property
    def name(self) -> str:
        return self.skill.name


@dataclass
class SyncResult:
    skills: list[SkillResult] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)
    warnings: list[ParseIssue] = field(default_factory=list)
    backup_id: Optional[str] = None
    dry_run: bool = False

    def by_action(self, action: SyncAction) -> list[SkillResult]:
        return [item for item in self.skills if item.action == action]

    def counts(self) -> dict[str, int]:
        counts = {action.value: 0 for action in SyncAction}
        for item in self.skills:
            counts[item.action.value] += 1
        return counts

    def has_failures(self) -> bool:
        return bool(self.errors) or any(item.action == SyncAction.FAILED for item in self.skills)

    def has_conflicts(self) -> bool:
        return any(item.action == SyncAction.CONFLICT for item in self.skills)

    def changed(self) -> int:
        return sum(1 for item in self.skills if item.action in MUTATING_ACTIONS)

    def summary(self) -> str:
        counts = self.counts()
        parts = [f"{count} {action}" for action, count in counts.items() if count]
        prefix = "Dry run: " if self.dry_run else ""
        if not parts:
            return f"{prefix}no skills to sync"
        return f"{prefix}{', '.join(parts)}"


@dataclass
class SyncOptions:
    strategy: Strategy = Strategy.OVERWRITE
    dry_run: bool = False
    delete: bool = False
    skip_backup: bool = False
    skip_validation: bool = False
    cancel_event: Optional[threading.Event] = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()
