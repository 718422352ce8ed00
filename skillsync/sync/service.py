from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from skillsync.backup.models import CleanupPolicy
from skillsync.backup.store import BackupStore
from skillsync.errors import SyncCancelledError, ValidationError
from skillsync.models import PlatformSpec, SkillScope
from skillsync.parsers.base import ParseResult
from skillsync.parsers.tiered import SearchRoots, TieredParser, writable_root
from skillsync.sync.executor import SyncExecutor
from skillsync.sync.models import Strategy, SyncAction, SyncOptions, SyncResult
from skillsync.sync.planner import SyncPlan, SyncPlanner
from skillsync.sync.resolvers import ConflictResolver
from skillsync.sync.validation import SyncValidator, check_direction

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[SyncPlan], bool]


@dataclass
class PreparedSync:
    source_spec: PlatformSpec
    target_spec: PlatformSpec
    target_scope: SkillScope
    target_root: Path
    source: ParseResult
    target: ParseResult
    planner: SyncPlanner
    plan: SyncPlan


class SyncService:
    """Runs the whole pipeline: parse, validate, plan, resolve, back up, write."""

    def __init__(
        self,
        roots: SearchRoots,
        backup_store: Optional[BackupStore] = None,
        retention: Optional[CleanupPolicy] = None,
        validator: Optional[SyncValidator] = None,
    ) -> None:
        self.roots = roots
        self.backup_store = backup_store
        self.retention = retention
        self.validator = validator or SyncValidator()

    def prepare(self, source_spec: PlatformSpec, target_spec: PlatformSpec, options: SyncOptions) -> PreparedSync:
        target_scope = check_direction(source_spec, target_spec)
        source_parser = TieredParser.for_platform(source_spec.platform, self.roots)
        target_parser = TieredParser.for_platform(target_spec.platform, self.roots)
        target_root = writable_root(target_spec.platform, target_scope, self.roots)

        source = source_parser.parse_with_scope_filter(set(source_spec.scopes) or None)
        target = target_parser.parse_from_scope(target_scope)
        logger.debug("Source %s: %d skill(s); target %s: %d skill(s)", source_spec, len(source.skills), target_spec, len(target.skills))

        if not options.skip_validation:
            issues = self.validator.validate(source_parser, source_spec, source, target, target_root)
            if issues:
                raise ValidationError(issues)

        planner = SyncPlanner(
            source=source.skills,
            target=target.skills,
            platform=target_spec.platform,
            target_root=target_root,
            strategy=options.strategy,
            delete=options.delete,
        )
        return PreparedSync(
            source_spec=source_spec,
            target_spec=target_spec,
            target_scope=target_scope,
            target_root=target_root,
            source=source,
            target=target,
            planner=planner,
            plan=planner.build(),
        )

    def resolve_conflicts(self, prepared: PreparedSync, resolver: ConflictResolver) -> None:
        plan = prepared.plan
        plan.items = [
            prepared.planner.resolve(item, resolver.resolve(item.conflict))
            if item.action == SyncAction.CONFLICT and item.conflict is not None
            else item
            for item in plan.items
        ]

    def run(
        self,
        source_spec: PlatformSpec,
        target_spec: PlatformSpec,
        options: SyncOptions,
        resolver: Optional[ConflictResolver] = None,
        confirm: Optional[ConfirmFn] = None,
    ) -> SyncResult:
        prepared = self.prepare(source_spec, target_spec, options)
        if options.strategy == Strategy.INTERACTIVE and resolver is not None and not options.dry_run:
            self.resolve_conflicts(prepared, resolver)
        return self.execute(prepared, options, confirm)

    def execute(self, prepared: PreparedSync, options: SyncOptions, confirm: Optional[ConfirmFn] = None) -> SyncResult:
        if not options.dry_run and confirm is not None and prepared.plan.mutations():
            if not confirm(prepared.plan):
                raise SyncCancelledError("Sync cancelled")
        executor = SyncExecutor(backup_store=self.backup_store, retention=self.retention)
        result = executor.execute(prepared.plan, options)
        result.warnings = [*prepared.source.warnings, *prepared.target.warnings]
        return result
