from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Optional, Protocol

from skillsync.backup.models import CleanupPolicy
from skillsync.backup.store import BackupStore
from skillsync.errors import BackupError
from skillsync.sync.models import SkillResult, SyncAction, SyncOptions, SyncResult
from skillsync.sync.planner import PlanItem, SupportFile, SyncPlan
from skillsync.utils import atomic_write_bytes, atomic_write_text, ensure_dir

logger = logging.getLogger(__name__)


class ActionHandler(Protocol):
    def handle(self, item: PlanItem) -> Optional[str]: ...


def _copy_support_file(support: SupportFile) -> None:
    source = support.source
    if source is None:
        return
    destination = support.destination
    if source.is_symlink():
        ensure_dir(destination.parent)
        if destination.is_symlink() or destination.exists():
            destination.unlink()
        os.symlink(os.readlink(source), destination)
        return
    atomic_write_bytes(destination, source.read_bytes(), mode=stat.S_IMODE(source.stat().st_mode))


class WriteHandler:
    def handle(self, item: PlanItem) -> Optional[str]:
        if item.target_path is None or item.content is None:
            return f"Missing content for write: {item.name}"
        atomic_write_text(item.target_path, item.content)
        for support in item.support_files:
            _copy_support_file(support)
        logger.info("%s %s", item.action.value.capitalize(), item.target_path)
        if item.support_files:
            logger.debug("Copied %d supporting file(s) for %s", len(item.support_files), item.name)
        return None


class DeleteHandler:
    def handle(self, item: PlanItem) -> Optional[str]:
        if item.target_path is None:
            return f"Missing path for delete: {item.name}"
        skill_dir = item.target_path.parent
        for support in item.support_files:
            support.destination.unlink(missing_ok=True)
            _prune_empty_dirs(support.destination.parent, stop=skill_dir)
        item.target_path.unlink(missing_ok=True)
        _prune_empty_dir(skill_dir)
        logger.info("Deleted %s", item.target_path)
        return None


class NoopHandler:
    def handle(self, item: PlanItem) -> Optional[str]:
        return None


def _prune_empty_dir(path: Path) -> None:
    try:
        path.rmdir()
    except OSError:
        pass


def _prune_empty_dirs(path: Path, stop: Path) -> None:
    """Remove empty directories from ``path`` up to, not including, ``stop``."""
    current = path
    while current != stop and stop in current.parents:
        if any(current.iterdir()):
            return
        current.rmdir()
        current = current.parent


class SyncExecutor:
    def __init__(
        self,
        backup_store: Optional[BackupStore] = None,
        retention: Optional[CleanupPolicy] = None,
    ) -> None:
        self.backup_store = backup_store
        self.retention = retention
        self.handlers: dict[SyncAction, ActionHandler] = {
            SyncAction.CREATED: WriteHandler(),
            SyncAction.UPDATED: WriteHandler(),
            SyncAction.MERGED: WriteHandler(),
            SyncAction.DELETED: DeleteHandler(),
            SyncAction.SKIPPED: NoopHandler(),
            SyncAction.CONFLICT: NoopHandler(),
        }

    def execute(self, plan: SyncPlan, options: SyncOptions) -> SyncResult:
        result = SyncResult(dry_run=options.dry_run)
        if options.dry_run:
            result.skills = [self._result(item) for item in plan.items]
            return result

        if not options.skip_backup and self.backup_store is not None:
            result.backup_id = self._snapshot(self.backup_store, plan, result)

        cancelled = False
        for item in plan.items:
            if item.mutates and (cancelled or options.cancelled):
                cancelled = True
                result.skills.append(self._result(item, action=SyncAction.FAILED, message="cancelled"))
                continue
            handler = self.handlers.get(item.action)
            if handler is None:
                failure = ValueError(f"Unsupported plan action: {item.action.value}")
                result.skills.append(self._result(item, action=SyncAction.FAILED, message=str(failure), error=failure))
                continue
            try:
                failure_message = handler.handle(item)
            except Exception as exc:
                logger.warning("%s failed for %s: %s", item.action.value, item.target_path, exc)
                result.skills.append(self._result(item, action=SyncAction.FAILED, message=str(exc), error=exc))
                continue
            if failure_message is not None:
                result.skills.append(self._result(item, action=SyncAction.FAILED, message=failure_message))
                continue
            result.skills.append(self._result(item))
        return result

    def _snapshot(self, store: BackupStore, plan: SyncPlan, result: SyncResult) -> Optional[str]:
        paths = plan.backup_paths()
        if not paths:
            return None
        if self.retention is not None:
            try:
                removed = store.cleanup(self.retention)
            except BackupError as exc:
                logger.warning("Backup cleanup skipped: %s", exc)
                result.errors.append(exc)
            else:
                if removed:
                    logger.info("Pruned %d old backup(s)", len(removed))
        return store.snapshot(plan.platform, paths)

    @staticmethod
    def _result(
        item: PlanItem,
        action: Optional[SyncAction] = None,
        message: Optional[str] = None,
        error: Optional[Exception] = None,
    ) -> SkillResult:
        return SkillResult(
            skill=item.skill,
            action=action or item.action,
            target_path=item.target_path,
            message=item.message if message is None else message,
            error=error,
            conflict=item.conflict,
        )
