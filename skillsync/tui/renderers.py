from pathlib import Path

from rich.console import Console
from rich.markup import escape

from skillsync.backup.models import BackupMetadata, VerifyReport
from skillsync.models import Skill
from skillsync.parsers.base import IssueSeverity, ParseIssue
from skillsync.sync.models import Conflict, SyncAction, SyncResult
from skillsync.sync.planner import SyncPlan
from skillsync.tui.enums import UIStyle
from skillsync.tui.sections import UISection
from skillsync.tui.tables import BackupTable, DiffView, SkillsTable, SyncTable
from skillsync.utils import compact_home_path, compact_home_paths_in_text


class SyncConsoleUI:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_plan(self, plan: SyncPlan, direction: str, show_diffs: bool = True) -> None:
        self.console.print(
            UISection.wrap(
                "plan overview",
                SyncTable.summary_block(plan.summary(), mode="dry-run", direction=direction),
                style=UIStyle.BLUE.value,
            )
        )
        if not plan.items:
            self.console.print(UISection.note("skills", "No skills found.", style=UIStyle.DIM.value))
            return
        self.console.print(UISection.wrap("skills", SyncTable.plan_table(plan), style=UIStyle.CYAN.value))
        if not show_diffs:
            return
        for item in plan.items:
            if item.conflict is None or item.action not in (SyncAction.UPDATED, SyncAction.MERGED, SyncAction.CONFLICT):
                continue
            self.render_conflict(item.conflict)

    def render_conflict(self, conflict: Conflict) -> None:
        self.console.print(
            UISection.wrap(
                f"diff: {conflict.name}",
                DiffView.conflict(conflict),
                style=UIStyle.YELLOW.value,
                subtitle="- target  + source",
            )
        )

    def render_result(self, result: SyncResult, direction: str) -> None:
        mode = "dry-run" if result.dry_run else "sync"
        self.console.print(
            UISection.wrap(
                f"{mode} overview",
                SyncTable.summary_block(result.counts(), mode=mode, direction=direction),
                style=UIStyle.BLUE.value,
            )
        )
        if result.skills:
            self.console.print(UISection.wrap("skills", SyncTable.results_table(result.skills), style=UIStyle.CYAN.value))
        self.render_issues(result.warnings)
        failures = result.by_action(SyncAction.FAILED)
        if failures or result.errors:
            lines = [f"- {item.name}: {escape(compact_home_paths_in_text(item.message))}" for item in failures]
            lines.extend(f"- {escape(compact_home_paths_in_text(str(error)))}" for error in result.errors)
            self.console.print(UISection.note("failures", "\n".join(lines), style=UIStyle.RED.value))
        self.console.print(
            UISection.wrap(
                mode,
                SyncTable.stats_table(result),
                style=UIStyle.RED.value if result.has_failures() else UIStyle.GREEN.value,
                subtitle=result.summary(),
            )
        )

    def render_issues(self, issues: list[ParseIssue]) -> None:
        if not issues:
            return
        lines = []
        for issue in issues:
            marker = "error" if issue.severity == IssueSeverity.ERROR else "warning"
            lines.append(f"- {marker}: {escape(compact_home_paths_in_text(issue.message))}")
        self.console.print(UISection.note("parse issues", "\n".join(lines), style=UIStyle.YELLOW.value))

    def render_validation_errors(self, issues: list[str]) -> None:
        body = "\n".join(f"- {escape(compact_home_paths_in_text(issue))}" for issue in issues)
        self.console.print(UISection.note("validation failed", body, style=UIStyle.RED.value))

    def render_skills(self, title: str, skills: list[Skill], issues: list[ParseIssue]) -> None:
        if skills:
            self.console.print(UISection.wrap(title, SkillsTable.skills_table(skills), style=UIStyle.BLUE.value))
        else:
            self.console.print(UISection.note(title, "No skills found.", style=UIStyle.DIM.value))
        self.render_issues(issues)

    def render_backups(self, backups: list[BackupMetadata]) -> None:
        if not backups:
            self.console.print(UISection.note("backups", "No backups found.", style=UIStyle.DIM.value))
            return
        self.console.print(UISection.wrap("backups", BackupTable.backups_table(backups), style=UIStyle.BLUE.value))

    def render_verify(self, report: VerifyReport) -> None:
        if report.ok:
            self.console.print(UISection.note("verify", f"Backup {report.backup_id} is ok.", style=UIStyle.GREEN.value))
            return
        lines = [f"- corrupt: {path}" for path in report.corrupt]
        lines.extend(f"- missing: {path}" for path in report.missing)
        body = f"Backup {report.backup_id} is corrupt.\n" + "\n".join(lines)
        self.console.print(UISection.note("verify", body, style=UIStyle.RED.value))

    def render_restored(self, backup_id: str, paths: list[Path]) -> None:
        body = "\n".join(f"- {compact_home_path(path)}" for path in paths) or "Nothing to restore."
        self.console.print(UISection.wrap(f"restored {backup_id}", body, style=UIStyle.GREEN.value))

    def render_cleanup(self, removed: list[str]) -> None:
        if not removed:
            self.console.print(UISection.note("cleanup", "No backups to remove.", style=UIStyle.DIM.value))
            return
        body = f"Removed {len(removed)} backup(s):\n" + "\n".join(f"- {backup_id}" for backup_id in removed)
        self.console.print(UISection.note("cleanup", body, style=UIStyle.YELLOW.value))

    def render_message(self, title: str, body: str, style: str = UIStyle.DIM.value) -> None:
        self.console.print(UISection.note(title, body, style=style))
