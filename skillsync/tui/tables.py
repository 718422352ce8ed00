from pathlib import Path
from typing import Optional

from rich.console import Group
from rich.table import Column, Table
from rich.text import Text

from skillsync.backup.models import BackupMetadata
from skillsync.models import Skill
from skillsync.sync.models import Conflict, DiffHunk, SkillResult, SyncResult
from skillsync.sync.planner import SyncPlan
from skillsync.tui.enums import CONFLICT_TYPE_STYLE, DIFF_LINE_STYLE, SCOPE_STYLE, SYNC_ACTION_STYLE, UIStyle
from skillsync.utils import compact_home_path


def _styled(value: str, style: str) -> str:
    return f"[{style}]{value}[/{style}]"


def _path(path: Optional[Path]) -> str:
    return compact_home_path(path) if path is not None else ""


def _human_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KiB"
    return f"{size / (1024 * 1024):.1f} MiB"


class SyncTable:
    @staticmethod
    def summary_block(counts: dict[str, int], mode: str, direction: str):
        chips = [f"{key}={value}" for key, value in counts.items() if value > 0 and key != "items"]
        if not chips:
            chips = ["none"]

        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Mode", mode)
        table.add_row("Direction", direction)
        table.add_row("Actions", "  ".join(chips))
        return table

    @staticmethod
    def plan_table(plan: SyncPlan) -> Table:
        table = Table(
            Column(header="Skill", no_wrap=True),
            Column(header="Action", width=9),
            Column(header="Target", overflow="fold"),
            Column(header="Reason", overflow="fold"),
            expand=True,
            header_style="bold",
        )
        for item in plan.items:
            style = SYNC_ACTION_STYLE.get(item.action, UIStyle.WHITE.value)
            table.add_row(item.name, _styled(item.action.value, style), _path(item.target_path), item.message)
        return table

    @staticmethod
    def results_table(results: list[SkillResult]) -> Table:
        table = Table(
            Column(header="Skill", no_wrap=True),
            Column(header="Action", width=9),
            Column(header="Target", overflow="fold"),
            Column(header="Message", overflow="fold"),
            expand=True,
            header_style="bold",
        )
        for item in results:
            style = SYNC_ACTION_STYLE.get(item.action, UIStyle.WHITE.value)
            table.add_row(item.name, _styled(item.action.value, style), _path(item.target_path), item.message)
        return table

    @staticmethod
    def stats_table(result: SyncResult) -> Table:
        table = Table(show_header=False, box=None)
        for key, value in result.counts().items():
            if value:
                table.add_row(f"[bold]{key}[/bold]", str(value))
        if result.backup_id:
            table.add_row("[bold]backup[/bold]", result.backup_id)
        return table


class DiffView:
    @staticmethod
    def hunks(hunks: tuple[DiffHunk, ...] | list[DiffHunk]) -> Text:
        text = Text()
        for index, hunk in enumerate(hunks):
            if index:
                text.append("\n")
            text.append(hunk.header, style=UIStyle.CYAN.value)
            for line in hunk.lines:
                text.append("\n")
                text.append(line.render(), style=DIFF_LINE_STYLE[line.kind])
        return text

    @staticmethod
    def conflict(conflict: Conflict):
        style = CONFLICT_TYPE_STYLE.get(conflict.type, UIStyle.WHITE.value)
        blocks = [Text.from_markup(f"[bold]{conflict.name}[/bold]  {_styled(conflict.type.value, style)}")]
        if conflict.metadata_changes:
            table = Table(
                Column(header="Key", no_wrap=True),
                Column(header="Source", overflow="fold"),
                Column(header="Target", overflow="fold"),
                header_style="bold",
            )
            for change in conflict.metadata_changes:
                table.add_row(change.key, repr(change.source), repr(change.target))
            blocks.append(table)
        if conflict.hunks:
            blocks.append(DiffView.hunks(conflict.hunks))
        return Group(*blocks)


class SkillsTable:
    @staticmethod
    def skills_table(skills: list[Skill]) -> Table:
        table = Table(
            Column(header="Name", no_wrap=True),
            Column(header="Scope", width=8),
            Column(header="Type", width=6),
            Column(header="Description", overflow="ellipsis"),
            Column(header="Path", overflow="fold"),
            expand=True,
            header_style="bold",
        )
        for skill in skills:
            style = SCOPE_STYLE.get(skill.scope, UIStyle.WHITE.value)
            table.add_row(
                skill.name,
                _styled(skill.scope.value, style),
                skill.type.value,
                skill.description,
                _path(skill.path),
            )
        return table


class BackupTable:
    @staticmethod
    def backups_table(backups: list[BackupMetadata]) -> Table:
        table = Table(
            Column(header="ID", no_wrap=True),
            Column(header="Platform", width=11),
            Column(header="Created", no_wrap=True),
            Column(header="Files", justify="right", width=5),
            Column(header="Size", justify="right", width=9),
            Column(header="Source", overflow="fold"),
            expand=True,
            header_style="bold",
        )
        for meta in backups:
            table.add_row(
                meta.id,
                meta.platform.value,
                meta.created_at.strftime("%Y-%m-%d %H:%M:%S"),
                str(len(meta.files)),
                _human_size(meta.size),
                _path(meta.source_path),
            )
        return table

