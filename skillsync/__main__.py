import signal
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Iterator, Optional

import click

from skillsync import __version__
from skillsync.backup.durations import parse_duration
from skillsync.backup.models import BackupFilter, CleanupPolicy
from skillsync.context import AppContext, build_context
from skillsync.errors import BackupError, SkillSyncError, SyncCancelledError, ValidationError
from skillsync.models import Platform, PlatformSpec, parse_platform
from skillsync.parsers.tiered import TieredParser
from skillsync.sync.models import Strategy, SyncAction, SyncOptions, parse_strategy
from skillsync.sync.planner import SyncPlan
from skillsync.sync.service import SyncService
from skillsync.tui.conflict_selector import terminal_resolver
from skillsync.tui.enums import UIStyle
from skillsync.tui.renderers import SyncConsoleUI


STRATEGY_VALUES = [strategy.value for strategy in Strategy]
PLATFORM_VALUES = [platform.value for platform in Platform]


def _platform_option() -> Callable:
    return click.option(
        "--platform",
        "platform_name",
        default=None,
        help=f"Only this platform ({', '.join(PLATFORM_VALUES)}).",
    )


def _parse_spec(value: str) -> PlatformSpec:
    try:
        return PlatformSpec.parse(value)
    except SkillSyncError as exc:
        raise click.ClickException(str(exc))


def _parse_platform(value: Optional[str]) -> Optional[Platform]:
    if value is None:
        return None
    try:
        return parse_platform(value)
    except SkillSyncError as exc:
        raise click.ClickException(str(exc))


def _parse_strategy(value: Optional[str], default: Strategy) -> Strategy:
    if value is None:
        return default
    try:
        return parse_strategy(value)
    except SkillSyncError as exc:
        raise click.ClickException(str(exc))


def _parse_duration_option(value: Optional[str], name: str):
    if value is None:
        return None
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise click.ClickException(f"Invalid value for {name}: {exc}")


@contextmanager
def _cancel_on_interrupt() -> Iterator[threading.Event]:
    """First Ctrl-C stops the sync before its next write; a second one aborts."""
    event = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield event
        return

    def _handler(signum, frame) -> None:
        if event.is_set():
            raise KeyboardInterrupt
        event.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield event
    finally:
        signal.signal(signal.SIGINT, previous)


def _confirm_plan(ui: SyncConsoleUI, direction: str, target: PlatformSpec):
    def _confirm(plan: SyncPlan) -> bool:
        ui.render_plan(plan, direction=direction, show_diffs=False)
        changes = len(plan.mutations())
        return click.confirm(f"Apply {changes} change(s) to {target}?", default=False)

    return _confirm


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option("--no-color", is_flag=True, help="Disable colored output.")
@click.version_option(__version__, prog_name="skillsync")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, no_color: bool) -> None:
    """Sync agent skills between Claude Code, Cursor and Codex."""
    try:
        ctx.obj = build_context(verbose=verbose, no_color=no_color)
    except SkillSyncError as exc:
        raise click.ClickException(str(exc))


@cli.command(help="Sync skills from SOURCE to TARGET (platform[:scope[,scope]]).")
@click.argument("source")
@click.argument("target")
@click.option("--dry-run", is_flag=True, help="Show what would change without writing.")
@click.option("--delete", "delete_mode", is_flag=True, help="Delete target skills missing from the source.")
@click.option(
    "--strategy",
    default=None,
    help=f"How to handle skills that differ: {', '.join(STRATEGY_VALUES)} (default from config, else overwrite).",
)
@click.option("--skip-backup", is_flag=True, help="Do not snapshot target files before writing.")
@click.option("--skip-validation", is_flag=True, help="Do not abort on validation errors.")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_obj
def sync(
    obj: AppContext,
    source: str,
    target: str,
    dry_run: bool,
    delete_mode: bool,
    strategy: Optional[str],
    skip_backup: bool,
    skip_validation: bool,
    yes: bool,
) -> None:
    ui = SyncConsoleUI(obj.console)
    source_spec = _parse_spec(source)
    target_spec = _parse_spec(target)
    direction = f"{source_spec} -> {target_spec}"
    config = obj.config
    chosen_strategy = _parse_strategy(strategy, config.strategy)

    service = SyncService(
        obj.search_roots,
        backup_store=obj.backup_store() if config.backup_enabled else None,
        retention=config.cleanup_policy(),
    )

    with _cancel_on_interrupt() as cancel_event:
        options = SyncOptions(
            strategy=chosen_strategy,
            dry_run=dry_run,
            delete=delete_mode,
            skip_backup=skip_backup,
            skip_validation=skip_validation,
            cancel_event=cancel_event,
        )
        try:
            prepared = service.prepare(source_spec, target_spec, options)
        except ValidationError as exc:
            ui.render_validation_errors(exc.issues)
            raise click.exceptions.Exit(1)
        except SkillSyncError as exc:
            raise click.ClickException(str(exc))

        if dry_run:
            ui.render_plan(prepared.plan, direction=direction)
            ui.render_issues([*prepared.source.warnings, *prepared.target.warnings])
            return

        if options.strategy == Strategy.INTERACTIVE and prepared.plan.conflicts():
            service.resolve_conflicts(prepared, terminal_resolver(ui))

        confirm = None if (yes or config.auto_yes) else _confirm_plan(ui, direction, target_spec)
        try:
            result = service.execute(prepared, options, confirm=confirm)
        except SyncCancelledError:
            ui.render_message("sync", "Sync cancelled.", style=UIStyle.YELLOW.value)
            return
        except BackupError as exc:
            raise click.ClickException(f"Backup failed, nothing was written: {exc}")

    ui.render_result(result, direction=direction)
    for item in result.by_action(SyncAction.CONFLICT):
        if item.conflict is not None:
            ui.render_conflict(item.conflict)
    if result.has_failures():
        raise click.exceptions.Exit(1)


@cli.command(help="List the skills found for SPEC (all platforms when omitted).")
@click.argument("spec", required=False)
@click.pass_obj
def discover(obj: AppContext, spec: Optional[str]) -> None:
    ui = SyncConsoleUI(obj.console)
    specs = [_parse_spec(spec)] if spec else [PlatformSpec(platform) for platform in Platform]
    for item in specs:
        parser = TieredParser.for_platform(item.platform, obj.search_roots)
        result = parser.parse_with_scope_filter(set(item.scopes) or None)
        ui.render_skills(str(item), result.skills, result.issues)


@cli.group(help="Inspect and restore backups.")
def backup() -> None:
    pass


@backup.command("list", help="List backups, newest first.")
@_platform_option()
@click.option("--since", default=None, help="Only backups newer than this age (e.g. 7d).")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Show at most N backups.")
@click.pass_obj
def backup_list(obj: AppContext, platform_name: Optional[str], since: Optional[str], limit: Optional[int]) -> None:
    ui = SyncConsoleUI(obj.console)
    store = obj.backup_store()
    age = _parse_duration_option(since, "--since")
    try:
        backups = store.list(
            BackupFilter(
                platform=_parse_platform(platform_name),
                since=store.clock() - age if age is not None else None,
                limit=limit,
            )
        )
    except BackupError as exc:
        raise click.ClickException(str(exc))
    ui.render_backups(backups)


@backup.command("restore", help="Restore the files of backup ID.")
@click.argument("backup_id")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_obj
def backup_restore(obj: AppContext, backup_id: str, yes: bool) -> None:
    ui = SyncConsoleUI(obj.console)
    store = obj.backup_store()
    try:
        meta = store.get(backup_id)
        if not yes and not click.confirm(
            f"Overwrite {len(meta.files)} file(s) under {meta.source_path}?", default=False
        ):
            ui.render_message("restore", "Restore cancelled.", style=UIStyle.YELLOW.value)
            return
        written = store.restore(backup_id)
    except BackupError as exc:
        raise click.ClickException(str(exc))
    except OSError as exc:
        raise click.ClickException(f"Restore failed: {exc}")
    ui.render_restored(backup_id, written)


@backup.command("verify", help="Check backup ID against its recorded checksums.")
@click.argument("backup_id")
@click.pass_obj
def backup_verify(obj: AppContext, backup_id: str) -> None:
    ui = SyncConsoleUI(obj.console)
    try:
        report = obj.backup_store().verify(backup_id)
    except BackupError as exc:
        raise click.ClickException(str(exc))
    ui.render_verify(report)
    if not report.ok:
        raise click.exceptions.Exit(1)


@backup.command("cleanup", help="Delete old backups (the newest per platform is always kept).")
@click.option("--older-than", default=None, help="Delete backups older than this age (e.g. 30d, 2w).")
@click.option("--keep-latest", type=click.IntRange(min=1), default=None, help="Keep the N newest per platform.")
@_platform_option()
@click.pass_obj
def backup_cleanup(
    obj: AppContext,
    older_than: Optional[str],
    keep_latest: Optional[int],
    platform_name: Optional[str],
) -> None:
    ui = SyncConsoleUI(obj.console)
    policy = CleanupPolicy(
        older_than=_parse_duration_option(older_than, "--older-than"),
        keep_latest=keep_latest,
        platform=_parse_platform(platform_name),
    )
    if policy.older_than is None and policy.keep_latest is None:
        policy = replace(obj.config.cleanup_policy(), platform=policy.platform)
    try:
        removed = obj.backup_store().cleanup(policy)
    except BackupError as exc:
        raise click.ClickException(str(exc))
    ui.render_cleanup(removed)


@backup.command("delete", help="Delete backup ID.")
@click.argument("backup_id")
@click.pass_obj
def backup_delete(obj: AppContext, backup_id: str) -> None:
    ui = SyncConsoleUI(obj.console)
    try:
        obj.backup_store().delete(backup_id)
    except BackupError as exc:
        raise click.ClickException(str(exc))
    ui.render_message("backup", f"Deleted backup {backup_id}.")


def main() -> int:
    try:
        # Without standalone mode click hands back the code of an explicit Exit.
        code = cli(standalone_mode=False)
    except click.exceptions.Exit as exc:
        code = exc.exit_code
        return code if isinstance(code, int) else 1
    except click.exceptions.Abort:
        click.echo("Aborted!", err=True)
        return 1
    except click.ClickException as exc:
        exc.show()
        return 1
    return code if isinstance(code, int) else 0


if __name__ == "__main__":
    raise SystemExit(main())
