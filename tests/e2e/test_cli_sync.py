"""End-to-end tests driving the skillsync CLI."""

import sys
from pathlib import Path

from skillsync.__main__ import cli, main
from skillsync.backup.store import BackupStore
from skillsync.models import Platform


def _backups(home: Path) -> BackupStore:
    return BackupStore(home / ".skillsync" / "backups")


def test_create_into_empty_cursor(cli_runner, claude_skills: Path, cursor_skills: Path, write_skill) -> None:
    write_skill(claude_skills / "alpha" / "SKILL.md", "# A\n", name="alpha", description="A")

    result = cli_runner.invoke(cli, ["sync", "claudecode", "cursor", "--yes", "--skip-backup"])

    assert result.exit_code == 0, result.output
    assert (cursor_skills / "alpha.md").read_text(encoding="utf-8") == "---\nname: alpha\ndescription: A\n---\n# A\n"
    assert "created" in result.output


def test_overwrite_updates_target(cli_runner, claude_skills: Path, cursor_skills: Path, write_skill) -> None:
    write_skill(claude_skills / "alpha" / "SKILL.md", "# New\n")
    write_skill(cursor_skills / "alpha.md", "# Old\n")

    result = cli_runner.invoke(cli, ["sync", "claude", "cursor", "--strategy", "overwrite", "-y"])

    assert result.exit_code == 0, result.output
    assert (cursor_skills / "alpha.md").read_text(encoding="utf-8") == "# New\n"
    assert "updated" in result.output


def test_skip_preserves_target(cli_runner, claude_skills: Path, cursor_skills: Path, write_skill) -> None:
    write_skill(claude_skills / "alpha" / "SKILL.md", "# New\n")
    write_skill(cursor_skills / "alpha.md", "# Old\n")

    result = cli_runner.invoke(cli, ["sync", "claude", "cursor", "--strategy", "skip", "-y"])

    assert result.exit_code == 0, result.output
    assert (cursor_skills / "alpha.md").read_text(encoding="utf-8") == "# Old\n"
    assert "skipped" in result.output


def test_newer_follows_modification_times(cli_runner, claude_skills: Path, cursor_skills: Path, write_skill) -> None:
    moment = 1_700_000_000.0
    source = write_skill(claude_skills / "alpha" / "SKILL.md", "# New\n", mtime=moment)
    target = write_skill(cursor_skills / "alpha.md", "# Old\n", mtime=moment + 3600)

    result = cli_runner.invoke(cli, ["sync", "claude", "cursor", "--strategy", "newer", "-y"])
    assert result.exit_code == 0, result.output
    assert target.read_text(encoding="utf-8") == "# Old\n"

    write_skill(source, "# New\n", mtime=moment + 7200)
    result = cli_runner.invoke(cli, ["sync", "claude", "cursor", "--strategy", "newer", "-y"])
    assert result.exit_code == 0, result.output
    assert target.read_text(encoding="utf-8") == "# New\n"


def test_three_way_shows_conflict_hunk(cli_runner, claude_skills: Path, cursor_skills: Path, write_skill) -> None:
    write_skill(claude_skills / "alpha" / "SKILL.md", "line1\nSRC\nline3")
    write_skill(cursor_skills / "alpha.md", "line1\nTGT\nline3")

    result = cli_runner.invoke(cli, ["sync", "claude", "cursor", "--strategy", "three-way", "-y"])

    assert result.exit_code == 0, result.output
    assert "conflict" in result.output
    assert "@@ -2,1 +2,1 @@" in result.output
    assert "-TGT" in result.output
    assert "+SRC" in result.output
    assert (cursor_skills / "alpha.md").read_text(encoding="utf-8") == "line1\nTGT\nline3"


def test_backup_then_restore(cli_runner, home: Path, codex_skills: Path, cursor_skills: Path, write_skill) -> None:
    write_skill(codex_skills / "alpha" / "SKILL.md", "v2\n")
    target = write_skill(cursor_skills / "alpha.md", "v1\n")

    result = cli_runner.invoke(cli, ["sync", "codex", "cursor", "-y"])
    assert result.exit_code == 0, result.output
    assert target.read_text(encoding="utf-8") == "v2\n"

    backups = _backups(home).list()
    assert len(backups) == 1
    backup_id = backups[0].id
    assert backups[0].platform == Platform.CURSOR

    listing = cli_runner.invoke(cli, ["backup", "list"])
    assert listing.exit_code == 0, listing.output
    assert backup_id in listing.output

    restored = cli_runner.invoke(cli, ["backup", "restore", backup_id, "--yes"])
    assert restored.exit_code == 0, restored.output
    assert target.read_text(encoding="utf-8") == "v1\n"

    verified = cli_runner.invoke(cli, ["backup", "verify", backup_id])
    assert verified.exit_code == 0, verified.output
    assert "is ok" in verified.output


def test_verify_reports_corruption(cli_runner, home: Path, cursor_skills: Path, write_skill) -> None:
    target = write_skill(cursor_skills / "alpha.md", "v1\n")
    store = _backups(home)
    backup_id = store.snapshot(Platform.CURSOR, [target])
    (store.get(backup_id).storage_path / "alpha.md").write_text("garbage\n", encoding="utf-8")

    result = cli_runner.invoke(cli, ["backup", "verify", backup_id])
    assert result.exit_code == 1
    assert "corrupt" in result.output

    restore = cli_runner.invoke(cli, ["backup", "restore", backup_id, "-y"])
    assert restore.exit_code == 1
    assert target.read_text(encoding="utf-8") == "v1\n"


def test_restore_asks_for_confirmation(cli_runner, home: Path, cursor_skills: Path, write_skill) -> None:
    target = write_skill(cursor_skills / "alpha.md", "v1\n")
    backup_id = _backups(home).snapshot(Platform.CURSOR, [target])
    target.write_text("v2\n", encoding="utf-8")

    result = cli_runner.invoke(cli, ["backup", "restore", backup_id], input="n\n")

    assert result.exit_code == 0, result.output
    assert "Restore cancelled." in result.output
    assert target.read_text(encoding="utf-8") == "v2\n"


def test_backup_commands_on_unknown_id(cli_runner) -> None:
    for command in (["backup", "verify", "missing"], ["backup", "restore", "missing", "-y"], ["backup", "delete", "missing"]):
        result = cli_runner.invoke(cli, command)
        assert result.exit_code == 1
        assert "Backup not found" in result.output


def test_backup_list_empty(cli_runner) -> None:
    result = cli_runner.invoke(cli, ["backup", "list"])
    assert result.exit_code == 0
    assert "No backups found." in result.output


def test_backup_cleanup_and_delete(cli_runner, home: Path, cursor_skills: Path, write_skill) -> None:
    target = write_skill(cursor_skills / "alpha.md", "v1\n")
    store = _backups(home)
    ids = [store.snapshot(Platform.CURSOR, [target]) for _ in range(3)]

    result = cli_runner.invoke(cli, ["backup", "cleanup", "--keep-latest", "1"])
    assert result.exit_code == 0, result.output
    assert "Removed 2 backup(s)" in result.output
    remaining = store.list()
    assert len(remaining) == 1

    result = cli_runner.invoke(cli, ["backup", "delete", remaining[0].id])
    assert result.exit_code == 0, result.output
    assert store.list() == []
    assert set(ids) >= {remaining[0].id}


def test_backup_cleanup_rejects_bad_duration(cli_runner) -> None:
    result = cli_runner.invoke(cli, ["backup", "cleanup", "--older-than", "soon"])
    assert result.exit_code == 1
    assert "invalid duration" in result.output


def test_dry_run_changes_nothing(cli_runner, home: Path, claude_skills: Path, cursor_skills: Path, write_skill) -> None:
    write_skill(claude_skills / "alpha" / "SKILL.md", "new\n")
    write_skill(claude_skills / "beta" / "SKILL.md", "beta\n")
    target = write_skill(cursor_skills / "alpha.md", "old\n")

    result = cli_runner.invoke(cli, ["sync", "claude", "cursor", "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "dry-run" in result.output
    assert "beta" in result.output
    assert target.read_text(encoding="utf-8") == "old\n"
    assert not (cursor_skills / "beta.md").exists()
    assert not (home / ".skillsync" / "backups").exists()


def test_declined_confirmation(cli_runner, claude_skills: Path, cursor_skills: Path, write_skill) -> None:
    write_skill(claude_skills / "alpha" / "SKILL.md", "A\n")

    result = cli_runner.invoke(cli, ["sync", "claude", "cursor"], input="n\n")

    assert result.exit_code == 0, result.output
    assert "Sync cancelled." in result.output
    assert not (cursor_skills / "alpha.md").exists()


def test_accepted_confirmation(cli_runner, claude_skills: Path, cursor_skills: Path, write_skill) -> None:
    write_skill(claude_skills / "alpha" / "SKILL.md", "A\n")

    result = cli_runner.invoke(cli, ["sync", "claude", "cursor"], input="y\n")

    assert result.exit_code == 0, result.output
    assert (cursor_skills / "alpha.md").read_text(encoding="utf-8") == "A\n"


def test_auto_yes_from_config(cli_runner, home: Path, claude_skills: Path, cursor_skills: Path, write_skill) -> None:
    config = home / ".skillsync" / "config.yaml"
    config.parent.mkdir(parents=True)
    config.write_text("sync:\n  auto_yes: true\n", encoding="utf-8")
    write_skill(claude_skills / "alpha" / "SKILL.md", "A\n")

    result = cli_runner.invoke(cli, ["sync", "claude", "cursor"])

    assert result.exit_code == 0, result.output
    assert (cursor_skills / "alpha.md").exists()


def test_interactive_prompt_resolution(cli_runner, claude_skills: Path, cursor_skills: Path, write_skill) -> None:
    write_skill(claude_skills / "alpha" / "SKILL.md", "line1\nSRC\n")
    target = write_skill(cursor_skills / "alpha.md", "line1\nTGT\n")

    result = cli_runner.invoke(
        cli,
        ["sync", "claude", "cursor", "--strategy", "interactive", "--skip-backup"],
        input="use-source\ny\n",
    )

    assert result.exit_code == 0, result.output
    assert target.read_text(encoding="utf-8") == "line1\nSRC\n"


def test_delete_mode(cli_runner, claude_skills: Path, codex_skills: Path, write_skill) -> None:
    write_skill(claude_skills / "alpha" / "SKILL.md", "A\n")
    write_skill(codex_skills / "stale" / "SKILL.md", "old\n")

    result = cli_runner.invoke(cli, ["sync", "claude", "codex", "--delete", "-y"])

    assert result.exit_code == 0, result.output
    assert (codex_skills / "alpha" / "SKILL.md").exists()
    assert not (codex_skills / "stale").exists()


def test_validation_failure_exits_nonzero(cli_runner, codex_skills: Path) -> None:
    result = cli_runner.invoke(cli, ["sync", "cursor", "codex", "-y"])

    assert result.exit_code == 1
    assert "validation failed" in result.output
    assert not codex_skills.exists()


def test_bad_specs_exit_nonzero(cli_runner) -> None:
    for args in (["sync", "vim", "cursor"], ["sync", "cursor", "cursor"], ["sync", "cursor", "codex:repo,user"]):
        result = cli_runner.invoke(cli, args)
        assert result.exit_code == 1, args


def test_write_failure_exits_nonzero(cli_runner, claude_skills: Path, codex_skills: Path, write_skill) -> None:
    write_skill(claude_skills / "alpha" / "SKILL.md", "A\n")
    write_skill(claude_skills / "beta" / "SKILL.md", "B\n")
    codex_skills.mkdir(parents=True)
    (codex_skills / "alpha").write_text("blocks the directory", encoding="utf-8")

    result = cli_runner.invoke(cli, ["sync", "claude", "codex", "-y"])

    assert result.exit_code == 1
    assert "failed" in result.output
    assert (codex_skills / "beta" / "SKILL.md").exists()


def test_discover_lists_skills_by_scope(cli_runner, workdir: Path, claude_skills: Path, write_skill) -> None:
    write_skill(claude_skills / "user-skill" / "SKILL.md", description="From home")
    write_skill(workdir / ".claude" / "skills" / "repo-skill" / "SKILL.md")

    result = cli_runner.invoke(cli, ["discover", "claude"])

    assert result.exit_code == 0, result.output
    assert "user-skill" in result.output
    assert "repo-skill" in result.output
    assert "From home" in result.output


def test_discover_all_platforms(cli_runner) -> None:
    result = cli_runner.invoke(cli, ["discover"])
    assert result.exit_code == 0, result.output
    assert result.output.count("No skills found.") == 3


def test_version(cli_runner) -> None:
    result = cli_runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "skillsync" in result.output


def test_main_returns_exit_codes(monkeypatch, claude_skills: Path, write_skill) -> None:
    monkeypatch.setattr(sys, "argv", ["skillsync", "sync", "vim", "cursor"])
    assert main() == 1

    monkeypatch.setattr(sys, "argv", ["skillsync", "sync", "cursor", "codex", "-y"])
    assert main() == 1

    write_skill(claude_skills / "alpha" / "SKILL.md", "A\n")
    monkeypatch.setattr(sys, "argv", ["skillsync", "sync", "claude", "cursor", "-y", "--skip-backup"])
    assert main() == 0


def test_unknown_strategy_exits_one(cli_runner, claude_skills: Path, cursor_skills: Path, write_skill) -> None:
    write_skill(claude_skills / "alpha" / "SKILL.md", "A\n")

    result = cli_runner.invoke(cli, ["sync", "claudecode", "cursor", "--yes", "--strategy", "bogus"])

    assert result.exit_code == 1
    assert "Unknown strategy 'bogus'" in result.output
    assert not (cursor_skills / "alpha.md").exists()


def test_strategy_names_are_case_insensitive(cli_runner, claude_skills: Path, cursor_skills: Path, write_skill) -> None:
    write_skill(claude_skills / "alpha" / "SKILL.md", "new\n")
    target = write_skill(cursor_skills / "alpha.md", "old\n")

    result = cli_runner.invoke(cli, ["sync", "claude", "cursor", "-y", "--strategy", "SKIP"])

    assert result.exit_code == 0, result.output
    assert target.read_text(encoding="utf-8") == "old\n"


def test_failed_backup_aborts_before_writing(cli_runner, home: Path, claude_skills: Path, cursor_skills: Path, write_skill) -> None:
    (home / ".skillsync").write_text("not a directory", encoding="utf-8")
    write_skill(claude_skills / "alpha" / "SKILL.md", "# New\n")
    write_skill(claude_skills / "beta" / "SKILL.md", "# Beta\n")
    target = write_skill(cursor_skills / "alpha.md", "# Old\n")

    result = cli_runner.invoke(cli, ["sync", "claude", "cursor", "-y"])

    assert result.exit_code == 1
    assert "Backup failed, nothing was written" in result.output
    assert target.read_text(encoding="utf-8") == "# Old\n"
    assert not (cursor_skills / "beta.md").exists()
