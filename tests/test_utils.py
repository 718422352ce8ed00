import hashlib
import json
import stat
from pathlib import Path

from skillsync.utils import (
    atomic_write_text,
    compact_home_path,
    compact_home_paths_in_text,
    find_repo_root,
    is_under,
    is_writable_location,
    read_json,
    sha256_file,
    write_json,
)


# --- atomic writes ---


def test_atomic_write_text_creates_parents_and_sets_mode(tmp_path: Path) -> None:
    path = tmp_path / "a" / "b" / "skill.md"

    atomic_write_text(path, "hello\n")

    assert path.read_text(encoding="utf-8") == "hello\n"
    assert stat.S_IMODE(path.stat().st_mode) == 0o644
    assert [item.name for item in path.parent.iterdir()] == ["skill.md"]


def test_atomic_write_text_replaces_existing_file(tmp_path: Path) -> None:
    path = tmp_path / "skill.md"
    path.write_text("old", encoding="utf-8")

    atomic_write_text(path, "new")

    assert path.read_text(encoding="utf-8") == "new"


def test_json_round_trip_keeps_key_order(tmp_path: Path) -> None:
    path = tmp_path / "index.json"

    write_json(path, {"version": 1, "backups": []})

    assert path.read_text(encoding="utf-8") == '{\n  "version": 1,\n  "backups": []\n}\n'
    assert read_json(path) == {"version": 1, "backups": []}


def test_sha256_file_matches_hashlib(tmp_path: Path) -> None:
    path = tmp_path / "data.bin"
    payload = b"x" * 200_000
    path.write_bytes(payload)

    assert sha256_file(path) == hashlib.sha256(payload).hexdigest()


# --- paths ---


def test_is_under_path_under_root(tmp_path: Path) -> None:
    root = tmp_path / "root"
    root.mkdir()

    assert is_under(root / "child" / "file.txt", root) is True
    assert is_under(tmp_path / "outside", root) is False


def test_is_under_symlink_resolving_outside(tmp_path: Path) -> None:
    root = tmp_path / "root"
    root.mkdir()
    outside = tmp_path / "outside"
    outside.mkdir()
    link = root / "escape"
    link.symlink_to(outside)

    assert is_under(link, root) is False


def test_find_repo_root_walks_up(tmp_path: Path) -> None:
    (tmp_path / "repo" / ".git").mkdir(parents=True)
    nested = tmp_path / "repo" / "src" / "pkg"
    nested.mkdir(parents=True)

    assert find_repo_root(nested) == (tmp_path / "repo").resolve()


def test_is_writable_location_for_missing_directory(tmp_path: Path) -> None:
    assert is_writable_location(tmp_path / "does" / "not" / "exist")


def test_is_writable_location_under_a_file(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")

    assert not is_writable_location(blocker / "child")


def test_compact_home_path_for_absolute_home_path(home: Path) -> None:
    assert compact_home_path(home / ".cursor" / "skills" / "alpha.md") == "~/.cursor/skills/alpha.md"
    assert compact_home_path(home) == "~"
    assert compact_home_path("/elsewhere/file") == "/elsewhere/file"


def test_compact_home_paths_in_text_rewrites_embedded_paths(home: Path) -> None:
    message = f"Cannot read {home / '.claude' / 'skills' / 'a' / 'SKILL.md'}: {json.dumps('denied')}"

    assert compact_home_paths_in_text(message) == 'Cannot read ~/.claude/skills/a/SKILL.md: "denied"'
