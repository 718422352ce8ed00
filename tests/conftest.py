import os
import sys
from pathlib import Path
from typing import Any, Optional

from click.testing import CliRunner
import pytest
import yaml


def _ensure_repo_on_path() -> None:
    repo_root = Path(__file__).resolve().parent.parent
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


_ensure_repo_on_path()


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr(Path, "home", lambda: home)
    for key in list(os.environ):
        if key.startswith("SKILLSYNC_") or key == "NO_COLOR":
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(work)
    return home


@pytest.fixture
def home(isolated_home: Path) -> Path:
    return isolated_home


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    return tmp_path / "work"


@pytest.fixture
def roots(home: Path, workdir: Path):
    from skillsync.parsers.tiered import SearchRoots

    return SearchRoots(home=home, cwd=workdir)


def _skill_text(body: str = "# Body\n", **fields: Any) -> str:
    if not fields:
        return body
    front = yaml.safe_dump(fields, sort_keys=False, default_flow_style=False)
    return f"---\n{front}---\n{body}"


@pytest.fixture
def write_skill():
    def _write(path: Path, body: str = "# Body\n", mtime: Optional[float] = None, **fields: Any) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_skill_text(body, **fields), encoding="utf-8")
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return _write


@pytest.fixture
def claude_skills(home: Path) -> Path:
    return home / ".claude" / "skills"


@pytest.fixture
def cursor_skills(home: Path) -> Path:
    return home / ".cursor" / "skills"


@pytest.fixture
def codex_skills(home: Path) -> Path:
    return home / ".codex" / "skills"


@pytest.fixture
def cli_runner(home: Path) -> CliRunner:
    class HomeCliRunner(CliRunner):
        def invoke(self, cli: Any, args: Any = None, **kwargs: Any):  # type: ignore[override]
            env = dict(kwargs.pop("env", {}) or {})
            env.setdefault("HOME", str(home))
            env.setdefault("COLUMNS", "200")
            kwargs["env"] = env
            return super().invoke(cli, args=args, **kwargs)

    return HomeCliRunner()
