from datetime import timedelta
from pathlib import Path

import pytest

from skillsync.config import load_config
from skillsync.errors import ConfigError, InvalidConfigSchemaError, InvalidConfigValueError
from skillsync.models import Platform
from skillsync.sync.models import Strategy


def _write_config(home: Path, text: str) -> Path:
    path = home / ".skillsync" / "config.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults(home: Path, workdir: Path) -> None:
    config = load_config({}, home, workdir)

    assert config.home == home / ".skillsync"
    assert config.backups_dir == home / ".skillsync" / "backups"
    assert config.strategy == Strategy.OVERWRITE
    assert config.backup_enabled
    assert not config.auto_yes
    assert config.platform_paths == {}
    policy = config.cleanup_policy()
    assert policy.keep_latest == 10
    assert policy.older_than == timedelta(days=30)


def test_values_from_yaml(home: Path, workdir: Path) -> None:
    _write_config(
        home,
        "platforms:\n"
        "  cursor:\n"
        "    skills_paths: ['~/rules', 'local/rules']\n"
        "sync:\n"
        "  strategy: three-way\n"
        "  auto_yes: true\n"
        "backup:\n"
        "  enabled: false\n"
        "  retention:\n"
        "    keep_latest: 3\n"
        "    max_age: 2w\n"
        "log_level: debug\n",
    )

    config = load_config({}, home, workdir)

    assert config.platform_paths == {Platform.CURSOR: (home / "rules", workdir / "local" / "rules")}
    assert config.strategy == Strategy.THREE_WAY
    assert config.auto_yes
    assert not config.backup_enabled
    assert config.cleanup_policy().keep_latest == 3
    assert config.cleanup_policy().older_than == timedelta(weeks=2)
    assert config.log_level == "debug"


def test_environment_overrides_file(home: Path, workdir: Path, tmp_path: Path) -> None:
    _write_config(home, "sync:\n  strategy: skip\nbackup:\n  enabled: true\n")
    env = {
        "SKILLSYNC_SYNC_STRATEGY": "merge",
        "SKILLSYNC_BACKUP_ENABLED": "no",
        "SKILLSYNC_CODEX_SKILLS_PATHS": f"{tmp_path / 'a'}:{tmp_path / 'b'}",
        "SKILLSYNC_LOG_LEVEL": "info",
    }

    config = load_config(env, home, workdir)

    assert config.strategy == Strategy.MERGE
    assert not config.backup_enabled
    assert config.platform_paths[Platform.CODEX] == (tmp_path / "a", tmp_path / "b")
    assert config.log_level == "info"


def test_skillsync_home_override(home: Path, workdir: Path, tmp_path: Path) -> None:
    custom = tmp_path / "custom-home"
    custom.mkdir()
    (custom / "config.yaml").write_text("sync:\n  strategy: newer\n", encoding="utf-8")

    config = load_config({"SKILLSYNC_HOME": str(custom)}, home, workdir)

    assert config.home == custom
    assert config.strategy == Strategy.NEWER


def test_empty_config_file(home: Path, workdir: Path) -> None:
    _write_config(home, "")
    assert load_config({}, home, workdir).strategy == Strategy.OVERWRITE


@pytest.mark.parametrize(
    "text",
    [
        "unknown_key: 1\n",
        "sync:\n  strategy: sideways\n",
        "platforms:\n  vim:\n    skills_paths: []\n",
        "backup:\n  retention:\n    max_age: soon\n",
        "backup:\n  retention:\n    keep_latest: 0\n",
    ],
)
def test_schema_errors(home: Path, workdir: Path, text: str) -> None:
    _write_config(home, text)
    with pytest.raises(InvalidConfigSchemaError):
        load_config({}, home, workdir)


def test_invalid_yaml(home: Path, workdir: Path) -> None:
    _write_config(home, "sync: [unclosed\n")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config({}, home, workdir)


def test_invalid_environment_values(home: Path, workdir: Path) -> None:
    with pytest.raises(InvalidConfigValueError):
        load_config({"SKILLSYNC_BACKUP_ENABLED": "maybe"}, home, workdir)
    with pytest.raises(InvalidConfigValueError):
        load_config({"SKILLSYNC_SYNC_STRATEGY": "sideways"}, home, workdir)
