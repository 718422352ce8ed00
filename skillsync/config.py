"""Settings from ``$SKILLSYNC_HOME/config.yaml`` with ``SKILLSYNC_*`` environment overrides."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from jsonschema import Draft202012Validator

from skillsync.backup.durations import parse_duration
from skillsync.backup.models import CleanupPolicy
from skillsync.constants import (
    BACKUPS_DIRNAME,
    CONFIG_FILENAME,
    DEFAULT_KEEP_LATEST,
    DEFAULT_MAX_AGE,
    ENV_BACKUP_ENABLED,
    ENV_HOME,
    ENV_LOG_LEVEL,
    ENV_SKILLS_PATHS_TEMPLATE,
    ENV_SYNC_STRATEGY,
    SKILLSYNC_DIRNAME,
)
from skillsync.errors import ConfigError, InvalidConfigSchemaError, InvalidConfigValueError, SkillSyncError
from skillsync.models import PLATFORM_CATALOG, Platform
from skillsync.sync.models import Strategy, parse_strategy

logger = logging.getLogger(__name__)

_PLATFORM_KEYS = sorted({alias for meta in PLATFORM_CATALOG.values() for alias in meta.aliases})

CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "platforms": {
            "type": "object",
            "propertyNames": {"enum": _PLATFORM_KEYS},
            "additionalProperties": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "skills_paths": {"type": "array", "items": {"type": "string", "minLength": 1}},
                },
            },
        },
        "sync": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "strategy": {"enum": [strategy.value for strategy in Strategy]},
                "auto_yes": {"type": "boolean"},
            },
        },
        "backup": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "retention": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "keep_latest": {"type": "integer", "minimum": 1},
                        "max_age": {"type": "string", "pattern": r"^(\d+(\.\d+)?[wdhms])+$"},
                    },
                },
            },
        },
        "log_level": {"enum": ["debug", "info", "warning", "error"]},
    },
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class RetentionConfig:
    keep_latest: int = DEFAULT_KEEP_LATEST
    max_age: str = DEFAULT_MAX_AGE


@dataclass(frozen=True)
class SkillSyncConfig:
    home: Path
    platform_paths: Mapping[Platform, tuple[Path, ...]] = field(default_factory=dict)
    strategy: Strategy = Strategy.OVERWRITE
    auto_yes: bool = False
    backup_enabled: bool = True
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    log_level: Optional[str] = None

    @property
    def config_path(self) -> Path:
        return self.home / CONFIG_FILENAME

    @property
    def backups_dir(self) -> Path:
        return self.home / BACKUPS_DIRNAME

    def cleanup_policy(self) -> CleanupPolicy:
        return CleanupPolicy(
            older_than=parse_duration(self.retention.max_age),
            keep_latest=self.retention.keep_latest,
        )


def expand_path(value: str, user_home: Path, cwd: Path) -> Path:
    if value == "~":
        return user_home
    if value.startswith("~/"):
        return user_home / value[2:]
    path = Path(value)
    return path if path.is_absolute() else cwd / path


def parse_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    raise InvalidConfigValueError(name, value, "expected true or false")


def skillsync_home(env: Mapping[str, str], user_home: Path, cwd: Path) -> Path:
    override = env.get(ENV_HOME, "").strip()
    if override:
        return expand_path(override, user_home, cwd)
    return user_home / SKILLSYNC_DIRNAME


def read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(path, f"Invalid YAML ({exc})") from exc
    if payload is None:
        return {}
    errors = sorted(Draft202012Validator(CONFIG_SCHEMA).iter_errors(payload), key=lambda error: list(error.path))
    if errors:
        error = errors[0]
        location = ".".join(str(part) for part in error.path) or "<root>"
        raise InvalidConfigSchemaError(path, f"{location}: {error.message}")
    return payload


def load_config(env: Mapping[str, str], user_home: Path, cwd: Path) -> SkillSyncConfig:
    home = skillsync_home(env, user_home, cwd)
    payload = read_config_file(home / CONFIG_FILENAME)

    platform_paths: dict[Platform, tuple[Path, ...]] = {}
    for key, entry in (payload.get("platforms") or {}).items():
        platform = next(meta.platform for meta in PLATFORM_CATALOG.values() if key in meta.aliases)
        paths = tuple(expand_path(item, user_home, cwd) for item in entry.get("skills_paths", []))
        if paths:
            platform_paths[platform] = paths
    for platform, meta in PLATFORM_CATALOG.items():
        raw = env.get(ENV_SKILLS_PATHS_TEMPLATE.format(platform=meta.env_key), "")
        paths = tuple(expand_path(item, user_home, cwd) for item in raw.split(":") if item.strip())
        if paths:
            platform_paths[platform] = paths

    sync_section = payload.get("sync") or {}
    strategy_value = env.get(ENV_SYNC_STRATEGY) or sync_section.get("strategy") or Strategy.OVERWRITE.value
    try:
        strategy = parse_strategy(strategy_value)
    except SkillSyncError as exc:
        raise InvalidConfigValueError(ENV_SYNC_STRATEGY, strategy_value, str(exc)) from exc

    backup_section = payload.get("backup") or {}
    backup_enabled = bool(backup_section.get("enabled", True))
    if env.get(ENV_BACKUP_ENABLED):
        backup_enabled = parse_bool(ENV_BACKUP_ENABLED, env[ENV_BACKUP_ENABLED])
    retention_section = backup_section.get("retention") or {}
    retention = RetentionConfig(
        keep_latest=int(retention_section.get("keep_latest", DEFAULT_KEEP_LATEST)),
        max_age=str(retention_section.get("max_age", DEFAULT_MAX_AGE)),
    )

    log_level = env.get(ENV_LOG_LEVEL) or payload.get("log_level")
    config = SkillSyncConfig(
        home=home,
        platform_paths=platform_paths,
        strategy=strategy,
        auto_yes=bool(sync_section.get("auto_yes", False)),
        backup_enabled=backup_enabled,
        retention=retention,
        log_level=log_level,
    )
    logger.debug("Loaded config from %s", config.config_path)
    return config
