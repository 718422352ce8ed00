from typing import Final


SKILL_FILENAME: Final[str] = "SKILL.md"
AGENTS_FILENAME: Final[str] = "AGENTS.md"
CODEX_CONFIG_FILENAME: Final[str] = "config.toml"
GIT_DIRNAME: Final[str] = ".git"

SKILLS_DIRNAME: Final[str] = "skills"
COMMANDS_DIRNAME: Final[str] = "commands"
PLUGIN_CACHE_PARTS: Final[tuple[str, ...]] = ("plugins", "cache")

CURSOR_SUFFIXES: Final[tuple[str, ...]] = (".md", ".mdc")

SKILLSYNC_DIRNAME: Final[str] = ".skillsync"
CONFIG_FILENAME: Final[str] = "config.yaml"
BACKUPS_DIRNAME: Final[str] = "backups"

BACKUP_INDEX_FILENAME: Final[str] = "index.json"
BACKUP_LOCK_FILENAME: Final[str] = ".lock"
BACKUP_LOCK_TIMEOUT_SECONDS: Final[float] = 2.0
DEFAULT_KEEP_LATEST: Final[int] = 10
DEFAULT_MAX_AGE: Final[str] = "30d"

DIR_MODE: Final[int] = 0o750
FILE_MODE: Final[int] = 0o644

DIFF_CONTEXT_LINES: Final[int] = 3
MARKER_SOURCE: Final[str] = "<<<<<<< source"
MARKER_SEPARATOR: Final[str] = "======="
MARKER_TARGET: Final[str] = ">>>>>>> target"

ENV_HOME: Final[str] = "SKILLSYNC_HOME"
ENV_SYNC_STRATEGY: Final[str] = "SKILLSYNC_SYNC_STRATEGY"
ENV_BACKUP_ENABLED: Final[str] = "SKILLSYNC_BACKUP_ENABLED"
ENV_LOG_LEVEL: Final[str] = "SKILLSYNC_LOG_LEVEL"
ENV_NO_COLOR: Final[str] = "NO_COLOR"
ENV_SKILLS_PATHS_TEMPLATE: Final[str] = "SKILLSYNC_{platform}_SKILLS_PATHS"

SYSTEM_PREFIXES: Final[tuple[str, ...]] = ("/etc",)
ADMIN_PREFIXES: Final[tuple[str, ...]] = ("/opt",)
