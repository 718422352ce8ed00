from __future__ import annotations

from pathlib import Path
from typing import Iterable


class SkillSyncError(Exception):
    """Base user-facing application error."""


class SpecError(SkillSyncError):
    """Invalid platform, scope, strategy or sync direction given by the user."""


class SkillFileError(SkillSyncError):
    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{message}: {path}")


class MalformedFrontmatterError(SkillFileError):
    def __init__(self, path: Path, detail: str) -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Malformed frontmatter ({detail})")


class InvalidSkillNameError(SkillFileError):
    def __init__(self, path: Path, name: str, detail: str) -> None:
        self.name = name
        self.detail = detail
        super().__init__(path=path, message=f"Invalid skill name {name!r} ({detail})")


class PermissionDeniedError(SkillFileError):
    def __init__(self, path: Path) -> None:
        super().__init__(path=path, message="Permission denied")


class DuplicateSkillNameError(SkillFileError):
    def __init__(self, path: Path, name: str, other: Path) -> None:
        self.name = name
        self.other = other
        super().__init__(path=path, message=f"Duplicate skill name {name!r} (also defined in {other})")


class ValidationError(SkillSyncError):
    def __init__(self, issues: Iterable[str]) -> None:
        self.issues = list(issues)
        lines = "\n".join(f"- {issue}" for issue in self.issues)
        super().__init__(f"Validation failed:\n{lines}")


class SyncCancelledError(SkillSyncError):
    """Raised when a sync is cancelled before it touched the filesystem."""


class ConfigError(SkillSyncError):
    def __init__(self, path: Path | str, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{message}: {path}")


class InvalidConfigSchemaError(ConfigError):
    def __init__(self, path: Path, detail: str) -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Invalid config schema ({detail})")


class InvalidConfigValueError(ConfigError):
    def __init__(self, name: str, value: str, detail: str) -> None:
        self.value = value
        self.detail = detail
        super().__init__(path=name, message=f"Invalid value {value!r} ({detail})")


class BackupError(SkillSyncError):
    """Base error for the backup store."""


class BackupNotFoundError(BackupError):
    def __init__(self, backup_id: str) -> None:
        self.backup_id = backup_id
        super().__init__(f"Backup not found: {backup_id}")


class BackupCorruptError(BackupError):
    def __init__(self, backup_id: str, paths: Iterable[str] = ()) -> None:
        self.backup_id = backup_id
        self.paths = list(paths)
        detail = f" ({', '.join(self.paths)})" if self.paths else ""
        super().__init__(f"Backup is corrupt: {backup_id}{detail}")


class StoreUnwritableError(BackupError):
    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Backup store is not writable ({detail}): {path}")


class StoreBusyError(BackupError):
    def __init__(self, path: Path, timeout: float) -> None:
        self.path = path
        self.timeout = timeout
        super().__init__(f"Backup store is locked by another process (waited {timeout:g}s): {path}")


class ScopeCollisionError(SkillFileError):
    def __init__(self, path: Path, name: str, detail: str) -> None:
        self.name = name
        self.detail = detail
        super().__init__(path=path, message=f"Cross-scope collision for {name!r} ({detail})")
