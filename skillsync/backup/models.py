from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional

from skillsync.models import Platform


@dataclass(frozen=True)
class BackupFile:
    path: str
    size: int
    checksum: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "size": self.size, "checksum": self.checksum}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> BackupFile:
        return cls(path=payload["path"], size=int(payload["size"]), checksum=payload["checksum"])


@dataclass(frozen=True)
class BackupMetadata:
    id: str
    platform: Platform
    source_path: Path
    storage_path: Path
    size: int
    created_at: datetime
    checksum: str
    files: tuple[BackupFile, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "platform": self.platform.value,
            "sourcePath": str(self.source_path),
            "storagePath": str(self.storage_path),
            "size": self.size,
            "createdAt": self.created_at.isoformat(),
            "checksum": self.checksum,
            "files": [item.to_dict() for item in self.files],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> BackupMetadata:
        return cls(
            id=payload["id"],
            platform=Platform(payload["platform"]),
            source_path=Path(payload["sourcePath"]),
            storage_path=Path(payload["storagePath"]),
            size=int(payload["size"]),
            created_at=datetime.fromisoformat(payload["createdAt"]),
            checksum=payload["checksum"],
            files=tuple(BackupFile.from_dict(item) for item in payload.get("files", [])),
        )


@dataclass(frozen=True)
class BackupFilter:
    platform: Optional[Platform] = None
    since: Optional[datetime] = None
    limit: Optional[int] = None


@dataclass(frozen=True)
class CleanupPolicy:
    older_than: Optional[timedelta] = None
    keep_latest: Optional[int] = None
    platform: Optional[Platform] = None


@dataclass(frozen=True)
class VerifyReport:
    backup_id: str
    corrupt: tuple[str, ...] = field(default_factory=tuple)
    missing: tuple[str, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.corrupt and not self.missing
