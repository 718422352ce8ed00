"""On-disk snapshots of skill files with a JSON index and retention cleanup."""

from __future__ import annotations

import json
import logging
import os
import secrets
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, Optional

from jsonschema import Draft202012Validator

from skillsync.backup.lock import StoreLock
from skillsync.backup.models import BackupFile, BackupFilter, BackupMetadata, CleanupPolicy, VerifyReport
from skillsync.constants import BACKUP_INDEX_FILENAME, BACKUP_LOCK_FILENAME, BACKUP_LOCK_TIMEOUT_SECONDS, DIR_MODE
from skillsync.errors import BackupCorruptError, BackupError, BackupNotFoundError, StoreUnwritableError
from skillsync.models import Platform
from skillsync.utils import atomic_write_bytes, ensure_dir, read_json, sha256_bytes, sha256_file, write_json

logger = logging.getLogger(__name__)

INDEX_VERSION = 1

_METADATA_SCHEMA = {
    "type": "object",
    "required": ["id", "platform", "sourcePath", "storagePath", "size", "createdAt", "checksum"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "platform": {"enum": [platform.value for platform in Platform]},
        "sourcePath": {"type": "string"},
        "storagePath": {"type": "string"},
        "size": {"type": "integer", "minimum": 0},
        "createdAt": {"type": "string"},
        "checksum": {"type": "string"},
        "files": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["path", "size", "checksum"],
                "properties": {
                    "path": {"type": "string"},
                    "size": {"type": "integer", "minimum": 0},
                    "checksum": {"type": "string"},
                },
            },
        },
    },
}

INDEX_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["version", "backups"],
    "properties": {
        "version": {"type": "integer"},
        "backups": {"type": "array", "items": _METADATA_SCHEMA},
    },
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_backup_id(now: datetime) -> str:
    return f"{now.strftime('%Y%m%dT%H%M%S')}Z-{secrets.token_hex(4)}"


def tree_checksum(files: Iterable[BackupFile]) -> str:
    lines = "".join(f"{item.path}\0{item.checksum}\n" for item in sorted(files, key=lambda f: f.path))
    return sha256_bytes(lines.encode("utf-8"))


class BackupStore:
    def __init__(
        self,
        root: Path,
        lock_timeout: float = BACKUP_LOCK_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.root = root
        self.lock_timeout = lock_timeout
        self.clock = clock
        self._validator = Draft202012Validator(INDEX_SCHEMA)

    @property
    def index_path(self) -> Path:
        return self.root / BACKUP_INDEX_FILENAME

    def _lock(self) -> StoreLock:
        return StoreLock(self.root / BACKUP_LOCK_FILENAME, self.lock_timeout)

    def _load_index(self) -> list[BackupMetadata]:
        if not self.index_path.exists():
            return self._scan()
        try:
            payload = read_json(self.index_path)
        except (OSError, json.JSONDecodeError) as exc:
            raise BackupError(f"Unreadable backup index {self.index_path}: {exc}") from exc
        errors = sorted(self._validator.iter_errors(payload), key=lambda error: list(error.path))
        if errors:
            raise BackupError(f"Invalid backup index {self.index_path}: {errors[0].message}")
        return [BackupMetadata.from_dict(item) for item in payload["backups"]]

    def _scan(self) -> list[BackupMetadata]:
        """Rebuild the listing from per-backup index files."""
        found: list[BackupMetadata] = []
        for path in sorted(self.root.glob(f"*/*/{BACKUP_INDEX_FILENAME}")):
            try:
                found.append(BackupMetadata.from_dict(read_json(path)))
            except (OSError, ValueError, KeyError) as exc:
                logger.warning("Ignoring unreadable backup metadata %s: %s", path, exc)
        return found

    def _save_index(self, backups: list[BackupMetadata]) -> None:
        ordered = sorted(backups, key=lambda meta: meta.created_at)
        write_json(self.index_path, {"version": INDEX_VERSION, "backups": [meta.to_dict() for meta in ordered]})

    def snapshot(self, platform: Platform, paths: Iterable[Path]) -> str:
        files = sorted({path.resolve() for path in paths})
        if not files:
            raise BackupError("Nothing to back up")
        missing = [str(path) for path in files if not path.is_file()]
        if missing:
            raise BackupError(f"Cannot back up missing files: {', '.join(missing)}")

        base = Path(os.path.commonpath([str(path.parent) for path in files]))
        created_at = self.clock()
        backup_id = new_backup_id(created_at)
        platform_dir = self.root / platform.value
        final_dir = platform_dir / backup_id
        tmp_dir = platform_dir / f".tmp-{backup_id}"

        with self._lock():
            backups = self._load_index()
            try:
                ensure_dir(tmp_dir, DIR_MODE)
                records: list[BackupFile] = []
                for path in files:
                    relative = path.relative_to(base)
                    destination = tmp_dir / relative
                    ensure_dir(destination.parent, DIR_MODE)
                    shutil.copy2(path, destination)
                    records.append(
                        BackupFile(path=relative.as_posix(), size=destination.stat().st_size, checksum=sha256_file(destination))
                    )
                metadata = BackupMetadata(
                    id=backup_id,
                    platform=platform,
                    source_path=base,
                    storage_path=final_dir,
                    size=sum(record.size for record in records),
                    created_at=created_at,
                    checksum=tree_checksum(records),
                    files=tuple(records),
                )
                write_json(tmp_dir / BACKUP_INDEX_FILENAME, metadata.to_dict())
                os.rename(tmp_dir, final_dir)
                backups.append(metadata)
                self._save_index(backups)
            except OSError as exc:
                shutil.rmtree(tmp_dir, ignore_errors=True)
                raise StoreUnwritableError(self.root, exc.strerror or str(exc)) from exc

        logger.info("Backed up %d file(s) from %s as %s", len(records), base, backup_id)
        return backup_id

    def list(self, filter: Optional[BackupFilter] = None) -> list[BackupMetadata]:
        filter = filter or BackupFilter()
        backups = self._load_index()
        if filter.platform is not None:
            backups = [meta for meta in backups if meta.platform == filter.platform]
        if filter.since is not None:
            backups = [meta for meta in backups if meta.created_at >= filter.since]
        backups.sort(key=lambda meta: meta.created_at, reverse=True)
        if filter.limit is not None:
            backups = backups[: filter.limit]
        return backups

    def get(self, backup_id: str) -> BackupMetadata:
        for meta in self._load_index():
            if meta.id == backup_id:
                return meta
        raise BackupNotFoundError(backup_id)

    def verify(self, backup_id: str) -> VerifyReport:
        meta = self.get(backup_id)
        corrupt: list[str] = []
        missing: list[str] = []
        for record in meta.files:
            stored = meta.storage_path / record.path
            if not stored.is_file():
                missing.append(record.path)
            elif sha256_file(stored) != record.checksum:
                corrupt.append(record.path)
        if not corrupt and not missing and tree_checksum(meta.files) != meta.checksum:
            corrupt.append(BACKUP_INDEX_FILENAME)
        return VerifyReport(backup_id=backup_id, corrupt=tuple(corrupt), missing=tuple(missing))

    def restore(self, backup_id: str) -> list[Path]:
        meta = self.get(backup_id)
        report = self.verify(backup_id)
        if not report.ok:
            raise BackupCorruptError(backup_id, [*report.corrupt, *report.missing])
        written: list[Path] = []
        for record in meta.files:
            destination = meta.source_path / record.path
            atomic_write_bytes(destination, (meta.storage_path / record.path).read_bytes())
            written.append(destination)
        logger.info("Restored %d file(s) from %s", len(written), backup_id)
        return written

    def delete(self, backup_id: str) -> None:
        with self._lock():
            backups = self._load_index()
            remaining = [meta for meta in backups if meta.id != backup_id]
            if len(remaining) == len(backups):
                raise BackupNotFoundError(backup_id)
            target = next(meta for meta in backups if meta.id == backup_id)
            self._remove(target)
            self._save_index(remaining)

    def cleanup(self, policy: CleanupPolicy) -> list[str]:
        """Apply retention; the newest backup of each platform always survives."""
        now = self.clock()
        with self._lock():
            backups = self._load_index()
            by_platform: dict[Platform, list[BackupMetadata]] = {}
            for meta in backups:
                by_platform.setdefault(meta.platform, []).append(meta)

            doomed: list[BackupMetadata] = []
            for platform, items in by_platform.items():
                if policy.platform is not None and platform != policy.platform:
                    continue
                items.sort(key=lambda meta: meta.created_at, reverse=True)
                for position, meta in enumerate(items):
                    if position == 0:
                        continue
                    if policy.keep_latest is not None and position < policy.keep_latest:
                        continue
                    if policy.older_than is not None:
                        if meta.created_at < now - policy.older_than:
                            doomed.append(meta)
                    elif policy.keep_latest is not None:
                        doomed.append(meta)

            if not doomed:
                return []
            for meta in doomed:
                self._remove(meta)
            doomed_ids = {meta.id for meta in doomed}
            self._save_index([meta for meta in backups if meta.id not in doomed_ids])

        logger.info("Removed %d backup(s)", len(doomed))
        return [meta.id for meta in doomed]

    def _remove(self, meta: BackupMetadata) -> None:
        try:
            shutil.rmtree(meta.storage_path)
        except FileNotFoundError:
            logger.debug("Backup directory already gone: %s", meta.storage_path)
        except OSError as exc:
            raise StoreUnwritableError(meta.storage_path, exc.strerror or str(exc)) from exc
