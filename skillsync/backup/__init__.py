from skillsync.backup.durations import parse_duration
from skillsync.backup.models import BackupFilter, BackupMetadata, CleanupPolicy, VerifyReport
from skillsync.backup.store import BackupStore

__all__ = [
    "BackupFilter",
    "BackupMetadata",
    "BackupStore",
    "CleanupPolicy",
    "VerifyReport",
    "parse_duration",
]
