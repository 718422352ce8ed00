from skillsync.sync.models import (
    Conflict,
    ConflictType,
    DiffHunk,
    ResolutionChoice,
    SkillResult,
    Strategy,
    SyncAction,
    SyncOptions,
    SyncResult,
)
from skillsync.sync.resolvers import ConflictResolver, ScriptedResolver

__all__ = [
    "Conflict",
    "ConflictResolver",
    "ConflictType",
    "DiffHunk",
    "ResolutionChoice",
    "ScriptedResolver",
    "SkillResult",
    "Strategy",
    "SyncAction",
    "SyncOptions",
    "SyncResult",
]
