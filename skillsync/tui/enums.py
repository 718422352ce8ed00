from enum import Enum

from skillsync.models import SkillScope
from skillsync.sync.models import ConflictType, LineKind, SyncAction


class UIStyle(str, Enum):
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    CYAN = "cyan"
    MAGENTA = "magenta"
    DIM = "dim"
    WHITE = "white"


SYNC_ACTION_STYLE = {
    SyncAction.CREATED: UIStyle.GREEN.value,
    SyncAction.UPDATED: UIStyle.CYAN.value,
    SyncAction.MERGED: UIStyle.MAGENTA.value,
    SyncAction.SKIPPED: UIStyle.DIM.value,
    SyncAction.CONFLICT: UIStyle.YELLOW.value,
    SyncAction.FAILED: UIStyle.RED.value,
    SyncAction.DELETED: UIStyle.RED.value,
}

CONFLICT_TYPE_STYLE = {
    ConflictType.IDENTICAL: UIStyle.DIM.value,
    ConflictType.CONTENT_ONLY: UIStyle.YELLOW.value,
    ConflictType.METADATA_ONLY: UIStyle.CYAN.value,
    ConflictType.BOTH: UIStyle.RED.value,
}

DIFF_LINE_STYLE = {
    LineKind.ADDED: UIStyle.GREEN.value,
    LineKind.REMOVED: UIStyle.RED.value,
    LineKind.CONTEXT: UIStyle.DIM.value,
}

SCOPE_STYLE = {
    SkillScope.REPO: UIStyle.GREEN.value,
    SkillScope.USER: UIStyle.CYAN.value,
    SkillScope.PLUGIN: UIStyle.MAGENTA.value,
    SkillScope.ADMIN: UIStyle.YELLOW.value,
    SkillScope.SYSTEM: UIStyle.YELLOW.value,
    SkillScope.BUILTIN: UIStyle.DIM.value,
}
