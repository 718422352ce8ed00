from __future__ import annotations

from skillsync.models import Skill
from skillsync.sync.diff import compute_hunks, normalize_text
from skillsync.sync.models import Conflict, ConflictType, MetadataChange


class ConflictDetector:
    """Classifies a same-name (source, target) pair."""

    def detect(self, source: Skill, target: Skill) -> Conflict:
        if source.name != target.name:
            raise ValueError(f"cannot compare {source.name!r} with {target.name!r}")
        content_differs = normalize_text(source.content) != normalize_text(target.content)
        changes = self.metadata_changes(source, target)

        if content_differs and changes:
            kind = ConflictType.BOTH
        elif content_differs:
            kind = ConflictType.CONTENT_ONLY
        elif changes:
            kind = ConflictType.METADATA_ONLY
        else:
            kind = ConflictType.IDENTICAL

        hunks = tuple(compute_hunks(source.content, target.content)) if content_differs else ()
        return Conflict(source=source, target=target, type=kind, hunks=hunks, metadata_changes=tuple(changes))

    @staticmethod
    def metadata_changes(source: Skill, target: Skill) -> list[MetadataChange]:
        source_fields = source.comparable_metadata()
        target_fields = target.comparable_metadata()
        keys = list(source_fields)
        keys.extend(key for key in target_fields if key not in source_fields)
        return [
            MetadataChange(key=key, source=source_fields.get(key), target=target_fields.get(key))
            for key in keys
            if source_fields.get(key) != target_fields.get(key) or (key in source_fields) != (key in target_fields)
        ]
