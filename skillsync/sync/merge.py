from __future__ import annotations

from dataclasses import replace
from typing import Any

from skillsync.constants import MARKER_SEPARATOR, MARKER_SOURCE, MARKER_TARGET
from skillsync.models import Skill, SkillType
from skillsync.sync.diff import OpKind, diff_ops, split_lines
from skillsync.sync.models import MergeConflictRegion, MergeResult, Strategy


class Merger:
    """Two-way merge of skill bodies and structured merge of their metadata."""

    def merge_content(self, source_text: str, target_text: str) -> MergeResult:
        ops = diff_ops(split_lines(target_text), split_lines(source_text))
        output: list[str] = []
        regions: list[MergeConflictRegion] = []
        source_run: list[str] = []
        target_run: list[str] = []

        def flush() -> None:
            if source_run and target_run:
                start = len(output) + 1
                output.append(MARKER_SOURCE)
                output.extend(source_run)
                output.append(MARKER_SEPARATOR)
                output.extend(target_run)
                output.append(MARKER_TARGET)
                regions.append(MergeConflictRegion(start_line=start, end_line=len(output)))
            else:
                output.extend(source_run or target_run)
            source_run.clear()
            target_run.clear()

        for op in ops:
            if op.kind == OpKind.EQUAL:
                flush()
                output.append(op.text)
            elif op.kind == OpKind.ADD:
                source_run.append(op.text)
            else:
                target_run.append(op.text)
        flush()

        content = "\n".join(output) + "\n" if output else ""
        return MergeResult(content=content, conflicts=tuple(regions))

    def merge_metadata(self, source: dict[str, Any], target: dict[str, Any], strategy: Strategy) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for key, value in source.items():
            if key in target and target[key] != value and strategy == Strategy.SKIP:
                merged[key] = target[key]
            else:
                merged[key] = value
        for key, value in target.items():
            if key not in merged:
                merged[key] = value
        return merged

    def merge_skill(self, source: Skill, target: Skill, strategy: Strategy) -> tuple[Skill, MergeResult]:
        """Source skill carrying the merged body and merged metadata."""
        result = self.merge_content(source.content, target.content)
        return self.with_metadata(source, target, strategy, result.content), result

    def with_metadata(self, source: Skill, target: Skill, strategy: Strategy, content: str) -> Skill:
        """Source skill with ``content`` and metadata merged from both sides."""
        fields = self.merge_metadata(source.comparable_metadata(), target.comparable_metadata(), strategy)
        description = fields.pop("description", "")
        skill_type = SkillType(fields.pop("type", SkillType.SKILL.value))
        trigger = fields.pop("trigger", "")
        if not trigger and skill_type == SkillType.PROMPT:
            trigger = source.trigger or target.trigger
        merged = replace(
            source,
            description=str(description),
            type=skill_type,
            trigger=str(trigger),
            content=content,
            metadata=fields,
        )
        return merged
