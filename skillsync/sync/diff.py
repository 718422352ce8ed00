"""Line diff based on the longest common subsequence."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from skillsync.constants import DIFF_CONTEXT_LINES
from skillsync.parsers.frontmatter import normalize_content
from skillsync.sync.models import DiffHunk, DiffLine, LineKind


class OpKind(str, Enum):
    EQUAL = "equal"
    REMOVE = "remove"
    ADD = "add"


@dataclass(frozen=True)
class DiffOp:
    kind: OpKind
    text: str
    target_index: int
    source_index: int


def normalize_text(text: str) -> str:
    return normalize_content(text.replace("\r\n", "\n"))


def split_lines(text: str) -> list[str]:
    return normalize_text(text).splitlines()


def diff_ops(target: list[str], source: list[str]) -> list[DiffOp]:
    """Edit script turning ``target`` into ``source``; removals precede additions in a run."""
    prefix = 0
    while prefix < len(target) and prefix < len(source) and target[prefix] == source[prefix]:
        prefix += 1
    suffix = 0
    while (
        suffix < len(target) - prefix
        and suffix < len(source) - prefix
        and target[-1 - suffix] == source[-1 - suffix]
    ):
        suffix += 1

    ops = [DiffOp(OpKind.EQUAL, target[i], i, i) for i in range(prefix)]
    middle_t = target[prefix : len(target) - suffix]
    middle_s = source[prefix : len(source) - suffix]

    rows, cols = len(middle_t), len(middle_s)
    table = [[0] * (cols + 1) for _ in range(rows + 1)]
    for i in range(rows - 1, -1, -1):
        row, below = table[i], table[i + 1]
        for j in range(cols - 1, -1, -1):
            if middle_t[i] == middle_s[j]:
                row[j] = below[j + 1] + 1
            else:
                row[j] = max(below[j], row[j + 1])

    i = j = 0
    while i < rows or j < cols:
        t_index, s_index = prefix + i, prefix + j
        if i < rows and j < cols and middle_t[i] == middle_s[j]:
            ops.append(DiffOp(OpKind.EQUAL, middle_t[i], t_index, s_index))
            i += 1
            j += 1
        elif j >= cols or (i < rows and table[i + 1][j] >= table[i][j + 1]):
            ops.append(DiffOp(OpKind.REMOVE, middle_t[i], t_index, s_index))
            i += 1
        else:
            ops.append(DiffOp(OpKind.ADD, middle_s[j], t_index, s_index))
            j += 1

    tail_t, tail_s = len(target) - suffix, len(source) - suffix
    ops.extend(DiffOp(OpKind.EQUAL, target[tail_t + k], tail_t + k, tail_s + k) for k in range(suffix))
    return ops


def _runs(ops: list[DiffOp]) -> list[tuple[int, int]]:
    """Index ranges [start, end) of consecutive non-equal ops."""
    runs: list[tuple[int, int]] = []
    start: int | None = None
    for index, op in enumerate(ops):
        if op.kind == OpKind.EQUAL:
            if start is not None:
                runs.append((start, index))
                start = None
        elif start is None:
            start = index
    if start is not None:
        runs.append((start, len(ops)))
    return runs


def compute_hunks(source_text: str, target_text: str, context: int = DIFF_CONTEXT_LINES) -> list[DiffHunk]:
    """Hunks describing how ``target_text`` must change to become ``source_text``."""
    ops = diff_ops(split_lines(target_text), split_lines(source_text))
    hunks: list[DiffHunk] = []
    for start, end in _runs(ops):
        run = ops[start:end]
        removed = [op for op in run if op.kind == OpKind.REMOVE]
        added = [op for op in run if op.kind == OpKind.ADD]
        first = run[0]
        target_start = first.target_index + 1 if removed else first.target_index
        source_start = first.source_index + 1 if added else first.source_index

        before = []
        index = start - 1
        while index >= 0 and ops[index].kind == OpKind.EQUAL and len(before) < context:
            before.append(ops[index])
            index -= 1
        after = []
        index = end
        while index < len(ops) and ops[index].kind == OpKind.EQUAL and len(after) < context:
            after.append(ops[index])
            index += 1

        lines = [DiffLine(LineKind.CONTEXT, op.text) for op in reversed(before)]
        lines.extend(DiffLine(LineKind.REMOVED, op.text) for op in removed)
        lines.extend(DiffLine(LineKind.ADDED, op.text) for op in added)
        lines.extend(DiffLine(LineKind.CONTEXT, op.text) for op in after)
        hunks.append(
            DiffHunk(
                source_start=source_start,
                source_count=len(added),
                target_start=target_start,
                target_count=len(removed),
                lines=tuple(lines),
            )
        )
    return hunks


def render_hunks(hunks: list[DiffHunk] | tuple[DiffHunk, ...]) -> str:
    return "\n".join(hunk.render() for hunk in hunks)


def unified_diff(source_text: str, target_text: str, source_label: str = "source", target_label: str = "target") -> str:
    hunks = compute_hunks(source_text, target_text)
    if not hunks:
        return ""
    return "\n".join([f"--- {target_label}", f"+++ {source_label}", render_hunks(hunks)])
