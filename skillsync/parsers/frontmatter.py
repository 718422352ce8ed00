"""Split, parse and render skill files with YAML (or TOML) frontmatter."""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from skillsync.errors import InvalidSkillNameError, MalformedFrontmatterError

YAML_FENCE = "---"
TOML_FENCE = "+++"

_FRONTMATTER_RE = re.compile(
    r"\A(?P<fence>---|\+\+\+)[ \t]*\r?\n(?:(?P<raw>.*?)\r?\n)?(?P=fence)[ \t]*(?:\r?\n|\Z)",
    re.DOTALL,
)
_OPENING_RE = re.compile(r"\A(?:---|\+\+\+)[ \t]*\r?\n")
_SKILL_NAME_RE = re.compile(r"^[A-Za-z0-9_:/-]+$")


@dataclass(frozen=True)
class SkillDocument:
    fields: dict[str, Any] = field(default_factory=dict)
    content: str = ""
    fence: str | None = None

    @property
    def has_frontmatter(self) -> bool:
        return self.fence is not None


def normalize_content(text: str) -> str:
    """Collapse trailing newlines to exactly one; empty bodies stay empty."""
    stripped = text.rstrip("\r\n")
    if not stripped.strip():
        return ""
    return stripped + "\n"


def split_frontmatter(text: str, path: Path) -> tuple[str | None, str | None, str]:
    if text.startswith("\ufeff"):
        text = text[1:]
    match = _FRONTMATTER_RE.match(text)
    if match is None:
        if _OPENING_RE.match(text):
            raise MalformedFrontmatterError(path, "missing closing fence")
        return None, None, text
    return match.group("fence"), match.group("raw") or "", text[match.end() :]


def parse_frontmatter_fields(raw: str, fence: str, path: Path) -> dict[str, Any]:
    raw = raw.replace("\r\n", "\n")
    if fence == TOML_FENCE:
        try:
            data: Any = tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            raise MalformedFrontmatterError(path, str(exc)) from exc
    else:
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise MalformedFrontmatterError(path, _yaml_problem(exc)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MalformedFrontmatterError(path, f"expected a mapping, got {type(data).__name__}")
    for key in data:
        if not isinstance(key, str):
            raise MalformedFrontmatterError(path, f"non-string key {key!r}")
    return dict(data)


def _yaml_problem(exc: yaml.YAMLError) -> str:
    problem = getattr(exc, "problem", None)
    mark = getattr(exc, "problem_mark", None)
    if problem and mark is not None:
        return f"{problem} at line {mark.line + 1}"
    return str(exc).splitlines()[0] if str(exc) else exc.__class__.__name__


def parse_document(text: str, path: Path) -> SkillDocument:
    fence, raw, body = split_frontmatter(text, path)
    if fence is None:
        return SkillDocument(content=normalize_content(body))
    fields = parse_frontmatter_fields(raw or "", fence, path)
    return SkillDocument(fields=fields, content=normalize_content(body), fence=fence)


def read_document(path: Path) -> SkillDocument:
    return parse_document(path.read_text(encoding="utf-8"), path)


def render_frontmatter(fields: Mapping[str, Any]) -> str:
    return yaml.safe_dump(
        dict(fields),
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=4096,
    )


def render_document(fields: Mapping[str, Any], content: str, fenced: bool = False) -> str:
    """Emit a skill file; ``fenced`` keeps an empty frontmatter block."""
    body = normalize_content(content)
    if not fields:
        return f"{YAML_FENCE}\n{YAML_FENCE}\n{body}" if fenced else body
    return f"{YAML_FENCE}\n{render_frontmatter(fields)}{YAML_FENCE}\n{body}"


def validate_skill_name(name: str, path: Path) -> None:
    if not name:
        raise InvalidSkillNameError(path, name, "empty")
    if name != name.strip():
        raise InvalidSkillNameError(path, name, "surrounding whitespace")
    if not _SKILL_NAME_RE.match(name):
        raise InvalidSkillNameError(path, name, "allowed characters are letters, digits, '-', '_', ':' and '/'")
    if name.startswith("/") or name.endswith("/") or "//" in name:
        raise InvalidSkillNameError(path, name, "empty path segment")
